"""File I/O for design requests and FIR taps.

- Listing and loading JSON design requests from `chains/`
- Saving designed taps as 32-bit float WAV (via soundfile) and as plain text
- Importing existing FIR taps from text files or WAV files

Notes
-----
- Text import keeps the last number of every line, ignores `#` and `//`
  comments and skips header-like lines containing letters.
"""
from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
import soundfile as sf

from .errors import InvalidInputError, InvalidParameterError

logger = logging.getLogger(__name__)

CHAINS_DIR = Path("chains")
OUTPUT_DIR = Path("output_taps")

_COMMENT_RE = re.compile(r"(#|//).*$")
# Letters other than e/E (scientific notation) mark a header line.
_HEADER_RE = re.compile(r"[a-df-zA-DF-Z]")
_NUMBER_RE = re.compile(r"[-+]?\d*\.?\d+(?:[eE][-+]?\d+)?")


@dataclass
class TapStats:
    min: float
    max: float
    peak: float


@dataclass
class FirImport:
    """Taps loaded from a file plus what is known about their origin."""

    taps: np.ndarray
    source: str  # "wav" or "text"
    filename: str
    stats: TapStats
    sample_rate: Optional[int] = None
    channels: Optional[int] = None
    subtype: Optional[str] = None
    notes: List[str] = field(default_factory=list)


# ================================
# Design requests
# ================================

def ensure_directories() -> None:
    """Ensure chain/output directories exist."""
    CHAINS_DIR.mkdir(parents=True, exist_ok=True)
    OUTPUT_DIR.mkdir(parents=True, exist_ok=True)


def list_chain_configs() -> List[Path]:
    """Sorted JSON design requests in `chains/`."""
    ensure_directories()
    return sorted(p for p in CHAINS_DIR.glob("*.json") if p.is_file())


def load_design_config(path: Path) -> Dict[str, Any]:
    """Read a JSON design request; the top level must be an object."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise InvalidInputError(f"{path}: invalid JSON ({e})") from e
    if not isinstance(data, dict):
        raise InvalidInputError(f"{path}: expected a JSON object at the top level")
    return data


def build_output_path(config_path: Path) -> Path:
    """WAV destination in `output_taps/` named after the design request."""
    return OUTPUT_DIR / f"{config_path.stem}_phase_correction.wav"


# ================================
# Export
# ================================

def save_taps_wav(path: Path, taps: Sequence[float], sample_rate: float) -> None:
    """Save taps as a mono 32-bit float WAV."""
    data = np.asarray(taps, dtype=np.float32)
    path.parent.mkdir(parents=True, exist_ok=True)
    sf.write(str(path), data, int(round(sample_rate)), subtype="FLOAT")


def save_taps_text(path: Path, taps: Sequence[float]) -> None:
    """Save taps one per line, full double precision."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        for v in np.asarray(taps, dtype=float):
            f.write(f"{v:.17g}\n")


# ================================
# Import
# ================================

def compute_tap_stats(taps: Sequence[float]) -> TapStats:
    v = np.asarray(taps, dtype=float)
    if v.size == 0:
        return TapStats(0.0, 0.0, 0.0)
    return TapStats(float(v.min()), float(v.max()), float(np.max(np.abs(v))))


def import_taps_from_text(text: str, filename: str = "coefficients.txt") -> FirImport:
    taps: List[float] = []
    for raw_line in text.splitlines():
        line = _COMMENT_RE.sub("", raw_line).strip()
        if not line or _HEADER_RE.search(line):
            continue
        matches = _NUMBER_RE.findall(line)
        if not matches:
            continue
        value = float(matches[-1])
        if np.isfinite(value):
            taps.append(value)

    if not taps:
        raise InvalidInputError("No coefficients found in text")
    arr = np.asarray(taps, dtype=float)
    return FirImport(taps=arr, source="text", filename=filename, stats=compute_tap_stats(arr))


def load_taps_text(path: Path) -> FirImport:
    return import_taps_from_text(Path(path).read_text(encoding="utf-8"), filename=Path(path).name)


def import_taps_from_wav(path: Path, channel: int = 0, normalize: bool = False) -> FirImport:
    """Read one channel of a WAV file as FIR taps.

    With `normalize`, taps are scaled so the peak magnitude is 1.0.
    """
    try:
        info = sf.info(str(path))
        data, sr = sf.read(str(path), always_2d=True, dtype="float64")
    except RuntimeError as e:
        raise InvalidInputError(f"{path}: unreadable audio file ({e})") from e

    channels = data.shape[1]
    if not 0 <= channel < channels:
        raise InvalidParameterError(f"{path}: channel {channel} out of range (file has {channels})")
    taps = data[:, channel].copy()
    if taps.size == 0:
        raise InvalidInputError(f"{path}: file contains no samples")

    notes: List[str] = []
    if normalize:
        peak = float(np.max(np.abs(taps)))
        if peak > 0:
            taps /= peak
            notes.append(f"Normalized by peak {peak:.6g}")
    logger.debug("Imported %d taps from %s (channel %d)", taps.size, path, channel)

    return FirImport(
        taps=taps,
        source="wav",
        filename=Path(path).name,
        stats=compute_tap_stats(taps),
        sample_rate=int(sr),
        channels=channels,
        subtype=info.subtype,
        notes=notes,
    )
