"""Correction reports: response series, impulse preview, JSON and PNG output.

This module generates, next to exported taps:
- A JSON report with magnitude/phase/group-delay series for the chain, the
  correction and their cascade, plus the `analysis.evaluate_correction` summary.
- A PNG plot of those series.

Dependencies: numpy, scipy (impulse preview), matplotlib (optional at runtime).
If matplotlib is missing, plotting is skipped but the JSON report is still
written and returned.
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
from scipy.signal import lfilter, sosfilt

from .analysis import evaluate_correction
from .biquad import biquad_sections, db_magnitude, to_sos
from .errors import check_sample_rate
from .filter_chain import applied_delay_samples, chain_complex_response, gain_factor
from .fir import fir_complex_response
from .phase import group_delay_seconds, unwrap_phase
from .response import generate_frequencies
from .types import (
    BiquadStage,
    DelayStage,
    DiffEqStage,
    FilterChain,
    GainStage,
    PhaseCorrectionResult,
)


# ================================
# Impulse preview
# ================================

def chain_impulse_response(
    filters: FilterChain,
    sample_rate: float,
    length: int,
    excitation: Optional[Sequence[float]] = None,
) -> np.ndarray:
    """Offline impulse response of the chain, `length` samples long.

    `excitation` defaults to a unit impulse; pass correction taps to preview
    the corrected chain. Delays are rounded to whole samples and unmodeled
    stages pass the signal through unchanged.
    """
    sr = check_sample_rate(sample_rate)
    x = np.zeros(length)
    if excitation is None:
        x[0] = 1.0
    else:
        e = np.asarray(excitation, dtype=float)[:length]
        x[: e.size] = e

    for stage in filters:
        if isinstance(stage, BiquadStage):
            x = sosfilt(to_sos(biquad_sections(stage.parameters, sr)), x)
        elif isinstance(stage, GainStage):
            x = x * gain_factor(stage)
        elif isinstance(stage, DelayStage):
            d = int(round(applied_delay_samples(stage, sr)))
            x = np.concatenate((np.zeros(min(d, length)), x))[:length] if d > 0 else x
        elif isinstance(stage, DiffEqStage) and stage.a and stage.b and stage.a[0] != 0:
            x = lfilter(stage.b, stage.a, x)
    return x


# ================================
# Response series
# ================================

def _series(h: np.ndarray, freqs: np.ndarray, delay_s: float = 0.0) -> Dict[str, List[float]]:
    # Phase is reported with `delay_s` removed; a bulk delay wraps many times
    # between log-spaced points and cannot be unwrapped there.
    excess = np.angle(h * np.exp(2j * np.pi * freqs * delay_s))
    tau = group_delay_seconds(unwrap_phase(excess), freqs) + delay_s
    return {
        "magnitude_db": [round(float(v), 4) for v in db_magnitude(h)],
        "phase_deg": [round(float(v), 3) for v in np.degrees(excess)],
        "group_delay_ms": [round(float(v) * 1000.0, 4) for v in tau],
    }


def compute_response_report(
    filters: FilterChain,
    result: PhaseCorrectionResult,
    sample_rate: float,
    frequencies: Optional[Sequence[float]] = None,
) -> Dict:
    """Response series and summary for a correction design.

    Returns a dict with keys:
      - frequencies: evaluation grid (Hz)
      - chain / correction / combined: {magnitude_db, phase_deg, group_delay_ms}
      - summary: design sizes, warnings and quality metrics

    Correction and combined phases exclude the design delay; their group
    delays include it.
    """
    freqs = np.asarray(frequencies if frequencies is not None else generate_frequencies(256), dtype=float)
    chain_h = np.atleast_1d(chain_complex_response(filters, freqs, sample_rate))
    corr_h = fir_complex_response(result.taps, sample_rate, freqs)
    delay_s = result.delay_samples / sample_rate

    summary = {
        "taps": result.taps_used,
        "delay_samples": result.delay_samples,
        "fft_size": result.fft_size,
        "warnings": list(result.warnings),
    }
    summary.update({k: round(v, 6) for k, v in evaluate_correction(filters, result, sample_rate).items()})

    return {
        "frequencies": [round(float(f), 3) for f in freqs],
        "chain": _series(chain_h, freqs),
        "correction": _series(corr_h, freqs, delay_s),
        "combined": _series(chain_h * corr_h, freqs, delay_s),
        "summary": summary,
    }


def _save_json(data: Dict, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)


def _plot_report(report: Dict, png_path: Path, impulse: Optional[np.ndarray] = None) -> None:
    try:
        import matplotlib
        matplotlib.use("Agg")
        import matplotlib.pyplot as plt
    except ImportError:
        return  # plotting optional

    freqs = report["frequencies"]
    rows = 4 if impulse is not None else 3
    fig, axes = plt.subplots(rows, 1, figsize=(11, 3.0 * rows), constrained_layout=True)

    styles = {
        "chain": ("#444444", "Filter chain"),
        "correction": ("#b19cd9", "Correction FIR"),
        "combined": ("#54a24b", "Chain + correction"),
    }
    for key, (color, label) in styles.items():
        axes[0].semilogx(freqs, report[key]["magnitude_db"], color=color, label=label)
        axes[1].semilogx(freqs, report[key]["phase_deg"], color=color, label=label)
        axes[2].semilogx(freqs, report[key]["group_delay_ms"], color=color, label=label)

    axes[0].set_ylabel("Magnitude (dB)")
    axes[1].set_ylabel("Excess phase (deg)")
    axes[2].set_ylabel("Group delay (ms)")
    for ax in axes[:3]:
        ax.set_xlabel("Frequency (Hz)")
        ax.grid(True, which="both", alpha=0.3)
    axes[0].legend(loc="lower left")
    axes[0].set_title("Phase correction")

    if impulse is not None:
        axes[3].plot(np.arange(impulse.size), impulse, color="#54a24b", linewidth=0.8)
        axes[3].set_xlabel("Sample")
        axes[3].set_ylabel("Amplitude")
        axes[3].set_title("Corrected impulse response")

    png_path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(png_path, dpi=150)
    plt.close(fig)


def create_correction_report(
    filters: FilterChain,
    result: PhaseCorrectionResult,
    sample_rate: float,
    out_taps_path: Path,
    frequencies: Optional[Sequence[float]] = None,
) -> Tuple[Dict, Path, Path]:
    """Write a PNG plot and a JSON report next to the exported taps.

    Returns (report, png_path, json_path).
    """
    report = compute_response_report(filters, result, sample_rate, frequencies)
    impulse = chain_impulse_response(filters, sample_rate, max(result.taps_used * 2, 1024), result.taps)

    parent = out_taps_path.parent
    stem = out_taps_path.stem
    png_path = parent / f"{stem}_report.png"
    json_path = parent / f"{stem}_report.json"

    _plot_report(report, png_path, impulse=impulse)
    _save_json(report, json_path)
    return report, png_path, json_path
