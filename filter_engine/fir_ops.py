"""Small operations on FIR tap arrays (scaling, shifting, resizing, latency)."""
from __future__ import annotations

import math
from typing import Optional, Sequence, Tuple

import numpy as np

from .fir import generate_window
from .types import FirWindowType


def clamp_odd_int(value: float, min_value: int = 1, max_value: Optional[int] = None) -> int:
    """Truncate to int, clamp to [min_value, max_value] and prefer an odd result.

    Odd lengths give an integer-sample group delay for linear-phase FIRs.
    """
    if not math.isfinite(value):
        return min_value
    n = int(value)
    n = max(n, min_value)
    if max_value is not None:
        n = min(n, max_value)
    if n % 2 == 0:
        n += 1
    if max_value is not None and n > max_value:
        n = max_value - 1 if max_value % 2 == 0 else max_value
    if n < min_value:
        n = min_value + 1 if min_value % 2 == 0 else min_value
    return n


def estimate_linear_phase_latency_ms(tap_count: int, sample_rate: float) -> float:
    if not math.isfinite(sample_rate) or sample_rate <= 0:
        return 0.0
    if not math.isfinite(tap_count) or tap_count <= 0:
        return 0.0
    return (tap_count - 1) / 2.0 / sample_rate * 1000.0


def find_peak(values: Sequence[float]) -> Tuple[float, int]:
    """(peak |value|, index of first occurrence); (0.0, 0) for empty input."""
    v = np.abs(np.asarray(values, dtype=float))
    if v.size == 0:
        return 0.0, 0
    idx = int(np.argmax(v))
    return float(v[idx]), idx


def scale(values: Sequence[float], factor: float) -> np.ndarray:
    v = np.array(values, dtype=float)
    if not math.isfinite(factor) or factor == 1:
        return v
    return v * factor


def invert_polarity(values: Sequence[float]) -> np.ndarray:
    return -np.asarray(values, dtype=float)


def normalize_peak(values: Sequence[float]) -> np.ndarray:
    peak, _ = find_peak(values)
    if peak <= 0:
        return np.array(values, dtype=float)
    return scale(values, 1.0 / peak)


def apply_gain_db(values: Sequence[float], gain_db: float) -> np.ndarray:
    if not math.isfinite(gain_db) or gain_db == 0:
        return np.array(values, dtype=float)
    return scale(values, 10.0 ** (gain_db / 20.0))


def shift(values: Sequence[float], shift_samples: float) -> np.ndarray:
    """Shift right (positive) or left (negative), zero-filling; length is kept."""
    v = np.asarray(values, dtype=float)
    n = v.size
    s = int(shift_samples)
    out = np.zeros(n)
    if abs(s) >= n:
        return out
    if s > 0:
        out[s:] = v[: n - s]
    elif s < 0:
        out[: n + s] = v[-s:]
    else:
        out[:] = v
    return out


def resize_centered(
    values: Sequence[float],
    target_length: int,
    window: FirWindowType = "Rectangular",
    kaiser_beta: Optional[float] = None,
) -> np.ndarray:
    """Crop or zero-pad around the center tap to an odd `target_length`, then window."""
    src = np.asarray(values, dtype=float)
    length = clamp_odd_int(target_length, min_value=1)
    if src.size == 0:
        return np.zeros(length)

    src_start = (src.size - 1) // 2 - (length - 1) // 2
    idx = src_start + np.arange(length)
    valid = (idx >= 0) & (idx < src.size)
    out = np.zeros(length)
    out[valid] = src[idx[valid]]

    if window != "Rectangular":
        out *= generate_window(length, window, kaiser_beta)
    return out
