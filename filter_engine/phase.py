"""Phase and group delay helpers for response plots."""
from __future__ import annotations

from typing import Sequence

import numpy as np


def phase_rad(value) -> float:
    """Principal angle of a complex value (or array of values)."""
    return np.angle(value)


def unwrap_phase(phases: Sequence[float]) -> np.ndarray:
    """Remove 2*pi jumps so consecutive samples differ by less than pi."""
    p = np.asarray(phases, dtype=float)
    if p.size == 0:
        return p
    return np.unwrap(p)


def group_delay_seconds(unwrapped_phase_rad: Sequence[float], freqs_hz: Sequence[float]) -> np.ndarray:
    """tau = -dphi/dw, by central differences (one-sided at both ends)."""
    n = min(len(unwrapped_phase_rad), len(freqs_hz))
    phase = np.asarray(unwrapped_phase_rad[:n], dtype=float)
    freqs = np.asarray(freqs_hz[:n], dtype=float)
    out = np.zeros(n)
    if n <= 1:
        return out

    lo = np.concatenate(([0], np.arange(n - 2), [n - 2]))
    hi = np.concatenate(([1], np.arange(2, n), [n - 1]))
    df = freqs[hi] - freqs[lo]
    dphi = phase[hi] - phase[lo]
    with np.errstate(divide="ignore", invalid="ignore"):
        tau = np.where(df == 0, 0.0, -(dphi / df) / (2.0 * np.pi))
    return tau
