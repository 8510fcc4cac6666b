"""Display-oriented response curves.

`composite_response` sums dB magnitudes of independent filters. That is exact
for the magnitude of a series cascade and ignores phase entirely, which keeps
curve redraws cheap. Anything that needs phase must use
`filter_chain.chain_complex_response` instead.
"""
from __future__ import annotations

from typing import List, Optional, Sequence

import numpy as np

from .biquad import spec_magnitude_db
from .types import FilterSpec, FrequencyPoint

FREQUENCY_POINTS = 512
MIN_FREQUENCY = 20.0
MAX_FREQUENCY = 20000.0


def generate_frequencies(
    count: int = FREQUENCY_POINTS,
    min_freq: float = MIN_FREQUENCY,
    max_freq: float = MAX_FREQUENCY,
) -> np.ndarray:
    """Logarithmically spaced frequencies from min_freq to max_freq inclusive."""
    return np.logspace(np.log10(min_freq), np.log10(max_freq), num=count)


def _points(freqs: np.ndarray, mags: np.ndarray) -> List[FrequencyPoint]:
    return [FrequencyPoint(float(f), float(m)) for f, m in zip(freqs, mags)]


def filter_response(
    spec: FilterSpec,
    sample_rate: float,
    frequencies: Optional[Sequence[float]] = None,
) -> List[FrequencyPoint]:
    """Magnitude curve of a single filter."""
    freqs = np.asarray(frequencies if frequencies is not None else generate_frequencies(), dtype=float)
    return _points(freqs, np.atleast_1d(spec_magnitude_db(spec, freqs, sample_rate)))


def composite_response(
    filters: Sequence[FilterSpec],
    sample_rate: float,
    frequencies: Optional[Sequence[float]] = None,
) -> List[FrequencyPoint]:
    """Additive-dB magnitude curve of several filters (phase interactions ignored)."""
    freqs = np.asarray(frequencies if frequencies is not None else generate_frequencies(), dtype=float)
    total = np.zeros_like(freqs)
    for spec in filters:
        total += spec_magnitude_db(spec, freqs, sample_rate)
    return _points(freqs, total)


def format_frequency(freq: float) -> str:
    """Compact label, e.g. "100", "1.0k", "20k"."""
    if freq >= 1000:
        digits = 0 if freq >= 10000 else 1
        return f"{freq / 1000:.{digits}f}k"
    return f"{freq:.0f}"


def format_gain(gain: float) -> str:
    """Signed one-decimal label, e.g. "+3.0", "-6.0", "0.0"."""
    sign = "+" if gain > 0 else ""
    return f"{sign}{gain:.1f}"
