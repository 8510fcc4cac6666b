"""Correction quality metrics.

Measures how much excess phase a designed correction removes from a chain and
how far the correction strays from an ideal all-pass magnitude.
"""
from __future__ import annotations

from typing import Dict, Optional, Sequence

import numpy as np

from .biquad import db_magnitude
from .complex_math import expj
from .filter_chain import chain_complex_response
from .fir import fir_complex_at
from .response import generate_frequencies
from .types import FilterChain, PhaseCorrectionResult


# ================================
# Excess phase
# ================================

def excess_phase(
    filters: FilterChain,
    taps: Optional[Sequence[float]],
    delay_samples: int,
    freq: float,
    sample_rate: float,
) -> float:
    """Phase (rad) of chain * correction at `freq` once the design delay is removed.

    With `taps=None` this is the baseline excess phase of the chain alone.
    """
    w = 2.0 * np.pi * freq / sample_rate
    h = chain_complex_response(filters, freq, sample_rate) * expj(w * delay_samples)
    if taps is not None:
        h = h * fir_complex_at(taps, sample_rate, freq)
    return float(np.angle(h))


def most_perturbed_frequency(
    filters: FilterChain,
    sample_rate: float,
    frequencies: Optional[Sequence[float]] = None,
) -> float:
    """Frequency at which the chain's own phase deviates most from zero."""
    freqs = np.asarray(frequencies if frequencies is not None else generate_frequencies(256), dtype=float)
    phases = np.abs(np.angle(chain_complex_response(filters, freqs, sample_rate)))
    return float(freqs[int(np.argmax(phases))])


# ================================
# Summary
# ================================

def evaluate_correction(
    filters: FilterChain,
    result: PhaseCorrectionResult,
    sample_rate: float,
    frequencies: Optional[Sequence[float]] = None,
) -> Dict[str, float]:
    """Summarize a design.

    Returns a dict with keys:
      - probe_hz: frequency where the chain's phase is most perturbed
      - baseline_excess_rad / corrected_excess_rad: excess phase there
      - phase_reduction: 1 - corrected/baseline (0 when there was nothing to fix)
      - worst_magnitude_error_db: largest |dB| of the correction over `frequencies`
      - latency_ms: group delay added by the correction
    """
    freqs = np.asarray(frequencies if frequencies is not None else generate_frequencies(64), dtype=float)
    probe = most_perturbed_frequency(filters, sample_rate, freqs)

    baseline = excess_phase(filters, None, 0, probe, sample_rate)
    corrected = excess_phase(filters, result.taps, result.delay_samples, probe, sample_rate)
    reduction = 0.0 if abs(baseline) < 1e-9 else 1.0 - abs(corrected) / abs(baseline)

    mags = np.array([abs(fir_complex_at(result.taps, sample_rate, f)) for f in freqs])
    worst_db = float(np.max(np.abs(db_magnitude(mags)))) if mags.size else 0.0

    return {
        "probe_hz": probe,
        "baseline_excess_rad": baseline,
        "corrected_excess_rad": corrected,
        "phase_reduction": reduction,
        "worst_magnitude_error_db": worst_db,
        "latency_ms": result.delay_samples / sample_rate * 1000.0,
    }
