"""FIR phase correction by frequency sampling.

Given a filter chain, design an FIR whose cascade with the chain has (close to)
zero excess phase inside a frequency band, i.e. the cascade behaves like a
pure delay of `delay_samples` there. Outside the band, and wherever the chain's
magnitude is below the magnitude gate, the FIR is just that delay.

Pipeline
--------
1. Resolve an odd tap count (explicit, or from a latency budget).
2. Pick an oversampled FFT size; rapidly varying target phase needs a finer
   grid than the tap count alone would give.
3. Per bin up to Nyquist: evaluate the chain, weight its inverse phase by the
   band and magnitude gates, add the linear delay, build a unit-magnitude
   spectrum and mirror it with Hermitian symmetry.
4. Inverse FFT, extract `taps_used` samples centered on the energy peak,
   window them and normalize the DC gain.

Soft problems (swapped band edges, capped FFT size, skipped normalization) are
returned in `warnings` and logged; only invalid input raises.
"""
from __future__ import annotations

import logging
import math
from typing import List, Tuple

import numpy as np

from .complex_math import normalize
from .errors import check_sample_rate
from .fft import fft_radix2, next_power_of_two
from .filter_chain import chain_complex_response
from .fir import generate_window
from .fir_ops import clamp_odd_int
from .types import (
    MagnitudeGate,
    PhaseCorrectionBand,
    PhaseCorrectionOptions,
    PhaseCorrectionResult,
)

logger = logging.getLogger(__name__)

MAX_TAPS = 262143
MIN_FFT_SIZE = 2048
MAX_FFT_SIZE = 1 << 20
NORMALIZE_EPS = 1e-12

# (largest tap count, FFT oversampling factor); larger designs get less oversampling.
OVERSAMPLE_STEPS: Tuple[Tuple[int, int], ...] = (
    (8192, 16),
    (32768, 8),
    (131072, 4),
    (262144, 2),
)


# ================================
# Weighting
# ================================

def smoothstep(edge0: float, edge1: float, x):
    """Cubic ramp from 0 at edge0 to 1 at edge1 (a hard step when the edges coincide)."""
    x = np.asarray(x, dtype=float)
    if edge0 == edge1:
        out = np.where(x >= edge1, 1.0, 0.0)
    else:
        t = np.clip((x - edge0) / (edge1 - edge0), 0.0, 1.0)
        out = t * t * (3.0 - 2.0 * t)
    return float(out) if out.ndim == 0 else out


def band_weight(freq_hz, band: PhaseCorrectionBand, nyquist_hz: float):
    """1 inside the band, smoothstep ramps `transition_octaves` wide outside it."""
    f = np.asarray(freq_hz, dtype=float)
    low = max(0.0, band.low_hz)
    high = max(low, min(band.high_hz, nyquist_hz))
    if high <= 0:
        return np.zeros_like(f)

    t_oct = max(0.0, band.transition_octaves)
    if t_oct == 0:
        return ((f >= low) & (f <= high)).astype(float)

    low_start = 0.0 if low <= 0 else low / 2.0 ** t_oct
    high_end = min(nyquist_hz, high * 2.0 ** t_oct)
    w_low = np.ones_like(f) if low <= 0 else smoothstep(low_start, low, f)
    w_high = np.ones_like(f) if high >= nyquist_hz else 1.0 - smoothstep(high, high_end, f)
    return np.clip(w_low * w_high, 0.0, 1.0)


def magnitude_weight(magnitude, gate: MagnitudeGate):
    """Gate on the chain's magnitude: ramps over [threshold - transition, threshold] dB."""
    mag_db = 20.0 * np.log10(np.maximum(np.asarray(magnitude, dtype=float), 1e-12))
    t_db = max(0.0, gate.transition_db)
    if t_db == 0:
        return (mag_db >= gate.threshold_db).astype(float)
    return smoothstep(gate.threshold_db - t_db, gate.threshold_db, mag_db)


# ================================
# Sizing
# ================================

def resolve_taps(options: PhaseCorrectionOptions, sample_rate: float) -> int:
    """Odd tap count in [1, MAX_TAPS]; explicit `taps` wins over the latency budget."""
    if options.taps is not None:
        return clamp_odd_int(options.taps, min_value=1, max_value=MAX_TAPS)
    max_latency_ms = max(0.0, options.max_latency_ms or 0.0)
    max_delay_samples = math.floor(max_latency_ms / 1000.0 * sample_rate)
    return clamp_odd_int(max_delay_samples * 2 + 1, min_value=1, max_value=MAX_TAPS)


def oversample_factor(taps_used: int) -> int:
    for limit, factor in OVERSAMPLE_STEPS:
        if taps_used <= limit:
            return factor
    return 1


def choose_fft_size(taps_used: int) -> Tuple[int, bool]:
    """(FFT size, whether it was capped at MAX_FFT_SIZE)."""
    requested = max(MIN_FFT_SIZE, taps_used * oversample_factor(taps_used))
    size = next_power_of_two(requested)
    if size > MAX_FFT_SIZE:
        return MAX_FFT_SIZE, True
    return size, False


def _normalized_band(band: PhaseCorrectionBand, nyquist: float, warnings: List[str]) -> PhaseCorrectionBand:
    low = min(max(band.low_hz, 0.0), nyquist)
    high = min(max(band.high_hz, 0.0), nyquist)
    if high < low:
        warnings.append("Correction band highHz was below lowHz; swapped.")
        low, high = high, low
    return PhaseCorrectionBand(low, high, max(0.0, band.transition_octaves))


# ================================
# Design
# ================================

def design_phase_correction(options: PhaseCorrectionOptions) -> PhaseCorrectionResult:
    """Design a delay-plus-corrective FIR for `options.filters`."""
    sr = check_sample_rate(options.sample_rate)
    nyquist = sr / 2.0
    warnings: List[str] = []

    taps_used = resolve_taps(options, sr)
    delay_samples = (taps_used - 1) // 2
    if taps_used <= 1 or len(options.filters) == 0:
        return PhaseCorrectionResult(
            taps=np.array([1.0]), taps_used=1, delay_samples=0, fft_size=0, warnings=warnings
        )

    band = _normalized_band(options.band, nyquist, warnings)
    gate = MagnitudeGate(options.magnitude_gate.threshold_db, max(0.0, options.magnitude_gate.transition_db))

    fft_size, capped = choose_fft_size(taps_used)
    if capped:
        warnings.append(f"FFT size capped at {MAX_FFT_SIZE} for performance; ripple may increase.")
    logger.debug("Phase correction: %d taps, delay %d, FFT size %d", taps_used, delay_samples, fft_size)

    nyquist_bin = fft_size // 2
    k = np.arange(nyquist_bin + 1)
    freqs = k / fft_size * sr
    w = 2.0 * np.pi * freqs / sr

    pipe = chain_complex_response(options.filters, freqs, sr)
    weight = band_weight(freqs, band, nyquist) * magnitude_weight(np.abs(pipe), gate)
    # DC and Nyquist must stay real for a real impulse response.
    weight[0] = 0.0
    weight[nyquist_bin] = 0.0

    # Principal angle only: unwrapping would scale extra full turns in the transitions.
    inverse_angle = np.angle(normalize(np.conj(pipe)))
    total_angle = -w * delay_samples + weight * inverse_angle

    spec_re = np.zeros(fft_size)
    spec_im = np.zeros(fft_size)
    spec_re[: nyquist_bin + 1] = np.cos(total_angle)
    spec_im[: nyquist_bin + 1] = np.sin(total_angle)
    spec_im[0] = 0.0
    spec_im[nyquist_bin] = 0.0
    # Hermitian mirror
    spec_re[nyquist_bin + 1 :] = spec_re[nyquist_bin - 1 : 0 : -1]
    spec_im[nyquist_bin + 1 :] = -spec_im[nyquist_bin - 1 : 0 : -1]

    fft_radix2(spec_re, spec_im, inverse=True)

    # Center the extracted window on the energy peak, not on index 0.
    peak_index = int(np.argmax(np.abs(spec_re)))
    start = (peak_index - delay_samples) % fft_size
    idx = (start + np.arange(taps_used)) % fft_size
    window = generate_window(
        taps_used, options.window, options.kaiser_beta if options.window == "Kaiser" else None
    )
    taps = spec_re[idx] * window

    if options.normalize:
        dc = float(np.sum(taps))
        if abs(dc) > NORMALIZE_EPS:
            taps = taps / dc
        else:
            warnings.append("Normalization skipped (DC gain ~ 0).")

    for message in warnings:
        logger.warning(message)

    return PhaseCorrectionResult(
        taps=taps,
        taps_used=taps_used,
        delay_samples=delay_samples,
        fft_size=fft_size,
        warnings=warnings,
    )
