"""Windowed-sinc FIR design, window functions and FIR response evaluation.

Prototypes are built from the ideal lowpass impulse response
    h[n] = 2*fc*sinc(2*fc*(n - m)),  m = (taps - 1) / 2
with highpass/bandstop obtained by spectral inversion against a centered unit
impulse and bandpass as the difference of two lowpass prototypes.
"""
from __future__ import annotations

import math
from typing import List, Optional, Sequence

import numpy as np

from .biquad import db_magnitude
from .errors import InvalidParameterError, MissingParameterError, check_sample_rate
from .fft import fft_radix2, next_power_of_two
from .response import generate_frequencies
from .types import FIRDesignOptions, FirWindowType, FrequencyPoint

DEFAULT_KAISER_BETA = 8.6
# Truncated power series for the modified Bessel function I0.
BESSEL_MAX_TERMS = 50
BESSEL_TOLERANCE = 1e-12
MIN_RESPONSE_FFT_SIZE = 2048


# ================================
# Windows
# ================================

def bessel_i0(x):
    """Modified Bessel function of the first kind, order 0 (scalar or array).

    Sums (x^2/4)^k / (k!)^2 until a term drops below BESSEL_TOLERANCE relative
    to the running sum, or BESSEL_MAX_TERMS terms have been added.
    """
    ax = np.abs(np.asarray(x, dtype=float))
    x2_over_4 = ax * ax / 4.0
    total = np.ones_like(ax)
    term = np.ones_like(ax)
    active = np.ones(ax.shape, dtype=bool)
    k = 1
    while k < BESSEL_MAX_TERMS and active.any():
        term = np.where(active, term * x2_over_4 / (k * k), term)
        total = np.where(active, total + term, total)
        active &= ~(term < BESSEL_TOLERANCE * total)
        k += 1
    return float(total) if total.ndim == 0 else total


def _cosine_window(length: int, a0: float, a1: float) -> np.ndarray:
    n = np.arange(length)
    return a0 - a1 * np.cos(2.0 * np.pi * n / (length - 1))


def _blackman_window(length: int) -> np.ndarray:
    a = 2.0 * np.pi * np.arange(length) / (length - 1)
    return 0.42 - 0.5 * np.cos(a) + 0.08 * np.cos(2 * a)


def _kaiser_window(length: int, beta: float) -> np.ndarray:
    x = 2.0 * np.arange(length) / (length - 1) - 1.0
    arg = beta * np.sqrt(np.maximum(0.0, 1.0 - x * x))
    return bessel_i0(arg) / bessel_i0(beta)


def generate_window(length: int, window: FirWindowType, kaiser_beta: Optional[float] = None) -> np.ndarray:
    """Symmetric window of `length` points; unknown window names fall back to rectangular."""
    if length <= 1:
        return np.ones(1)
    if window == "Hann":
        return _cosine_window(length, 0.5, 0.5)
    if window == "Hamming":
        return _cosine_window(length, 0.54, 0.46)
    if window == "Blackman":
        return _blackman_window(length)
    if window == "Kaiser":
        return _kaiser_window(length, DEFAULT_KAISER_BETA if kaiser_beta is None else kaiser_beta)
    return np.ones(length)


# ================================
# Design
# ================================

def _lowpass_prototype(fc: float, taps: int) -> np.ndarray:
    m = (taps - 1) / 2.0
    x = np.arange(taps) - m
    return 2.0 * fc * np.sinc(2.0 * fc * x)


def _unit_impulse(taps: int) -> np.ndarray:
    h = np.zeros(taps)
    h[int(round((taps - 1) / 2.0))] = 1.0
    return h


def design_fir(options: FIRDesignOptions) -> np.ndarray:
    """Design a windowed-sinc FIR with `options.taps` taps."""
    sr = check_sample_rate(options.sample_rate)
    taps = max(1, int(math.floor(options.taps)))
    if not math.isfinite(options.f1) or options.f1 <= 0:
        raise InvalidParameterError(f"f1 must be > 0 (got {options.f1!r})")

    nyquist = sr / 2.0
    f1 = min(max(options.f1, 0.0), nyquist)
    f2 = None if options.f2 is None else min(max(options.f2, 0.0), nyquist)
    fc1 = f1 / sr

    shape = options.shape
    if shape == "Lowpass":
        ideal = _lowpass_prototype(fc1, taps)
    elif shape == "Highpass":
        ideal = _unit_impulse(taps) - _lowpass_prototype(fc1, taps)
    elif shape in ("Bandpass", "Bandstop"):
        if f2 is None:
            raise MissingParameterError(f"f2 is required for {shape}")
        lo, hi = sorted((fc1, f2 / sr))
        band = _lowpass_prototype(hi, taps) - _lowpass_prototype(lo, taps)
        ideal = band if shape == "Bandpass" else _unit_impulse(taps) - band
    else:
        raise InvalidParameterError(f"Unsupported FIR shape: {shape!r}")

    out = ideal * generate_window(taps, options.window, options.kaiser_beta)

    if options.normalize:
        if shape in ("Lowpass", "Bandstop"):
            ref = 0.0
        elif shape == "Highpass":
            ref = nyquist
        else:
            ref = (f1 + (f2 if f2 is not None else f1)) / 2.0
        mag = fir_magnitude_at(out, sr, ref)
        if mag > 0:
            out = out / mag
    return out


# ================================
# Response
# ================================

def fir_complex_at(taps: Sequence[float], sample_rate: float, frequency: float) -> complex:
    """Direct DTFT of `taps` at one frequency."""
    h = np.asarray(taps, dtype=float)
    w = 2.0 * np.pi * frequency / sample_rate
    return complex(np.sum(h * np.exp(-1j * w * np.arange(h.size))))


def fir_magnitude_at(taps: Sequence[float], sample_rate: float, frequency: float) -> float:
    return abs(fir_complex_at(taps, sample_rate, frequency))


def _fir_spectrum(taps: np.ndarray):
    nfft = next_power_of_two(max(MIN_RESPONSE_FFT_SIZE, taps.size))
    re = np.zeros(nfft)
    im = np.zeros(nfft)
    re[: taps.size] = taps
    fft_radix2(re, im)
    return re, im, nfft


def _bin_positions(frequencies: np.ndarray, sample_rate: float, nfft: int):
    sr = sample_rate if math.isfinite(sample_rate) and sample_rate > 0 else 48000.0
    nyquist_bin = nfft // 2
    bins = np.clip(np.maximum(0.0, frequencies) / sr * nfft, 0, nyquist_bin)
    k0 = np.floor(bins).astype(int)
    k1 = np.minimum(nyquist_bin, k0 + 1)
    return k0, k1, bins - k0


def fir_response(
    taps: Sequence[float],
    sample_rate: float,
    frequencies: Optional[Sequence[float]] = None,
) -> List[FrequencyPoint]:
    """Magnitude curve from FFT bins, linearly interpolated between bins."""
    freqs = np.asarray(frequencies if frequencies is not None else generate_frequencies(256), dtype=float)
    h = np.asarray(taps, dtype=float)
    if h.size == 0:
        return [FrequencyPoint(float(f), 0.0) for f in freqs]

    re, im, nfft = _fir_spectrum(h)
    k0, k1, frac = _bin_positions(freqs, sample_rate, nfft)
    mag = np.hypot(re, im)
    interp = mag[k0] + (mag[k1] - mag[k0]) * frac
    db = np.atleast_1d(db_magnitude(interp))
    return [FrequencyPoint(float(f), float(m)) for f, m in zip(freqs, db)]


def fir_complex_response(
    taps: Sequence[float],
    sample_rate: float,
    frequencies: Optional[Sequence[float]] = None,
) -> np.ndarray:
    """Complex response at `frequencies`, interpolated in polar form between FFT bins.

    Polar interpolation avoids artificial notches where the phase rotates
    quickly between bins (long linear-phase or all-pass-like FIRs).
    """
    freqs = np.asarray(frequencies if frequencies is not None else generate_frequencies(256), dtype=float)
    h = np.asarray(taps, dtype=float)
    if h.size == 0:
        return np.zeros(freqs.shape, dtype=np.complex128)

    re, im, nfft = _fir_spectrum(h)
    k0, k1, frac = _bin_positions(freqs, sample_rate, nfft)
    mag0, mag1 = np.hypot(re[k0], im[k0]), np.hypot(re[k1], im[k1])
    ph0, ph1 = np.arctan2(im[k0], re[k0]), np.arctan2(im[k1], re[k1])
    d = ph1 - ph0
    ph1 = np.where(d > np.pi, ph1 - 2 * np.pi, np.where(d < -np.pi, ph1 + 2 * np.pi, ph1))

    mag = mag0 + (mag1 - mag0) * frac
    phase = ph0 + (ph1 - ph0) * frac
    return mag * np.exp(1j * phase)
