"""Phase-accurate complex response of a heterogeneous filter chain.

The chain response is the product of every stage's complex response, taken in
cascade order. Dynamic or data-dependent stages (compressor, gate, loudness,
dither, volume, convolution with unknown data) are not modeled and count as
unity.
"""
from __future__ import annotations

import logging
from typing import Sequence, Union

import numpy as np

from .biquad import spec_complex_response
from .complex_math import expj, safe_divide
from .errors import check_sample_rate
from .types import (
    BiquadStage,
    DelayStage,
    DiffEqStage,
    FilterStage,
    GainStage,
    UnmodeledStage,
)

logger = logging.getLogger(__name__)

SPEED_OF_SOUND_M_S = 343.0

Frequency = Union[float, np.ndarray]


def delay_in_samples(stage: DelayStage, sample_rate: float) -> float:
    """Delay of `stage` in (possibly fractional) samples before any rounding."""
    if stage.unit == "samples":
        return float(stage.delay)
    if stage.unit == "ms":
        return stage.delay / 1000.0 * sample_rate
    # mm: distance over the speed of sound
    return stage.delay / (SPEED_OF_SOUND_M_S * 1000.0) * sample_rate


def applied_delay_samples(stage: DelayStage, sample_rate: float) -> float:
    samples = delay_in_samples(stage, sample_rate)
    return samples if stage.subsample else float(round(samples))


def gain_factor(stage: GainStage) -> float:
    magnitude = stage.gain if stage.scale == "linear" else 10.0 ** (stage.gain / 20.0)
    return -magnitude if stage.inverted else magnitude


def polynomial_response(coeffs: Sequence[float], w: np.ndarray) -> np.ndarray:
    """sum_k c[k] * e^{-jwk}, rotating the phasor one step per coefficient."""
    cos_w, sin_w = np.cos(w), np.sin(w)
    cos_n = np.ones_like(w)
    sin_n = np.zeros_like(w)
    re = np.zeros_like(w)
    im = np.zeros_like(w)
    for c in coeffs:
        re = re + c * cos_n
        im = im - c * sin_n
        cos_n, sin_n = cos_n * cos_w - sin_n * sin_w, sin_n * cos_w + cos_n * sin_w
    return re + 1j * im


def stage_complex_response(stage: FilterStage, freq: Frequency, sample_rate: float):
    """Complex response of a single chain stage at `freq` (Hz)."""
    sr = check_sample_rate(sample_rate)
    f = np.asarray(freq, dtype=float)
    w = 2.0 * np.pi * f / sr

    if isinstance(stage, BiquadStage):
        h = spec_complex_response(stage.parameters, f, sr)
    elif isinstance(stage, GainStage):
        h = np.full(f.shape, gain_factor(stage), dtype=np.complex128)
    elif isinstance(stage, DelayStage):
        h = expj(-w * applied_delay_samples(stage, sr))
    elif isinstance(stage, DiffEqStage):
        if len(stage.a) == 0 or len(stage.b) == 0:
            h = np.ones(f.shape, dtype=np.complex128)
        else:
            h = safe_divide(polynomial_response(stage.b, w), polynomial_response(stage.a, w))
    elif isinstance(stage, UnmodeledStage):
        h = np.ones(f.shape, dtype=np.complex128)
    else:
        logger.debug("Unrecognized stage %r treated as unity", stage)
        h = np.ones(f.shape, dtype=np.complex128)

    h = np.asarray(h, dtype=np.complex128)
    return h[()] if h.ndim == 0 else h


def chain_complex_response(filters: Sequence[FilterStage], freq: Frequency, sample_rate: float):
    """Product of all stage responses, leftmost stage applied first."""
    f = np.asarray(freq, dtype=float)
    acc = np.ones(f.shape, dtype=np.complex128)
    for stage in filters:
        acc = acc * stage_complex_response(stage, f, sample_rate)
    return acc[()] if acc.ndim == 0 else acc
