"""Biquad coefficient synthesis and complex response evaluation.

Coefficients follow Robert Bristow-Johnson's "Cookbook formulae for audio EQ
biquad filter coefficients" (bilinear transform with frequency pre-warping).
First-order sections use K = tan(w0/2). Butterworth and Linkwitz-Riley
filters of any order are realized as cascades of those sections.

All response functions accept a scalar frequency or a numpy array of
frequencies and return a matching scalar or array.
"""
from __future__ import annotations

import logging
import math
from typing import Callable, Dict, List, Tuple, Union

import numpy as np

from .complex_math import safe_divide
from .errors import InvalidParameterError, check_sample_rate
from .types import (
    UNITY_COEFFICIENTS,
    BiquadCoefficients,
    CrossoverFilter,
    FilterSpec,
    FirstOrderFilter,
    FirstOrderShelfFilter,
    LinkwitzTransformFilter,
    PeakingFilter,
    QFilter,
    ShelfFilter,
)

logger = logging.getLogger(__name__)

# Magnitudes are floored here before log10 so exact nulls stay finite.
MAGNITUDE_FLOOR = 1e-12

Frequency = Union[float, np.ndarray]
_Raw = Tuple[float, float, float, float, float, float]  # b0, b1, b2, a0, a1, a2


# ================================
# Per-kind synthesis (un-normalized)
# ================================

def _alpha(w0: float, q: float) -> float:
    return math.sin(w0) / (2.0 * q)


def _lowpass(spec: QFilter, w0: float, sr: float) -> _Raw:
    cosw = math.cos(w0)
    alpha = _alpha(w0, spec.q)
    return ((1 - cosw) / 2, 1 - cosw, (1 - cosw) / 2, 1 + alpha, -2 * cosw, 1 - alpha)


def _highpass(spec: QFilter, w0: float, sr: float) -> _Raw:
    cosw = math.cos(w0)
    alpha = _alpha(w0, spec.q)
    return ((1 + cosw) / 2, -(1 + cosw), (1 + cosw) / 2, 1 + alpha, -2 * cosw, 1 - alpha)


def _notch(spec: QFilter, w0: float, sr: float) -> _Raw:
    cosw = math.cos(w0)
    alpha = _alpha(w0, spec.q)
    return (1.0, -2 * cosw, 1.0, 1 + alpha, -2 * cosw, 1 - alpha)


def _bandpass(spec: QFilter, w0: float, sr: float) -> _Raw:
    # Constant 0 dB peak gain variant.
    cosw = math.cos(w0)
    alpha = _alpha(w0, spec.q)
    return (alpha, 0.0, -alpha, 1 + alpha, -2 * cosw, 1 - alpha)


def _allpass(spec: QFilter, w0: float, sr: float) -> _Raw:
    cosw = math.cos(w0)
    alpha = _alpha(w0, spec.q)
    return (1 - alpha, -2 * cosw, 1 + alpha, 1 + alpha, -2 * cosw, 1 - alpha)


def _peaking(spec: PeakingFilter, w0: float, sr: float) -> _Raw:
    cosw = math.cos(w0)
    A = 10.0 ** (spec.gain / 40.0)
    alpha = _alpha(w0, spec.q)
    return (1 + alpha * A, -2 * cosw, 1 - alpha * A, 1 + alpha / A, -2 * cosw, 1 - alpha / A)


def _shelf_alpha(w0: float, A: float, slope: float) -> float:
    return math.sin(w0) / 2.0 * math.sqrt((A + 1.0 / A) * (1.0 / slope - 1.0) + 2.0)


def _lowshelf(spec: ShelfFilter, w0: float, sr: float) -> _Raw:
    cosw = math.cos(w0)
    A = 10.0 ** (spec.gain / 40.0)
    two_sqrt_a_alpha = 2 * math.sqrt(A) * _shelf_alpha(w0, A, spec.slope)
    return (
        A * ((A + 1) - (A - 1) * cosw + two_sqrt_a_alpha),
        2 * A * ((A - 1) - (A + 1) * cosw),
        A * ((A + 1) - (A - 1) * cosw - two_sqrt_a_alpha),
        (A + 1) + (A - 1) * cosw + two_sqrt_a_alpha,
        -2 * ((A - 1) + (A + 1) * cosw),
        (A + 1) + (A - 1) * cosw - two_sqrt_a_alpha,
    )


def _highshelf(spec: ShelfFilter, w0: float, sr: float) -> _Raw:
    cosw = math.cos(w0)
    A = 10.0 ** (spec.gain / 40.0)
    two_sqrt_a_alpha = 2 * math.sqrt(A) * _shelf_alpha(w0, A, spec.slope)
    return (
        A * ((A + 1) + (A - 1) * cosw + two_sqrt_a_alpha),
        -2 * A * ((A - 1) + (A + 1) * cosw),
        A * ((A + 1) + (A - 1) * cosw - two_sqrt_a_alpha),
        (A + 1) - (A - 1) * cosw + two_sqrt_a_alpha,
        2 * ((A - 1) - (A + 1) * cosw),
        (A + 1) - (A - 1) * cosw - two_sqrt_a_alpha,
    )


def _lowpass_fo(spec: FirstOrderFilter, w0: float, sr: float) -> _Raw:
    K = math.tan(w0 / 2)
    return (K / (1 + K), K / (1 + K), 0.0, 1.0, (K - 1) / (K + 1), 0.0)


def _highpass_fo(spec: FirstOrderFilter, w0: float, sr: float) -> _Raw:
    K = math.tan(w0 / 2)
    return (1 / (1 + K), -1 / (1 + K), 0.0, 1.0, (K - 1) / (K + 1), 0.0)


def _allpass_fo(spec: FirstOrderFilter, w0: float, sr: float) -> _Raw:
    K = math.tan(w0 / 2)
    a = (K - 1) / (K + 1)
    return (a, 1.0, 0.0, 1.0, a, 0.0)


def _lowshelf_fo(spec: FirstOrderShelfFilter, w0: float, sr: float) -> _Raw:
    K = math.tan(w0 / 2)
    A = 10.0 ** (spec.gain / 40.0)
    return (A * A * K + A, A * A * K - A, 0.0, K + A, K - A, 0.0)


def _highshelf_fo(spec: FirstOrderShelfFilter, w0: float, sr: float) -> _Raw:
    K = math.tan(w0 / 2)
    A = 10.0 ** (spec.gain / 40.0)
    return (A * K + A * A, A * K - A * A, 0.0, A * K + 1, A * K - 1, 0.0)


def _linkwitz_transform(spec: LinkwitzTransformFilter, w0: float, sr: float) -> _Raw:
    """H(s) = (s^2 + s*wa/qa + wa^2) / (s^2 + s*wt/qt + wt^2), bilinear with K = 2*fs.

    Both corner frequencies are pre-warped so they land exactly after the mapping.
    """
    K = 2.0 * sr
    wa = K * math.tan(math.pi * spec.freq_act / sr)
    wt = K * math.tan(math.pi * spec.freq_target / sr)
    d0, d1 = wa * wa, wa / spec.q_act
    c0, c1 = wt * wt, wt / spec.q_target
    K2 = K * K
    return (
        K2 + d1 * K + d0,
        2 * (d0 - K2),
        K2 - d1 * K + d0,
        K2 + c1 * K + c0,
        2 * (c0 - K2),
        K2 - c1 * K + c0,
    )


_SYNTHESIZERS: Dict[str, Callable[..., _Raw]] = {
    "Lowpass": _lowpass,
    "Highpass": _highpass,
    "Notch": _notch,
    "Bandpass": _bandpass,
    "Allpass": _allpass,
    "Peaking": _peaking,
    "Lowshelf": _lowshelf,
    "Highshelf": _highshelf,
    "LowpassFO": _lowpass_fo,
    "HighpassFO": _highpass_fo,
    "AllpassFO": _allpass_fo,
    "LowshelfFO": _lowshelf_fo,
    "HighshelfFO": _highshelf_fo,
    "LinkwitzTransform": _linkwitz_transform,
}


def _check_below_nyquist(spec: FilterSpec, sr: float) -> None:
    nyquist = sr / 2.0
    names = ("freq_act", "freq_target") if isinstance(spec, LinkwitzTransformFilter) else ("freq",)
    for name in names:
        value = getattr(spec, name)
        if value >= nyquist:
            raise InvalidParameterError(
                f"{spec.type}: {name}={value} Hz must be below Nyquist ({nyquist} Hz)"
            )


def synthesize(spec: FilterSpec, sample_rate: float) -> BiquadCoefficients:
    """Compute normalized single-section coefficients for `spec`.

    Kinds without a single-section synthesizer (unknown kinds, and the
    multi-section Butterworth/Linkwitz-Riley kinds) return unity pass-through
    coefficients instead of failing. Use `biquad_sections` to get the full
    cascade for crossover kinds.
    """
    sr = check_sample_rate(sample_rate)
    synth = _SYNTHESIZERS.get(spec.type)
    if synth is None:
        logger.debug("No single-section synthesizer for %r; using unity pass-through", spec.type)
        return UNITY_COEFFICIENTS

    _check_below_nyquist(spec, sr)
    w0 = 2.0 * math.pi * getattr(spec, "freq", 0.0) / sr
    b0, b1, b2, a0, a1, a2 = synth(spec, w0, sr)
    return BiquadCoefficients(b0=b0 / a0, b1=b1 / a0, b2=b2 / a0, a1=a1 / a0, a2=a2 / a0)


# ================================
# Higher-order cascades
# ================================

def butterworth_q_values(order: int) -> List[float]:
    """Pole Q of each second-order section of an `order`-th order Butterworth filter."""
    pairs = order // 2
    return [1.0 / (2.0 * math.sin((2 * k + 1) * math.pi / (2.0 * order))) for k in range(pairs)]


def _butterworth_sections(highpass: bool, freq: float, order: int, sr: float) -> List[BiquadCoefficients]:
    sections: List[BiquadCoefficients] = []
    if order % 2 == 1:
        fo_type = "HighpassFO" if highpass else "LowpassFO"
        sections.append(synthesize(FirstOrderFilter(fo_type, freq), sr))
    so_type = "Highpass" if highpass else "Lowpass"
    for q in butterworth_q_values(order):
        sections.append(synthesize(QFilter(so_type, freq, q), sr))
    return sections


def biquad_sections(spec: FilterSpec, sample_rate: float) -> List[BiquadCoefficients]:
    """All sections whose cascade realizes `spec`."""
    sr = check_sample_rate(sample_rate)
    if isinstance(spec, CrossoverFilter):
        _check_below_nyquist(spec, sr)
        highpass = spec.type.endswith("Highpass")
        if spec.type.startswith("LinkwitzRiley"):
            half = _butterworth_sections(highpass, spec.freq, spec.order // 2, sr)
            return half + half
        return _butterworth_sections(highpass, spec.freq, spec.order, sr)
    return [synthesize(spec, sr)]


def to_sos(sections: List[BiquadCoefficients]) -> np.ndarray:
    """Stack sections into a scipy-compatible (n, 6) second-order-section array."""
    if not sections:
        return np.array([[1.0, 0.0, 0.0, 1.0, 0.0, 0.0]])
    return np.array([[s.b0, s.b1, s.b2, 1.0, s.a1, s.a2] for s in sections], dtype=float)


# ================================
# Response evaluation
# ================================

def complex_response(coeffs: BiquadCoefficients, freq: Frequency, sample_rate: float):
    """Evaluate H(e^{jw}) of one section at `freq` (Hz)."""
    sr = check_sample_rate(sample_rate)
    w = 2.0 * np.pi * np.asarray(freq, dtype=float) / sr
    cosw, cos2w = np.cos(w), np.cos(2 * w)
    sinw, sin2w = np.sin(w), np.sin(2 * w)

    num = (coeffs.b0 + coeffs.b1 * cosw + coeffs.b2 * cos2w) - 1j * (coeffs.b1 * sinw + coeffs.b2 * sin2w)
    den = (1.0 + coeffs.a1 * cosw + coeffs.a2 * cos2w) - 1j * (coeffs.a1 * sinw + coeffs.a2 * sin2w)
    return safe_divide(num, den)


def db_magnitude(h) -> Frequency:
    """20*log10(|h|) with |h| floored at MAGNITUDE_FLOOR."""
    mag = np.maximum(np.abs(h), MAGNITUDE_FLOOR)
    out = 20.0 * np.log10(mag)
    return float(out) if np.ndim(out) == 0 else out


def magnitude_db(coeffs: BiquadCoefficients, freq: Frequency, sample_rate: float) -> Frequency:
    return db_magnitude(complex_response(coeffs, freq, sample_rate))


def spec_complex_response(spec: FilterSpec, freq: Frequency, sample_rate: float):
    """Complex response of any filter spec, multi-section kinds included."""
    h = None
    for section in biquad_sections(spec, sample_rate):
        r = complex_response(section, freq, sample_rate)
        h = r if h is None else h * r
    return h


def spec_magnitude_db(spec: FilterSpec, freq: Frequency, sample_rate: float) -> Frequency:
    """Magnitude in dB of any filter spec at `freq`."""
    return db_magnitude(spec_complex_response(spec, freq, sample_rate))
