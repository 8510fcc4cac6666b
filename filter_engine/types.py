"""Shared datatypes for filter design.

These dataclasses and type aliases keep interfaces clear between modules.
Every value is immutable and created fresh per design call. This file should
remain lightweight: it only depends on numpy for the tap arrays.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Literal, Optional, Tuple, Union

import numpy as np

from .errors import InvalidParameterError

QFilterType = Literal["Lowpass", "Highpass", "Notch", "Bandpass", "Allpass"]
FirstOrderFilterType = Literal["LowpassFO", "HighpassFO", "AllpassFO"]
ShelfFilterType = Literal["Lowshelf", "Highshelf"]
FirstOrderShelfFilterType = Literal["LowshelfFO", "HighshelfFO"]
CrossoverFilterType = Literal[
    "ButterworthLowpass",
    "ButterworthHighpass",
    "LinkwitzRileyLowpass",
    "LinkwitzRileyHighpass",
]
FirWindowType = Literal["Rectangular", "Hann", "Hamming", "Blackman", "Kaiser"]
FirShape = Literal["Lowpass", "Highpass", "Bandpass", "Bandstop"]
DelayUnit = Literal["ms", "samples", "mm"]
GainScale = Literal["dB", "linear"]

UNMODELED_STAGE_TYPES: Tuple[str, ...] = (
    "Volume",
    "Dither",
    "Compressor",
    "NoiseGate",
    "Loudness",
    "Conv",
)


def _require_positive(name: str, value: float) -> None:
    if not np.isfinite(value) or value <= 0:
        raise InvalidParameterError(f"{name} must be > 0 (got {value!r})")


# ================================
# Filter specifications
# ================================

@dataclass(frozen=True)
class QFilter:
    """Second-order filter shaped by a cutoff/center frequency and a Q."""

    type: QFilterType
    freq: float
    q: float

    def __post_init__(self) -> None:
        _require_positive("freq", self.freq)
        _require_positive("q", self.q)


@dataclass(frozen=True)
class FirstOrderFilter:
    type: FirstOrderFilterType
    freq: float

    def __post_init__(self) -> None:
        _require_positive("freq", self.freq)


@dataclass(frozen=True)
class PeakingFilter:
    freq: float
    gain: float
    q: float
    type: Literal["Peaking"] = "Peaking"

    def __post_init__(self) -> None:
        _require_positive("freq", self.freq)
        _require_positive("q", self.q)


@dataclass(frozen=True)
class ShelfFilter:
    """Second-order shelf. `slope` is the RBJ shelf slope S (1.0 = steepest monotonic)."""

    type: ShelfFilterType
    freq: float
    gain: float
    slope: float

    def __post_init__(self) -> None:
        _require_positive("freq", self.freq)
        _require_positive("slope", self.slope)


@dataclass(frozen=True)
class FirstOrderShelfFilter:
    type: FirstOrderShelfFilterType
    freq: float
    gain: float

    def __post_init__(self) -> None:
        _require_positive("freq", self.freq)


@dataclass(frozen=True)
class LinkwitzTransformFilter:
    """Maps an actual low-frequency alignment (freq_act, q_act) to a target one."""

    freq_act: float
    q_act: float
    freq_target: float
    q_target: float
    type: Literal["LinkwitzTransform"] = "LinkwitzTransform"

    def __post_init__(self) -> None:
        _require_positive("freq_act", self.freq_act)
        _require_positive("q_act", self.q_act)
        _require_positive("freq_target", self.freq_target)
        _require_positive("q_target", self.q_target)


@dataclass(frozen=True)
class CrossoverFilter:
    """Butterworth or Linkwitz-Riley filter of arbitrary order.

    Realized as a cascade of first/second-order sections rather than a single biquad.
    """

    type: CrossoverFilterType
    freq: float
    order: int

    def __post_init__(self) -> None:
        _require_positive("freq", self.freq)
        if isinstance(self.order, bool) or not isinstance(self.order, (int, np.integer)) or self.order <= 0:
            raise InvalidParameterError(f"order must be a positive integer (got {self.order!r})")
        if self.type.startswith("LinkwitzRiley") and self.order % 2 != 0:
            raise InvalidParameterError(f"Linkwitz-Riley order must be even (got {self.order})")


@dataclass(frozen=True)
class UnknownFilter:
    """A filter kind this engine does not recognize.

    Kept so that configs from newer versions still load; it synthesizes to a
    unity pass-through.
    """

    type: str
    freq: float = 1000.0


FilterSpec = Union[
    QFilter,
    FirstOrderFilter,
    PeakingFilter,
    ShelfFilter,
    FirstOrderShelfFilter,
    LinkwitzTransformFilter,
    CrossoverFilter,
    UnknownFilter,
]


@dataclass(frozen=True)
class BiquadCoefficients:
    """Second-order section coefficients with a0 normalized to 1.

    The transfer function is:
        H(z) = (b0 + b1 z^-1 + b2 z^-2) / (1 + a1 z^-1 + a2 z^-2)
    """

    b0: float
    b1: float
    b2: float
    a1: float
    a2: float


UNITY_COEFFICIENTS = BiquadCoefficients(1.0, 0.0, 0.0, 0.0, 0.0)


@dataclass(frozen=True)
class FrequencyPoint:
    frequency: float
    magnitude_db: float


# ================================
# Filter chain stages
# ================================

@dataclass(frozen=True)
class BiquadStage:
    parameters: FilterSpec
    type: Literal["Biquad"] = "Biquad"


@dataclass(frozen=True)
class GainStage:
    gain: float
    inverted: bool = False
    scale: GainScale = "dB"
    type: Literal["Gain"] = "Gain"


@dataclass(frozen=True)
class DelayStage:
    """Pure delay. `mm` converts a distance to time with the speed of sound."""

    delay: float
    unit: DelayUnit = "ms"
    subsample: bool = False
    type: Literal["Delay"] = "Delay"


@dataclass(frozen=True)
class DiffEqStage:
    """Raw difference equation with numerator `b` and denominator `a` polynomials."""

    a: Tuple[float, ...]
    b: Tuple[float, ...]
    type: Literal["DiffEq"] = "DiffEq"


@dataclass(frozen=True)
class UnmodeledStage:
    """Dynamic or data-dependent stage treated as unity in response previews."""

    type: str


FilterStage = Union[BiquadStage, GainStage, DelayStage, DiffEqStage, UnmodeledStage]
FilterChain = List[FilterStage]


# ================================
# FIR design
# ================================

@dataclass(frozen=True)
class FIRDesignOptions:
    """Options for windowed-sinc FIR design.

    Attributes:
        shape: Lowpass, Highpass, Bandpass or Bandstop.
        sample_rate: Sample rate in Hz.
        taps: Number of taps.
        f1: Cutoff for Lowpass/Highpass, low cutoff for band shapes (Hz).
        f2: High cutoff for Bandpass/Bandstop (Hz).
        window: Window applied to the ideal prototype.
        kaiser_beta: Kaiser beta (only used with the Kaiser window).
        normalize: Scale to unity gain at a shape-appropriate reference frequency.
    """

    shape: FirShape
    sample_rate: float
    taps: int
    f1: float
    f2: Optional[float] = None
    window: FirWindowType = "Hann"
    kaiser_beta: Optional[float] = None
    normalize: bool = False


# ================================
# Phase correction
# ================================

@dataclass(frozen=True)
class PhaseCorrectionBand:
    low_hz: float = 20.0
    high_hz: float = 20000.0
    transition_octaves: float = 0.25


@dataclass(frozen=True)
class MagnitudeGate:
    """Below `threshold_db` the chain's phase is ignored; `transition_db` softens the edge."""

    threshold_db: float = -30.0
    transition_db: float = 12.0


@dataclass(frozen=True)
class PhaseCorrectionOptions:
    """Inputs for a phase-correction design.

    `taps` wins over `max_latency_ms` when both are given.
    """

    sample_rate: float
    filters: FilterChain
    taps: Optional[int] = None
    max_latency_ms: Optional[float] = None
    window: FirWindowType = "Hann"
    kaiser_beta: Optional[float] = None
    normalize: bool = True
    band: PhaseCorrectionBand = field(default_factory=PhaseCorrectionBand)
    magnitude_gate: MagnitudeGate = field(default_factory=MagnitudeGate)


@dataclass(frozen=True)
class PhaseCorrectionResult:
    taps: np.ndarray
    taps_used: int
    delay_samples: int
    fft_size: int
    warnings: List[str] = field(default_factory=list)
