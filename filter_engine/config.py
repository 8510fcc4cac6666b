"""Build typed filter specs, chains and design options from plain dicts.

Dicts use the same field names as the filter config documents, e.g.

    {"type": "Biquad", "parameters": {"type": "Peaking", "freq": 1000, "gain": 6, "q": 2}}
    {"type": "Delay", "parameters": {"delay": 1.5, "unit": "ms", "subsample": false}}

Unknown stage types load as `UnmodeledStage` and unknown biquad kinds as
`UnknownFilter` (unity), so documents written by newer versions still load.
"""
from __future__ import annotations

import logging
import math
from typing import Any, List, Mapping, Optional, Sequence, Tuple

from .errors import InvalidParameterError, MissingParameterError
from .types import (
    UNMODELED_STAGE_TYPES,
    BiquadStage,
    CrossoverFilter,
    DelayStage,
    DiffEqStage,
    FilterChain,
    FilterSpec,
    FilterStage,
    FirstOrderFilter,
    FirstOrderShelfFilter,
    GainStage,
    LinkwitzTransformFilter,
    MagnitudeGate,
    PeakingFilter,
    PhaseCorrectionBand,
    PhaseCorrectionOptions,
    QFilter,
    ShelfFilter,
    UnknownFilter,
    UnmodeledStage,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_LATENCY_MS = 50.0

_Q_TYPES = ("Lowpass", "Highpass", "Notch", "Bandpass", "Allpass")
_FO_TYPES = ("LowpassFO", "HighpassFO", "AllpassFO")
_SHELF_TYPES = ("Lowshelf", "Highshelf")
_FO_SHELF_TYPES = ("LowshelfFO", "HighshelfFO")
_WINDOWS = ("Rectangular", "Hann", "Hamming", "Blackman", "Kaiser")
_CROSSOVER_TYPES = (
    "ButterworthLowpass",
    "ButterworthHighpass",
    "LinkwitzRileyLowpass",
    "LinkwitzRileyHighpass",
)


def _number(d: Mapping[str, Any], key: str, where: str) -> float:
    if key not in d:
        raise MissingParameterError(f"{where}: missing '{key}'")
    value = d[key]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidParameterError(f"{where}: '{key}' must be a number (got {value!r})")
    if not math.isfinite(value):
        raise InvalidParameterError(f"{where}: '{key}' must be finite (got {value!r})")
    return float(value)


def _optional_number(d: Mapping[str, Any], key: str, where: str) -> Optional[float]:
    if d.get(key) is None:
        return None
    return _number(d, key, where)


def filter_spec_from_dict(d: Mapping[str, Any]) -> FilterSpec:
    """Convert biquad `parameters` into a filter spec dataclass."""
    kind = d.get("type")
    if not isinstance(kind, str):
        raise MissingParameterError("Biquad parameters: missing 'type'")
    where = f"Biquad {kind}"

    if kind in _Q_TYPES:
        return QFilter(kind, _number(d, "freq", where), _number(d, "q", where))
    if kind in _FO_TYPES:
        return FirstOrderFilter(kind, _number(d, "freq", where))
    if kind == "Peaking":
        return PeakingFilter(_number(d, "freq", where), _number(d, "gain", where), _number(d, "q", where))
    if kind in _SHELF_TYPES:
        return ShelfFilter(kind, _number(d, "freq", where), _number(d, "gain", where), _number(d, "slope", where))
    if kind in _FO_SHELF_TYPES:
        return FirstOrderShelfFilter(kind, _number(d, "freq", where), _number(d, "gain", where))
    if kind == "LinkwitzTransform":
        return LinkwitzTransformFilter(
            _number(d, "freq_act", where),
            _number(d, "q_act", where),
            _number(d, "freq_target", where),
            _number(d, "q_target", where),
        )
    if kind in _CROSSOVER_TYPES:
        order = _number(d, "order", where)
        if order != int(order):
            raise InvalidParameterError(f"{where}: 'order' must be an integer (got {order})")
        return CrossoverFilter(kind, _number(d, "freq", where), int(order))

    logger.warning("Unknown biquad type %r; it will act as a pass-through", kind)
    return UnknownFilter(kind, float(d.get("freq", 1000.0)))


def _coefficients(params: Mapping[str, Any], key: str) -> Tuple[float, ...]:
    values = params.get(key, [])
    if isinstance(values, (str, bytes)) or not isinstance(values, Sequence):
        raise InvalidParameterError(f"DiffEq: '{key}' must be a list of numbers")
    if any(isinstance(v, bool) or not isinstance(v, (int, float)) for v in values):
        raise InvalidParameterError(f"DiffEq: '{key}' must be a list of numbers")
    return tuple(float(v) for v in values)


def stage_from_dict(d: Mapping[str, Any]) -> FilterStage:
    kind = d.get("type")
    if not isinstance(kind, str):
        raise MissingParameterError("Filter stage: missing 'type'")
    params = d.get("parameters") or {}
    if not isinstance(params, Mapping):
        raise InvalidParameterError(f"{kind}: 'parameters' must be an object")

    if kind == "Biquad":
        return BiquadStage(filter_spec_from_dict(params))
    if kind == "Gain":
        scale = params.get("scale", "dB")
        if scale not in ("dB", "linear"):
            raise InvalidParameterError(f"Gain: unknown scale {scale!r}")
        return GainStage(_number(params, "gain", kind), bool(params.get("inverted", False)), scale)
    if kind == "Delay":
        unit = params.get("unit", "ms")
        if unit not in ("ms", "samples", "mm"):
            raise InvalidParameterError(f"Delay: unknown unit {unit!r}")
        return DelayStage(_number(params, "delay", kind), unit, bool(params.get("subsample", False)))
    if kind == "DiffEq":
        return DiffEqStage(_coefficients(params, "a"), _coefficients(params, "b"))
    if kind not in UNMODELED_STAGE_TYPES:
        logger.warning("Unknown filter stage type %r; it will act as a pass-through", kind)
    return UnmodeledStage(kind)


def chain_from_list(items: Sequence[Mapping[str, Any]]) -> FilterChain:
    return [stage_from_dict(item) for item in items]


def _number_or(d: Mapping[str, Any], key: str, where: str, default: float) -> float:
    value = _optional_number(d, key, where)
    return default if value is None else value


def phase_correction_options_from_dict(d: Mapping[str, Any]) -> PhaseCorrectionOptions:
    """Build design options; latency defaults to DEFAULT_MAX_LATENCY_MS when no size is given."""
    where = "phase correction"
    band_d: Mapping[str, Any] = d.get("band") or {}
    gate_d: Mapping[str, Any] = d.get("magnitude_gate") or {}
    band_defaults = PhaseCorrectionBand()
    gate_defaults = MagnitudeGate()

    band = PhaseCorrectionBand(
        low_hz=_number_or(band_d, "low_hz", "band", band_defaults.low_hz),
        high_hz=_number_or(band_d, "high_hz", "band", band_defaults.high_hz),
        transition_octaves=_number_or(band_d, "transition_octaves", "band", band_defaults.transition_octaves),
    )
    gate = MagnitudeGate(
        threshold_db=_number_or(gate_d, "threshold_db", "magnitude_gate", gate_defaults.threshold_db),
        transition_db=_number_or(gate_d, "transition_db", "magnitude_gate", gate_defaults.transition_db),
    )

    taps = _optional_number(d, "taps", where)
    latency = _optional_number(d, "max_latency_ms", where)
    if taps is None and latency is None:
        latency = DEFAULT_MAX_LATENCY_MS

    window = d.get("window", "Hann")
    if window not in _WINDOWS:
        raise InvalidParameterError(f"{where}: unknown window {window!r}")

    filters: List[Mapping[str, Any]] = list(d.get("filters") or [])
    return PhaseCorrectionOptions(
        sample_rate=_number(d, "sample_rate", where),
        filters=chain_from_list(filters),
        taps=None if taps is None else int(taps),
        max_latency_ms=latency,
        window=window,
        kaiser_beta=_optional_number(d, "kaiser_beta", where),
        normalize=bool(d.get("normalize", True)),
        band=band,
        magnitude_gate=gate,
    )
