from __future__ import annotations

import logging

import pytest

from filter_engine.config import (
    DEFAULT_MAX_LATENCY_MS,
    chain_from_list,
    filter_spec_from_dict,
    phase_correction_options_from_dict,
    stage_from_dict,
)
from filter_engine.errors import InvalidParameterError, MissingParameterError
from filter_engine.types import (
    BiquadStage,
    CrossoverFilter,
    DelayStage,
    DiffEqStage,
    GainStage,
    LinkwitzTransformFilter,
    PeakingFilter,
    ShelfFilter,
    UnknownFilter,
    UnmodeledStage,
)


def test_chain_from_list():
    chain = chain_from_list(
        [
            {"type": "Biquad", "parameters": {"type": "Peaking", "freq": 1000, "gain": 6, "q": 2}},
            {"type": "Gain", "parameters": {"gain": -3, "inverted": True}},
            {"type": "Delay", "parameters": {"delay": 1.5, "unit": "ms", "subsample": True}},
            {"type": "DiffEq", "parameters": {"a": [1, -0.5], "b": [0.5, 0.5]}},
            {"type": "Compressor", "parameters": {"threshold": -20}},
        ]
    )
    assert chain[0] == BiquadStage(PeakingFilter(1000.0, 6.0, 2.0))
    assert chain[1] == GainStage(-3.0, inverted=True, scale="dB")
    assert chain[2] == DelayStage(1.5, "ms", subsample=True)
    assert chain[3] == DiffEqStage(a=(1.0, -0.5), b=(0.5, 0.5))
    assert chain[4] == UnmodeledStage("Compressor")


def test_filter_kinds():
    shelf = filter_spec_from_dict({"type": "Lowshelf", "freq": 100, "gain": 4, "slope": 0.7})
    assert shelf == ShelfFilter("Lowshelf", 100.0, 4.0, 0.7)

    lt = filter_spec_from_dict(
        {"type": "LinkwitzTransform", "freq_act": 40, "q_act": 0.7, "freq_target": 25, "q_target": 0.5}
    )
    assert isinstance(lt, LinkwitzTransformFilter)

    xo = filter_spec_from_dict({"type": "LinkwitzRileyHighpass", "freq": 80, "order": 4.0})
    assert xo == CrossoverFilter("LinkwitzRileyHighpass", 80.0, 4)
    assert isinstance(xo.order, int)


def test_unknown_kinds_load_as_pass_through(caplog):
    with caplog.at_level(logging.WARNING, logger="filter_engine.config"):
        spec = filter_spec_from_dict({"type": "Tilt", "freq": 500})
        stage = stage_from_dict({"type": "Mystery"})
    assert spec == UnknownFilter("Tilt", 500.0)
    assert stage == UnmodeledStage("Mystery")
    assert "Tilt" in caplog.text and "Mystery" in caplog.text


def test_invalid_documents_raise():
    with pytest.raises(MissingParameterError):
        filter_spec_from_dict({"type": "Peaking", "freq": 1000, "q": 1})
    with pytest.raises(MissingParameterError):
        filter_spec_from_dict({"freq": 1000})
    with pytest.raises(InvalidParameterError):
        filter_spec_from_dict({"type": "Lowpass", "freq": "1k", "q": 0.7})
    with pytest.raises(InvalidParameterError):
        filter_spec_from_dict({"type": "Lowpass", "freq": 1000, "q": -1})
    with pytest.raises(InvalidParameterError):
        filter_spec_from_dict({"type": "ButterworthLowpass", "freq": 1000, "order": 2.5})
    with pytest.raises(InvalidParameterError):
        stage_from_dict({"type": "Gain", "parameters": {"gain": 1, "scale": "percent"}})
    with pytest.raises(InvalidParameterError):
        stage_from_dict({"type": "Delay", "parameters": {"delay": 1, "unit": "s"}})
    with pytest.raises(InvalidParameterError):
        stage_from_dict({"type": "DiffEq", "parameters": {"a": "1,2", "b": [1]}})
    with pytest.raises(MissingParameterError):
        stage_from_dict({"parameters": {}})


def test_options_defaults():
    opts = phase_correction_options_from_dict({"sample_rate": 48000, "filters": []})
    assert opts.taps is None
    assert opts.max_latency_ms == DEFAULT_MAX_LATENCY_MS
    assert opts.window == "Hann"
    assert opts.normalize is True
    assert (opts.band.low_hz, opts.band.high_hz, opts.band.transition_octaves) == (20.0, 20000.0, 0.25)
    assert (opts.magnitude_gate.threshold_db, opts.magnitude_gate.transition_db) == (-30.0, 12.0)


def test_options_overrides():
    opts = phase_correction_options_from_dict(
        {
            "sample_rate": 44100,
            "taps": 4095,
            "window": "Kaiser",
            "kaiser_beta": 6,
            "normalize": False,
            "band": {"low_hz": 40},
            "magnitude_gate": {"threshold_db": -40},
            "filters": [{"type": "Biquad", "parameters": {"type": "Notch", "freq": 60, "q": 8}}],
        }
    )
    assert opts.taps == 4095
    assert opts.max_latency_ms is None
    assert opts.kaiser_beta == 6.0
    assert opts.normalize is False
    assert opts.band.low_hz == 40.0 and opts.band.high_hz == 20000.0
    assert opts.magnitude_gate.threshold_db == -40.0 and opts.magnitude_gate.transition_db == 12.0
    assert len(opts.filters) == 1


def test_options_require_sample_rate():
    with pytest.raises(MissingParameterError):
        phase_correction_options_from_dict({"filters": []})


def test_options_reject_unknown_window():
    with pytest.raises(InvalidParameterError, match="unknown window 'hann'"):
        phase_correction_options_from_dict({"sample_rate": 48000, "taps": 1025, "window": "hann"})


@pytest.mark.parametrize("value", [float("nan"), float("inf")])
def test_options_reject_non_finite_numbers(value):
    with pytest.raises(InvalidParameterError, match="must be finite"):
        phase_correction_options_from_dict({"sample_rate": 48000, "taps": value})
    with pytest.raises(InvalidParameterError, match="must be finite"):
        stage_from_dict({"type": "Biquad", "parameters": {"type": "Peaking", "freq": value, "gain": 6, "q": 2}})
