from __future__ import annotations

import math

import numpy as np
import pytest
from scipy.signal import freqz, sosfreqz

from filter_engine.biquad import (
    biquad_sections,
    butterworth_q_values,
    complex_response,
    magnitude_db,
    spec_complex_response,
    spec_magnitude_db,
    synthesize,
    to_sos,
)
from filter_engine.errors import InvalidParameterError
from filter_engine.response import generate_frequencies
from filter_engine.types import (
    UNITY_COEFFICIENTS,
    CrossoverFilter,
    FirstOrderFilter,
    FirstOrderShelfFilter,
    LinkwitzTransformFilter,
    PeakingFilter,
    QFilter,
    ShelfFilter,
    UnknownFilter,
)

SR = 48000.0


def test_lowpass_golden_coefficients():
    c = synthesize(QFilter("Lowpass", 1000.0, 0.707), SR)
    assert c.b0 == pytest.approx(0.003916, abs=1e-5)
    assert c.b1 == pytest.approx(0.007832, abs=1e-5)
    assert c.b2 == pytest.approx(0.003916, abs=1e-5)
    assert c.a1 == pytest.approx(-1.815318, abs=1e-5)
    assert c.a2 == pytest.approx(0.830982, abs=1e-5)


def test_highpass_and_notch_golden_coefficients():
    hp = synthesize(QFilter("Highpass", 1000.0, 0.707), SR)
    assert hp.b0 == pytest.approx(0.911575, abs=1e-5)
    assert hp.b1 == pytest.approx(-1.823150, abs=1e-5)

    notch = synthesize(QFilter("Notch", 1000.0, 5.0), SR)
    assert notch.b0 == pytest.approx(0.987116, abs=1e-5)
    assert notch.b2 == pytest.approx(notch.b0)


@pytest.mark.parametrize("kind", ["Lowpass", "Highpass"])
def test_minus_three_db_at_cutoff(kind):
    c = synthesize(QFilter(kind, 1000.0, 0.707), SR)
    assert magnitude_db(c, 1000.0, SR) == pytest.approx(-3.0, abs=0.5)


def test_allpass_is_flat():
    c = synthesize(QFilter("Allpass", 1000.0, 0.707), SR)
    mags = magnitude_db(c, generate_frequencies(), SR)
    assert np.max(np.abs(mags)) < 0.1


def test_peaking_hits_gain_at_center_only():
    c = synthesize(PeakingFilter(1000.0, 6.0, 10.0), SR)
    assert magnitude_db(c, 1000.0, SR) == pytest.approx(6.0, abs=1.0)
    assert abs(magnitude_db(c, 100.0, SR)) < 0.2
    assert abs(magnitude_db(c, 10000.0, SR)) < 0.2


def test_notch_nulls_center():
    c = synthesize(QFilter("Notch", 1000.0, 10.0), SR)
    assert magnitude_db(c, 1000.0, SR) < -40.0
    assert abs(magnitude_db(c, 100.0, SR)) < 0.1


def test_response_matches_scipy_freqz():
    freqs = generate_frequencies(128)
    specs = [
        QFilter("Bandpass", 2000.0, 1.5),
        PeakingFilter(300.0, -4.0, 0.8),
        ShelfFilter("Highshelf", 4000.0, 3.0, 0.7),
        FirstOrderFilter("HighpassFO", 80.0),
    ]
    for spec in specs:
        c = synthesize(spec, SR)
        _, ref = freqz([c.b0, c.b1, c.b2], [1.0, c.a1, c.a2], worN=freqs, fs=SR)
        np.testing.assert_allclose(complex_response(c, freqs, SR), ref, rtol=1e-9, atol=1e-12)


def test_scalar_frequency_gives_scalar_response():
    c = synthesize(QFilter("Lowpass", 1000.0, 0.707), SR)
    h = complex_response(c, 500.0, SR)
    assert np.ndim(h) == 0
    assert isinstance(magnitude_db(c, 500.0, SR), float)


def test_shelves_reach_their_gain():
    low = ShelfFilter("Lowshelf", 100.0, 6.0, 1.0)
    assert spec_magnitude_db(low, 10.0, SR) == pytest.approx(6.0, abs=0.2)
    assert abs(spec_magnitude_db(low, 20000.0, SR)) < 0.1

    high = ShelfFilter("Highshelf", 1000.0, 6.0, 1.0)
    assert abs(spec_magnitude_db(high, 20.0, SR)) < 0.1
    assert spec_magnitude_db(high, 20000.0, SR) == pytest.approx(6.0, abs=0.2)


def test_first_order_shelves_are_exact_at_dc_and_nyquist():
    low = FirstOrderShelfFilter("LowshelfFO", 200.0, -9.0)
    assert spec_magnitude_db(low, 0.0, SR) == pytest.approx(-9.0, abs=1e-6)
    assert spec_magnitude_db(low, SR / 2, SR) == pytest.approx(0.0, abs=1e-6)

    high = FirstOrderShelfFilter("HighshelfFO", 2000.0, 4.0)
    assert spec_magnitude_db(high, 0.0, SR) == pytest.approx(0.0, abs=1e-6)
    assert spec_magnitude_db(high, SR / 2, SR) == pytest.approx(4.0, abs=1e-6)


def test_first_order_allpass_turns_ninety_degrees_at_corner():
    spec = FirstOrderFilter("AllpassFO", 1000.0)
    h = spec_complex_response(spec, np.array([0.0, 1000.0, 5000.0]), SR)
    np.testing.assert_allclose(np.abs(h), 1.0, atol=1e-12)
    assert np.angle(h[0]) == pytest.approx(0.0, abs=1e-12)
    assert np.angle(h[1]) == pytest.approx(-math.pi / 2, abs=1e-9)


def test_linkwitz_transform_low_frequency_gain():
    spec = LinkwitzTransformFilter(freq_act=40.0, q_act=0.7, freq_target=20.0, q_target=0.5)
    ratio = math.tan(math.pi * 40.0 / SR) / math.tan(math.pi * 20.0 / SR)
    assert spec_magnitude_db(spec, 0.0, SR) == pytest.approx(40.0 * math.log10(ratio), abs=1e-6)
    assert spec_magnitude_db(spec, SR / 2, SR) == pytest.approx(0.0, abs=1e-6)


def test_butterworth_q_values():
    assert butterworth_q_values(2) == pytest.approx([1 / math.sqrt(2)])
    assert sorted(butterworth_q_values(4)) == pytest.approx([0.541196, 1.306563], abs=1e-6)
    assert butterworth_q_values(1) == []


@pytest.mark.parametrize("order", [1, 2, 3, 4, 5, 8])
def test_butterworth_is_minus_three_db_at_cutoff(order):
    spec = CrossoverFilter("ButterworthLowpass", 1000.0, order)
    assert spec_magnitude_db(spec, 1000.0, SR) == pytest.approx(-3.0103, abs=1e-3)


def test_odd_butterworth_starts_with_first_order_section():
    sections = biquad_sections(CrossoverFilter("ButterworthHighpass", 500.0, 3), SR)
    assert len(sections) == 2
    assert sections[0].b2 == 0.0 and sections[0].a2 == 0.0


def test_linkwitz_riley_is_squared_butterworth():
    lr = biquad_sections(CrossoverFilter("LinkwitzRileyLowpass", 2000.0, 4), SR)
    bw = biquad_sections(CrossoverFilter("ButterworthLowpass", 2000.0, 2), SR)
    assert lr == bw + bw
    assert spec_magnitude_db(CrossoverFilter("LinkwitzRileyHighpass", 2000.0, 4), 2000.0, SR) == pytest.approx(
        -6.0206, abs=1e-3
    )


def test_cascade_matches_scipy_sosfreqz():
    spec = CrossoverFilter("ButterworthHighpass", 120.0, 5)
    freqs = generate_frequencies(64)
    _, ref = sosfreqz(to_sos(biquad_sections(spec, SR)), worN=freqs, fs=SR)
    np.testing.assert_allclose(spec_complex_response(spec, freqs, SR), ref, rtol=1e-9, atol=1e-12)


def test_unknown_and_crossover_kinds_synthesize_to_unity():
    assert synthesize(UnknownFilter("Mystery"), SR) == UNITY_COEFFICIENTS
    assert synthesize(CrossoverFilter("ButterworthLowpass", 1000.0, 4), SR) == UNITY_COEFFICIENTS
    assert spec_magnitude_db(UnknownFilter("Mystery"), 1234.0, SR) == pytest.approx(0.0)


def test_invalid_parameters_raise():
    with pytest.raises(InvalidParameterError):
        synthesize(QFilter("Lowpass", 24000.0, 0.7), SR)
    with pytest.raises(InvalidParameterError):
        synthesize(QFilter("Lowpass", 1000.0, 0.7), 0.0)
    with pytest.raises(InvalidParameterError):
        QFilter("Lowpass", 1000.0, 0.0)
    with pytest.raises(InvalidParameterError):
        CrossoverFilter("LinkwitzRileyLowpass", 1000.0, 3)
    with pytest.raises(InvalidParameterError):
        biquad_sections(CrossoverFilter("ButterworthLowpass", 30000.0, 2), SR)
