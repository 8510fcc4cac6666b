from __future__ import annotations

import numpy as np
import pytest

from filter_engine.biquad import db_magnitude
from filter_engine.errors import InvalidParameterError, MissingParameterError
from filter_engine.fir import (
    bessel_i0,
    design_fir,
    fir_complex_at,
    fir_complex_response,
    fir_magnitude_at,
    fir_response,
    generate_window,
)
from filter_engine.types import FIRDesignOptions

SR = 48000.0


def test_lowpass_has_unity_dc_gain_when_normalized():
    taps = design_fir(FIRDesignOptions("Lowpass", SR, 101, 2000.0, window="Hann", normalize=True))
    assert taps.size == 101
    assert fir_magnitude_at(taps, SR, 0.0) == pytest.approx(1.0, abs=1e-4)


def test_highpass_has_unity_nyquist_gain_when_normalized():
    taps = design_fir(FIRDesignOptions("Highpass", SR, 101, 2000.0, window="Hamming", normalize=True))
    assert fir_magnitude_at(taps, SR, SR / 2) == pytest.approx(1.0, abs=1e-3)
    assert fir_magnitude_at(taps, SR, 0.0) < 0.01


def test_bandpass_is_normalized_at_band_center():
    taps = design_fir(FIRDesignOptions("Bandpass", SR, 255, 1000.0, 3000.0, window="Blackman", normalize=True))
    assert fir_magnitude_at(taps, SR, 2000.0) == pytest.approx(1.0, abs=1e-9)
    assert fir_magnitude_at(taps, SR, 12000.0) < 0.01


def test_bandstop_rejects_band():
    taps = design_fir(FIRDesignOptions("Bandstop", SR, 255, 1000.0, 3000.0, window="Kaiser", normalize=True))
    assert fir_magnitude_at(taps, SR, 0.0) == pytest.approx(1.0, abs=1e-9)
    assert fir_magnitude_at(taps, SR, 2000.0) < 0.01


@pytest.mark.parametrize("shape", ["Lowpass", "Highpass", "Bandpass", "Bandstop"])
def test_designs_are_symmetric(shape):
    taps = design_fir(FIRDesignOptions(shape, SR, 63, 1500.0, 6000.0))
    np.testing.assert_allclose(taps, taps[::-1], atol=1e-15)


def test_band_shapes_require_f2():
    with pytest.raises(MissingParameterError, match="f2 is required"):
        design_fir(FIRDesignOptions("Bandpass", SR, 101, 2000.0, window="Blackman", normalize=True))


def test_invalid_design_options_raise():
    with pytest.raises(InvalidParameterError):
        design_fir(FIRDesignOptions("Lowpass", SR, 101, 0.0))
    with pytest.raises(InvalidParameterError):
        design_fir(FIRDesignOptions("Comb", SR, 101, 1000.0))  # type: ignore[arg-type]
    with pytest.raises(InvalidParameterError):
        design_fir(FIRDesignOptions("Lowpass", -1.0, 101, 1000.0))


def test_windows_match_numpy():
    n = 65
    np.testing.assert_allclose(generate_window(n, "Hann"), np.hanning(n), atol=1e-12)
    np.testing.assert_allclose(generate_window(n, "Hamming"), np.hamming(n), atol=1e-12)
    np.testing.assert_allclose(generate_window(n, "Blackman"), np.blackman(n), atol=1e-12)
    np.testing.assert_allclose(generate_window(n, "Kaiser", 5.0), np.kaiser(n, 5.0), rtol=1e-9)
    np.testing.assert_allclose(generate_window(n, "Kaiser"), np.kaiser(n, 8.6), rtol=1e-9)


def test_window_edge_cases():
    assert generate_window(1, "Hann").tolist() == [1.0]
    assert generate_window(0, "Blackman").tolist() == [1.0]
    assert generate_window(5, "Rectangular").tolist() == [1.0] * 5
    assert generate_window(5, "Unknown").tolist() == [1.0] * 5  # type: ignore[arg-type]


def test_bessel_i0_matches_numpy():
    x = np.array([0.0, 0.5, 1.0, 5.0, 8.6, 20.0])
    np.testing.assert_allclose(bessel_i0(x), np.i0(x), rtol=1e-10)
    assert bessel_i0(0.0) == 1.0
    assert bessel_i0(-3.0) == pytest.approx(float(np.i0(3.0)), rel=1e-10)


def test_fir_response_tracks_direct_evaluation():
    taps = design_fir(FIRDesignOptions("Lowpass", SR, 511, 2000.0, window="Hann", normalize=True))
    freqs = [50.0, 200.0, 1000.0, 1500.0]
    points = fir_response(taps, SR, freqs)
    for p, f in zip(points, freqs):
        direct = db_magnitude(fir_magnitude_at(taps, SR, f))
        assert abs(p.magnitude_db - direct) < 1.0


def test_fir_complex_response_of_delayed_impulse():
    taps = np.zeros(32)
    taps[5] = 1.0
    freqs = np.array([100.0, 1000.0, 7000.0, 15000.0])
    w = 2 * np.pi * freqs / SR
    np.testing.assert_allclose(fir_complex_response(taps, SR, freqs), np.exp(-1j * w * 5), atol=1e-9)
    assert fir_complex_at(taps, SR, 1000.0) == pytest.approx(np.exp(-1j * w[1] * 5))


def test_empty_taps_response():
    assert all(p.magnitude_db == 0.0 for p in fir_response([], SR, [100.0, 1000.0]))
    assert np.all(fir_complex_response([], SR, [100.0]) == 0)
