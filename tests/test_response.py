from __future__ import annotations

import numpy as np
import pytest

from filter_engine.response import (
    FREQUENCY_POINTS,
    composite_response,
    filter_response,
    format_frequency,
    format_gain,
    generate_frequencies,
)
from filter_engine.types import PeakingFilter, QFilter

SR = 48000.0


def test_generate_frequencies_is_log_spaced():
    f = generate_frequencies()
    assert f.size == FREQUENCY_POINTS
    assert f[0] == pytest.approx(20.0)
    assert f[-1] == pytest.approx(20000.0)
    ratios = f[1:] / f[:-1]
    np.testing.assert_allclose(ratios, ratios[0], rtol=1e-9)


def test_two_identical_peaks_add_in_db():
    peak = PeakingFilter(1000.0, 6.0, 1.0)
    points = composite_response([peak, peak], SR, [1000.0])
    assert points[0].magnitude_db == pytest.approx(12.0, abs=0.01)


def test_composite_of_nothing_is_flat():
    points = composite_response([], SR, generate_frequencies(16))
    assert len(points) == 16
    assert all(p.magnitude_db == 0.0 for p in points)


def test_filter_response_points():
    freqs = [100.0, 1000.0, 10000.0]
    points = filter_response(QFilter("Lowpass", 1000.0, 0.707), SR, freqs)
    assert [p.frequency for p in points] == freqs
    assert points[0].magnitude_db == pytest.approx(0.0, abs=0.05)
    assert points[2].magnitude_db < -30.0


@pytest.mark.parametrize(
    "freq, label",
    [(20.0, "20"), (100.0, "100"), (1000.0, "1.0k"), (2500.0, "2.5k"), (10000.0, "10k"), (20000.0, "20k")],
)
def test_format_frequency(freq, label):
    assert format_frequency(freq) == label


def test_format_gain():
    assert format_gain(3.0) == "+3.0"
    assert format_gain(-6.0) == "-6.0"
    assert format_gain(0.0) == "0.0"
