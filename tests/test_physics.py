import math

import pytest

from blastwave.geometry import TransversePoint
from blastwave.physics import (
    compute_azimuth,
    compute_centrality_percent,
    compute_mean_radius_squared,
    compute_mt_cosh_weight,
    compute_pseudorapidity,
    compute_second_harmonic_event_v2,
)

TOL = 1.0e-12


def test_centrality_clamp():
    assert compute_centrality_percent(0.0, 6.62) == pytest.approx(0.0, abs=TOL)
    assert compute_centrality_percent(6.62, 6.62) == pytest.approx(50.0, abs=TOL)
    assert compute_centrality_percent(20.0, 6.62) == pytest.approx(100.0, abs=TOL)


def test_azimuth_convention():
    assert compute_azimuth(1.0, 0.0) == pytest.approx(0.0, abs=TOL)
    assert compute_azimuth(0.0, 1.0) == pytest.approx(0.5 * math.pi, abs=TOL)
    assert compute_azimuth(-1.0, 0.0) == pytest.approx(math.pi, abs=TOL)


def test_pseudorapidity_fallback():
    assert compute_pseudorapidity(1.0, 0.0, 0.0) == pytest.approx(0.0, abs=TOL)
    assert compute_pseudorapidity(0.0, 0.0, 1.0) == pytest.approx(10.0, abs=TOL)
    assert compute_pseudorapidity(0.0, 0.0, -1.0) == pytest.approx(-10.0, abs=TOL)


def test_pseudorapidity_is_odd_in_pz():
    forward = compute_pseudorapidity(0.3, 0.4, 1.2)
    backward = compute_pseudorapidity(0.3, 0.4, -1.2)
    assert forward > 0.0
    assert forward == pytest.approx(-backward, abs=TOL)


def test_event_v2_definition():
    assert compute_second_harmonic_event_v2(0.0, 0.0, 0) == pytest.approx(0.0, abs=TOL)
    assert compute_second_harmonic_event_v2(2.0, 0.0, 2) == pytest.approx(1.0, abs=TOL)
    assert compute_second_harmonic_event_v2(0.0, 0.0, 4) == pytest.approx(0.0, abs=TOL)
    assert compute_second_harmonic_event_v2(1.0, math.sqrt(3.0), 4) == pytest.approx(0.5, abs=TOL)


def test_mean_radius_squared():
    assert compute_mean_radius_squared([]) == pytest.approx(0.0, abs=TOL)
    points = [TransversePoint(1.0, 2.0), TransversePoint(-3.0, 4.0), TransversePoint(math.nan, 1.0)]
    assert compute_mean_radius_squared(points) == pytest.approx(5.0, abs=TOL)


def test_mt_cosh_weight_values():
    assert compute_mt_cosh_weight(0.0, 3.0, 4.0, 0.0, 0.0) == pytest.approx(5.0, abs=TOL)
    assert compute_mt_cosh_weight(0.0, 0.0, 0.0, 0.0, 0.0) == pytest.approx(0.0, abs=TOL)


def test_mt_cosh_weight_invariants():
    at_rest = compute_mt_cosh_weight(0.5, 0.3, 0.4, 0.0, 0.0)
    shifted_pos = compute_mt_cosh_weight(0.5, 0.3, 0.4, 0.0, 0.25)
    shifted_neg = compute_mt_cosh_weight(0.5, 0.3, 0.4, 0.0, -0.25)
    assert shifted_pos == pytest.approx(shifted_neg, abs=TOL)
    assert shifted_pos > at_rest
    assert compute_mt_cosh_weight(0.5, 0.3, 0.4, 0.2, 0.25) >= at_rest