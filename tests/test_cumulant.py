import math

import pytest

from blastwave.cumulant import V2PtCumulant, V2PtTrack

TOL = 1.0e-12


def make_track(pt, phi):
    return V2PtTrack(pt * math.cos(phi), pt * math.sin(phi))


def test_exact_toy():
    cumulant = V2PtCumulant([0.0, 0.5, 1.0])
    cumulant.add_event([make_track(0.2, 0.0), make_track(0.7, 0.0)])
    cumulant.add_event([make_track(0.2, 0.5 * math.pi), make_track(0.7, 0.5 * math.pi)])
    result = cumulant.finalize()
    assert result.c2 == pytest.approx(1.0, abs=TOL)
    assert result.contributing_events == 2
    assert len(result.v2_values) == 2 and len(result.v2_errors) == 2
    assert result.v2_values[0] == pytest.approx(1.0, abs=TOL)
    assert result.v2_values[1] == pytest.approx(1.0, abs=TOL)
    assert result.v2_errors[0] == pytest.approx(0.0, abs=TOL)
    assert result.v2_errors[1] == pytest.approx(0.0, abs=TOL)


def test_self_correlation_subtraction():
    cumulant = V2PtCumulant([0.0, 0.5, 1.0])
    cumulant.add_event([make_track(0.2, 0.0), make_track(0.7, 0.0)])
    result = cumulant.finalize()
    assert result.c2 == pytest.approx(1.0, abs=TOL)
    assert result.v2_values[0] == pytest.approx(1.0, abs=TOL)
    assert result.v2_values[1] == pytest.approx(1.0, abs=TOL)


def test_empty_bin_behavior():
    cumulant = V2PtCumulant([0.0, 0.5, 1.0, 2.0])
    cumulant.add_event([make_track(0.2, 0.0), make_track(0.7, 0.0)])
    result = cumulant.finalize()
    assert len(result.v2_values) == 3
    assert result.v2_values[2] == pytest.approx(0.0, abs=TOL)
    assert result.v2_errors[2] == pytest.approx(0.0, abs=TOL)


def test_multiplicity_skip():
    cumulant = V2PtCumulant([0.0, 0.5, 1.0])
    cumulant.add_event([make_track(0.2, 0.0)])
    cumulant.add_event([make_track(0.2, 0.0), make_track(0.7, 0.0)])
    result = cumulant.finalize()
    assert result.contributing_events == 1
    assert result.c2 == pytest.approx(1.0, abs=TOL)
    assert result.v2_values[0] == pytest.approx(1.0, abs=TOL)
    assert result.v2_values[1] == pytest.approx(1.0, abs=TOL)


def test_non_positive_c2_fails():
    cumulant = V2PtCumulant([0.0, 0.5, 1.0])
    cumulant.add_event([make_track(0.2, 0.0), make_track(0.7, 0.5 * math.pi)])
    with pytest.raises(RuntimeError):
        cumulant.finalize()


def test_no_events_fails():
    with pytest.raises(RuntimeError):
        V2PtCumulant([0.0, 1.0]).finalize()


def test_jackknife_uncertainty():
    cumulant = V2PtCumulant([0.0, 0.5, 1.0])
    cumulant.add_event([make_track(0.2, 0.0), make_track(0.7, 0.0)])
    cumulant.add_event([make_track(0.2, 0.0), make_track(0.7, 0.0)])
    cumulant.add_event([make_track(0.2, 0.0), make_track(0.7, 0.25 * math.pi)])
    result = cumulant.finalize()
    expected_value = math.sqrt(2.0 / 3.0)
    expected_error = 0.19526214587563503
    assert result.c2 == pytest.approx(2.0 / 3.0, abs=TOL)
    assert result.contributing_events == 3
    assert result.v2_values[0] == pytest.approx(expected_value, abs=TOL)
    assert result.v2_values[1] == pytest.approx(expected_value, abs=TOL)
    assert result.v2_errors[0] == pytest.approx(expected_error, abs=TOL)
    assert result.v2_errors[1] == pytest.approx(expected_error, abs=TOL)


def test_find_bin():
    cumulant = V2PtCumulant([0.0, 0.5, 1.0])
    assert cumulant.find_bin(0.0) == 0
    assert cumulant.find_bin(0.5) == 1
    assert cumulant.find_bin(1.0) == 1
    assert cumulant.find_bin(1.5) == -1
    assert cumulant.find_bin(-0.1) == -1


@pytest.mark.parametrize("edges", [[0.5], [0.0, 0.5, 0.5], [-1.0, 1.0], [0.0, math.inf], [1.0, 0.5]])
def test_invalid_edges(edges):
    with pytest.raises(ValueError):
        V2PtCumulant(edges)