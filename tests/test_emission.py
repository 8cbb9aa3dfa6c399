import math

import numpy as np
import pytest

from blastwave.emission import (
    CooperFryeWeightMode,
    EmissionParameters,
    EmissionSamplerMode,
    sample_emission_sites,
)
from blastwave.geometry import WeightedTransversePoint
from blastwave.medium import DensityEvolutionMode, EventMediumParameters, build_event_medium
from blastwave.physics import compute_mean_radius_squared


def make_medium():
    return build_event_medium(
        [WeightedTransversePoint(-1.0, 0.0, 1.0), WeightedTransversePoint(1.0, 0.0, 1.0)],
        EventMediumParameters(density_evolution_mode=DensityEvolutionMode.NONE, density_sigma=0.5),
    )


def make_affine_medium():
    return build_event_medium(
        [WeightedTransversePoint(-1.0, 0.0, 1.0), WeightedTransversePoint(1.0, 0.0, 1.0)],
        EventMediumParameters(
            density_evolution_mode=DensityEvolutionMode.AFFINE_GAUSSIAN_RESPONSE,
            density_sigma=0.5,
            affine_lambda_in=1.20,
            affine_lambda_out=1.05,
            affine_sigma_evo=0.5,
        ),
    )


def make_gradient_medium():
    return build_event_medium(
        [
            WeightedTransversePoint(-2.0, -1.0, 1.0),
            WeightedTransversePoint(-2.0, 1.0, 1.0),
            WeightedTransversePoint(2.0, -1.0, 1.0),
            WeightedTransversePoint(2.0, 1.0, 1.0),
        ],
        EventMediumParameters(
            density_evolution_mode=DensityEvolutionMode.GRADIENT_RESPONSE,
            density_sigma=0.5,
            affine_lambda_in=1.20,
            affine_lambda_out=1.05,
            affine_sigma_evo=0.5,
            gradient_sigma_em=0.0,
            gradient_sigma_dyn=1.0,
        ),
    )


def gradient_parameters(displacement_max, diffusion_sigma, v_max, weight_mode=CooperFryeWeightMode.NONE, cutoff=1.0e-4):
    return EmissionParameters(
        mode=EmissionSamplerMode.GRADIENT_RESPONSE,
        smear_sigma=0.5,
        nbd_mu=30.0,
        nbd_k=20.0,
        gradient_density_cutoff_fraction=cutoff,
        gradient_density_floor_fraction=1.0e-6,
        gradient_displacement_max=displacement_max,
        gradient_displacement_kappa=1.0,
        gradient_diffusion_sigma=diffusion_sigma,
        gradient_v_max=v_max,
        gradient_velocity_kappa=1.0,
        cooper_frye_weight_mode=weight_mode,
    )


def test_zero_multiplicity_returns_no_sites():
    parameters = EmissionParameters(EmissionSamplerMode.PARTICIPANT_HOTSPOT, 0.5, 0.0, 1.5)
    sites = sample_emission_sites(make_medium(), parameters, np.random.default_rng(12345))
    assert sites == []


def test_no_smear_keeps_anchor():
    parameters = EmissionParameters(EmissionSamplerMode.PARTICIPANT_HOTSPOT, 0.0, 100.0, 100.0)
    sites = sample_emission_sites(make_medium(), parameters, np.random.default_rng(12345))
    assert sites
    for site in sites:
        assert site.position.x == pytest.approx(site.source_anchor.x, abs=1e-12)
        assert site.position.y == pytest.approx(site.source_anchor.y, abs=1e-12)
        assert abs(abs(site.source_anchor.x) - 1.0) < 1e-12
        assert site.source_anchor.y == pytest.approx(0.0, abs=1e-12)
        assert site.emission_weight == 1.0


def test_hotspot_reproducible():
    parameters = EmissionParameters(EmissionSamplerMode.PARTICIPANT_HOTSPOT, 0.5, 10.0, 3.0)
    sites_a = sample_emission_sites(make_medium(), parameters, np.random.default_rng(98765))
    sites_b = sample_emission_sites(make_medium(), parameters, np.random.default_rng(98765))
    assert len(sites_a) == len(sites_b)
    assert sites_a == sites_b


def test_zero_weight_participants_are_skipped():
    medium = build_event_medium(
        [WeightedTransversePoint(-1.0, 0.0, 0.0), WeightedTransversePoint(1.0, 0.0, 1.0)],
        EventMediumParameters(density_evolution_mode=DensityEvolutionMode.NONE, density_sigma=0.5),
    )
    parameters = EmissionParameters(EmissionSamplerMode.PARTICIPANT_HOTSPOT, 0.0, 50.0, 50.0)
    sites = sample_emission_sites(medium, parameters, np.random.default_rng(7))
    assert sites
    assert all(site.source_anchor.x == 1.0 for site in sites)


def test_gradient_response_reproducible():
    medium = make_gradient_medium()
    parameters = gradient_parameters(1.5, 0.0, 0.75, CooperFryeWeightMode.MT_COSH)
    sites_a = sample_emission_sites(medium, parameters, np.random.default_rng(112233))
    sites_b = sample_emission_sites(medium, parameters, np.random.default_rng(112233))
    assert sites_a
    assert sites_a == sites_b
    for site in sites_a:
        assert math.isfinite(site.emission_weight) and site.emission_weight >= 0.0


def test_gradient_response_identity_without_displacement():
    parameters = gradient_parameters(0.0, 0.0, 0.75)
    sites = sample_emission_sites(make_gradient_medium(), parameters, np.random.default_rng(445566))
    assert sites
    for site in sites:
        assert site.position.x == pytest.approx(site.initial_position.x, abs=1e-12)
        assert site.position.y == pytest.approx(site.initial_position.y, abs=1e-12)
        assert site.displacement_x == pytest.approx(0.0, abs=1e-12)
        assert site.displacement_y == pytest.approx(0.0, abs=1e-12)
        assert math.isfinite(site.emission_weight) and site.emission_weight >= 0.0


def test_gradient_response_zero_beta():
    parameters = gradient_parameters(1.5, 0.0, 0.0)
    sites = sample_emission_sites(make_gradient_medium(), parameters, np.random.default_rng(778899))
    assert sites
    for site in sites:
        assert site.beta_tx == pytest.approx(0.0, abs=1e-12)
        assert site.beta_ty == pytest.approx(0.0, abs=1e-12)


def test_gradient_response_displacement_bound_and_anchor_shift():
    parameters = gradient_parameters(1.5, 0.0, 0.75)
    sites = sample_emission_sites(make_gradient_medium(), parameters, np.random.default_rng(991122))
    assert sites
    found_shift = False
    for site in sites:
        assert math.hypot(site.displacement_x, site.displacement_y) <= 1.5 + 1e-12
        assert math.hypot(site.beta_tx, site.beta_ty) <= 0.75 + 1e-12
        if (
            abs(site.initial_position.x - site.source_anchor.x) > 1e-8
            or abs(site.initial_position.y - site.source_anchor.y) > 1e-8
        ):
            found_shift = True
    assert found_shift


def test_gradient_response_expands_mean_r2():
    parameters = gradient_parameters(1.5, 0.0, 0.75)
    sites = sample_emission_sites(make_gradient_medium(), parameters, np.random.default_rng(223344))
    assert sites
    initial = compute_mean_radius_squared([site.initial_position for site in sites])
    final = compute_mean_radius_squared([site.position for site in sites])
    assert final > initial


def test_gradient_response_unreachable_cutoff_drops_sites():
    parameters = gradient_parameters(1.5, 0.0, 0.75, cutoff=1.0e6)
    sites = sample_emission_sites(make_gradient_medium(), parameters, np.random.default_rng(5))
    assert sites == []


def test_density_field_anchor_and_reproducibility():
    medium = make_affine_medium()
    parameters = EmissionParameters(EmissionSamplerMode.DENSITY_FIELD, 0.5, 20.0, 5.0)
    sites_a = sample_emission_sites(medium, parameters, np.random.default_rng(24680))
    sites_b = sample_emission_sites(medium, parameters, np.random.default_rng(24680))
    assert sites_a
    assert sites_a == sites_b
    found_shift = False
    for site in sites_a:
        assert abs(abs(site.source_anchor.x) - 1.0) < 1e-12
        assert site.source_anchor.y == pytest.approx(0.0, abs=1e-12)
        if abs(site.position.x - site.source_anchor.x) > 1e-8 or abs(site.position.y - site.source_anchor.y) > 1e-8:
            found_shift = True
    assert found_shift