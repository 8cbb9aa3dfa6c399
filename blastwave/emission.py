"""Emission-site samplers that place particles in the transverse plane."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import NamedTuple, Optional

import numpy as np

from blastwave.density import DensityField, evaluate_density_field
from blastwave.geometry import TransversePoint, WeightedTransversePoint
from blastwave.medium import EventMedium

_GRADIENT_RETRY_LIMIT = 64
_DIRECTION_TOLERANCE = 1.0e-12


class EmissionSamplerMode(Enum):
    """Strategy used to choose emission positions."""

    PARTICIPANT_HOTSPOT = 0
    DENSITY_FIELD = 1
    GRADIENT_RESPONSE = 2


class CooperFryeWeightMode(Enum):
    """Optional per-site emission weighting."""

    NONE = 0
    MT_COSH = 1


@dataclass(frozen=True)
class EmissionParameters:
    """Settings for the emission-site samplers."""

    mode: EmissionSamplerMode = EmissionSamplerMode.PARTICIPANT_HOTSPOT
    smear_sigma: float = 0.0
    nbd_mu: float = 0.0
    nbd_k: float = 1.0
    gradient_density_cutoff_fraction: float = 0.0
    gradient_density_floor_fraction: float = 0.0
    gradient_displacement_max: float = 0.0
    gradient_displacement_kappa: float = 1.0
    gradient_diffusion_sigma: float = 0.0
    gradient_v_max: float = 0.0
    gradient_velocity_kappa: float = 1.0
    cooper_frye_weight_mode: CooperFryeWeightMode = CooperFryeWeightMode.NONE


@dataclass
class EmissionSite:
    """One sampled emission point with its source anchor and response state."""

    initial_position: TransversePoint = field(default_factory=TransversePoint)
    position: TransversePoint = field(default_factory=TransversePoint)
    source_anchor: TransversePoint = field(default_factory=TransversePoint)
    gradient_magnitude: float = 0.0
    displacement_x: float = 0.0
    displacement_y: float = 0.0
    beta_tx: float = 0.0
    beta_ty: float = 0.0
    emission_weight: float = 1.0


class _KernelCholesky(NamedTuple):
    l11: float
    l21: float
    l22: float


def _hotspot_multiplicity(nbd_mu: float, nbd_k: float, rng: np.random.Generator) -> int:
    if nbd_mu <= 0.0:
        return 0
    lam = rng.gamma(nbd_k, nbd_mu / nbd_k)
    return int(rng.poisson(lam))


def _smeared_position(anchor: WeightedTransversePoint, smear_sigma: float, rng: np.random.Generator) -> TransversePoint:
    if smear_sigma <= 0.0:
        return TransversePoint(anchor.x, anchor.y)
    dx = rng.normal(0.0, smear_sigma)
    dy = rng.normal(0.0, smear_sigma)
    return TransversePoint(anchor.x + float(dx), anchor.y + float(dy))


def _kernel_cholesky(density: DensityField) -> Optional[_KernelCholesky]:
    cov_xx, cov_xy, cov_yy = density.kernel_cov_xx, density.kernel_cov_xy, density.kernel_cov_yy
    if not (math.isfinite(cov_xx) and math.isfinite(cov_xy) and math.isfinite(cov_yy)):
        return None
    if cov_xx <= 0.0:
        return None
    l11 = math.sqrt(cov_xx)
    l21 = cov_xy / l11
    residual = cov_yy - l21 * l21
    if not math.isfinite(residual) or residual <= 0.0:
        return None
    return _KernelCholesky(l11, l21, math.sqrt(residual))


def _kernel_position(
    center: WeightedTransversePoint, kernel: Optional[_KernelCholesky], rng: np.random.Generator
) -> TransversePoint:
    if kernel is None:
        return TransversePoint(center.x, center.y)
    z1 = float(rng.standard_normal())
    z2 = float(rng.standard_normal())
    return TransversePoint(center.x + kernel.l11 * z1, center.y + kernel.l21 * z1 + kernel.l22 * z2)


def _site_emission_weight(mode: CooperFryeWeightMode) -> float:
    # Both modes currently emit with unit weight; the hook keeps the choice explicit.
    return 1.0


def _active_participants(medium: EventMedium):
    for index, participant in enumerate(medium.participant_points):
        if participant.contributes:
            yield index, participant


def _participant_hotspot_sites(
    medium: EventMedium, parameters: EmissionParameters, rng: np.random.Generator
) -> list[EmissionSite]:
    sites = []
    weight = _site_emission_weight(parameters.cooper_frye_weight_mode)
    for _, participant in _active_participants(medium):
        anchor = TransversePoint(participant.x, participant.y)
        for _ in range(_hotspot_multiplicity(parameters.nbd_mu, parameters.nbd_k, rng)):
            sites.append(
                EmissionSite(
                    initial_position=anchor,
                    position=_smeared_position(participant, parameters.smear_sigma, rng),
                    source_anchor=anchor,
                    emission_weight=weight,
                )
            )
    return sites


def _density_field_sites(
    medium: EventMedium, parameters: EmissionParameters, rng: np.random.Generator
) -> list[EmissionSite]:
    sites = []
    support = medium.emission_density.support_points
    kernel = _kernel_cholesky(medium.emission_density)
    weight = _site_emission_weight(parameters.cooper_frye_weight_mode)
    for index, participant in _active_participants(medium):
        multiplicity = _hotspot_multiplicity(parameters.nbd_mu, parameters.nbd_k, rng)
        center = support[index] if index < len(support) else participant
        anchor = TransversePoint(participant.x, participant.y)
        for _ in range(multiplicity):
            sites.append(
                EmissionSite(
                    initial_position=anchor,
                    position=_kernel_position(center, kernel, rng),
                    source_anchor=anchor,
                    emission_weight=weight,
                )
            )
    return sites


def _gradient_response_site(
    participant: WeightedTransversePoint,
    marker_center: WeightedTransversePoint,
    marker_kernel: Optional[_KernelCholesky],
    medium: EventMedium,
    parameters: EmissionParameters,
    rng: np.random.Generator,
) -> Optional[EmissionSite]:
    marker_cutoff = parameters.gradient_density_cutoff_fraction * max(0.0, medium.marker_density_scale)
    marker_position = None
    for _ in range(_GRADIENT_RETRY_LIMIT):
        candidate = _kernel_position(marker_center, marker_kernel, rng)
        marker_sample = evaluate_density_field(medium.marker_density, candidate.x, candidate.y)
        if math.isfinite(marker_sample.density) and marker_sample.density >= marker_cutoff:
            marker_position = candidate
            break
    if marker_position is None:
        return None

    dynamics = evaluate_density_field(medium.dynamics_density, marker_position.x, marker_position.y)
    density_floor = parameters.gradient_density_floor_fraction * max(0.0, medium.dynamics_density_scale)
    denominator = max(1.0e-18, max(density_floor, dynamics.density + density_floor))
    gradient_x = -dynamics.gradient_x / denominator
    gradient_y = -dynamics.gradient_y / denominator
    magnitude = math.hypot(gradient_x, gradient_y)
    if not math.isfinite(magnitude):
        magnitude = 0.0

    hat_x = hat_y = 0.0
    if magnitude > _DIRECTION_TOLERANCE:
        hat_x = gradient_x / magnitude
        hat_y = gradient_y / magnitude

    length = parameters.gradient_displacement_max * math.tanh(
        max(0.0, parameters.gradient_displacement_kappa) * magnitude
    )
    displacement_x = length * hat_x
    displacement_y = length * hat_y
    if parameters.gradient_diffusion_sigma > 0.0:
        displacement_x += float(rng.normal(0.0, parameters.gradient_diffusion_sigma))
        displacement_y += float(rng.normal(0.0, parameters.gradient_diffusion_sigma))

    beta_t = parameters.gradient_v_max * math.tanh(max(0.0, parameters.gradient_velocity_kappa) * magnitude)
    return EmissionSite(
        initial_position=marker_position,
        position=TransversePoint(marker_position.x + displacement_x, marker_position.y + displacement_y),
        source_anchor=TransversePoint(participant.x, participant.y),
        gradient_magnitude=magnitude,
        displacement_x=displacement_x,
        displacement_y=displacement_y,
        beta_tx=beta_t * hat_x,
        beta_ty=beta_t * hat_y,
        emission_weight=_site_emission_weight(parameters.cooper_frye_weight_mode),
    )


def _gradient_response_sites(
    medium: EventMedium, parameters: EmissionParameters, rng: np.random.Generator
) -> list[EmissionSite]:
    sites = []
    support = medium.marker_density.support_points
    kernel = _kernel_cholesky(medium.marker_density)
    for index, participant in _active_participants(medium):
        multiplicity = _hotspot_multiplicity(parameters.nbd_mu, parameters.nbd_k, rng)
        center = support[index] if index < len(support) else participant
        for _ in range(multiplicity):
            site = _gradient_response_site(participant, center, kernel, medium, parameters, rng)
            if site is not None:
                sites.append(site)
    return sites


def sample_emission_sites(
    medium: EventMedium, parameters: EmissionParameters, rng: np.random.Generator
) -> list[EmissionSite]:
    """Sample the emission sites of one event with the configured sampler."""
    if parameters.mode is EmissionSamplerMode.PARTICIPANT_HOTSPOT:
        return _participant_hotspot_sites(medium, parameters, rng)
    if parameters.mode is EmissionSamplerMode.DENSITY_FIELD:
        return _density_field_sites(medium, parameters, rng)
    if parameters.mode is EmissionSamplerMode.GRADIENT_RESPONSE:
        return _gradient_response_sites(medium, parameters, rng)
    return []