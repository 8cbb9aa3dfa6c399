"""Event medium: participant geometry plus the evolved density fields."""

from __future__ import annotations

import copy
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Sequence

from blastwave.density import DensityField, anisotropic_density_field, evaluate_density_field, gaussian_density_field
from blastwave.geometry import FlowEllipseInfo, WeightedTransversePoint, compute_flow_ellipse_info


class DensityEvolutionMode(Enum):
    """How the freeze-out density is derived from the initial participants."""

    NONE = 0
    AFFINE_GAUSSIAN_RESPONSE = 1
    GRADIENT_RESPONSE = 2


@dataclass(frozen=True)
class EventMediumParameters:
    """Settings for building an event medium."""

    density_evolution_mode: DensityEvolutionMode = DensityEvolutionMode.NONE
    density_sigma: float = 0.0
    affine_lambda_in: float = 1.0
    affine_lambda_out: float = 1.0
    affine_sigma_evo: float = 0.0
    gradient_sigma_em: float = 0.0
    gradient_sigma_dyn: float = 0.0


@dataclass
class AffineEffectiveClosure:
    """Principal-axis growth between the initial and freeze-out ellipses."""

    valid: bool = False
    psi2: float = 0.0
    sigma_in_initial: float = 0.0
    sigma_out_initial: float = 0.0
    sigma_in_final: float = 0.0
    sigma_out_final: float = 0.0
    growth_in: float = 0.0
    growth_out: float = 0.0
    lambda_in: float = 0.0
    lambda_out: float = 0.0
    lambda_bar: float = 0.0
    delta_lambda: float = 0.0


@dataclass
class EventMedium:
    """Participant cloud, its geometry and the derived density fields."""

    density_evolution_mode: DensityEvolutionMode = DensityEvolutionMode.NONE
    participant_points: list[WeightedTransversePoint] = field(default_factory=list)
    participant_geometry: FlowEllipseInfo = field(default_factory=FlowEllipseInfo)
    initial_density: DensityField = field(default_factory=DensityField)
    marker_density: DensityField = field(default_factory=DensityField)
    dynamics_density: DensityField = field(default_factory=DensityField)
    emission_density: DensityField = field(default_factory=DensityField)
    emission_geometry: FlowEllipseInfo = field(default_factory=FlowEllipseInfo)
    marker_density_scale: float = 0.0
    dynamics_density_scale: float = 0.0
    affine_effective_closure: AffineEffectiveClosure = field(default_factory=AffineEffectiveClosure)


def _support_density_scale(density: DensityField) -> float:
    scale = 0.0
    for point in density.support_points:
        value = evaluate_density_field(density, point.x, point.y).density
        if math.isfinite(value) and value > scale:
            scale = value
    return scale


def _apply_affine_response(
    points: Sequence[WeightedTransversePoint],
    geometry: FlowEllipseInfo,
    lambda_in: float,
    lambda_out: float,
) -> list[WeightedTransversePoint]:
    transformed = []
    for point in points:
        dx = point.x - geometry.center_x
        dy = point.y - geometry.center_y
        in_plane = dx * geometry.minor_axis_x + dy * geometry.minor_axis_y
        out_of_plane = dx * geometry.major_axis_x + dy * geometry.major_axis_y
        new_dx = lambda_in * in_plane * geometry.minor_axis_x + lambda_out * out_of_plane * geometry.major_axis_x
        new_dy = lambda_in * in_plane * geometry.minor_axis_y + lambda_out * out_of_plane * geometry.major_axis_y
        transformed.append(WeightedTransversePoint(geometry.center_x + new_dx, geometry.center_y + new_dy, point.weight))
    return transformed


def _affine_kernel_covariance(
    geometry: FlowEllipseInfo,
    density_sigma: float,
    lambda_in: float,
    lambda_out: float,
    sigma_evo: float,
) -> tuple[float, float, float]:
    sigma_dep2 = density_sigma * density_sigma
    sigma_evo2 = sigma_evo * sigma_evo
    lin2 = lambda_in * lambda_in
    lout2 = lambda_out * lambda_out
    minor_x, minor_y = geometry.minor_axis_x, geometry.minor_axis_y
    major_x, major_y = geometry.major_axis_x, geometry.major_axis_y
    cov_xx = sigma_dep2 * (lin2 * minor_x * minor_x + lout2 * major_x * major_x) + sigma_evo2
    cov_yy = sigma_dep2 * (lin2 * minor_y * minor_y + lout2 * major_y * major_y) + sigma_evo2
    cov_xy = sigma_dep2 * (lin2 * minor_x * minor_y + lout2 * major_x * major_y)
    return cov_xx, cov_xy, cov_yy


def _affine_effective_closure(initial: FlowEllipseInfo, final: FlowEllipseInfo) -> AffineEffectiveClosure:
    closure = AffineEffectiveClosure(
        psi2=initial.psi2,
        sigma_in_initial=initial.radius_minor,
        sigma_out_initial=initial.radius_major,
        sigma_in_final=final.radius_minor,
        sigma_out_final=final.radius_major,
    )
    sigmas = (closure.sigma_in_initial, closure.sigma_out_initial, closure.sigma_in_final, closure.sigma_out_final)
    if any(not math.isfinite(sigma) or sigma <= 0.0 for sigma in sigmas):
        return closure

    closure.growth_in = closure.sigma_in_final / closure.sigma_in_initial
    closure.growth_out = closure.sigma_out_final / closure.sigma_out_initial
    growths = (closure.growth_in, closure.growth_out)
    if any(not math.isfinite(growth) or growth <= 0.0 for growth in growths):
        return closure

    closure.lambda_in = math.log(closure.growth_in)
    closure.lambda_out = math.log(closure.growth_out)
    closure.lambda_bar = 0.5 * (closure.lambda_in + closure.lambda_out)
    closure.delta_lambda = 0.5 * (closure.lambda_in - closure.lambda_out)
    closure.valid = all(
        math.isfinite(value) for value in (closure.lambda_in, closure.lambda_out, closure.lambda_bar, closure.delta_lambda)
    )
    return closure


def build_event_medium(points: Iterable[WeightedTransversePoint], parameters: EventMediumParameters) -> EventMedium:
    """Build participant geometry and the marker, dynamics and emission densities."""
    participants = list(points)
    mode = parameters.density_evolution_mode
    participant_geometry = compute_flow_ellipse_info(participants)
    initial_density = gaussian_density_field(participants, parameters.density_sigma)

    medium = EventMedium(
        density_evolution_mode=mode,
        participant_points=participants,
        participant_geometry=participant_geometry,
        initial_density=initial_density,
    )

    if mode is DensityEvolutionMode.NONE:
        medium.marker_density = initial_density
        medium.dynamics_density = initial_density
        medium.emission_density = initial_density
        medium.emission_geometry = copy.copy(participant_geometry)
    elif mode is DensityEvolutionMode.AFFINE_GAUSSIAN_RESPONSE:
        transformed = _apply_affine_response(
            participants, participant_geometry, parameters.affine_lambda_in, parameters.affine_lambda_out
        )
        cov_xx, cov_xy, cov_yy = _affine_kernel_covariance(
            participant_geometry,
            parameters.density_sigma,
            parameters.affine_lambda_in,
            parameters.affine_lambda_out,
            parameters.affine_sigma_evo,
        )
        emission_density = anisotropic_density_field(transformed, cov_xx, cov_xy, cov_yy)
        medium.emission_density = emission_density
        medium.marker_density = emission_density
        medium.dynamics_density = emission_density

        # Support-cloud covariance plus the shared kernel covariance.
        geometry = compute_flow_ellipse_info(transformed)
        geometry.sigma_x2 += cov_xx
        geometry.sigma_xy += cov_xy
        geometry.sigma_y2 += cov_yy
        geometry.finalize(sum(1 for point in transformed if point.contributes))
        medium.emission_geometry = geometry
    elif mode is DensityEvolutionMode.GRADIENT_RESPONSE:
        sigma_dep2 = parameters.density_sigma * parameters.density_sigma
        sigma_em = math.sqrt(max(0.0, sigma_dep2 + parameters.gradient_sigma_em * parameters.gradient_sigma_em))
        sigma_dyn = math.sqrt(max(0.0, sigma_dep2 + parameters.gradient_sigma_dyn * parameters.gradient_sigma_dyn))
        medium.marker_density = gaussian_density_field(participants, sigma_em)
        medium.dynamics_density = gaussian_density_field(participants, sigma_dyn)
        medium.emission_density = medium.marker_density
        medium.emission_geometry = copy.copy(participant_geometry)

    medium.marker_density_scale = _support_density_scale(medium.marker_density)
    medium.dynamics_density_scale = _support_density_scale(medium.dynamics_density)
    if mode is DensityEvolutionMode.AFFINE_GAUSSIAN_RESPONSE:
        medium.affine_effective_closure = _affine_effective_closure(participant_geometry, medium.emission_geometry)
    return medium