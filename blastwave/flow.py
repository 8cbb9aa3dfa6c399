"""Transverse flow-velocity samplers evaluated on an event medium."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from blastwave.density import evaluate_density_field
from blastwave.emission import EmissionSite
from blastwave.geometry import FlowEllipseInfo
from blastwave.medium import DensityEvolutionMode, EventMedium

_BETA_T_MAX = 0.95
_DIRECTION_TOLERANCE = 1.0e-12
_FLAT_REGION_TOLERANCE = 1.0e-6
_DENSITY_EPSILON = 1.0e-18
_BELOW_ONE = math.nextafter(1.0, 0.0)


class FlowVelocitySamplerMode(Enum):
    """Backend used to assign a transverse velocity to a fluid element."""

    COVARIANCE_ELLIPSE = 0
    DENSITY_NORMAL = 1
    GRADIENT_RESPONSE = 2
    AFFINE_EFFECTIVE = 3


class AffineEffectiveMode(Enum):
    """How the affine-effective closure is turned into a velocity."""

    ADDITIVE_RHO = 0
    FULL_TENSOR = 1


@dataclass(frozen=True)
class FlowFieldParameters:
    """Settings for the flow-velocity samplers."""

    rho0: float = 0.0
    kappa2: float = 0.0
    flow_power: float = 1.0
    velocity_sampler_mode: FlowVelocitySamplerMode = FlowVelocitySamplerMode.COVARIANCE_ELLIPSE
    density_normal_kappa_compensation: bool = False
    affine_delta_tau_ref: float = 1.0
    affine_kappa_flow: float = 1.0
    affine_kappa_aniso: float = 0.0
    affine_u_max: float = 0.95
    affine_effective_mode: AffineEffectiveMode = AffineEffectiveMode.ADDITIVE_RHO


@dataclass(frozen=True)
class FlowFieldSample:
    """Transverse velocity at one position, with its rapidity and radius."""

    beta_x: float = 0.0
    beta_y: float = 0.0
    beta_t: float = 0.0
    phi_b: float = 0.0
    rho_raw: float = 0.0
    r_tilde: float = 0.0


@dataclass
class AffineEffectiveFlowInfo:
    """Event-level diagnostics of the affine-effective flow closure."""

    valid: bool = False
    affine_effective_mode: AffineEffectiveMode = AffineEffectiveMode.ADDITIVE_RHO
    h_in_eff: float = 0.0
    h_out_eff: float = 0.0
    affine_u_max: float = 0.0
    surface_beta_in_raw: float = 0.0
    surface_beta_out_raw: float = 0.0
    surface_beta_in_clipped: float = 0.0
    surface_beta_out_clipped: float = 0.0
    surface_rho_base: float = 0.0
    surface_rho_geom_iso: float = 0.0
    surface_rho_geom_in: float = 0.0
    surface_rho_geom_out: float = 0.0
    surface_rho_total_in: float = 0.0
    surface_rho_total_out: float = 0.0


@dataclass(frozen=True)
class _EllipseMetric:
    delta_x: float
    delta_y: float
    normal_x: float
    normal_y: float
    q_major: float
    q_minor: float
    r_tilde: float


def _power(base: float, exponent: float) -> float:
    try:
        return math.pow(base, exponent)
    except OverflowError:
        return math.inf
    except ValueError:
        return math.inf if base == 0.0 else math.nan


def _exp(value: float) -> float:
    try:
        return math.exp(value)
    except OverflowError:
        return math.inf


def _beta_t(rho_raw: float) -> float:
    return min(_BETA_T_MAX, math.tanh(max(0.0, rho_raw)))


def _safe_atanh(value: float) -> float:
    if value < -_BELOW_ONE:
        value = -_BELOW_ONE
    elif value > _BELOW_ONE:
        value = _BELOW_ONE
    return math.atanh(value)


def _affine_parameters_valid(parameters: FlowFieldParameters) -> bool:
    return (
        math.isfinite(parameters.affine_delta_tau_ref)
        and parameters.affine_delta_tau_ref > 0.0
        and math.isfinite(parameters.affine_kappa_flow)
        and math.isfinite(parameters.affine_kappa_aniso)
        and math.isfinite(parameters.affine_u_max)
        and 0.0 < parameters.affine_u_max < 1.0
    )


def _affine_kappa_modulation(phi_b_lab: float, medium: EventMedium, parameters: FlowFieldParameters) -> float:
    a2 = parameters.kappa2 * medium.participant_geometry.eps2
    return _exp(2.0 * a2 * math.cos(2.0 * (phi_b_lab - medium.participant_geometry.psi2)))


def _ellipse_metric(ellipse: FlowEllipseInfo, x: float, y: float) -> Optional[_EllipseMetric]:
    if not ellipse.valid:
        return None
    delta_x = x - ellipse.center_x
    delta_y = y - ellipse.center_y
    q_x = ellipse.inverse_sigma_xx * delta_x + ellipse.inverse_sigma_xy * delta_y
    q_y = ellipse.inverse_sigma_xy * delta_x + ellipse.inverse_sigma_yy * delta_y
    q_norm = math.hypot(q_x, q_y)
    if not math.isfinite(q_norm) or q_norm <= _DIRECTION_TOLERANCE:
        return None
    r_tilde2 = delta_x * q_x + delta_y * q_y
    if not math.isfinite(r_tilde2) or r_tilde2 < 0.0:
        return None
    return _EllipseMetric(
        delta_x=delta_x,
        delta_y=delta_y,
        normal_x=q_x / q_norm,
        normal_y=q_y / q_norm,
        q_major=q_x * ellipse.major_axis_x + q_y * ellipse.major_axis_y,
        q_minor=q_x * ellipse.minor_axis_x + q_y * ellipse.minor_axis_y,
        r_tilde=math.sqrt(max(0.0, r_tilde2)),
    )


def _density_normal(
    medium: EventMedium, x: float, y: float, metric: _EllipseMetric
) -> Optional[tuple[float, float]]:
    """Unit outward density-gradient normal, falling back to the ellipse normal."""
    sample = evaluate_density_field(medium.emission_density, x, y)
    magnitude = math.hypot(sample.gradient_x, sample.gradient_y)
    flatness = magnitude * medium.emission_density.gaussian_sigma / max(sample.density, _DENSITY_EPSILON)
    if (
        math.isfinite(magnitude)
        and magnitude > _DIRECTION_TOLERANCE
        and math.isfinite(flatness)
        and flatness >= _FLAT_REGION_TOLERANCE
    ):
        normal_x = -sample.gradient_x / magnitude
        normal_y = -sample.gradient_y / magnitude
    else:
        normal_x, normal_y = metric.normal_x, metric.normal_y

    length = math.hypot(normal_x, normal_y)
    if not math.isfinite(length) or length <= _DIRECTION_TOLERANCE:
        return None
    return normal_x / length, normal_y / length


def _affine_shared_terms(
    medium: EventMedium, parameters: FlowFieldParameters
) -> Optional[tuple[float, float, float, float]]:
    closure = medium.affine_effective_closure
    if not closure.valid or not _affine_parameters_valid(parameters):
        return None
    h_in = closure.lambda_in / parameters.affine_delta_tau_ref
    h_out = closure.lambda_out / parameters.affine_delta_tau_ref
    h_bar = 0.5 * (h_in + h_out)
    r_bar = math.sqrt(closure.sigma_in_final * closure.sigma_out_final)
    if not all(math.isfinite(value) for value in (h_in, h_out, h_bar, r_bar)):
        return None
    return h_in, h_out, h_bar, r_bar


def compute_affine_effective_flow_info(medium: EventMedium, parameters: FlowFieldParameters) -> AffineEffectiveFlowInfo:
    """Surface velocities and rapidities implied by the affine-effective closure."""
    info = AffineEffectiveFlowInfo(affine_effective_mode=parameters.affine_effective_mode)
    terms = _affine_shared_terms(medium, parameters)
    if terms is None:
        return info
    h_in, h_out, h_bar, r_bar = terms
    closure = medium.affine_effective_closure

    info.h_in_eff = h_in
    info.h_out_eff = h_out
    info.affine_u_max = parameters.affine_u_max

    if parameters.affine_effective_mode is AffineEffectiveMode.ADDITIVE_RHO:
        kappa = parameters.affine_kappa_flow
        u_iso = kappa * h_bar * r_bar
        u_in = kappa * math.sqrt((h_in * closure.sigma_in_final) * (h_in * closure.sigma_in_final))
        u_out = kappa * math.sqrt((h_out * closure.sigma_out_final) * (h_out * closure.sigma_out_final))

        info.surface_rho_base = parameters.rho0
        info.surface_rho_geom_iso = _safe_atanh(min(u_iso, parameters.affine_u_max))
        info.surface_rho_geom_in = _safe_atanh(min(u_in, parameters.affine_u_max))
        info.surface_rho_geom_out = _safe_atanh(min(u_out, parameters.affine_u_max))
        info.surface_rho_total_in = max(
            0.0, info.surface_rho_base + (info.surface_rho_geom_in - info.surface_rho_geom_iso)
        )
        info.surface_rho_total_out = max(
            0.0, info.surface_rho_base + (info.surface_rho_geom_out - info.surface_rho_geom_iso)
        )
        info.surface_beta_in_raw = math.tanh(info.surface_rho_total_in)
        info.surface_beta_out_raw = math.tanh(info.surface_rho_total_out)
        info.surface_beta_in_clipped = min(info.surface_beta_in_raw, parameters.affine_u_max)
        info.surface_beta_out_clipped = min(info.surface_beta_out_raw, parameters.affine_u_max)
    else:
        info.surface_beta_in_raw = abs(parameters.affine_kappa_flow * h_in * closure.sigma_in_final)
        info.surface_beta_out_raw = abs(parameters.affine_kappa_flow * h_out * closure.sigma_out_final)
        info.surface_beta_in_clipped = min(info.surface_beta_in_raw, info.affine_u_max)
        info.surface_beta_out_clipped = min(info.surface_beta_out_raw, info.affine_u_max)

    values = (
        info.h_in_eff,
        info.h_out_eff,
        info.affine_u_max,
        info.surface_beta_in_raw,
        info.surface_beta_out_raw,
        info.surface_beta_in_clipped,
        info.surface_beta_out_clipped,
        info.surface_rho_base,
        info.surface_rho_geom_iso,
        info.surface_rho_geom_in,
        info.surface_rho_geom_out,
        info.surface_rho_total_in,
        info.surface_rho_total_out,
    )
    if not all(math.isfinite(value) for value in values):
        return AffineEffectiveFlowInfo()

    info.valid = True
    return info


def _covariance_ellipse_flow(
    medium: EventMedium, x: float, y: float, parameters: FlowFieldParameters
) -> FlowFieldSample:
    metric = _ellipse_metric(medium.emission_geometry, x, y)
    if metric is None:
        return FlowFieldSample()

    radial = _power(metric.r_tilde, parameters.flow_power)
    phi_b_lab = math.atan2(metric.normal_y, metric.normal_x)
    if medium.density_evolution_mode is DensityEvolutionMode.AFFINE_GAUSSIAN_RESPONSE:
        phi_b = phi_b_lab
        rho_raw = parameters.rho0 * radial * _affine_kappa_modulation(phi_b_lab, medium, parameters)
    else:
        # kappa2 is defined relative to the initial participant eccentricity.
        a2 = parameters.kappa2 * medium.participant_geometry.eps2
        phi_b = math.atan2(metric.q_minor, metric.q_major)
        rho_raw = radial * (parameters.rho0 + a2 * math.cos(2.0 * phi_b))

    beta_t = _beta_t(rho_raw)
    return FlowFieldSample(
        beta_x=beta_t * metric.normal_x,
        beta_y=beta_t * metric.normal_y,
        beta_t=beta_t,
        phi_b=phi_b,
        rho_raw=rho_raw,
        r_tilde=metric.r_tilde,
    )


def _density_normal_flow(
    medium: EventMedium, x: float, y: float, parameters: FlowFieldParameters
) -> FlowFieldSample:
    metric = _ellipse_metric(medium.emission_geometry, x, y)
    if metric is None:
        return FlowFieldSample()
    normal = _density_normal(medium, x, y, metric)
    if normal is None:
        return FlowFieldSample()
    normal_x, normal_y = normal

    phi_b = math.atan2(normal_y, normal_x)
    rho_raw = parameters.rho0 * _power(metric.r_tilde, parameters.flow_power)
    if (
        medium.density_evolution_mode is DensityEvolutionMode.AFFINE_GAUSSIAN_RESPONSE
        and parameters.density_normal_kappa_compensation
    ):
        rho_raw *= _affine_kappa_modulation(phi_b, medium, parameters)

    beta_t = _beta_t(rho_raw)
    return FlowFieldSample(
        beta_x=beta_t * normal_x,
        beta_y=beta_t * normal_y,
        beta_t=beta_t,
        phi_b=phi_b,
        rho_raw=rho_raw,
        r_tilde=metric.r_tilde,
    )


def _principal_coordinates(medium: EventMedium, metric: _EllipseMetric) -> tuple[float, float]:
    geometry = medium.emission_geometry
    x_prime = metric.delta_x * geometry.minor_axis_x + metric.delta_y * geometry.minor_axis_y
    y_prime = metric.delta_x * geometry.major_axis_x + metric.delta_y * geometry.major_axis_y
    return x_prime, y_prime


def _affine_additive_rho(
    medium: EventMedium,
    x: float,
    y: float,
    parameters: FlowFieldParameters,
    metric: _EllipseMetric,
    terms: tuple[float, float, float, float],
) -> FlowFieldSample:
    h_in, h_out, h_bar, r_bar = terms
    normal = _density_normal(medium, x, y, metric)
    if normal is None:
        return FlowFieldSample()
    normal_x, normal_y = normal

    radial = _power(metric.r_tilde, parameters.flow_power)
    if not math.isfinite(radial):
        return FlowFieldSample()

    x_prime, y_prime = _principal_coordinates(medium, metric)
    u_geom = parameters.affine_kappa_flow * radial * math.sqrt(
        (h_in * x_prime) * (h_in * x_prime) + (h_out * y_prime) * (h_out * y_prime)
    )
    u_geom_iso = parameters.affine_kappa_flow * radial * h_bar * metric.r_tilde * r_bar

    rho_base = parameters.rho0 * radial
    rho_geom = _safe_atanh(min(u_geom, parameters.affine_u_max))
    rho_geom_iso = _safe_atanh(min(u_geom_iso, parameters.affine_u_max))
    rho_raw = max(0.0, rho_base + (rho_geom - rho_geom_iso))

    beta_t = min(parameters.affine_u_max, math.tanh(rho_raw))
    return FlowFieldSample(
        beta_x=beta_t * normal_x,
        beta_y=beta_t * normal_y,
        beta_t=beta_t,
        phi_b=math.atan2(normal_y, normal_x),
        rho_raw=rho_raw,
        r_tilde=metric.r_tilde,
    )


def _affine_full_tensor(
    medium: EventMedium,
    parameters: FlowFieldParameters,
    metric: _EllipseMetric,
    h_in: float,
    h_out: float,
) -> FlowFieldSample:
    radial = _power(metric.r_tilde, parameters.flow_power)
    if not math.isfinite(radial):
        return FlowFieldSample()

    geometry = medium.emission_geometry
    x_prime, y_prime = _principal_coordinates(medium, metric)
    u_x_prime = parameters.affine_kappa_flow * radial * h_in * x_prime
    u_y_prime = parameters.affine_kappa_flow * radial * h_out * y_prime

    beta_x = u_x_prime * geometry.minor_axis_x + u_y_prime * geometry.major_axis_x
    beta_y = u_x_prime * geometry.minor_axis_y + u_y_prime * geometry.major_axis_y
    beta_t = math.hypot(beta_x, beta_y)
    if not math.isfinite(beta_t):
        return FlowFieldSample()

    if beta_t > parameters.affine_u_max:
        scale = parameters.affine_u_max / beta_t
        beta_x *= scale
        beta_y *= scale
        beta_t = parameters.affine_u_max

    return FlowFieldSample(
        beta_x=beta_x,
        beta_y=beta_y,
        beta_t=beta_t,
        phi_b=math.atan2(beta_y, beta_x) if beta_t > 0.0 else 0.0,
        rho_raw=_safe_atanh(beta_t) if beta_t > 0.0 else 0.0,
        r_tilde=metric.r_tilde,
    )


def _affine_effective_flow(
    medium: EventMedium, x: float, y: float, parameters: FlowFieldParameters
) -> FlowFieldSample:
    metric = _ellipse_metric(medium.emission_geometry, x, y)
    if metric is None:
        return FlowFieldSample()
    terms = _affine_shared_terms(medium, parameters)
    if terms is None:
        return FlowFieldSample()
    if parameters.affine_effective_mode is AffineEffectiveMode.ADDITIVE_RHO:
        return _affine_additive_rho(medium, x, y, parameters, metric, terms)
    return _affine_full_tensor(medium, parameters, metric, terms[0], terms[1])


def _gradient_response_flow(site: EmissionSite) -> FlowFieldSample:
    beta_x = site.beta_tx
    beta_y = site.beta_ty
    beta_t = math.hypot(beta_x, beta_y)
    if not math.isfinite(beta_t) or beta_t <= 0.0:
        return FlowFieldSample()
    if beta_t >= 1.0:
        scale = _BELOW_ONE / beta_t
        beta_x *= scale
        beta_y *= scale
        beta_t = _BELOW_ONE
    return FlowFieldSample(
        beta_x=beta_x,
        beta_y=beta_y,
        beta_t=beta_t,
        phi_b=math.atan2(beta_y, beta_x),
        rho_raw=math.atanh(beta_t),
    )


def evaluate_flow_field(medium: EventMedium, x: float, y: float, parameters: FlowFieldParameters) -> FlowFieldSample:
    """Transverse flow at ``(x, y)``; the gradient-response mode yields a zero sample here."""
    mode = parameters.velocity_sampler_mode
    if mode is FlowVelocitySamplerMode.COVARIANCE_ELLIPSE:
        return _covariance_ellipse_flow(medium, x, y, parameters)
    if mode is FlowVelocitySamplerMode.DENSITY_NORMAL:
        return _density_normal_flow(medium, x, y, parameters)
    if mode is FlowVelocitySamplerMode.AFFINE_EFFECTIVE:
        return _affine_effective_flow(medium, x, y, parameters)
    return FlowFieldSample()


def evaluate_flow_field_at_site(
    medium: EventMedium, site: EmissionSite, parameters: FlowFieldParameters
) -> FlowFieldSample:
    """Transverse flow for an emission site, using its own beta in gradient-response mode."""
    if parameters.velocity_sampler_mode is FlowVelocitySamplerMode.GRADIENT_RESPONSE:
        return _gradient_response_flow(site)
    return evaluate_flow_field(medium, site.position.x, site.position.y, parameters)