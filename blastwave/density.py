"""Gaussian point-cloud density fields and their analytic gradients."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable

from blastwave.geometry import WeightedTransversePoint


@dataclass(frozen=True)
class DensityFieldSample:
    """Density value and gradient at one transverse position."""

    density: float = 0.0
    gradient_x: float = 0.0
    gradient_y: float = 0.0


@dataclass(frozen=True)
class DensityField:
    """Sum of Gaussian kernels with a shared covariance, one per support point."""

    support_points: tuple[WeightedTransversePoint, ...] = ()
    gaussian_sigma: float = 0.0
    kernel_cov_xx: float = 0.0
    kernel_cov_xy: float = 0.0
    kernel_cov_yy: float = 0.0


def gaussian_density_field(points: Iterable[WeightedTransversePoint], sigma: float) -> DensityField:
    """Isotropic Gaussian smearing of ``points`` with width ``sigma``."""
    sigma2 = sigma * sigma
    return DensityField(
        support_points=tuple(points),
        gaussian_sigma=sigma,
        kernel_cov_xx=sigma2,
        kernel_cov_xy=0.0,
        kernel_cov_yy=sigma2,
    )


def anisotropic_density_field(
    points: Iterable[WeightedTransversePoint],
    cov_xx: float,
    cov_xy: float,
    cov_yy: float,
) -> DensityField:
    """Gaussian smearing of ``points`` with a full 2x2 kernel covariance."""
    average_variance = 0.5 * (cov_xx + cov_yy)
    return DensityField(
        support_points=tuple(points),
        gaussian_sigma=math.sqrt(average_variance) if average_variance > 0.0 else 0.0,
        kernel_cov_xx=cov_xx,
        kernel_cov_xy=cov_xy,
        kernel_cov_yy=cov_yy,
    )


def evaluate_density_field(field: DensityField, x: float, y: float) -> DensityFieldSample:
    """Evaluate the density and its gradient at ``(x, y)``.

    A kernel covariance that is not finite or not positive definite yields an
    all-zero sample.
    """
    cov_xx, cov_xy, cov_yy = field.kernel_cov_xx, field.kernel_cov_xy, field.kernel_cov_yy
    if not (math.isfinite(cov_xx) and math.isfinite(cov_xy) and math.isfinite(cov_yy)):
        return DensityFieldSample()

    determinant = cov_xx * cov_yy - cov_xy * cov_xy
    if not math.isfinite(determinant) or determinant <= 0.0:
        return DensityFieldSample()

    inv_xx = cov_yy / determinant
    inv_xy = -cov_xy / determinant
    inv_yy = cov_xx / determinant
    normalization = 1.0 / (2.0 * math.pi * math.sqrt(determinant))

    density = 0.0
    gradient_x = 0.0
    gradient_y = 0.0
    for point in field.support_points:
        if not point.contributes:
            continue
        dx = x - point.x
        dy = y - point.y
        qx = inv_xx * dx + inv_xy * dy
        qy = inv_xy * dx + inv_yy * dy
        quadratic_form = dx * qx + dy * qy
        if not math.isfinite(quadratic_form):
            continue
        contribution = point.weight * normalization * math.exp(-0.5 * quadratic_form)
        density += contribution
        gradient_x -= contribution * qx
        gradient_y -= contribution * qy

    return DensityFieldSample(density=density, gradient_x=gradient_x, gradient_y=gradient_y)