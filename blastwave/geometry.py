"""Transverse points and the weighted covariance ellipse of a point cloud."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable

_ELLIPSE_TOLERANCE = 1.0e-12


@dataclass(frozen=True)
class TransversePoint:
    """A position in the transverse plane."""

    x: float = 0.0
    y: float = 0.0


@dataclass(frozen=True)
class WeightedTransversePoint:
    """A transverse position carrying a source weight."""

    x: float = 0.0
    y: float = 0.0
    weight: float = 1.0

    @property
    def contributes(self) -> bool:
        """True when the weight is finite and positive."""
        return math.isfinite(self.weight) and self.weight > 0.0


def _lexicographically_negative(x: float, y: float) -> bool:
    return x < 0.0 or (abs(x) <= _ELLIPSE_TOLERANCE and y < 0.0)


@dataclass
class FlowEllipseInfo:
    """Covariance ellipse of a weighted point cloud with cached invariants."""

    valid: bool = False
    center_x: float = 0.0
    center_y: float = 0.0
    sigma_x2: float = 0.0
    sigma_y2: float = 0.0
    sigma_xy: float = 0.0
    eps2: float = 0.0
    psi2: float = 0.0
    lambda_major: float = 0.0
    lambda_minor: float = 0.0
    radius_major: float = 0.0
    radius_minor: float = 0.0
    inverse_sigma_xx: float = 0.0
    inverse_sigma_xy: float = 0.0
    inverse_sigma_yy: float = 0.0
    major_axis_x: float = 0.0
    major_axis_y: float = 0.0
    minor_axis_x: float = 0.0
    minor_axis_y: float = 0.0

    def finalize(self, contributing_points: int) -> None:
        """Recompute every invariant derived from the current covariance."""
        sx2, sy2, sxy = self.sigma_x2, self.sigma_y2, self.sigma_xy
        trace = sx2 + sy2
        if trace > _ELLIPSE_TOLERANCE:
            ecc_x = sy2 - sx2
            ecc_y = 2.0 * sxy
            self.eps2 = math.hypot(ecc_x, ecc_y) / trace
            self.psi2 = 0.5 * math.atan2(ecc_y, ecc_x)
        else:
            self.eps2 = 0.0
            self.psi2 = 0.0

        discriminant = math.sqrt(max(0.0, (sx2 - sy2) * (sx2 - sy2) + 4.0 * sxy * sxy))
        self.lambda_major = 0.5 * (trace + discriminant)
        self.lambda_minor = 0.5 * (trace - discriminant)
        self.radius_major = math.sqrt(self.lambda_major) if self.lambda_major > 0.0 else 0.0
        self.radius_minor = math.sqrt(self.lambda_minor) if self.lambda_minor > 0.0 else 0.0

        determinant = sx2 * sy2 - sxy * sxy
        if determinant > _ELLIPSE_TOLERANCE:
            self.inverse_sigma_xx = sy2 / determinant
            self.inverse_sigma_xy = -sxy / determinant
            self.inverse_sigma_yy = sx2 / determinant
        else:
            self.inverse_sigma_xx = 0.0
            self.inverse_sigma_xy = 0.0
            self.inverse_sigma_yy = 0.0

        angle = 0.5 * math.atan2(2.0 * sxy, sx2 - sy2)
        major_x = math.cos(angle)
        major_y = math.sin(angle)

        if self.eps2 > _ELLIPSE_TOLERANCE:
            preferred_x = math.cos(self.psi2)
            preferred_y = math.sin(self.psi2)
            if -major_y * preferred_x + major_x * preferred_y < 0.0:
                major_x, major_y = -major_x, -major_y
        elif _lexicographically_negative(major_x, major_y):
            major_x, major_y = -major_x, -major_y

        self.major_axis_x = major_x
        self.major_axis_y = major_y
        self.minor_axis_x = -major_y
        self.minor_axis_y = major_x
        self.valid = (
            contributing_points >= 2
            and trace > _ELLIPSE_TOLERANCE
            and self.lambda_major > _ELLIPSE_TOLERANCE
            and self.lambda_minor > _ELLIPSE_TOLERANCE
            and determinant > _ELLIPSE_TOLERANCE
        )


def compute_flow_ellipse_info(points: Iterable[WeightedTransversePoint]) -> FlowEllipseInfo:
    """Build the weighted covariance ellipse of the finite, positively weighted points."""
    contributing = [point for point in points if point.contributes]
    ellipse = FlowEllipseInfo()

    total_weight = sum(point.weight for point in contributing)
    if total_weight <= 0.0:
        return ellipse

    ellipse.center_x = sum(point.weight * point.x for point in contributing) / total_weight
    ellipse.center_y = sum(point.weight * point.y for point in contributing) / total_weight

    sigma_x2 = sigma_y2 = sigma_xy = 0.0
    for point in contributing:
        dx = point.x - ellipse.center_x
        dy = point.y - ellipse.center_y
        sigma_x2 += point.weight * dx * dx
        sigma_y2 += point.weight * dy * dy
        sigma_xy += point.weight * dx * dy

    ellipse.sigma_x2 = sigma_x2 / total_weight
    ellipse.sigma_y2 = sigma_y2 / total_weight
    ellipse.sigma_xy = sigma_xy / total_weight
    ellipse.finalize(len(contributing))
    return ellipse