"""Tabulated inverse-CDF sampler for the Maxwell-Juttner momentum magnitude."""

from __future__ import annotations

import sys

import numpy as np


def thermal_weight(momentum, mass, temperature):
    """Unnormalised density p^2 * exp(-E/T) with E = sqrt(p^2 + m^2)."""
    energy = np.sqrt(momentum * momentum + mass * mass)
    return momentum * momentum * np.exp(-energy / temperature)


class MaxwellJuttnerMomentumSampler:
    """Samples |p| from a thermal distribution by interpolating a trapezoid CDF table."""

    def __init__(self, mass: float, temperature: float, p_max: float, grid_points: int) -> None:
        if mass <= 0.0:
            raise ValueError("Maxwell-Juttner sampler mass must be positive.")
        if temperature <= 0.0:
            raise ValueError("Maxwell-Juttner sampler temperature must be positive.")
        if p_max <= 0.0:
            raise ValueError("Maxwell-Juttner sampler pMax must be positive.")
        if grid_points < 2:
            raise ValueError("Maxwell-Juttner sampler grid must contain at least 2 points.")

        self.mass = float(mass)
        self.temperature = float(temperature)
        self.p_max = float(p_max)

        spacing = self.p_max / (grid_points - 1)
        self._grid = np.arange(grid_points, dtype=float) * spacing
        with np.errstate(over="ignore", under="ignore", invalid="ignore"):
            weights = thermal_weight(self._grid, self.mass, self.temperature)
        if not np.all(np.isfinite(weights)):
            raise RuntimeError("Maxwell-Juttner sampler produced a non-finite table weight.")

        cumulative = np.empty(grid_points, dtype=float)
        cumulative[0] = 0.0
        cumulative[1:] = np.cumsum(0.5 * (weights[:-1] + weights[1:]) * spacing)
        integral = float(cumulative[-1])
        if not np.isfinite(integral) or integral <= sys.float_info.min:
            raise RuntimeError("Maxwell-Juttner sampler integral must stay positive and finite.")

        self._cdf = cumulative * (1.0 / integral)
        self._cdf[-1] = 1.0

    def sample(self, unit_uniform: float) -> float:
        """Map a uniform number in [0, 1] to a momentum magnitude."""
        grid = self._grid
        if unit_uniform <= 0.0:
            return float(grid[0])
        if unit_uniform >= 1.0:
            return float(grid[-1])

        upper = int(np.searchsorted(self._cdf, unit_uniform, side="left"))
        if upper == 0:
            return float(grid[0])
        if upper == len(self._cdf):
            return float(grid[-1])

        lower = upper - 1
        lower_cdf = self._cdf[lower]
        upper_cdf = self._cdf[upper]
        if upper_cdf <= lower_cdf:
            return float(grid[upper])

        fraction = (unit_uniform - lower_cdf) / (upper_cdf - lower_cdf)
        return float(grid[lower] + fraction * (grid[upper] - grid[lower]))