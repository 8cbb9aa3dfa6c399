"""Small kinematic and event-level helper formulas."""

from __future__ import annotations

import math
from typing import Iterable

from blastwave.geometry import TransversePoint


def compute_centrality_percent(impact_parameter: float, woods_saxon_radius: float) -> float:
    """Fixed-b centrality estimate 100*b/(2R), clamped to [0, 100]."""
    value = 100.0 * impact_parameter / (2.0 * woods_saxon_radius)
    return max(0.0, min(value, 100.0))


def compute_azimuth(px: float, py: float) -> float:
    """Transverse-momentum azimuth in (-pi, pi]."""
    return math.atan2(py, px)


def compute_pseudorapidity(px: float, py: float, pz: float) -> float:
    """Pseudorapidity, with +/-10 returned along the beam axis."""
    magnitude = math.sqrt(px * px + py * py + pz * pz)
    numerator = magnitude + pz
    denominator = magnitude - pz
    if numerator <= 1.0e-9 or denominator <= 1.0e-9:
        return 10.0 if pz >= 0.0 else -10.0
    return 0.5 * math.log(numerator / denominator)


def compute_second_harmonic_event_v2(q2x: float, q2y: float, multiplicity: int) -> float:
    """Event v2 as |Q2| / M, zero for empty events."""
    if multiplicity <= 0:
        return 0.0
    return math.hypot(q2x, q2y) / multiplicity


def compute_mean_radius_squared(points: Iterable[TransversePoint]) -> float:
    """Centred mean r^2 of the points with finite coordinates."""
    finite = [(p.x, p.y) for p in points if math.isfinite(p.x) and math.isfinite(p.y)]
    if not finite:
        return 0.0
    inverse_count = 1.0 / len(finite)
    mean_x = sum(x for x, _ in finite) * inverse_count
    mean_y = sum(y for _, y in finite) * inverse_count
    mean_r2 = sum(x * x + y * y for x, y in finite) * inverse_count
    return max(0.0, mean_r2 - mean_x * mean_x - mean_y * mean_y)


def compute_mt_cosh_weight(mass: float, px: float, py: float, pz: float, eta_s: float) -> float:
    """Cooper-Frye style weight mT*cosh(y - eta_s); zero when not finite or negative."""
    m_t = math.sqrt(max(0.0, mass * mass + px * px + py * py))
    rapidity = math.asinh(pz / m_t) if m_t > 0.0 else 0.0
    try:
        weight = m_t * math.cosh(rapidity - eta_s)
    except OverflowError:
        return 0.0
    if not math.isfinite(weight) or weight < 0.0:
        return 0.0
    return weight