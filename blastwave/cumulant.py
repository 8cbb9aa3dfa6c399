"""Differential two-particle cumulant v2{2}(pT) with jackknife errors."""

from __future__ import annotations

import bisect
import math
from dataclasses import dataclass, field
from typing import Iterable, Sequence


@dataclass(frozen=True)
class V2PtTrack:
    """Transverse momentum of one track."""

    px: float
    py: float


@dataclass
class V2PtCumulantResult:
    """Final v2{2}(pT) values, their jackknife errors and the reference c2{2}."""

    pt_bin_edges: list[float] = field(default_factory=list)
    v2_values: list[float] = field(default_factory=list)
    v2_errors: list[float] = field(default_factory=list)
    c2: float = 0.0
    contributing_events: int = 0


@dataclass
class _Sums:
    c2_numerator: float
    c2_denominator: float
    d2_numerators: list[float]
    d2_denominators: list[float]


def _validate_edges(edges: Sequence[float]) -> None:
    if len(edges) < 2:
        raise ValueError("v2pt bin edges must contain at least two values.")
    for index, edge in enumerate(edges):
        if not (math.isfinite(edge) and edge >= 0.0):
            raise ValueError(f"v2pt bin edge must be finite and non-negative at index {index}.")
        if index > 0 and not edge > edges[index - 1]:
            raise ValueError("v2pt bin edges must be strictly increasing.")


def _v2_from_sums(sums: _Sums) -> list[float]:
    n_bins = len(sums.d2_numerators)
    if sums.c2_denominator <= 0.0:
        return [0.0] * n_bins
    c2 = sums.c2_numerator / sums.c2_denominator
    if c2 <= 0.0 or not math.isfinite(c2):
        return [0.0] * n_bins
    inverse_sqrt_c2 = 1.0 / math.sqrt(c2)
    return [
        (numerator / denominator) * inverse_sqrt_c2 if denominator > 0.0 else 0.0
        for numerator, denominator in zip(sums.d2_numerators, sums.d2_denominators)
    ]


class V2PtCumulant:
    """Accumulates per-event Q-vector sums and evaluates v2{2} in pT bins."""

    def __init__(self, pt_bin_edges: Iterable[float]) -> None:
        edges = [float(edge) for edge in pt_bin_edges]
        _validate_edges(edges)
        self.pt_bin_edges = edges
        self._events: list[_Sums] = []

    @property
    def bin_count(self) -> int:
        return len(self.pt_bin_edges) - 1

    def find_bin(self, pt: float) -> int:
        """Index of the bin holding ``pt``, or -1 outside the edges."""
        edges = self.pt_bin_edges
        if pt < edges[0] or pt > edges[-1]:
            return -1
        if pt == edges[-1]:
            return len(edges) - 2
        upper = bisect.bisect_right(edges, pt)
        if upper == 0 or upper == len(edges):
            return -1
        return upper - 1

    def add_event(self, tracks: Sequence[V2PtTrack]) -> None:
        """Record one event; events with fewer than two tracks are skipped."""
        multiplicity = len(tracks)
        if multiplicity < 2:
            return

        n_bins = self.bin_count
        p2 = [0j] * n_bins
        counts = [0] * n_bins
        q2 = 0j
        for track in tracks:
            phi = math.atan2(track.py, track.px)
            e2iphi = complex(math.cos(2.0 * phi), math.sin(2.0 * phi))
            q2 += e2iphi
            index = self.find_bin(math.hypot(track.px, track.py))
            if index < 0:
                continue
            p2[index] += e2iphi
            counts[index] += 1

        d2_numerators = [0.0] * n_bins
        d2_denominators = [0.0] * n_bins
        for index, (p2_bin, m_bin) in enumerate(zip(p2, counts)):
            if m_bin <= 0:
                continue
            d2_numerators[index] = (p2_bin * q2.conjugate()).real - m_bin
            d2_denominators[index] = float(m_bin) * float(multiplicity - 1)

        q2_norm = q2.real * q2.real + q2.imag * q2.imag
        self._events.append(
            _Sums(
                c2_numerator=q2_norm - multiplicity,
                c2_denominator=float(multiplicity) * float(multiplicity - 1),
                d2_numerators=d2_numerators,
                d2_denominators=d2_denominators,
            )
        )

    def _totals(self) -> _Sums:
        n_bins = self.bin_count
        totals = _Sums(0.0, 0.0, [0.0] * n_bins, [0.0] * n_bins)
        for event in self._events:
            totals.c2_numerator += event.c2_numerator
            totals.c2_denominator += event.c2_denominator
            for index in range(n_bins):
                totals.d2_numerators[index] += event.d2_numerators[index]
                totals.d2_denominators[index] += event.d2_denominators[index]
        return totals

    def finalize(self) -> V2PtCumulantResult:
        """Compute v2{2}(pT); raises RuntimeError when c2{2} is unusable."""
        totals = self._totals()
        if totals.c2_denominator <= 0.0:
            raise RuntimeError("v2pt analysis failed: no events with multiplicity >= 2 contributed to c2{2}.")
        c2 = totals.c2_numerator / totals.c2_denominator
        if not c2 > 0.0 or not math.isfinite(c2):
            raise RuntimeError("v2pt analysis failed: global c2{2} <= 0.")

        n_bins = self.bin_count
        result = V2PtCumulantResult(
            pt_bin_edges=list(self.pt_bin_edges),
            v2_values=_v2_from_sums(totals),
            v2_errors=[0.0] * n_bins,
            c2=c2,
            contributing_events=len(self._events),
        )

        n_samples = len(self._events)
        if n_samples < 2:
            return result

        leave_one_out = [
            _v2_from_sums(
                _Sums(
                    totals.c2_numerator - event.c2_numerator,
                    totals.c2_denominator - event.c2_denominator,
                    [t - e for t, e in zip(totals.d2_numerators, event.d2_numerators)],
                    [t - e for t, e in zip(totals.d2_denominators, event.d2_denominators)],
                )
            )
            for event in self._events
        ]

        prefactor = (n_samples - 1) / n_samples
        for index in range(n_bins):
            values = [sample[index] for sample in leave_one_out]
            mean = sum(values) * (1.0 / n_samples)
            variance = sum((value - mean) ** 2 for value in values)
            result.v2_errors[index] = math.sqrt(prefactor * variance)
        return result