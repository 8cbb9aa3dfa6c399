# blastwave

A library of building blocks for a blast-wave model of heavy-ion collisions:
transverse participant geometry, Gaussian freeze-out density fields,
emission-site sampling, transverse flow-velocity fields, thermal momentum
sampling and a differential two-particle cumulant `v2{2}(pT)` with jackknife
errors.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Modules

- `blastwave.geometry`: `TransversePoint`, `WeightedTransversePoint` and
  `compute_flow_ellipse_info`, which returns a `FlowEllipseInfo` holding the
  weighted centre and covariance, eccentricity `eps2`, angle `psi2`,
  eigenvalues, radii, principal axes and inverse covariance. Only points with
  a finite, positive weight contribute. `FlowEllipseInfo.finalize` recomputes
  the derived values after the covariance has been changed.
- `blastwave.physics`: `compute_centrality_percent` (`100*b/(2R)` clamped to
  `[0, 100]`), `compute_azimuth`, `compute_pseudorapidity` (returns `+10` or
  `-10` along the beam axis), `compute_second_harmonic_event_v2` (`|Q2|/M`),
  `compute_mean_radius_squared` (centred, finite points only) and
  `compute_mt_cosh_weight`.
- `blastwave.paths`: `ensure_output_directory_exists(output_path,
  notice_stream=None)` creates the parent directory of an output file and
  writes a notice to the stream (standard error by default) when it does. It
  raises `NotADirectoryError` when the parent exists but is not a directory,
  and `OSError` when it cannot be inspected or created.
- `blastwave.momentum`: `MaxwellJuttnerMomentumSampler(mass, temperature,
  p_max, grid_points)` tabulates the cumulative distribution of
  `p^2 exp(-E/T)` on a grid and maps a uniform number to `|p|` by linear
  interpolation; `thermal_weight` is the unnormalised density. Non-positive
  arguments or fewer than two grid points raise `ValueError`.
- `blastwave.cumulant`: `V2PtCumulant` takes strictly increasing,
  non-negative bin edges, accumulates events of `V2PtTrack` with
  `add_event` (events with fewer than two tracks are skipped) and returns a
  `V2PtCumulantResult` from `finalize`.
- `blastwave.density`: `DensityField` built by `gaussian_density_field` or
  `anisotropic_density_field`, and `evaluate_density_field`, which returns a
  `DensityFieldSample` with the density and its analytic gradient.
- `blastwave.medium`: `build_event_medium(points, EventMediumParameters)`
  assembles an `EventMedium` for a `DensityEvolutionMode` (`NONE`,
  `AFFINE_GAUSSIAN_RESPONSE`, `GRADIENT_RESPONSE`), including the
  `AffineEffectiveClosure` in the affine mode.
- `blastwave.emission`: `sample_emission_sites(medium, EmissionParameters,
  rng)` draws `EmissionSite`s for an `EmissionSamplerMode`
  (`PARTICIPANT_HOTSPOT`, `DENSITY_FIELD`, `GRADIENT_RESPONSE`) with a
  negative-binomial multiplicity per participant. `rng` is a
  `numpy.random.Generator`. Every site currently carries an emission weight
  of 1 for both `CooperFryeWeightMode` values.
- `blastwave.flow`: `evaluate_flow_field`, `evaluate_flow_field_at_site` and
  `compute_affine_effective_flow_info`, configured by `FlowFieldParameters`
  with a `FlowVelocitySamplerMode` and an `AffineEffectiveMode`. In
  `GRADIENT_RESPONSE` mode the velocity comes from the emission site, so
  `evaluate_flow_field` at a bare position returns an all-zero
  `FlowFieldSample`.

## Examples

Differential `v2{2}`:

```python
import math
from blastwave.cumulant import V2PtCumulant, V2PtTrack

def track(pt, phi):
    return V2PtTrack(pt * math.cos(phi), pt * math.sin(phi))

cumulant = V2PtCumulant([0.0, 0.5, 1.0])
cumulant.add_event([track(0.2, 0.0), track(0.7, 0.0)])
cumulant.add_event([track(0.2, math.pi / 2), track(0.7, math.pi / 2)])
result = cumulant.finalize()
print(result.c2, result.v2_values, result.v2_errors)
```

`finalize` raises `RuntimeError` when no event with at least two tracks was
added or when the global `c2{2}` is not positive.

Thermal momenta:

```python
import random
from blastwave.momentum import MaxwellJuttnerMomentumSampler

sampler = MaxwellJuttnerMomentumSampler(0.13957, 0.12, 5.0, 2048)
p = sampler.sample(random.random())
```

Emission sites and flow from a participant cloud:

```python
import numpy as np
from blastwave.geometry import WeightedTransversePoint
from blastwave.medium import DensityEvolutionMode, EventMediumParameters, build_event_medium
from blastwave.emission import EmissionParameters, EmissionSamplerMode, sample_emission_sites
from blastwave.flow import FlowFieldParameters, evaluate_flow_field_at_site

points = [WeightedTransversePoint(-1.0, 0.0, 1.0), WeightedTransversePoint(1.0, 0.0, 1.0)]
medium = build_event_medium(points, EventMediumParameters(DensityEvolutionMode.NONE, 0.5))
rng = np.random.default_rng(12345)
sites = sample_emission_sites(medium, EmissionParameters(EmissionSamplerMode.PARTICIPANT_HOTSPOT, 0.5, 10.0, 3.0), rng)
flows = [evaluate_flow_field_at_site(medium, site, FlowFieldParameters()) for site in sites]
```

Sampling is reproducible for a fixed generator seed.

## What the package does not do

It is a library only. It has no command-line tools, does not generate
nuclear collision geometries or whole events on its own, and does not write
event files, histograms or plots; storing generated particles and analysis
results is left to the caller.