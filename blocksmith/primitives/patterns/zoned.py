"""Porphyry-style zoned ore body.

Concentric alteration shells around a deposit centre, from the potassic
core outward through the phyllic and propylitic zones. Each zone draws its
grade level within zone-specific bounds; grades then fade horizontally and
vertically, are enriched in a supergene blanket at the top of the system
and vary locally per cell.

Distances are measured in normalized model coordinates (shares of the
model extent), with the vertical axis compressed by ``elongation`` so
that shells are taller than they are wide.

Prepare draw order: centre x, y, z; core, phyllic and propylitic radii;
boundary irregularity; Cu and Au level for core, phyllic and propylitic
zones; horizontal gradient; vertical gradient; blanket thickness;
enrichment factor; local variation; noise seed. Per cell: one local
variation draw.
"""

from dataclasses import dataclass

import numpy as np

from blocksmith.objects.block import FieldSemantics
from blocksmith.objects.gridspec import GridSpec
from blocksmith.objects.request import PatternType
from blocksmith.primitives.grid import CellBatch
from blocksmith.primitives.noise import NoiseField
from blocksmith.primitives.patterns._common import (
    ParameterSpec,
    PatternDefinition,
    empty_zones,
    fraction,
    graded_bundle,
    override,
)
from blocksmith.primitives.random_stream import RandomStream
from blocksmith.utils.errors import raise_parameter_error

ZONES = ("Core", "Phyllic", "Propylitic")

# Drawn radius ranges per zone, as shares of the model extent
ZONE_RADII = ((0.08, 0.16), (0.20, 0.30), (0.30, 0.40))

# Drawn grade ranges per zone: (Cu % low, high), (Au g/t low, high)
ZONE_GRADES = (
    ((0.8, 1.6), (2.0, 4.0)),
    ((0.4, 0.8), (1.0, 2.0)),
    ((0.2, 0.4), (0.4, 0.8)),
)

_RADIUS_PARAMS = ("core_radius", "phyllic_radius", "propylitic_radius")


@dataclass(frozen=True)
class _PorphyryState:
    centre: tuple
    radii: tuple
    elongation: float
    irregularity: float
    cu_levels: tuple
    au_levels: tuple
    horizontal_gradient: float
    vertical_gradient: float
    blanket_top: float
    blanket_bottom: float
    enrichment_factor: float
    variation: float
    noise: NoiseField


def _check_porphyry(params: dict) -> None:
    given = [params[name] for name in _RADIUS_PARAMS if params[name] is not None]
    if not given:
        return
    if len(given) != len(_RADIUS_PARAMS):
        raise_parameter_error(
            "core_radius",
            params["core_radius"],
            constraint="core_radius, phyllic_radius and propylitic_radius must be given together",
        )
    core, phyllic, propylitic = given
    if not core < phyllic < propylitic:
        raise_parameter_error(
            "phyllic_radius",
            phyllic,
            constraint="zone radii must be strictly nested: core < phyllic < propylitic",
        )


def _prepare_porphyry(grid: GridSpec, params: dict, stream: RandomStream) -> _PorphyryState:
    cx = override(params, "center_x", stream.uniform(0.4, 0.6))
    cy = override(params, "center_y", stream.uniform(0.4, 0.6))
    cz = override(params, "center_z", stream.uniform(0.35, 0.65))
    radii = tuple(
        override(params, name, stream.uniform(low, high))
        for name, (low, high) in zip(_RADIUS_PARAMS, ZONE_RADII)
    )
    irregularity = stream.uniform(0.05, 0.15)

    cu_levels, au_levels = [], []
    for (cu_range, au_range) in ZONE_GRADES:
        cu_levels.append(stream.uniform(*cu_range))
        au_levels.append(stream.uniform(*au_range))

    horizontal_gradient = stream.uniform(0.1, 0.3)
    vertical_gradient = stream.uniform(0.0, 0.2)
    blanket_thickness = stream.uniform(0.05, 0.15)
    enrichment_factor = override(params, "enrichment_factor", stream.uniform(1.2, 1.6))
    variation = stream.uniform(0.05, 0.15)
    noise = NoiseField.from_stream(stream, frequency=4.0)

    elongation = params["elongation"]
    blanket_top = max(0.0, cz - radii[-1] * elongation)
    if not params["supergene"]:
        enrichment_factor = 1.0

    return _PorphyryState(
        centre=(cx, cy, cz),
        radii=radii,
        elongation=elongation,
        irregularity=irregularity,
        cu_levels=tuple(cu_levels),
        au_levels=tuple(au_levels),
        horizontal_gradient=horizontal_gradient,
        vertical_gradient=vertical_gradient,
        blanket_top=blanket_top,
        blanket_bottom=blanket_top + blanket_thickness,
        enrichment_factor=enrichment_factor,
        variation=variation,
        noise=noise,
    )


def _synthesize_porphyry(state: _PorphyryState, batch: CellBatch, draws: np.ndarray) -> dict:
    cx, cy, cz = state.centre
    du = batch.u - cx
    dv = batch.v - cy
    dw = (batch.w - cz) / state.elongation
    radial = np.sqrt(du**2 + dv**2 + dw**2)
    horizontal = np.sqrt(du**2 + dv**2)

    # Irregular shell boundaries
    rough = 1.0 + state.irregularity * (state.noise.sample(batch.u, batch.v, batch.w) - 0.5) * 2.0
    r = radial * rough

    zone_index = np.full(batch.size, -1, dtype=np.int64)
    for index in reversed(range(len(ZONES))):
        zone_index[r < state.radii[index]] = index
    inside = zone_index >= 0

    lookup_index = np.maximum(zone_index, 0)
    cu = np.asarray(state.cu_levels)[lookup_index]
    au = np.asarray(state.au_levels)[lookup_index]

    outer = state.radii[-1]
    factor = 1.0 - state.horizontal_gradient * np.minimum(horizontal / outer, 1.0)
    factor = factor * (1.0 - state.vertical_gradient * np.clip(dw / outer, -1.0, 1.0))
    blanket = (batch.w >= state.blanket_top) & (batch.w < state.blanket_bottom) & (zone_index <= 1)
    factor = np.where(blanket & inside, factor * state.enrichment_factor, factor)
    factor = factor * (1.0 + state.variation * (draws[:, 0] - 0.5) * 2.0)

    zone = empty_zones(batch.size)
    labels = np.array(ZONES, dtype=object)
    zone[inside] = labels[zone_index[inside]]
    return graded_bundle(cu * factor, au * factor, inside, zone=zone)


PORPHYRY_ORE = PatternDefinition(
    pattern=PatternType.PORPHYRY_ORE,
    semantics=FieldSemantics.MINING,
    parameters=(
        fraction("center_x", description="Deposit centre along x (drawn 0.4-0.6)"),
        fraction("center_y", description="Deposit centre along y (drawn 0.4-0.6)"),
        fraction("center_z", description="Deposit centre depth fraction (drawn 0.35-0.65)"),
        fraction("core_radius", None, 0.01, 1.5, "Potassic core radius (drawn 0.08-0.16)"),
        fraction("phyllic_radius", None, 0.01, 1.5, "Phyllic shell radius (drawn 0.20-0.30)"),
        fraction("propylitic_radius", None, 0.01, 1.5, "Propylitic halo radius (drawn 0.30-0.40)"),
        ParameterSpec("elongation", float, 1.5, 0.25, 4.0, description="Vertical stretch of shells"),
        ParameterSpec("supergene", bool, True, description="Apply supergene enrichment"),
        ParameterSpec(
            "enrichment_factor", float, None, 1.0, 5.0, description="Supergene grade multiplier (drawn 1.2-1.6)"
        ),
    ),
    prepare=_prepare_porphyry,
    synthesize=_synthesize_porphyry,
    draws_per_cell=1,
    check=_check_porphyry,
    description="Concentric core, phyllic and propylitic alteration zones",
)
