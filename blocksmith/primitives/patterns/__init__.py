"""Pattern synthesizer.

Layer 2: Primitives - Pure operations.

A closed registry maps every PatternType to its PatternDefinition. All
synthesis goes through two entry points:

- ``prepare_pattern(request, stream)`` resolves parameters and makes every
  per-request draw, once.
- ``synthesize_cells(prepared, batch, stream)`` produces the raw attribute
  bundle for one contiguous batch of cells.

Random stream consumption order, which makes replay bit-exact:

1. the pattern's own prepare draws (documented per pattern module),
2. one topography noise draw, only when ``air_thickness`` or
   ``topography_relief`` is positive,
3. per batch, ``draws_per_cell`` uniform values for each cell in
   generation order.

Because step 3 consumes a fixed number of draws per cell, the output does
not depend on how the grid is split into batches.
"""

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional

import numpy as np

from blocksmith.objects.block import FieldSemantics
from blocksmith.objects.request import GenerationRequest, PatternType
from blocksmith.primitives.grid import CellBatch
from blocksmith.primitives.noise import NoiseField
from blocksmith.primitives.patterns._common import (
    CUTOFFS,
    GRADE_CLASSES,
    MATERIALS,
    MINING_KEYS,
    MINING_ROCK_TYPES,
    ORE_ROCK_TYPES,
    PAY_FACIES,
    RESERVOIR_FACIES,
    RESERVOIR_KEYS,
    Material,
    ParameterSpec,
    PatternDefinition,
    apply_air,
    classify_grades,
)
from blocksmith.primitives.patterns.geometric import CHECKERBOARD, GRADIENT, LAYERED, UNIFORM
from blocksmith.primitives.patterns.reservoir import SALT_DOME
from blocksmith.primitives.patterns.stochastic import RANDOM, RANDOM_CLUSTERS
from blocksmith.primitives.patterns.structural import (
    ELLIPSOID_ORE,
    INCLINED_VEIN,
    ORE_HORIZON,
    VEIN_ORE,
)
from blocksmith.primitives.patterns.zoned import PORPHYRY_ORE
from blocksmith.primitives.random_stream import RandomStream

logger = logging.getLogger(__name__)

# Parameters accepted by every pattern
COMMON_PARAMETERS = (
    ParameterSpec(
        "air_thickness",
        float,
        0.0,
        0.0,
        1e6,
        description="Depth of air above the ground surface (m)",
    ),
    ParameterSpec(
        "topography_relief",
        float,
        0.0,
        0.0,
        1e6,
        description="Extra air depth varying smoothly across the model (m)",
    ),
)

PATTERNS: dict[PatternType, PatternDefinition] = {
    definition.pattern: definition
    for definition in (
        UNIFORM,
        LAYERED,
        GRADIENT,
        CHECKERBOARD,
        RANDOM,
        RANDOM_CLUSTERS,
        ORE_HORIZON,
        INCLINED_VEIN,
        ELLIPSOID_ORE,
        VEIN_ORE,
        PORPHYRY_ORE,
        SALT_DOME,
    )
}

_missing = set(PatternType) - set(PATTERNS)
if _missing:
    raise RuntimeError(f"Pattern registry is missing definitions for {sorted(_missing)}")


def get_pattern(pattern) -> PatternDefinition:
    """Definition for a pattern id or PatternType."""
    return PATTERNS[PatternType.parse(pattern)]


def parameter_specs(pattern) -> tuple:
    """All parameters a pattern accepts, common ones included."""
    return get_pattern(pattern).parameters + COMMON_PARAMETERS


def resolve_parameters(pattern, parameters: Mapping[str, Any]) -> dict[str, Any]:
    """Supplied parameters with defaults filled in for the rest.

    Assumes the parameters were validated; unknown names are kept as given.
    """
    resolved = {spec.name: spec.default for spec in parameter_specs(pattern)}
    for name, value in parameters.items():
        if isinstance(value, int) and not isinstance(value, bool):
            spec = next((s for s in parameter_specs(pattern) if s.name == name), None)
            if spec is not None and spec.kind is float:
                value = float(value)
        resolved[name] = value
    return resolved


@dataclass(frozen=True)
class PreparedPattern:
    """Per-request synthesis state.

    Attributes:
        definition: Registry entry of the pattern.
        parameters: Resolved parameters.
        state: Pattern specific state returned by ``prepare``.
        air_thickness: Air depth above the surface (m).
        topography_relief: Varying extra air depth (m).
        topography: Noise lattice for the surface, None without air.
        surface_z: Ground surface elevation (grid origin z).
    """

    definition: PatternDefinition
    parameters: dict
    state: Any
    air_thickness: float
    topography_relief: float
    topography: Optional[NoiseField]
    surface_z: float

    @property
    def semantics(self) -> FieldSemantics:
        return self.definition.semantics

    @property
    def draws_per_cell(self) -> int:
        return self.definition.draws_per_cell


def prepare_pattern(request: GenerationRequest, stream: RandomStream) -> PreparedPattern:
    """Resolve parameters and make every per-request draw.

    Args:
        request: Validated generation request.
        stream: The request's random stream, positioned at its start.

    Returns:
        PreparedPattern ready for ``synthesize_cells``.
    """
    definition = PATTERNS[request.pattern]
    params = resolve_parameters(request.pattern, request.parameters)
    state = definition.prepare(request.grid, params, stream)

    air_thickness = float(params["air_thickness"])
    relief = float(params["topography_relief"])
    topography = None
    if air_thickness > 0 or relief > 0:
        topography = NoiseField.from_stream(stream, frequency=2.0)

    logger.debug(
        f"Prepared pattern {request.pattern.value} after {stream.draws} draws"
    )
    return PreparedPattern(
        definition=definition,
        parameters=params,
        state=state,
        air_thickness=air_thickness,
        topography_relief=relief,
        topography=topography,
        surface_z=request.grid.origin[2],
    )


def air_mask(prepared: PreparedPattern, batch: CellBatch) -> np.ndarray:
    """Cells whose centroid lies above the topographic surface."""
    if prepared.topography is None:
        return np.zeros(batch.size, dtype=bool)
    air_depth = prepared.air_thickness + prepared.topography_relief * prepared.topography.sample(
        batch.u, batch.v, 0.0
    )
    return (prepared.surface_z - batch.z) < air_depth


def synthesize_cells(
    prepared: PreparedPattern, batch: CellBatch, stream: RandomStream
) -> dict[str, np.ndarray]:
    """Raw attribute bundle for one batch of cells.

    Draws ``draws_per_cell`` values per cell from ``stream``, air cells
    included, then dispatches to the pattern.

    Returns:
        Mapping of raw attribute name to per-cell array. Mining patterns use
        MINING_KEYS, the reservoir pattern uses RESERVOIR_KEYS.
    """
    draws = stream.cell_draws(batch.size, prepared.draws_per_cell)
    bundle = prepared.definition.synthesize(prepared.state, batch, draws)
    return apply_air(bundle, air_mask(prepared, batch), prepared.semantics)


__all__ = [
    "COMMON_PARAMETERS",
    "CUTOFFS",
    "GRADE_CLASSES",
    "MATERIALS",
    "MINING_KEYS",
    "MINING_ROCK_TYPES",
    "ORE_ROCK_TYPES",
    "PATTERNS",
    "PAY_FACIES",
    "RESERVOIR_FACIES",
    "RESERVOIR_KEYS",
    "Material",
    "ParameterSpec",
    "PatternDefinition",
    "PreparedPattern",
    "air_mask",
    "classify_grades",
    "get_pattern",
    "parameter_specs",
    "prepare_pattern",
    "resolve_parameters",
    "synthesize_cells",
]
