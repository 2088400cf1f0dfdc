"""Stochastic patterns: random and random clusters.

Draw order:

random
    per cell: rock type pick, density jitter, Cu, Au and value multipliers.
random_clusters
    prepare: cluster count, then centre x, y, z and radius per cluster.
    per cell: boundary jitter, grade variation.
"""

from dataclasses import dataclass

import numpy as np
from scipy.spatial import cKDTree

from blocksmith.objects.block import FieldSemantics
from blocksmith.objects.gridspec import GridSpec
from blocksmith.objects.request import PatternType
from blocksmith.primitives.grid import CellBatch
from blocksmith.primitives.patterns._common import (
    GRADE_CLASSES,
    ParameterSpec,
    PatternDefinition,
    fraction,
    horizontal_scale,
    lookup,
    material_bundle,
    mining_bundle,
)
from blocksmith.primitives.random_stream import RandomStream, pick_weighted
from blocksmith.utils.errors import raise_parameter_error

# Normalized cluster distance bands: below each edge a cell gets the class
CLUSTER_BANDS = ((0.4, "Ore_High"), (0.7, "Ore_Med"), (1.0, "Ore_Low"))


# -- Random ---------------------------------------------------------------

@dataclass(frozen=True)
class _RandomState:
    weights: tuple
    density_jitter: float
    grade_variation: float


_WEIGHT_PARAMS = ("weight_waste", "weight_low", "weight_med", "weight_high")


def _check_random(params: dict) -> None:
    if sum(params[name] for name in _WEIGHT_PARAMS) <= 0:
        raise_parameter_error(
            "weight_waste",
            params["weight_waste"],
            constraint="at least one rock type weight must be positive",
        )


def _prepare_random(grid: GridSpec, params: dict, stream: RandomStream) -> _RandomState:
    return _RandomState(
        weights=tuple(params[name] for name in _WEIGHT_PARAMS),
        density_jitter=params["density_jitter"],
        grade_variation=params["grade_variation"],
    )


def _synthesize_random(state: _RandomState, batch: CellBatch, draws: np.ndarray) -> dict:
    classes = np.array(GRADE_CLASSES, dtype=object)
    rock = classes[pick_weighted(draws[:, 0], state.weights)]
    base = material_bundle(rock)

    def vary(values, column):
        return values * (1.0 + (draws[:, column] - 0.5) * 2.0 * state.grade_variation)

    density = base["density"] + (draws[:, 1] - 0.5) * 2.0 * state.density_jitter
    return mining_bundle(
        rock,
        density,
        vary(base["grade_cu"], 2),
        vary(base["grade_au"], 3),
        zone=base["zone"],
        econ_value=vary(base["econ_value"], 4),
    )


RANDOM = PatternDefinition(
    pattern=PatternType.RANDOM,
    semantics=FieldSemantics.MINING,
    parameters=(
        ParameterSpec("weight_waste", float, 1.0, 0.0, 1000.0),
        ParameterSpec("weight_low", float, 1.0, 0.0, 1000.0),
        ParameterSpec("weight_med", float, 1.0, 0.0, 1000.0),
        ParameterSpec("weight_high", float, 1.0, 0.0, 1000.0),
        ParameterSpec(
            "density_jitter", float, 0.1, 0.0, 1.0, description="Max density change (t/m³)"
        ),
        fraction("grade_variation", 0.2, description="Max relative grade change"),
    ),
    prepare=_prepare_random,
    synthesize=_synthesize_random,
    draws_per_cell=5,
    check=_check_random,
    description="Independent weighted rock type per cell",
)


# -- Random clusters ------------------------------------------------------

@dataclass(frozen=True)
class _ClusterState:
    centres: np.ndarray
    radii: np.ndarray
    tree: cKDTree
    boundary_jitter: float


def _check_clusters(params: dict) -> None:
    if params["radius_min"] > params["radius_max"]:
        raise_parameter_error(
            "radius_min",
            params["radius_min"],
            constraint="radius_min must not exceed radius_max",
        )


def _prepare_clusters(grid: GridSpec, params: dict, stream: RandomStream) -> _ClusterState:
    drawn_count = 3 + stream.next_int(6)
    count = params["n_clusters"] if params["n_clusters"] is not None else drawn_count

    # One row per cluster: centre fractions x, y, z then radius fraction
    rows = stream.cell_draws(count, 4)
    b = grid.bounds
    ex, ey, ez = grid.extent
    centres = np.column_stack(
        [
            b["x_min"] + (0.1 + 0.8 * rows[:, 0]) * ex,
            b["y_min"] + (0.1 + 0.8 * rows[:, 1]) * ey,
            b["z_max"] - (0.1 + 0.8 * rows[:, 2]) * ez,
        ]
    )
    low, high = params["radius_min"], params["radius_max"]
    radii = (low + rows[:, 3] * (high - low)) * horizontal_scale(grid)
    return _ClusterState(
        centres=centres,
        radii=radii,
        tree=cKDTree(centres),
        boundary_jitter=params["boundary_jitter"],
    )


def _synthesize_clusters(state: _ClusterState, batch: CellBatch, draws: np.ndarray) -> dict:
    points = np.column_stack([batch.x, batch.y, batch.z])
    distance, nearest = state.tree.query(points)
    nearest = np.asarray(nearest, dtype=np.int64)
    jitter = 1.0 + (draws[:, 0] - 0.5) * 2.0 * state.boundary_jitter
    r = distance / state.radii[nearest] * jitter

    rock = np.full(batch.size, "Waste", dtype=object)
    for edge, name in reversed(CLUSTER_BANDS):
        rock[r < edge] = name
    inside = r < CLUSTER_BANDS[-1][0]

    variation = np.where(inside, 0.8 + 0.4 * draws[:, 1], 1.0)
    zone = np.full(batch.size, None, dtype=object)
    labels = np.array([f"Cluster{n + 1}" for n in range(len(state.radii))], dtype=object)
    zone[inside] = labels[nearest[inside]]

    return mining_bundle(
        rock,
        lookup(rock, "density"),
        lookup(rock, "grade_cu") * variation,
        lookup(rock, "grade_au") * variation,
        zone=zone,
    )


RANDOM_CLUSTERS = PatternDefinition(
    pattern=PatternType.RANDOM_CLUSTERS,
    semantics=FieldSemantics.MINING,
    parameters=(
        ParameterSpec(
            "n_clusters", int, None, 1, 64, description="Cluster count (drawn 3-8)"
        ),
        fraction("radius_min", 0.1, 0.01, 1.0, "Smallest radius, share of horizontal extent"),
        fraction("radius_max", 0.3, 0.01, 1.0, "Largest radius, share of horizontal extent"),
        fraction("boundary_jitter", 0.15, description="Relative roughness of cluster edges"),
    ),
    prepare=_prepare_clusters,
    synthesize=_synthesize_clusters,
    draws_per_cell=2,
    check=_check_clusters,
    description="Graded ore clusters around randomly placed centres",
)
