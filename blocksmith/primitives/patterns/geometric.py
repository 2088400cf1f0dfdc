"""Deterministic geometric patterns: uniform, layered, gradient, checkerboard.

These patterns are pure functions of cell position and parameters. They
make no draws from the random stream.
"""

import math
from dataclasses import dataclass

import numpy as np

from blocksmith.objects.block import FieldSemantics
from blocksmith.objects.gridspec import GridSpec
from blocksmith.objects.request import PatternType
from blocksmith.primitives.grid import CellBatch
from blocksmith.primitives.patterns._common import (
    GRADE_CLASSES,
    MINING_ROCK_TYPES,
    ParameterSpec,
    PatternDefinition,
    fraction,
    material_bundle,
)
from blocksmith.utils.errors import raise_parameter_error


# -- Uniform --------------------------------------------------------------

def _prepare_uniform(grid: GridSpec, params: dict, stream) -> str:
    return params["rock_type"]


def _synthesize_uniform(rock_type: str, batch: CellBatch, draws: np.ndarray) -> dict:
    return material_bundle(np.full(batch.size, rock_type, dtype=object))


UNIFORM = PatternDefinition(
    pattern=PatternType.UNIFORM,
    semantics=FieldSemantics.MINING,
    parameters=(
        ParameterSpec(
            "rock_type",
            str,
            "Ore_Med",
            choices=MINING_ROCK_TYPES,
            description="Rock type assigned to every cell",
        ),
    ),
    prepare=_prepare_uniform,
    synthesize=_synthesize_uniform,
    description="Every cell has the same rock type",
)


# -- Layered --------------------------------------------------------------

@dataclass(frozen=True)
class _LayeredState:
    axis: str
    thickness: int
    tan_x: float
    tan_y: float
    center_x: float
    center_y: float
    dz: float


def _prepare_layered(grid: GridSpec, params: dict, stream) -> _LayeredState:
    cx, cy, _ = grid.center
    return _LayeredState(
        axis=params["axis"],
        thickness=params["layer_thickness"],
        tan_x=math.tan(math.radians(params["tilt_x"])),
        tan_y=math.tan(math.radians(params["tilt_y"])),
        center_x=cx,
        center_y=cy,
        dz=grid.cell_size[2],
    )


def _synthesize_layered(state: _LayeredState, batch: CellBatch, draws: np.ndarray) -> dict:
    position = getattr(batch, state.axis).astype(np.float64)
    if state.axis == "k" and (state.tan_x or state.tan_y):
        # Tilt shifts layer boundaries by the rise across the model, in cells
        rise = state.tan_x * (batch.x - state.center_x) + state.tan_y * (batch.y - state.center_y)
        position = position + rise / state.dz
    layer = np.floor(position / state.thickness).astype(np.int64)
    sequence = np.array(GRADE_CLASSES, dtype=object)
    return material_bundle(sequence[np.mod(layer, len(sequence))])


LAYERED = PatternDefinition(
    pattern=PatternType.LAYERED,
    semantics=FieldSemantics.MINING,
    parameters=(
        ParameterSpec(
            "layer_thickness",
            int,
            1,
            minimum=1,
            maximum=1000,
            description="Layer thickness in cells",
        ),
        ParameterSpec(
            "axis",
            str,
            "k",
            choices=("i", "j", "k"),
            description="Index axis the layers stack along",
        ),
        ParameterSpec("tilt_x", float, 0.0, -45.0, 45.0, description="Tilt along x (degrees)"),
        ParameterSpec("tilt_y", float, 0.0, -45.0, 45.0, description="Tilt along y (degrees)"),
    ),
    prepare=_prepare_layered,
    synthesize=_synthesize_layered,
    description="Rock types cycle Waste, Ore_Low, Ore_Med, Ore_High by layer",
)


# -- Gradient -------------------------------------------------------------

@dataclass(frozen=True)
class _GradientState:
    center: tuple
    weights: tuple
    thresholds: tuple


def _check_gradient(params: dict) -> None:
    high, med, low = (
        params["threshold_high"],
        params["threshold_med"],
        params["threshold_low"],
    )
    if not high < med < low:
        raise_parameter_error(
            "threshold_med",
            med,
            constraint="thresholds must satisfy threshold_high < threshold_med < threshold_low",
        )


def _prepare_gradient(grid: GridSpec, params: dict, stream) -> _GradientState:
    return _GradientState(
        center=(params["center_x"], params["center_y"], params["center_z"]),
        weights=(params["weight_x"], params["weight_y"], params["weight_z"]),
        thresholds=(params["threshold_high"], params["threshold_med"], params["threshold_low"]),
    )


def _synthesize_gradient(state: _GradientState, batch: CellBatch, draws: np.ndarray) -> dict:
    cx, cy, cz = state.center
    wx, wy, wz = state.weights
    distance = np.sqrt(
        (np.abs(batch.u - cx) / 0.5 * wx) ** 2
        + (np.abs(batch.v - cy) / 0.5 * wy) ** 2
        + (np.abs(batch.w - cz) / 0.5 * wz) ** 2
    )
    distance = np.minimum(distance, 1.0)
    high, med, low = state.thresholds
    rock = np.select(
        [distance < high, distance < med, distance < low],
        ["Ore_High", "Ore_Med", "Ore_Low"],
        default="Waste",
    ).astype(object)
    return material_bundle(rock)


GRADIENT = PatternDefinition(
    pattern=PatternType.GRADIENT,
    semantics=FieldSemantics.MINING,
    parameters=(
        fraction("center_x", 0.5, description="Gradient center along x"),
        fraction("center_y", 0.5, description="Gradient center along y"),
        fraction("center_z", 0.5, description="Gradient center as depth fraction"),
        ParameterSpec("weight_x", float, 1.0, 0.1, 10.0, description="Distance weight along x"),
        ParameterSpec("weight_y", float, 1.0, 0.1, 10.0, description="Distance weight along y"),
        ParameterSpec("weight_z", float, 1.0, 0.1, 10.0, description="Distance weight along z"),
        fraction("threshold_high", 0.3, 0.01, 1.0),
        fraction("threshold_med", 0.6, 0.01, 1.0),
        fraction("threshold_low", 0.8, 0.01, 1.0),
    ),
    prepare=_prepare_gradient,
    synthesize=_synthesize_gradient,
    check=_check_gradient,
    description="Grade decreases with weighted distance from a center",
)


# -- Checkerboard ---------------------------------------------------------

def _prepare_checkerboard(grid: GridSpec, params: dict, stream) -> int:
    return params["period"]


def _synthesize_checkerboard(period: int, batch: CellBatch, draws: np.ndarray) -> dict:
    parity = (batch.i // period + batch.j // period + batch.k // period) % 2
    rock = np.where(parity == 0, "Ore_Med", "Waste").astype(object)
    return material_bundle(rock)


CHECKERBOARD = PatternDefinition(
    pattern=PatternType.CHECKERBOARD,
    semantics=FieldSemantics.MINING,
    parameters=(
        ParameterSpec("period", int, 1, 1, 1000, description="Square size in cells"),
    ),
    prepare=_prepare_checkerboard,
    synthesize=_synthesize_checkerboard,
    description="Alternating Ore_Med and Waste cells",
)
