"""Structural ore patterns: ore horizon, inclined vein, ellipsoid and vein bodies.

Each body is a distance test against a geometric structure: a depth band,
a plane, a rotated ellipsoid or a bounded set of parallel fault planes.
Cells outside every structure are background waste with zero grade.

Prepare draws are always consumed in the order listed here, whether or not
a parameter overrides the drawn value:

ore_horizon
    noise seed.
inclined_vein
    centre offset x, y, z, strike, dip, thickness.
ellipsoid_ore
    centre x, y, z, radius x, y, z, plunge, azimuth, max Cu, max Au, decay,
    variation, noise seed.
vein_ore
    noise seed. Per cell: one distance perturbation draw.
"""

import math
from dataclasses import dataclass

import numpy as np

from blocksmith.objects.block import FieldSemantics
from blocksmith.objects.gridspec import GridSpec
from blocksmith.objects.request import PatternType
from blocksmith.primitives.grid import CellBatch
from blocksmith.primitives.noise import NoiseField
from blocksmith.primitives.patterns._common import (
    MATERIALS,
    ParameterSpec,
    PatternDefinition,
    angle,
    empty_zones,
    fraction,
    graded_bundle,
    horizontal_scale,
    material_bundle,
    override,
)
from blocksmith.primitives.random_stream import RandomStream


def _unit_vectors(strike_deg: float, dip_deg: float) -> tuple:
    """Strike, down-dip and normal unit vectors of a plane.

    Azimuths are clockwise from north (+y). The plane dips to the right of
    the strike direction.
    """
    strike = math.radians(strike_deg)
    dip = math.radians(dip_deg)
    dip_direction = strike + math.pi / 2
    along = np.array([math.sin(strike), math.cos(strike), 0.0])
    down = np.array(
        [
            math.sin(dip_direction) * math.cos(dip),
            math.cos(dip_direction) * math.cos(dip),
            -math.sin(dip),
        ]
    )
    normal = np.cross(along, down)
    return along, down, normal / np.linalg.norm(normal)


def _relative(batch: CellBatch, centre: np.ndarray) -> np.ndarray:
    return np.column_stack([batch.x - centre[0], batch.y - centre[1], batch.z - centre[2]])


# -- Ore horizon ----------------------------------------------------------

@dataclass(frozen=True)
class _HorizonState:
    center: float
    half_thickness: float
    undulation: float
    noise: NoiseField


def _prepare_horizon(grid: GridSpec, params: dict, stream: RandomStream) -> _HorizonState:
    return _HorizonState(
        center=params["center"],
        half_thickness=params["thickness"] / 2,
        undulation=params["undulation"],
        noise=NoiseField.from_stream(stream, frequency=3.0),
    )


def _synthesize_horizon(state: _HorizonState, batch: CellBatch, draws: np.ndarray) -> dict:
    level = np.full(batch.size, state.center)
    if state.undulation > 0:
        level = level + state.undulation * (state.noise.sample(batch.u, batch.v, 0.0) - 0.5)
    # Small tolerance keeps band edges that fall exactly on a centroid inside
    inside = np.abs(batch.w - level) <= state.half_thickness + 1e-9
    bundle = material_bundle(np.where(inside, "Ore", "Waste").astype(object))
    bundle["zone"] = np.where(inside, "Horizon", None).astype(object)
    return bundle


ORE_HORIZON = PatternDefinition(
    pattern=PatternType.ORE_HORIZON,
    semantics=FieldSemantics.MINING,
    parameters=(
        fraction("center", 0.5, description="Horizon mid-depth as depth fraction"),
        fraction("thickness", 0.2, 0.001, 1.0, "Horizon thickness as depth fraction"),
        fraction("undulation", 0.0, description="Relief of the horizon as depth fraction"),
    ),
    prepare=_prepare_horizon,
    synthesize=_synthesize_horizon,
    description="Single flat-lying ore band",
)


# -- Inclined vein --------------------------------------------------------

@dataclass(frozen=True)
class _PlaneState:
    centre: np.ndarray
    normal: np.ndarray
    thickness: float
    grade_cu: float
    grade_au: float


def _prepare_inclined_vein(grid: GridSpec, params: dict, stream: RandomStream) -> _PlaneState:
    offsets = stream.uniforms(-0.3, 0.3, 3)
    strike = override(params, "strike", stream.uniform(0.0, 360.0))
    dip = override(params, "dip", stream.uniform(30.0, 75.0))
    thickness_cells = override(params, "thickness", stream.uniform(1.5, 3.5))

    centre = np.array(grid.center) + offsets * np.array(grid.extent)
    _, _, normal = _unit_vectors(strike, dip)
    ore = MATERIALS["Ore"]
    return _PlaneState(
        centre=centre,
        normal=normal,
        thickness=thickness_cells * grid.mean_cell_size,
        grade_cu=ore.grade_cu,
        grade_au=ore.grade_au,
    )


def _synthesize_inclined_vein(state: _PlaneState, batch: CellBatch, draws: np.ndarray) -> dict:
    distance = np.abs(_relative(batch, state.centre) @ state.normal)
    inside = distance < state.thickness
    # Grade falls to half at the vein margin
    factor = np.where(inside, 1.0 - 0.5 * distance / state.thickness, 0.0)
    bundle = material_bundle(np.where(inside, "Ore", "Waste").astype(object), with_econ=False)
    bundle["grade_cu"] = np.where(inside, state.grade_cu * factor, 0.0)
    bundle["grade_au"] = np.where(inside, state.grade_au * factor, 0.0)
    bundle["zone"] = np.where(inside, "Vein", None).astype(object)
    return bundle


INCLINED_VEIN = PatternDefinition(
    pattern=PatternType.INCLINED_VEIN,
    semantics=FieldSemantics.MINING,
    parameters=(
        angle("strike", description="Strike azimuth (drawn 0-360)"),
        angle("dip", maximum=90.0, description="Dip angle (drawn 30-75)"),
        ParameterSpec(
            "thickness", float, None, 0.1, 100.0, description="Half-width in mean cells (drawn 1.5-3.5)"
        ),
    ),
    prepare=_prepare_inclined_vein,
    synthesize=_synthesize_inclined_vein,
    description="Planar ore vein at a random position and attitude",
)


# -- Ellipsoid ore body ---------------------------------------------------

@dataclass(frozen=True)
class _EllipsoidState:
    centre: np.ndarray
    radii: np.ndarray
    azimuth: float
    plunge: float
    max_cu: float
    max_au: float
    decay: float
    variation: float
    core_fraction: float
    halo_width: float
    noise: NoiseField


def _prepare_ellipsoid(grid: GridSpec, params: dict, stream: RandomStream) -> _EllipsoidState:
    b = grid.bounds
    ex, ey, ez = grid.extent
    fx = override(params, "center_x", stream.uniform(0.4, 0.6))
    fy = override(params, "center_y", stream.uniform(0.4, 0.6))
    fz = override(params, "center_z", stream.uniform(0.4, 0.6))
    rx = override(params, "radius_x", stream.uniform(0.15, 0.25))
    ry = override(params, "radius_y", stream.uniform(0.15, 0.25))
    rz = override(params, "radius_z", stream.uniform(0.15, 0.25))
    plunge = override(params, "plunge", stream.uniform(0.0, 60.0))
    azimuth = override(params, "azimuth", stream.uniform(0.0, 360.0))
    max_cu = override(params, "max_cu", stream.uniform(0.8, 1.8))
    max_au = override(params, "max_au", stream.uniform(1.5, 4.0))
    decay = override(params, "decay", stream.uniform(0.2, 0.5))
    variation = override(params, "variation", stream.uniform(0.05, 0.15))
    noise = NoiseField.from_stream(stream, frequency=4.0)

    return _EllipsoidState(
        centre=np.array([b["x_min"] + fx * ex, b["y_min"] + fy * ey, b["z_max"] - fz * ez]),
        radii=np.array([rx * ex, ry * ey, rz * ez]),
        azimuth=math.radians(azimuth),
        plunge=math.radians(plunge),
        max_cu=max_cu,
        max_au=max_au,
        decay=decay,
        variation=variation,
        core_fraction=params["core_fraction"],
        halo_width=params["halo_width"],
        noise=noise,
    )


def ellipsoid_distance(
    rel: np.ndarray, radii: np.ndarray, azimuth: float, plunge: float
) -> np.ndarray:
    """Normalized distance to a rotated ellipsoid (1.0 on its surface).

    The long axis is turned to ``azimuth`` (clockwise from north) and tilted
    down by ``plunge``.
    """
    ca, sa = math.cos(azimuth), math.sin(azimuth)
    cp, sp = math.cos(plunge), math.sin(plunge)
    along = rel[:, 0] * sa + rel[:, 1] * ca
    across = rel[:, 0] * ca - rel[:, 1] * sa
    axis_1 = along * cp - rel[:, 2] * sp
    axis_3 = along * sp + rel[:, 2] * cp
    return np.sqrt(
        (axis_1 / radii[0]) ** 2 + (across / radii[1]) ** 2 + (axis_3 / radii[2]) ** 2
    )


def _synthesize_ellipsoid(state: _EllipsoidState, batch: CellBatch, draws: np.ndarray) -> dict:
    r = ellipsoid_distance(
        _relative(batch, state.centre), state.radii, state.azimuth, state.plunge
    )
    body = r < 1.0
    halo = ~body & (r < 1.0 + state.halo_width)
    inside = body | halo

    shape = np.exp(-state.decay * r**2)
    shape = shape * (1.0 + state.variation * (state.noise.sample(batch.u, batch.v, batch.w) - 0.5) * 2.0)
    shape = np.where(halo, shape * 0.25, shape)

    zone = empty_zones(batch.size)
    zone[halo] = "Halo"
    zone[body] = "Transition"
    zone[r < state.core_fraction] = "Core"
    return graded_bundle(state.max_cu * shape, state.max_au * shape, inside, zone=zone)


ELLIPSOID_ORE = PatternDefinition(
    pattern=PatternType.ELLIPSOID_ORE,
    semantics=FieldSemantics.MINING,
    parameters=(
        fraction("center_x", description="Centre along x (drawn 0.4-0.6)"),
        fraction("center_y", description="Centre along y (drawn 0.4-0.6)"),
        fraction("center_z", description="Centre depth fraction (drawn 0.4-0.6)"),
        fraction("radius_x", None, 0.01, 2.0, "Semi-axis as share of x extent (drawn 0.15-0.25)"),
        fraction("radius_y", None, 0.01, 2.0, "Semi-axis as share of y extent (drawn 0.15-0.25)"),
        fraction("radius_z", None, 0.01, 2.0, "Semi-axis as share of z extent (drawn 0.15-0.25)"),
        angle("plunge", maximum=90.0, description="Plunge of the long axis (drawn 0-60)"),
        angle("azimuth", description="Azimuth of the long axis (drawn 0-360)"),
        ParameterSpec("max_cu", float, None, 0.0, 20.0, description="Peak Cu % (drawn 0.8-1.8)"),
        ParameterSpec("max_au", float, None, 0.0, 50.0, description="Peak Au g/t (drawn 1.5-4.0)"),
        ParameterSpec("decay", float, None, 0.0, 10.0, description="Grade decay rate (drawn 0.2-0.5)"),
        fraction("variation", description="Relative grade noise (drawn 0.05-0.15)"),
        fraction("core_fraction", 0.5, 0.01, 0.99, "Core zone edge, normalized distance"),
        fraction("halo_width", 0.25, 0.0, 2.0, "Halo width beyond the body, normalized distance"),
    ),
    prepare=_prepare_ellipsoid,
    synthesize=_synthesize_ellipsoid,
    description="Plunging ellipsoid with core, transition and halo zones",
)


# -- Vein / structural ore body --------------------------------------------

@dataclass(frozen=True)
class _VeinState:
    centre: np.ndarray
    along: np.ndarray
    down: np.ndarray
    normal: np.ndarray
    offsets: np.ndarray
    half_strike: float
    half_dip: float
    width: float
    perturbation: float
    max_cu: float
    max_au: float
    noise: NoiseField


def _prepare_vein(grid: GridSpec, params: dict, stream: RandomStream) -> _VeinState:
    along, down, normal = _unit_vectors(params["strike"], params["dip"])
    size = max(grid.extent)
    width = params["width"] * horizontal_scale(grid)
    n_veins = params["n_veins"]
    spacing = params["vein_spacing"] * width
    return _VeinState(
        centre=np.array(grid.center),
        along=along,
        down=down,
        normal=normal,
        offsets=(np.arange(n_veins) - (n_veins - 1) / 2) * spacing,
        half_strike=params["strike_length"] * size / 2,
        half_dip=params["dip_length"] * size / 2,
        width=width,
        perturbation=params["perturbation"],
        max_cu=params["max_cu"],
        max_au=params["max_au"],
        noise=NoiseField.from_stream(stream, frequency=5.0),
    )


def _synthesize_vein(state: _VeinState, batch: CellBatch, draws: np.ndarray) -> dict:
    rel = _relative(batch, state.centre)
    a = rel @ state.along
    b = rel @ state.down
    c = rel @ state.normal
    within = (np.abs(a) <= state.half_strike) & (np.abs(b) <= state.half_dip)

    perturb = 1.0 + (draws[:, 0] - 0.5) * state.perturbation
    # Distance to each vein plane, one column per vein
    distance = np.abs(c[:, None] - state.offsets[None, :]) * perturb[:, None]
    nearest = np.argmin(distance, axis=1)
    d = distance[np.arange(batch.size), nearest]
    inside = within & (d < state.width)

    shape = np.exp(-2.0 * (d / state.width) ** 2)
    shape = shape * (0.85 + 0.3 * state.noise.sample(batch.u, batch.v, batch.w))

    zone = empty_zones(batch.size)
    labels = np.array([f"Vein{n + 1}" for n in range(len(state.offsets))], dtype=object)
    zone[inside] = labels[nearest[inside]]
    return graded_bundle(state.max_cu * shape, state.max_au * shape, inside, zone=zone)


VEIN_ORE = PatternDefinition(
    pattern=PatternType.VEIN_ORE,
    semantics=FieldSemantics.MINING,
    parameters=(
        angle("strike", 45.0, description="Strike azimuth of the vein set"),
        angle("dip", 45.0, maximum=90.0, description="Dip angle of the vein set"),
        fraction("strike_length", 0.8, 0.05, 2.0, "Length along strike, share of model size"),
        fraction("dip_length", 0.8, 0.05, 2.0, "Length down dip, share of model size"),
        fraction("width", 0.05, 0.005, 0.5, "Vein half-width, share of horizontal extent"),
        ParameterSpec("n_veins", int, 1, 1, 10, description="Number of parallel veins"),
        ParameterSpec("vein_spacing", float, 3.0, 1.0, 50.0, description="Vein spacing in widths"),
        fraction("perturbation", 0.3, description="Random distance perturbation per cell"),
        ParameterSpec("max_cu", float, 1.2, 0.0, 20.0, description="Cu % on the vein plane"),
        ParameterSpec("max_au", float, 2.5, 0.0, 50.0, description="Au g/t on the vein plane"),
    ),
    prepare=_prepare_vein,
    synthesize=_synthesize_vein,
    draws_per_cell=1,
    description="Bounded set of parallel mineralized fault planes",
)
