"""Shared material table, parameter specs and bundle helpers for patterns."""

from dataclasses import dataclass
from typing import Any, Callable, Optional

import numpy as np
import pandas as pd

from blocksmith.objects.block import AIR_ROCK_TYPE, FieldSemantics
from blocksmith.objects.gridspec import GridSpec
from blocksmith.objects.request import PatternType


@dataclass(frozen=True)
class Material:
    """Baseline properties of one rock type.

    Attributes:
        name: Rock type name.
        density: Density in t/m³.
        grade_cu: Typical Cu grade (%), None for non-metalliferous rock.
        grade_au: Typical Au grade (g/t), None for non-metalliferous rock.
        econ_value: Typical value per tonne.
        zone: Optional zone label.
    """

    name: str
    density: float
    grade_cu: Optional[float]
    grade_au: Optional[float]
    econ_value: float
    zone: Optional[str] = None


MATERIALS = {
    m.name: m
    for m in (
        Material("Waste", 2.5, 0.0, 0.0, -15.0),
        Material("Ore_Low", 3.0, 0.4, 0.7, 10.0),
        Material("Ore_Med", 3.2, 0.8, 1.5, 25.0),
        Material("Ore_High", 3.5, 1.5, 3.5, 50.0),
        Material("Ore", 3.5, 0.9, 1.8, 350.0, "Zone2"),
        Material("Magnetite", 3.2, 0.55, 0.8, 300.0, "Zone1"),
        Material("Hematite", 3.0, 0.60, 0.9, 280.0, "Zone1"),
        Material("Salt", 2.2, None, None, -10.0),
        Material("CapRock", 2.6, None, None, -10.0),
        Material("OilSand", 2.2, None, None, 50.0),
        Material("GasSand", 2.1, None, None, 30.0),
        Material("WaterSand", 2.3, None, None, -5.0),
        Material("Shale", 2.4, None, None, -10.0),
    )
}

MINING_ROCK_TYPES = ("Waste", "Ore_Low", "Ore_Med", "Ore_High", "Ore", "Magnetite", "Hematite")
GRADE_CLASSES = ("Waste", "Ore_Low", "Ore_Med", "Ore_High")
RESERVOIR_FACIES = ("Salt", "CapRock", "OilSand", "GasSand", "WaterSand", "Shale")
ORE_ROCK_TYPES = frozenset(MINING_ROCK_TYPES) - {"Waste"}
PAY_FACIES = frozenset({"OilSand", "GasSand"})

BACKGROUND_ROCK_TYPE = "Waste"
BACKGROUND_FACIES = "Shale"

# Grade cut-offs (Cu %, Au g/t): a block qualifies for a class when either
# grade reaches the class threshold.
CUTOFFS = (
    ("Ore_High", 1.0, 2.5),
    ("Ore_Med", 0.5, 1.0),
    ("Ore_Low", 0.3, 0.5),
)
# Grades of sub-economic cells inside a structure are scaled down to this share
SUBGRADE_FACTOR = 0.1

MINING_KEYS = ("rock_type", "density", "grade_cu", "grade_au", "zone", "econ_value")
RESERVOIR_KEYS = (
    "facies",
    "porosity",
    "oil_saturation",
    "gas_saturation",
    "zone",
    "econ_value",
)


@dataclass(frozen=True)
class ParameterSpec:
    """Declaration of one pattern parameter.

    A default of None on a numeric parameter means the value is drawn from
    the request's random stream unless supplied.

    Attributes:
        name: Parameter name.
        kind: Expected type: int, float, str or bool.
        default: Value used when the parameter is not supplied.
        minimum: Inclusive lower bound for numeric values.
        maximum: Inclusive upper bound for numeric values.
        choices: Allowed values for string parameters.
        required: Whether the caller must supply the parameter.
        description: Short human readable description.
    """

    name: str
    kind: type
    default: Any = None
    minimum: Optional[float] = None
    maximum: Optional[float] = None
    choices: Optional[tuple] = None
    required: bool = False
    description: str = ""


@dataclass(frozen=True)
class PatternDefinition:
    """One entry of the closed pattern registry.

    ``prepare`` runs once per request and makes every per-request draw.
    ``synthesize`` runs per chunk and receives exactly ``draws_per_cell``
    uniform values for each cell, drawn in generation order.

    Attributes:
        pattern: Pattern id.
        semantics: Mining or reservoir interpretation of the output.
        parameters: Declared parameters.
        prepare: ``(grid, params, stream) -> state``.
        synthesize: ``(state, batch, draws) -> raw bundle``.
        draws_per_cell: Uniform draws consumed per cell.
        check: Optional cross-parameter validation ``(params) -> None``.
        description: One line summary.
    """

    pattern: PatternType
    semantics: FieldSemantics
    parameters: tuple
    prepare: Callable
    synthesize: Callable
    draws_per_cell: int = 0
    check: Optional[Callable] = None
    description: str = ""

    @property
    def parameter_names(self) -> tuple:
        return tuple(spec.name for spec in self.parameters)

    @property
    def is_stochastic(self) -> bool:
        return self.draws_per_cell > 0


def fraction(name: str, default=None, minimum=0.0, maximum=1.0, description="") -> ParameterSpec:
    """Float parameter expressed as a share of the model size."""
    return ParameterSpec(name, float, default, minimum, maximum, description=description)


def angle(name: str, default=None, maximum=360.0, description="") -> ParameterSpec:
    """Float parameter in degrees."""
    return ParameterSpec(name, float, default, 0.0, maximum, description=description)


def override(params: dict, name: str, drawn: float) -> float:
    """Supplied parameter value, falling back to the drawn one."""
    value = params.get(name)
    return drawn if value is None else float(value)


def lookup(rock_types: np.ndarray, attribute: str) -> np.ndarray:
    """Material attribute for each rock type, NaN where the material has none."""
    table = {
        name: (np.nan if getattr(m, attribute) is None else getattr(m, attribute))
        for name, m in MATERIALS.items()
    }
    return pd.Series(rock_types, dtype=object).map(table).to_numpy(dtype=np.float64)


def empty_zones(n: int) -> np.ndarray:
    return np.full(n, None, dtype=object)


def mining_bundle(
    rock_type: np.ndarray,
    density: np.ndarray,
    grade_cu: np.ndarray,
    grade_au: np.ndarray,
    zone: Optional[np.ndarray] = None,
    econ_value: Optional[np.ndarray] = None,
) -> dict:
    """Assemble a mining raw bundle. Missing econ values are NaN."""
    n = len(rock_type)
    return {
        "rock_type": np.asarray(rock_type, dtype=object),
        "density": np.asarray(density, dtype=np.float64),
        "grade_cu": np.asarray(grade_cu, dtype=np.float64),
        "grade_au": np.asarray(grade_au, dtype=np.float64),
        "zone": empty_zones(n) if zone is None else np.asarray(zone, dtype=object),
        "econ_value": (
            np.full(n, np.nan) if econ_value is None else np.asarray(econ_value, dtype=np.float64)
        ),
    }


def material_bundle(rock_types: np.ndarray, with_econ: bool = True) -> dict:
    """Raw bundle taking every attribute from the material table."""
    rock_types = np.asarray(rock_types, dtype=object)
    zones = empty_zones(len(rock_types))
    for name, material in MATERIALS.items():
        if material.zone is not None:
            zones[rock_types == name] = material.zone
    return mining_bundle(
        rock_types,
        lookup(rock_types, "density"),
        lookup(rock_types, "grade_cu"),
        lookup(rock_types, "grade_au"),
        zone=zones,
        econ_value=lookup(rock_types, "econ_value") if with_econ else None,
    )


def classify_grades(grade_cu: np.ndarray, grade_au: np.ndarray) -> np.ndarray:
    """Rock type from grade cut-offs, highest class first."""
    rock = np.full(len(grade_cu), "Waste", dtype=object)
    for name, cu_cutoff, au_cutoff in reversed(CUTOFFS):
        rock[(grade_cu >= cu_cutoff) | (grade_au >= au_cutoff)] = name
    return rock


def graded_bundle(
    grade_cu: np.ndarray,
    grade_au: np.ndarray,
    inside: np.ndarray,
    zone: Optional[np.ndarray] = None,
) -> dict:
    """Raw bundle for cells graded by a structure.

    Cells inside the structure are classified by cut-off; sub-economic ones
    keep a reduced share of their grade. Cells outside are background waste
    with zero grade. Economic value is left to the standardizer.

    Args:
        grade_cu: Cu grade per cell.
        grade_au: Au grade per cell.
        inside: Mask of cells belonging to the structure.
        zone: Optional zone label per cell.
    """
    grade_cu = np.where(inside, np.maximum(grade_cu, 0.0), 0.0)
    grade_au = np.where(inside, np.maximum(grade_au, 0.0), 0.0)
    rock = classify_grades(grade_cu, grade_au)
    subgrade = inside & (rock == "Waste")
    grade_cu = np.where(subgrade, grade_cu * SUBGRADE_FACTOR, grade_cu)
    grade_au = np.where(subgrade, grade_au * SUBGRADE_FACTOR, grade_au)
    return mining_bundle(rock, lookup(rock, "density"), grade_cu, grade_au, zone=zone)


def reservoir_bundle(
    facies: np.ndarray,
    porosity: np.ndarray,
    oil_saturation: np.ndarray,
    gas_saturation: np.ndarray,
    econ_value: np.ndarray,
    zone: Optional[np.ndarray] = None,
) -> dict:
    """Assemble a reservoir raw bundle. Zone defaults to the facies."""
    facies = np.asarray(facies, dtype=object)
    return {
        "facies": facies,
        "porosity": np.asarray(porosity, dtype=np.float64),
        "oil_saturation": np.asarray(oil_saturation, dtype=np.float64),
        "gas_saturation": np.asarray(gas_saturation, dtype=np.float64),
        "zone": facies.copy() if zone is None else np.asarray(zone, dtype=object),
        "econ_value": np.asarray(econ_value, dtype=np.float64),
    }


def apply_air(bundle: dict, air: np.ndarray, semantics: FieldSemantics) -> dict:
    """Mark cells as air: no material, zero density, no grades or value."""
    if not air.any():
        return bundle
    out = dict(bundle)
    if semantics is FieldSemantics.RESERVOIR:
        names = ("facies", "porosity", ("oil_saturation", "gas_saturation"))
    else:
        names = ("rock_type", "density", ("grade_cu", "grade_au"))
    label, density, grades = names
    out[label] = np.where(air, AIR_ROCK_TYPE, bundle[label]).astype(object)
    out[density] = np.where(air, 0.0, bundle[density])
    for key in grades:
        out[key] = np.where(air, np.nan, bundle[key])
    out["econ_value"] = np.where(air, np.nan, bundle["econ_value"])
    out["zone"] = np.where(air, None, bundle["zone"]).astype(object)
    return out


def horizontal_scale(grid: GridSpec) -> float:
    """Smallest horizontal model extent in meters."""
    ex, ey, _ = grid.extent
    return min(ex, ey)
