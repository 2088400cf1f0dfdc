"""Schema standardization of raw pattern output.

Layer 2: Primitives - Pure operations.

Every pattern's raw attribute bundle is normalized into the canonical
column set (X, Y, Z, I, J, K, ROCKTYPE, DENSITY, ZONE, GRADE_CU, GRADE_AU,
ECON_VALUE) plus the IS_AIR marker. Reservoir bundles are remapped into the
same slots: porosity into DENSITY, oil saturation into GRADE_CU and gas
saturation into GRADE_AU.
"""

import logging
from typing import Iterable, Optional

import numpy as np
import pandas as pd

from blocksmith.config import EconomicParams
from blocksmith.objects.block import AIR_ROCK_TYPE, IS_AIR, TABLE_COLUMNS, FieldSemantics
from blocksmith.objects.blockmodel import BlockModel, ModelStatistics, ValueRange
from blocksmith.objects.gridspec import GridSpec
from blocksmith.objects.request import GenerationRequest
from blocksmith.primitives.grid import CellBatch
from blocksmith.primitives.patterns._common import (
    BACKGROUND_ROCK_TYPE,
    ORE_ROCK_TYPES,
    PAY_FACIES,
    lookup,
)
from blocksmith.utils.errors import raise_validation_error

logger = logging.getLogger(__name__)

FIELD_MAPS = {
    FieldSemantics.MINING: {
        "rock_type": "ROCKTYPE",
        "density": "DENSITY",
        "zone": "ZONE",
        "grade_cu": "GRADE_CU",
        "grade_au": "GRADE_AU",
        "econ_value": "ECON_VALUE",
    },
    FieldSemantics.RESERVOIR: {
        "facies": "ROCKTYPE",
        "porosity": "DENSITY",
        "zone": "ZONE",
        "oil_saturation": "GRADE_CU",
        "gas_saturation": "GRADE_AU",
        "econ_value": "ECON_VALUE",
    },
}


def derive_econ_value(
    rock_type: np.ndarray,
    grade_cu: np.ndarray,
    grade_au: np.ndarray,
    density: np.ndarray,
    economics: EconomicParams,
    cell_volume: float,
) -> np.ndarray:
    """Economic value from grades and density.

    Waste is worth ``waste_value``. Other rock is worth
    ``cu * cu_factor + au * au_factor - processing_cost``, a missing grade
    counting as zero. A block with neither grade has no value (NaN), not
    zero. Values are per tonne unless ``economics.per_tonne`` is False, in
    which case they are scaled by block tonnage.

    Args:
        rock_type: Rock type per block.
        grade_cu: Cu grade (%) per block, NaN when absent.
        grade_au: Au grade (g/t) per block, NaN when absent.
        density: Density (t/m³) per block.
        economics: Economic value model.
        cell_volume: Block volume (m³).

    Returns:
        Value per block.
    """
    grade_cu = np.asarray(grade_cu, dtype=np.float64)
    grade_au = np.asarray(grade_au, dtype=np.float64)
    no_grade = np.isnan(grade_cu) & np.isnan(grade_au)
    value = (
        np.nan_to_num(grade_cu) * economics.cu_factor
        + np.nan_to_num(grade_au) * economics.au_factor
        - economics.processing_cost
    )
    value = np.where(no_grade, np.nan, value)
    value = np.where(np.asarray(rock_type, dtype=object) == BACKGROUND_ROCK_TYPE, economics.waste_value, value)
    if not economics.per_tonne:
        value = value * np.asarray(density, dtype=np.float64) * cell_volume
    return value


def standardize_chunk(
    batch: CellBatch,
    raw: dict,
    semantics: FieldSemantics,
    economics: Optional[EconomicParams] = None,
    cell_volume: float = 1.0,
) -> pd.DataFrame:
    """Map one batch's raw bundle to the canonical table.

    Args:
        batch: The cells the bundle was synthesized for.
        raw: Raw attribute bundle from the pattern synthesizer.
        semantics: Mining or reservoir field mapping.
        economics: Economic model for values the pattern did not produce.
        cell_volume: Block volume (m³).

    Returns:
        DataFrame with the canonical columns plus IS_AIR, one row per cell.
    """
    field_map = FIELD_MAPS[semantics]
    missing = [key for key in field_map if key not in raw]
    if missing:
        raise_validation_error(
            f"Raw bundle is missing attributes for {semantics.value} semantics: {missing}",
            expected=", ".join(field_map),
        )
    economics = economics or EconomicParams()

    columns = {canonical: raw[key] for key, canonical in field_map.items()}
    rock = np.asarray(columns["ROCKTYPE"], dtype=object)
    is_air = rock == AIR_ROCK_TYPE

    econ = np.asarray(columns["ECON_VALUE"], dtype=np.float64)
    if semantics is FieldSemantics.MINING:
        pending = np.isnan(econ) & ~is_air
        if pending.any():
            derived = derive_econ_value(
                rock,
                columns["GRADE_CU"],
                columns["GRADE_AU"],
                columns["DENSITY"],
                economics,
                cell_volume,
            )
            econ = np.where(pending, derived, econ)

    density = np.where(is_air, 0.0, np.asarray(columns["DENSITY"], dtype=np.float64))
    table = pd.DataFrame(
        {
            "X": batch.x,
            "Y": batch.y,
            "Z": batch.z,
            "I": batch.i,
            "J": batch.j,
            "K": batch.k,
            "ROCKTYPE": pd.Series(rock, dtype=object),
            "DENSITY": density,
            "ZONE": pd.Series(
                np.where(is_air, None, np.asarray(columns["ZONE"], dtype=object)), dtype=object
            ),
            "GRADE_CU": np.where(is_air, np.nan, np.asarray(columns["GRADE_CU"], dtype=np.float64)),
            "GRADE_AU": np.where(is_air, np.nan, np.asarray(columns["GRADE_AU"], dtype=np.float64)),
            "ECON_VALUE": np.where(is_air, np.nan, econ),
            IS_AIR: is_air,
        },
        columns=list(TABLE_COLUMNS),
    )
    return table


def filter_air(table: pd.DataFrame) -> pd.DataFrame:
    """Rows that are not air."""
    return table[~table[IS_AIR]].reset_index(drop=True)


def _value_range(values: pd.Series) -> Optional[ValueRange]:
    values = values.dropna()
    if values.empty:
        return None
    return ValueRange(
        minimum=float(values.min()),
        maximum=float(values.max()),
        mean=float(values.mean()),
    )


def summarize(table: pd.DataFrame, grid: GridSpec, semantics: FieldSemantics) -> ModelStatistics:
    """Aggregate statistics over non-air blocks.

    Reservoir tonnage uses the bulk density of each facies, since the
    DENSITY slot holds porosity.

    Args:
        table: Full block table including air rows.
        grid: Grid the table covers.
        semantics: Field semantics of the table.

    Returns:
        ModelStatistics instance.
    """
    solid = table[~table[IS_AIR]]
    count = len(solid)
    air_count = len(table) - count

    if semantics is FieldSemantics.RESERVOIR:
        bulk_density = lookup(solid["ROCKTYPE"].to_numpy(), "density")
        ore_types = PAY_FACIES
    else:
        bulk_density = solid["DENSITY"].to_numpy(dtype=np.float64)
        ore_types = ORE_ROCK_TYPES

    if count:
        bounding_box = {
            "x_min": float(solid["X"].min()),
            "x_max": float(solid["X"].max()),
            "y_min": float(solid["Y"].min()),
            "y_max": float(solid["Y"].max()),
            "z_min": float(solid["Z"].min()),
            "z_max": float(solid["Z"].max()),
        }
        ore_fraction = float(solid["ROCKTYPE"].isin(ore_types).mean())
    else:
        bounding_box = None
        ore_fraction = 0.0

    rock_counts = solid["ROCKTYPE"].value_counts()
    zone_counts = solid["ZONE"].dropna().value_counts()

    return ModelStatistics(
        block_count=count,
        air_count=air_count,
        total_volume=count * grid.cell_volume,
        total_tonnage=float(np.nansum(bulk_density)) * grid.cell_volume,
        bounding_box=bounding_box,
        rock_type_counts={str(k): int(v) for k, v in sorted(rock_counts.items())},
        zone_counts={str(k): int(v) for k, v in sorted(zone_counts.items())},
        density=_value_range(solid["DENSITY"]),
        grade_cu=_value_range(solid["GRADE_CU"]),
        grade_au=_value_range(solid["GRADE_AU"]),
        econ_value=_value_range(solid["ECON_VALUE"]),
        ore_fraction=ore_fraction,
    )


def assemble_model(
    request: GenerationRequest,
    chunks: Iterable[pd.DataFrame],
    semantics: FieldSemantics,
) -> BlockModel:
    """Join standardized chunks into a BlockModel.

    Args:
        request: The request the chunks were generated from.
        chunks: Standardized chunks in generation order.
        semantics: Field semantics of the pattern.

    Returns:
        Complete BlockModel with statistics.
    """
    chunks = list(chunks)
    if not chunks:
        raise_validation_error("Cannot assemble a block model from zero chunks")
    table = chunks[0] if len(chunks) == 1 else pd.concat(chunks, ignore_index=True)
    table = table.reset_index(drop=True)
    statistics = summarize(table, request.grid, semantics)
    logger.debug(
        f"Assembled {len(table):,} blocks ({statistics.air_count:,} air) "
        f"for {request.pattern.value}"
    )
    return BlockModel(
        request=request,
        table=table,
        semantics=semantics,
        statistics=statistics,
    )
