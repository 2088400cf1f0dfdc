"""BlockModel object and its aggregate statistics.

Layer 1: Objects - Immutable data representations.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Iterator, Optional

import pandas as pd

from blocksmith.objects.block import (
    IS_AIR,
    STANDARD_FIELDS,
    TABLE_COLUMNS,
    Block,
    FieldSemantics,
)
from blocksmith.objects.request import GenerationRequest
from blocksmith.utils.errors import raise_validation_error

_AXIS_COLUMNS = {"i": "I", "j": "J", "k": "K"}


@dataclass(frozen=True)
class ValueRange:
    """Minimum, maximum and mean of one attribute."""

    minimum: float
    maximum: float
    mean: float

    def to_dict(self) -> dict[str, float]:
        return {"min": self.minimum, "max": self.maximum, "mean": self.mean}


@dataclass(frozen=True)
class ModelStatistics:
    """Aggregate statistics over the non-air blocks of a model.

    Attributes:
        block_count: Number of non-air blocks.
        air_count: Number of air blocks.
        total_volume: Volume of non-air blocks in cubic meters.
        total_tonnage: Sum of density times cell volume over non-air blocks.
        bounding_box: Centroid extent of non-air blocks (x_min ... z_max),
            or None for an all-air model.
        rock_type_counts: Non-air block count per rock type.
        zone_counts: Non-air block count per zone.
        density: Range of DENSITY (porosity for reservoir models).
        grade_cu: Range of GRADE_CU, None when the model carries none.
        grade_au: Range of GRADE_AU, None when the model carries none.
        econ_value: Range of ECON_VALUE, None when the model carries none.
        ore_fraction: Share of non-air blocks classified as ore or pay.
    """

    block_count: int
    air_count: int
    total_volume: float
    total_tonnage: float
    bounding_box: Optional[dict[str, float]]
    rock_type_counts: dict[str, int] = field(default_factory=dict)
    zone_counts: dict[str, int] = field(default_factory=dict)
    density: Optional[ValueRange] = None
    grade_cu: Optional[ValueRange] = None
    grade_au: Optional[ValueRange] = None
    econ_value: Optional[ValueRange] = None
    ore_fraction: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        """Convert to a plain dictionary."""
        ranges = {
            name: (value.to_dict() if value is not None else None)
            for name, value in (
                ("density", self.density),
                ("grade_cu", self.grade_cu),
                ("grade_au", self.grade_au),
                ("econ_value", self.econ_value),
            )
        }
        return {
            "block_count": self.block_count,
            "air_count": self.air_count,
            "total_volume": self.total_volume,
            "total_tonnage": self.total_tonnage,
            "bounding_box": self.bounding_box,
            "rock_type_counts": dict(self.rock_type_counts),
            "zone_counts": dict(self.zone_counts),
            "ore_fraction": self.ore_fraction,
            **ranges,
        }


@dataclass(frozen=True, eq=False)
class BlockModel:
    """An ordered, complete block model.

    Rows of ``table`` follow generation order: index-major with ``i``
    slowest and ``k`` fastest. Air blocks are kept in ``table`` so every
    cell stays addressable by index; they are excluded from ``statistics``
    and from ``standardized()``.

    The table is shared with the model cache and must be treated as
    read-only. Accessors return copies.

    Attributes:
        request: The request this model was generated from.
        table: One row per cell with the canonical columns plus IS_AIR.
        semantics: Mining or reservoir reading of the schema slots.
        statistics: Aggregates over non-air blocks.
        from_cache: True when served from the model cache.
    """

    request: GenerationRequest
    table: pd.DataFrame = field(repr=False)
    semantics: FieldSemantics
    statistics: ModelStatistics = field(repr=False)
    from_cache: bool = False

    def __post_init__(self):
        """Validate table shape against the grid."""
        missing = [col for col in TABLE_COLUMNS if col not in self.table.columns]
        if missing:
            raise_validation_error(
                f"Block table is missing columns: {missing}",
                expected=", ".join(TABLE_COLUMNS),
            )
        n_cells = self.request.grid.n_cells
        if len(self.table) != n_cells:
            raise_validation_error(
                "Block table does not cover the grid",
                expected=f"{n_cells} rows",
                received=f"{len(self.table)} rows",
            )

    @property
    def grid(self):
        return self.request.grid

    @property
    def non_air_count(self) -> int:
        """Number of blocks that are not air."""
        return int((~self.table[IS_AIR]).sum())

    def __len__(self) -> int:
        """Number of generated blocks, air included."""
        return len(self.table)

    def __iter__(self) -> Iterator[Block]:
        """Iterate blocks in generation order, air included."""
        for row in self.table.itertuples(index=False):
            yield _row_to_block(row._asdict())

    def __getitem__(self, position: int) -> Block:
        """Block at a position in generation order."""
        n = len(self.table)
        if position < 0:
            position += n
        if not 0 <= position < n:
            raise IndexError(f"Block position {position} out of range for {n} blocks")
        return _row_to_block(self.table.iloc[position].to_dict())

    def block_at(self, i: int, j: int, k: int) -> Block:
        """Block at grid indices (i, j, k). Air blocks are returned too."""
        nx, ny, nz = self.grid.counts
        if not (0 <= i < nx and 0 <= j < ny and 0 <= k < nz):
            raise IndexError(f"Cell ({i}, {j}, {k}) outside grid {nx}×{ny}×{nz}")
        return self[(i * ny + j) * nz + k]

    def slice(self, axis: str, index: int) -> pd.DataFrame:
        """All cells in one grid plane, air included.

        Args:
            axis: 'i', 'j' or 'k'.
            index: Plane index along the axis.

        Returns:
            Copy of the matching rows in generation order.
        """
        column = _AXIS_COLUMNS.get(str(axis).lower())
        if column is None:
            raise ValueError(f"axis must be one of {sorted(_AXIS_COLUMNS)}, got {axis!r}")
        limit = self.grid.counts["IJK".index(column)]
        if not 0 <= index < limit:
            raise IndexError(f"{axis} index {index} out of range [0, {limit})")
        return self.table[self.table[column] == index].reset_index(drop=True)

    def standardized(self) -> pd.DataFrame:
        """Non-air blocks in generation order with exactly the canonical columns."""
        mask = ~self.table[IS_AIR]
        return self.table.loc[mask, list(STANDARD_FIELDS)].reset_index(drop=True)

    def to_dataframe(self, include_air: bool = True) -> pd.DataFrame:
        """Copy of the full block table."""
        if include_air:
            return self.table.copy()
        return self.table[~self.table[IS_AIR]].reset_index(drop=True)

    def identical_to(self, other: "BlockModel") -> bool:
        """True when both models hold the same request, semantics and blocks."""
        return (
            self.request == other.request
            and self.semantics == other.semantics
            and self.table.equals(other.table)
        )

    def __repr__(self) -> str:
        """String representation."""
        nx, ny, nz = self.grid.counts
        return (
            f"BlockModel(pattern={self.request.pattern.value}, "
            f"blocks={nx}×{ny}×{nz}, non_air={self.statistics.block_count}, "
            f"semantics={self.semantics.value}, from_cache={self.from_cache})"
        )


def _optional_float(value: Any) -> Optional[float]:
    if value is None:
        return None
    value = float(value)
    return None if math.isnan(value) else value


def _row_to_block(row: dict[str, Any]) -> Block:
    zone = row["ZONE"]
    if zone is not None and not isinstance(zone, str):
        zone = None
    return Block(
        i=int(row["I"]),
        j=int(row["J"]),
        k=int(row["K"]),
        x=float(row["X"]),
        y=float(row["Y"]),
        z=float(row["Z"]),
        rock_type=str(row["ROCKTYPE"]),
        density=float(row["DENSITY"]),
        grade_cu=_optional_float(row["GRADE_CU"]),
        grade_au=_optional_float(row["GRADE_AU"]),
        zone=zone,
        econ_value=_optional_float(row["ECON_VALUE"]),
        is_air=bool(row[IS_AIR]),
    )
