"""Block object and canonical block schema.

Layer 1: Objects - Immutable data representations.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

# Canonical column names of the standardized schema, in output order
STANDARD_FIELDS = (
    "X",
    "Y",
    "Z",
    "I",
    "J",
    "K",
    "ROCKTYPE",
    "DENSITY",
    "ZONE",
    "GRADE_CU",
    "GRADE_AU",
    "ECON_VALUE",
)

IS_AIR = "IS_AIR"
TABLE_COLUMNS = STANDARD_FIELDS + (IS_AIR,)

AIR_ROCK_TYPE = "Air"


class FieldSemantics(str, Enum):
    """How the shared schema slots are to be read.

    Reservoir models reuse the mining slots: DENSITY holds porosity,
    GRADE_CU oil saturation, GRADE_AU gas saturation and ROCKTYPE the
    reservoir facies.
    """

    MINING = "mining"
    RESERVOIR = "reservoir"

    @property
    def labels(self) -> dict[str, str]:
        """Human readable label for each canonical column."""
        common = {
            "X": "Easting (m)",
            "Y": "Northing (m)",
            "Z": "Elevation (m)",
            "I": "Column index",
            "J": "Row index",
            "K": "Layer index",
            "ZONE": "Zone",
        }
        if self is FieldSemantics.RESERVOIR:
            return {
                **common,
                "ROCKTYPE": "Reservoir facies",
                "DENSITY": "Porosity (fraction)",
                "GRADE_CU": "Oil saturation (%)",
                "GRADE_AU": "Gas saturation (%)",
                "ECON_VALUE": "Value per tonne (oil/gas equivalent)",
            }
        return {
            **common,
            "ROCKTYPE": "Rock type",
            "DENSITY": "Density (t/m³)",
            "GRADE_CU": "Cu grade (%)",
            "GRADE_AU": "Au grade (g/t)",
            "ECON_VALUE": "Economic value",
        }

    def label(self, column: str) -> str:
        """Label for one canonical column."""
        return self.labels.get(column, column)


@dataclass(frozen=True)
class Block:
    """One voxel of a block model.

    Attributes:
        i, j, k: Grid indices. ``k = 0`` is the shallowest layer.
        x, y, z: World centroid in meters.
        rock_type: Material classification (rock type or reservoir facies).
        density: Density in t/m³, or porosity for reservoir models.
        grade_cu: Cu grade (%) or oil saturation (%). None when absent.
        grade_au: Au grade (g/t) or gas saturation (%). None when absent.
        zone: Optional zone identifier.
        econ_value: Optional economic value.
        is_air: True for empty cells above the ground surface.
    """

    i: int
    j: int
    k: int
    x: float
    y: float
    z: float
    rock_type: str
    density: float
    grade_cu: Optional[float] = None
    grade_au: Optional[float] = None
    zone: Optional[str] = None
    econ_value: Optional[float] = None
    is_air: bool = False

    def to_record(self) -> dict[str, Any]:
        """Block as a mapping of canonical column names to values."""
        return {
            "X": self.x,
            "Y": self.y,
            "Z": self.z,
            "I": self.i,
            "J": self.j,
            "K": self.k,
            "ROCKTYPE": self.rock_type,
            "DENSITY": self.density,
            "ZONE": self.zone,
            "GRADE_CU": self.grade_cu,
            "GRADE_AU": self.grade_au,
            "ECON_VALUE": self.econ_value,
        }
