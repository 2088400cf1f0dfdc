"""GridSpec object for regular block model grids.

Layer 1: Objects - Immutable data representations.
"""

import math
import numbers
from dataclasses import dataclass
from typing import Any

from blocksmith.utils.errors import raise_parameter_error

AXES = ("x", "y", "z")


@dataclass(frozen=True)
class GridSpec:
    """Immutable regular 3D grid definition.

    The origin sits on the ground surface at the top of the model. Cell index
    ``k = 0`` is the shallowest layer and ``k`` increases downward, so every
    centroid z lies strictly below ``origin[2]``.

    Attributes:
        origin: Grid origin (x, y, z) in meters. ``z`` is the ground surface.
        cell_size: Cell edge lengths (dx, dy, dz) in meters, all > 0.
        counts: Cell counts (nx, ny, nz), all >= 1.
    """

    origin: tuple[float, float, float]
    cell_size: tuple[float, float, float]
    counts: tuple[int, int, int]

    def __post_init__(self):
        """Validate and normalize grid definition."""
        origin = _triple("origin", self.origin)
        cell_size = _triple("cell_size", self.cell_size)
        counts = _triple("counts", self.counts)

        for axis, value in zip(AXES, origin):
            if not _is_real(value) or not math.isfinite(value):
                raise_parameter_error(
                    f"origin.{axis}", value, constraint="must be a finite number"
                )

        for axis, value in zip(AXES, cell_size):
            if not _is_real(value) or not math.isfinite(value) or value <= 0:
                raise_parameter_error(
                    f"cell_size.{axis}",
                    value,
                    constraint="must be a finite number > 0",
                )

        for axis, value in zip(AXES, counts):
            if not _is_integer(value) or value < 1:
                raise_parameter_error(
                    f"counts.{axis}", value, constraint="must be an integer >= 1"
                )

        object.__setattr__(self, "origin", tuple(float(v) for v in origin))
        object.__setattr__(self, "cell_size", tuple(float(v) for v in cell_size))
        object.__setattr__(self, "counts", tuple(int(v) for v in counts))

    @property
    def nx(self) -> int:
        return self.counts[0]

    @property
    def ny(self) -> int:
        return self.counts[1]

    @property
    def nz(self) -> int:
        return self.counts[2]

    @property
    def shape(self) -> tuple[int, int, int]:
        """Grid shape (nx, ny, nz)."""
        return self.counts

    @property
    def n_cells(self) -> int:
        """Total number of cells, nx * ny * nz."""
        return self.nx * self.ny * self.nz

    @property
    def cell_volume(self) -> float:
        """Volume of one cell in cubic meters."""
        dx, dy, dz = self.cell_size
        return dx * dy * dz

    @property
    def extent(self) -> tuple[float, float, float]:
        """Model size along each axis in meters."""
        return tuple(n * d for n, d in zip(self.counts, self.cell_size))

    @property
    def bounds(self) -> dict[str, float]:
        """Outer box edges of the model.

        Returns:
            Dictionary with keys 'x_min', 'x_max', 'y_min', 'y_max',
            'z_min', 'z_max'. ``z_max`` is the ground surface.
        """
        ox, oy, oz = self.origin
        ex, ey, ez = self.extent
        return {
            "x_min": ox,
            "x_max": ox + ex,
            "y_min": oy,
            "y_max": oy + ey,
            "z_min": oz - ez,
            "z_max": oz,
        }

    @property
    def center(self) -> tuple[float, float, float]:
        """Geometric center of the model box."""
        b = self.bounds
        return (
            (b["x_min"] + b["x_max"]) / 2,
            (b["y_min"] + b["y_max"]) / 2,
            (b["z_min"] + b["z_max"]) / 2,
        )

    @property
    def mean_cell_size(self) -> float:
        """Average cell edge length."""
        return sum(self.cell_size) / 3

    def to_dict(self) -> dict[str, list]:
        """Convert to a JSON-compatible dictionary."""
        return {
            "origin": list(self.origin),
            "cell_size": list(self.cell_size),
            "counts": list(self.counts),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GridSpec":
        """Create a GridSpec from a dictionary produced by ``to_dict``."""
        missing = [key for key in ("origin", "cell_size", "counts") if key not in data]
        if missing:
            raise_parameter_error(
                f"grid.{missing[0]}", None, constraint="required grid field is missing"
            )
        return cls(
            origin=tuple(data["origin"]),
            cell_size=tuple(data["cell_size"]),
            counts=tuple(data["counts"]),
        )

    def __repr__(self) -> str:
        """String representation."""
        nx, ny, nz = self.counts
        return (
            f"GridSpec(counts={nx}×{ny}×{nz}, cell_size={self.cell_size}, "
            f"origin={self.origin})"
        )


def _triple(name: str, value: Any) -> tuple:
    try:
        items = tuple(value)
    except TypeError:
        raise_parameter_error(name, value, constraint="must be a sequence of 3 values")
    if len(items) != 3:
        raise_parameter_error(name, value, constraint="must have exactly 3 values")
    return items


def _is_real(value: Any) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


def _is_integer(value: Any) -> bool:
    return isinstance(value, numbers.Integral) and not isinstance(value, bool)
