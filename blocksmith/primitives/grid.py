"""Grid indexing and centroid coordinates.

Layer 2: Primitives - Pure operations.

Coordinate convention: the grid origin sits on the ground surface, ``k = 0``
is the shallowest layer and z decreases with depth:

    x = ox + (i + 0.5) * dx
    y = oy + (j + 0.5) * dy
    z = oz - (k + 0.5) * dz

Cells are traversed index-major with ``i`` slowest and ``k`` fastest.
"""

import logging
import math
from dataclasses import dataclass
from typing import Iterator, Union

import numpy as np

from blocksmith.objects.gridspec import GridSpec
from blocksmith.utils.errors import ParameterError

logger = logging.getLogger(__name__)

ArrayLike = Union[int, np.ndarray]


def coordinate_of(i: int, j: int, k: int, grid: GridSpec) -> tuple[float, float, float]:
    """World centroid of cell (i, j, k).

    Args:
        i, j, k: Cell indices.
        grid: Grid definition.

    Returns:
        Tuple (x, y, z) in meters.

    Example:
        >>> grid = GridSpec(origin=(0, 0, 0), cell_size=(10, 10, 10), counts=(4, 4, 2))
        >>> coordinate_of(0, 0, 1, grid)
        (5.0, 5.0, -15.0)
    """
    ox, oy, oz = grid.origin
    dx, dy, dz = grid.cell_size
    return (ox + (i + 0.5) * dx, oy + (j + 0.5) * dy, oz - (k + 0.5) * dz)


def cell_coordinates(
    i: np.ndarray, j: np.ndarray, k: np.ndarray, grid: GridSpec
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Vectorized ``coordinate_of`` over index arrays."""
    ox, oy, oz = grid.origin
    dx, dy, dz = grid.cell_size
    i = np.asarray(i, dtype=np.float64)
    j = np.asarray(j, dtype=np.float64)
    k = np.asarray(k, dtype=np.float64)
    return ox + (i + 0.5) * dx, oy + (j + 0.5) * dy, oz - (k + 0.5) * dz


def flat_to_ijk(flat: ArrayLike, grid: GridSpec) -> tuple[ArrayLike, ArrayLike, ArrayLike]:
    """Convert flat generation-order positions to (i, j, k) indices."""
    _, ny, nz = grid.counts
    flat = np.asarray(flat, dtype=np.int64) if not isinstance(flat, int) else flat
    i, rest = divmod(flat, ny * nz)
    j, k = divmod(rest, nz)
    return i, j, k


def ijk_to_flat(i: ArrayLike, j: ArrayLike, k: ArrayLike, grid: GridSpec) -> ArrayLike:
    """Convert (i, j, k) indices to flat generation-order positions."""
    _, ny, nz = grid.counts
    return (i * ny + j) * nz + k


@dataclass(frozen=True)
class CellBatch:
    """A contiguous range of cells in generation order.

    Attributes:
        start: First flat position (inclusive).
        stop: Last flat position (exclusive).
        i, j, k: Cell indices.
        x, y, z: Cell centroids.
        u, v, w: Normalized positions in [0, 1]: u along x, v along y and
            w as depth fraction (0 at the ground surface, 1 at the base).
    """

    start: int
    stop: int
    i: np.ndarray
    j: np.ndarray
    k: np.ndarray
    x: np.ndarray
    y: np.ndarray
    z: np.ndarray
    u: np.ndarray
    v: np.ndarray
    w: np.ndarray

    @property
    def size(self) -> int:
        return self.stop - self.start

    def __len__(self) -> int:
        return self.size


def cell_batch(grid: GridSpec, start: int, stop: int) -> CellBatch:
    """Indices and centroids of cells ``start`` to ``stop`` in generation order.

    Args:
        grid: Grid definition.
        start: First flat position (inclusive).
        stop: Last flat position (exclusive).

    Returns:
        CellBatch for the range.
    """
    if not 0 <= start <= stop <= grid.n_cells:
        raise ParameterError(
            f"Cell range [{start}, {stop}) outside grid of {grid.n_cells} cells"
        )
    flat = np.arange(start, stop, dtype=np.int64)
    i, j, k = flat_to_ijk(flat, grid)
    x, y, z = cell_coordinates(i, j, k, grid)
    nx, ny, nz = grid.counts
    return CellBatch(
        start=start,
        stop=stop,
        i=i,
        j=j,
        k=k,
        x=x,
        y=y,
        z=z,
        u=(i + 0.5) / nx,
        v=(j + 0.5) / ny,
        w=(k + 0.5) / nz,
    )


def iter_chunks(n_cells: int, chunk_size: int) -> Iterator[tuple[int, int]]:
    """Yield ``(start, stop)`` ranges covering ``n_cells`` in order."""
    if chunk_size < 1:
        raise ParameterError(f"chunk_size must be >= 1, got {chunk_size}")
    for start in range(0, n_cells, chunk_size):
        yield start, min(start + chunk_size, n_cells)


def depth_of(z: Union[float, np.ndarray], grid: GridSpec) -> Union[float, np.ndarray]:
    """Depth below the ground surface (positive downward)."""
    return grid.origin[2] - z


def grid_spec_from_bounds(
    bounds: dict[str, float],
    block_size_xy: float = 25.0,
    block_size_z: float = 10.0,
) -> GridSpec:
    """Create a grid covering a bounding box.

    Cell counts are rounded up so the box is fully covered. The grid origin
    is placed at (x_min, y_min, z_max) so that layers grow downward from the
    top of the box.

    Args:
        bounds: Dictionary with keys 'x_min', 'x_max', 'y_min', 'y_max',
                'z_min', 'z_max'.
        block_size_xy: Block size in X and Y directions (meters), default 25.0.
        block_size_z: Block size in Z direction (meters), default 10.0.

    Returns:
        GridSpec covering the box.

    Example:
        >>> bounds = {"x_min": 0, "x_max": 1000, "y_min": 0, "y_max": 500,
        ...           "z_min": -200, "z_max": 0}
        >>> grid = grid_spec_from_bounds(bounds, block_size_xy=25, block_size_z=10)
        >>> grid.counts
        (40, 20, 20)
    """
    required = ("x_min", "x_max", "y_min", "y_max", "z_min", "z_max")
    missing = [key for key in required if key not in bounds]
    if missing:
        raise ParameterError(f"bounds is missing keys: {missing}")
    if block_size_xy <= 0 or block_size_z <= 0:
        raise ParameterError(
            f"Block sizes must be positive, got xy={block_size_xy}, z={block_size_z}"
        )

    x_min, x_max = float(bounds["x_min"]), float(bounds["x_max"])
    y_min, y_max = float(bounds["y_min"]), float(bounds["y_max"])
    z_min, z_max = float(bounds["z_min"]), float(bounds["z_max"])
    for axis, low, high in (("x", x_min, x_max), ("y", y_min, y_max), ("z", z_min, z_max)):
        if not high > low:
            raise ParameterError(f"bounds {axis}_max must exceed {axis}_min")

    nx = max(1, int(math.ceil((x_max - x_min) / block_size_xy)))
    ny = max(1, int(math.ceil((y_max - y_min) / block_size_xy)))
    nz = max(1, int(math.ceil((z_max - z_min) / block_size_z)))

    grid = GridSpec(
        origin=(x_min, y_min, z_max),
        cell_size=(block_size_xy, block_size_xy, block_size_z),
        counts=(nx, ny, nz),
    )
    logger.info(f"Created block model grid: {nx} × {ny} × {nz} = {grid.n_cells:,} blocks")
    return grid
