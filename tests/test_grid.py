"""Tests for grid indexing primitives."""

import numpy as np
import pytest

from blocksmith.objects import GridSpec
from blocksmith.primitives.grid import (
    cell_batch,
    cell_coordinates,
    coordinate_of,
    depth_of,
    flat_to_ijk,
    grid_spec_from_bounds,
    ijk_to_flat,
    iter_chunks,
)
from blocksmith.utils.errors import ParameterError


class TestCoordinates:
    """Tests for centroid coordinates."""

    def test_coordinate_of(self, small_grid):
        """Test centroid convention: z decreases with k."""
        assert coordinate_of(0, 0, 0, small_grid) == (5.0, 5.0, -5.0)
        assert coordinate_of(0, 0, 1, small_grid) == (5.0, 5.0, -15.0)
        assert coordinate_of(3, 2, 1, small_grid) == (35.0, 25.0, -15.0)

    def test_centroids_below_surface(self, medium_grid):
        """Test that every centroid lies strictly below the origin z."""
        batch = cell_batch(medium_grid, 0, medium_grid.n_cells)
        assert np.all(batch.z < medium_grid.origin[2])

    def test_vectorized_matches_scalar(self, medium_grid):
        """Test that cell_coordinates agrees with coordinate_of."""
        i = np.array([0, 5, 19])
        j = np.array([0, 7, 19])
        k = np.array([0, 3, 9])
        x, y, z = cell_coordinates(i, j, k, medium_grid)
        for n in range(3):
            assert (x[n], y[n], z[n]) == coordinate_of(i[n], j[n], k[n], medium_grid)

    def test_depth_of(self, medium_grid):
        """Test depth below the surface."""
        assert depth_of(495.0, medium_grid) == 5.0


class TestFlatIndex:
    """Tests for flat index conversion."""

    def test_round_trip(self, medium_grid):
        """Test that flat_to_ijk inverts ijk_to_flat over the whole grid."""
        flat = np.arange(medium_grid.n_cells)
        i, j, k = flat_to_ijk(flat, medium_grid)
        np.testing.assert_array_equal(ijk_to_flat(i, j, k, medium_grid), flat)

    def test_k_fastest(self, small_grid):
        """Test traversal order."""
        assert flat_to_ijk(0, small_grid) == (0, 0, 0)
        assert flat_to_ijk(1, small_grid) == (0, 0, 1)
        assert flat_to_ijk(2, small_grid) == (0, 1, 0)
        assert flat_to_ijk(8, small_grid) == (1, 0, 0)


class TestCellBatch:
    """Tests for cell batches and chunk ranges."""

    def test_batch_contents(self, small_grid):
        """Test indices, normalized positions and size of a batch."""
        batch = cell_batch(small_grid, 8, 12)
        assert batch.size == 4
        assert len(batch) == 4
        np.testing.assert_array_equal(batch.i, [1, 1, 1, 1])
        np.testing.assert_array_equal(batch.k, [0, 1, 0, 1])
        np.testing.assert_allclose(batch.u, [0.375] * 4)
        np.testing.assert_allclose(batch.w, [0.25, 0.75, 0.25, 0.75])

    def test_batch_out_of_range(self, small_grid):
        """Test that ranges outside the grid are rejected."""
        with pytest.raises(ParameterError):
            cell_batch(small_grid, 0, 33)

    def test_iter_chunks(self):
        """Test chunk ranges cover the grid without gaps."""
        assert list(iter_chunks(10, 4)) == [(0, 4), (4, 8), (8, 10)]
        assert list(iter_chunks(4, 10)) == [(0, 4)]

    def test_iter_chunks_invalid(self):
        """Test chunk size validation."""
        with pytest.raises(ParameterError):
            list(iter_chunks(10, 0))


class TestGridFromBounds:
    """Tests for grid_spec_from_bounds."""

    def test_counts_round_up(self):
        """Test that the grid covers the whole box."""
        bounds = {"x_min": 0, "x_max": 1010, "y_min": 0, "y_max": 500, "z_min": -200, "z_max": 0}
        grid = grid_spec_from_bounds(bounds, block_size_xy=25, block_size_z=10)
        assert grid.counts == (41, 20, 20)
        assert grid.origin == (0.0, 0.0, 0.0)
        assert isinstance(grid, GridSpec)

    def test_invalid_bounds(self):
        """Test inverted and incomplete bounds."""
        with pytest.raises(ParameterError):
            grid_spec_from_bounds({"x_min": 0, "x_max": 10})
        bounds = {"x_min": 10, "x_max": 0, "y_min": 0, "y_max": 1, "z_min": 0, "z_max": 1}
        with pytest.raises(ParameterError):
            grid_spec_from_bounds(bounds)
