"""Tests for schema standardization and statistics."""

import numpy as np
import pytest

from blocksmith.config import EconomicParams
from blocksmith.objects.block import IS_AIR, FieldSemantics
from blocksmith.primitives.grid import cell_batch
from blocksmith.primitives.patterns._common import material_bundle, reservoir_bundle
from blocksmith.objects import GenerationRequest
from blocksmith.primitives.standardize import (
    assemble_model,
    derive_econ_value,
    filter_air,
    standardize_chunk,
    summarize,
)
from blocksmith.utils.errors import DataValidationError


class TestDeriveEconValue:
    """Tests for derive_econ_value."""

    def test_ore_and_waste(self):
        """Test the grade formula for ore and the flat waste value."""
        value = derive_econ_value(
            np.array(["Ore", "Waste"], dtype=object),
            np.array([1.0, 0.2]),
            np.array([2.0, 0.1]),
            np.array([3.5, 2.5]),
            EconomicParams(),
            1000.0,
        )
        np.testing.assert_allclose(value, [1.0 * 20 + 2.0 * 50 - 10, -15.0])

    def test_missing_grades(self):
        """Test that one missing grade counts as zero and two mean no value."""
        value = derive_econ_value(
            np.array(["Ore", "Ore"], dtype=object),
            np.array([1.0, np.nan]),
            np.array([np.nan, np.nan]),
            np.array([3.5, 3.5]),
            EconomicParams(),
            1.0,
        )
        assert value[0] == pytest.approx(10.0)
        assert np.isnan(value[1])

    def test_per_block(self):
        """Test scaling by block tonnage."""
        economics = EconomicParams(per_tonne=False)
        value = derive_econ_value(
            np.array(["Waste"], dtype=object),
            np.array([0.0]),
            np.array([0.0]),
            np.array([2.5]),
            economics,
            1000.0,
        )
        assert value[0] == pytest.approx(-15.0 * 2.5 * 1000.0)


class TestStandardizeChunk:
    """Tests for standardize_chunk."""

    def test_mining_columns(self, small_grid):
        """Test canonical mining columns and econ fill-in."""
        batch = cell_batch(small_grid, 0, 4)
        raw = material_bundle(np.array(["Ore_Med", "Waste", "Ore", "Ore_Low"], dtype=object), with_econ=False)
        table = standardize_chunk(batch, raw, FieldSemantics.MINING)
        assert list(table["ROCKTYPE"]) == ["Ore_Med", "Waste", "Ore", "Ore_Low"]
        assert table.loc[1, "ECON_VALUE"] == -15.0
        assert table.loc[0, "ECON_VALUE"] == pytest.approx(0.8 * 20 + 1.5 * 50 - 10)
        assert table.loc[2, "ZONE"] == "Zone2"
        assert not table[IS_AIR].any()

    def test_pattern_econ_kept(self, small_grid):
        """Test that values supplied by the pattern are not recomputed."""
        batch = cell_batch(small_grid, 0, 1)
        raw = material_bundle(np.array(["Ore"], dtype=object))
        table = standardize_chunk(batch, raw, FieldSemantics.MINING)
        assert table.loc[0, "ECON_VALUE"] == 350.0

    def test_reservoir_mapping(self, small_grid):
        """Test that porosity and saturations land in the shared slots."""
        batch = cell_batch(small_grid, 0, 2)
        raw = reservoir_bundle(
            np.array(["OilSand", "Shale"], dtype=object),
            np.array([0.2, 0.12]),
            np.array([60.0, 0.0]),
            np.array([5.0, 0.0]),
            np.array([40.0, -10.0]),
        )
        table = standardize_chunk(batch, raw, FieldSemantics.RESERVOIR)
        assert list(table["DENSITY"]) == [0.2, 0.12]
        assert list(table["GRADE_CU"]) == [60.0, 0.0]
        assert list(table["GRADE_AU"]) == [5.0, 0.0]
        assert list(table["ZONE"]) == ["OilSand", "Shale"]

    def test_missing_attribute(self, small_grid):
        """Test that an incomplete bundle is rejected."""
        batch = cell_batch(small_grid, 0, 1)
        raw = material_bundle(np.array(["Ore"], dtype=object))
        del raw["grade_au"]
        with pytest.raises(DataValidationError, match="grade_au"):
            standardize_chunk(batch, raw, FieldSemantics.MINING)

    def test_text_columns_independent_of_chunking(self, small_grid):
        """Test that text columns keep one dtype however the grid is split."""
        batch = cell_batch(small_grid, 0, small_grid.n_cells)
        rock = np.where(batch.i < 2, "Waste", "Magnetite").astype(object)
        whole = standardize_chunk(batch, material_bundle(rock), FieldSemantics.MINING)

        # First half has no zone labels at all, second half has only labels
        half = small_grid.n_cells // 2
        chunks = [
            standardize_chunk(
                cell_batch(small_grid, start, stop),
                material_bundle(rock[start:stop]),
                FieldSemantics.MINING,
            )
            for start, stop in ((0, half), (half, small_grid.n_cells))
        ]
        assert chunks[0]["ZONE"].isna().all()
        assert (chunks[1]["ZONE"] == "Zone1").all()

        request = GenerationRequest(small_grid, "layered")
        one_step = assemble_model(request, [whole], FieldSemantics.MINING)
        chunked = assemble_model(request, chunks, FieldSemantics.MINING)
        for column in ("ROCKTYPE", "ZONE"):
            assert one_step.table[column].dtype == object
            assert chunked.table[column].dtype == object
        assert one_step.identical_to(chunked)


class TestSummarize:
    """Tests for summarize and filter_air."""

    def test_air_excluded(self, small_grid):
        """Test that statistics cover non-air blocks only."""
        batch = cell_batch(small_grid, 0, small_grid.n_cells)
        rock = np.where(batch.k == 0, "Air", "Ore_Med").astype(object)
        raw = material_bundle(rock)
        raw["density"] = np.where(batch.k == 0, 0.0, raw["density"])
        table = standardize_chunk(batch, raw, FieldSemantics.MINING)
        stats = summarize(table, small_grid, FieldSemantics.MINING)
        assert stats.block_count == 16
        assert stats.air_count == 16
        assert stats.rock_type_counts == {"Ore_Med": 16}
        assert stats.total_volume == 16 * 1000.0
        assert stats.total_tonnage == pytest.approx(16 * 3.2 * 1000.0)
        assert stats.bounding_box["z_max"] == -15.0
        assert stats.ore_fraction == 1.0
        assert len(filter_air(table)) == 16

    def test_reservoir_tonnage(self, small_grid):
        """Test that reservoir tonnage uses bulk facies density, not porosity."""
        batch = cell_batch(small_grid, 0, 2)
        raw = reservoir_bundle(
            np.array(["Salt", "GasSand"], dtype=object),
            np.array([0.01, 0.2]),
            np.array([0.0, 0.0]),
            np.array([0.0, 70.0]),
            np.array([-10.0, 20.0]),
        )
        table = standardize_chunk(batch, raw, FieldSemantics.RESERVOIR)
        stats = summarize(table, small_grid, FieldSemantics.RESERVOIR)
        assert stats.total_tonnage == pytest.approx((2.2 + 2.1) * 1000.0)
        assert stats.ore_fraction == 0.5
        assert stats.density.maximum == 0.2
