"""Tests for the twelve synthesis patterns."""

import numpy as np
import pandas as pd
import pytest

from blocksmith.config import GeneratorConfig
from blocksmith.objects import FieldSemantics, GenerationRequest, GridSpec, PatternType
from blocksmith.primitives.patterns import (
    GRADE_CLASSES,
    PATTERNS,
    RESERVOIR_FACIES,
    parameter_specs,
    prepare_pattern,
    resolve_parameters,
)
from blocksmith.primitives.random_stream import RandomStream
from blocksmith.tasks.generationtask import GenerationScheduler
from blocksmith.utils.errors import ParameterError
from blocksmith.workflows.generation import generate_block_model

ALL_PATTERNS = [p.value for p in PatternType]
STOCHASTIC = [p.value for p, d in PATTERNS.items() if d.is_stochastic]


def _generate(grid, pattern, parameters=None, seed=0, config=None):
    return generate_block_model(grid, pattern, parameters, seed, config)


class TestRegistry:
    """Tests for the pattern registry."""

    def test_registry_exhaustive(self):
        """Test that every pattern id has a definition."""
        assert set(PATTERNS) == set(PatternType)

    @pytest.mark.parametrize("pattern", ALL_PATTERNS)
    def test_defaults_within_bounds(self, pattern):
        """Test that every declared default satisfies its own bounds."""
        for spec in parameter_specs(pattern):
            if spec.default is None or spec.kind in (bool, str):
                continue
            if spec.minimum is not None:
                assert spec.default >= spec.minimum, spec.name
            if spec.maximum is not None:
                assert spec.default <= spec.maximum, spec.name

    def test_resolve_fills_defaults(self):
        """Test default filling and int to float conversion."""
        params = resolve_parameters("ore_horizon", {"center": 1})
        assert params["center"] == 1.0
        assert isinstance(params["center"], float)
        assert params["thickness"] == 0.2
        assert params["air_thickness"] == 0.0

    def test_deterministic_patterns_make_no_draws(self, small_grid):
        """Test that geometric patterns leave the stream untouched."""
        for pattern in ("uniform", "layered", "gradient", "checkerboard"):
            stream = RandomStream(1)
            prepare_pattern(GenerationRequest(small_grid, pattern), stream)
            assert stream.draws == 0
            assert not PATTERNS[PatternType(pattern)].is_stochastic


class TestDeterminism:
    """Replay and chunking properties shared by all patterns."""

    @pytest.mark.parametrize("pattern", ALL_PATTERNS)
    def test_same_request_identical_model(self, medium_grid, pattern):
        """Test that generating twice from one request gives identical blocks."""
        a = _generate(medium_grid, pattern, seed=42)
        b = _generate(medium_grid, pattern, seed=42)
        assert a.identical_to(b)
        assert a.statistics == b.statistics

    @pytest.mark.parametrize("pattern", ALL_PATTERNS)
    def test_chunk_size_independent(self, medium_grid, pattern):
        """Test that chunked generation matches one-step generation."""
        request = GenerationRequest(medium_grid, pattern, seed=7)
        whole = GenerationScheduler(GeneratorConfig()).run(request).unwrap()
        chunked = GenerationScheduler(
            GeneratorConfig(chunk_threshold=1, chunk_size=333)
        ).run(request).unwrap()
        pd.testing.assert_frame_equal(whole.table, chunked.table)

    @pytest.mark.parametrize("pattern", STOCHASTIC)
    def test_seed_changes_model(self, medium_grid, pattern):
        """Test that stochastic patterns depend on the seed."""
        a = _generate(medium_grid, pattern, seed=42)
        b = _generate(medium_grid, pattern, seed=43)
        assert not a.table.equals(b.table)

    @pytest.mark.parametrize("pattern", ALL_PATTERNS)
    def test_every_cell_populated(self, medium_grid, pattern):
        """Test that no cell is left without a material or density."""
        table = _generate(medium_grid, pattern, seed=3).table
        assert table["ROCKTYPE"].notna().all()
        assert table["DENSITY"].notna().all()
        assert (table["DENSITY"] > 0).all()


class TestGeometricPatterns:
    """Tests for uniform, layered, gradient and checkerboard."""

    def test_layered_small_grid(self, small_grid):
        """Test the 4×4×2 layered example: Waste on top, Ore_Low below."""
        model = _generate(small_grid, "layered", {"layer_thickness": 1})
        table = model.table
        assert len(model) == 32
        top = table[table["K"] == 0]
        bottom = table[table["K"] == 1]
        assert set(top["ROCKTYPE"]) == {"Waste"}
        assert set(bottom["ROCKTYPE"]) == {"Ore_Low"}
        assert set(top["Z"]) == {-5.0}
        assert set(bottom["Z"]) == {-15.0}
        assert set(top["DENSITY"]) == {2.5}
        assert set(bottom["DENSITY"]) == {3.0}

    def test_layered_cycle_and_axis(self):
        """Test the four-class cycle along a chosen axis with thicker layers."""
        grid = GridSpec(origin=(0, 0, 0), cell_size=(1, 1, 1), counts=(16, 1, 1))
        table = _generate(grid, "layered", {"axis": "i", "layer_thickness": 2}).table
        expected = [GRADE_CLASSES[(i // 2) % 4] for i in range(16)]
        assert table["ROCKTYPE"].tolist() == expected

    def test_uniform(self, small_grid):
        """Test uniform default and explicit rock types."""
        assert set(_generate(small_grid, "uniform").table["ROCKTYPE"]) == {"Ore_Med"}
        table = _generate(small_grid, "uniform", {"rock_type": "Hematite"}).table
        assert set(table["ROCKTYPE"]) == {"Hematite"}
        assert set(table["ZONE"]) == {"Zone1"}
        assert set(table["ECON_VALUE"]) == {280.0}

    def test_uniform_unknown_rock_type(self, small_grid):
        """Test that rock types outside the material table are rejected."""
        with pytest.raises(ParameterError, match="rock_type"):
            _generate(small_grid, "uniform", {"rock_type": "Kryptonite"})

    def test_checkerboard(self, small_grid):
        """Test checkerboard parity."""
        table = _generate(small_grid, "checkerboard").table
        parity = (table["I"] + table["J"] + table["K"]) % 2
        assert set(table.loc[parity == 0, "ROCKTYPE"]) == {"Ore_Med"}
        assert set(table.loc[parity == 1, "ROCKTYPE"]) == {"Waste"}

    def test_gradient_center_and_corners(self):
        """Test that grade is highest at the centre and waste at the corners."""
        grid = GridSpec(origin=(0, 0, 0), cell_size=(10, 10, 10), counts=(5, 5, 5))
        model = _generate(grid, "gradient")
        assert model.block_at(2, 2, 2).rock_type == "Ore_High"
        assert model.block_at(0, 0, 0).rock_type == "Waste"
        assert model.block_at(4, 4, 4).rock_type == "Waste"

    def test_gradient_threshold_order(self, small_grid):
        """Test that thresholds must increase from high to low grade."""
        with pytest.raises(ParameterError, match="threshold"):
            _generate(small_grid, "gradient", {"threshold_high": 0.7, "threshold_med": 0.6})


class TestStochasticPatterns:
    """Tests for random and random_clusters."""

    def test_random_weights(self, medium_grid):
        """Test that only positively weighted classes appear."""
        params = {"weight_waste": 0.0, "weight_low": 0.0, "weight_med": 0.0}
        table = _generate(medium_grid, "random", params, seed=1).table
        assert set(table["ROCKTYPE"]) == {"Ore_High"}

    def test_random_all_zero_weights(self, small_grid):
        """Test that at least one weight must be positive."""
        params = {"weight_waste": 0.0, "weight_low": 0.0, "weight_med": 0.0, "weight_high": 0.0}
        with pytest.raises(ParameterError):
            _generate(small_grid, "random", params)

    def test_random_density_jitter(self, medium_grid):
        """Test density stays within the jitter band of the base density."""
        table = _generate(medium_grid, "random", {"density_jitter": 0.1}, seed=9).table
        base = table["ROCKTYPE"].map({"Waste": 2.5, "Ore_Low": 3.0, "Ore_Med": 3.2, "Ore_High": 3.5})
        assert ((table["DENSITY"] - base).abs() <= 0.1 + 1e-12).all()
        assert set(table["ROCKTYPE"]) <= set(GRADE_CLASSES)

    def test_clusters_zones(self, medium_grid):
        """Test cluster zone labels and ore classes."""
        table = _generate(medium_grid, "random_clusters", {"n_clusters": 3}, seed=5).table
        zones = set(table["ZONE"].dropna())
        assert zones
        assert zones <= {"Cluster1", "Cluster2", "Cluster3"}
        ore = table[table["ROCKTYPE"] != "Waste"]
        assert ore["ZONE"].notna().all()

    def test_clusters_radius_order(self, small_grid):
        """Test that radius_min may not exceed radius_max."""
        with pytest.raises(ParameterError, match="radius_min"):
            _generate(small_grid, "random_clusters", {"radius_min": 0.5, "radius_max": 0.2})


class TestStructuralPatterns:
    """Tests for ore_horizon, inclined_vein, ellipsoid_ore and vein_ore."""

    def test_ore_horizon_band(self, medium_grid):
        """Test the flat horizon occupies the middle depth band."""
        table = _generate(medium_grid, "ore_horizon").table
        ore_layers = set(table.loc[table["ROCKTYPE"] == "Ore", "K"])
        assert ore_layers == {4, 5}
        assert set(table.loc[table["ROCKTYPE"] == "Ore", "ZONE"]) == {"Horizon"}
        assert table.loc[table["ROCKTYPE"] == "Waste", "ZONE"].isna().all()

    def test_inclined_vein_economics(self, medium_grid):
        """Test vein cells get derived economic value and waste gets the waste value."""
        params = {"strike": 30.0, "dip": 60.0, "thickness": 2.5}
        table = _generate(medium_grid, "inclined_vein", params, seed=11).table
        ore = table[table["ROCKTYPE"] == "Ore"]
        waste = table[table["ROCKTYPE"] == "Waste"]
        assert len(ore) > 0
        assert set(ore["ZONE"]) == {"Vein"}
        expected = ore["GRADE_CU"] * 20.0 + ore["GRADE_AU"] * 50.0 - 10.0
        np.testing.assert_allclose(ore["ECON_VALUE"], expected)
        assert set(waste["ECON_VALUE"]) == {-15.0}
        assert set(waste["GRADE_CU"]) == {0.0}

    def test_inclined_vein_grade_falls_off(self, medium_grid):
        """Test vein grades stay between half and full peak grade."""
        params = {"strike": 0.0, "dip": 90.0, "thickness": 3.0}
        table = _generate(medium_grid, "inclined_vein", params).table
        ore = table[table["ROCKTYPE"] == "Ore"]
        assert ore["GRADE_CU"].max() <= 0.9
        assert ore["GRADE_CU"].min() >= 0.45

    def test_ellipsoid_zones(self, medium_grid):
        """Test ellipsoid zoning around a fixed centre."""
        params = {
            "center_x": 0.5,
            "center_y": 0.5,
            "center_z": 0.5,
            "radius_x": 0.25,
            "radius_y": 0.25,
            "radius_z": 0.25,
            "plunge": 0.0,
        }
        model = _generate(medium_grid, "ellipsoid_ore", params, seed=21)
        zones = set(model.table["ZONE"].dropna())
        assert "Core" in zones
        assert zones <= {"Core", "Transition", "Halo"}
        assert model.block_at(10, 10, 5).zone == "Core"
        assert model.block_at(0, 0, 0).zone is None
        assert model.block_at(0, 0, 0).grade_cu == 0.0

    def test_vein_ore_zones(self, medium_grid):
        """Test parallel vein labels and grade classes."""
        table = _generate(medium_grid, "vein_ore", {"n_veins": 2}, seed=8).table
        zones = set(table["ZONE"].dropna())
        assert zones
        assert zones <= {"Vein1", "Vein2"}
        assert set(table["ROCKTYPE"]) <= set(GRADE_CLASSES)
        outside = table[table["ZONE"].isna()]
        assert (outside["GRADE_CU"] == 0.0).all()


class TestZonedPattern:
    """Tests for porphyry_ore."""

    def test_zones_and_ore(self, porphyry_request):
        """Test porphyry zoning and that ore only occurs inside a zone."""
        model = _generate(porphyry_request.grid, "porphyry_ore", seed=42)
        table = model.table
        zones = set(table["ZONE"].dropna())
        assert zones <= {"Core", "Phyllic", "Propylitic"}
        assert "Core" in zones
        ore = table[table["ROCKTYPE"] != "Waste"]
        assert len(ore) > 0
        assert ore["ZONE"].notna().all()
        assert model.statistics.ore_fraction > 0.0

    def test_core_richer_than_halo(self, porphyry_request):
        """Test mean Cu decreases outward through the zones."""
        table = _generate(porphyry_request.grid, "porphyry_ore", seed=42).table
        means = table.groupby("ZONE")["GRADE_CU"].mean()
        assert means["Core"] > means["Propylitic"]

    def test_seeds_differ(self, porphyry_request):
        """Test seeds 42 and 43 produce different porphyries."""
        a = _generate(porphyry_request.grid, "porphyry_ore", seed=42)
        b = _generate(porphyry_request.grid, "porphyry_ore", seed=43)
        assert not a.table.equals(b.table)

    def test_radii_must_nest(self, small_grid):
        """Test that explicit zone radii must be strictly nested."""
        params = {"core_radius": 0.3, "phyllic_radius": 0.2, "propylitic_radius": 0.4}
        with pytest.raises(ParameterError, match="phyllic_radius"):
            _generate(small_grid, "porphyry_ore", params)

    def test_radii_given_together(self, small_grid):
        """Test that zone radii cannot be given one at a time."""
        with pytest.raises(ParameterError, match="core_radius"):
            _generate(small_grid, "porphyry_ore", {"core_radius": 0.1})


class TestReservoirPattern:
    """Tests for salt_dome."""

    @pytest.fixture
    def dome(self):
        grid = GridSpec(origin=(0, 0, 0), cell_size=(25, 25, 10), counts=(30, 30, 30))
        return _generate(grid, "salt_dome", seed=42)

    def test_semantics_and_facies(self, dome):
        """Test reservoir semantics and facies vocabulary."""
        assert dome.semantics is FieldSemantics.RESERVOIR
        facies = set(dome.table["ROCKTYPE"])
        assert facies <= set(RESERVOIR_FACIES)
        assert {"Salt", "Shale"} <= facies

    def test_value_ranges(self, dome):
        """Test porosity and saturation clamps."""
        table = dome.table
        assert table["DENSITY"].between(0.01, 0.35).all()
        assert table["GRADE_CU"].between(0.0, 100.0).all()
        assert table["GRADE_AU"].between(0.0, 100.0).all()

    def test_fluids_by_facies(self, dome):
        """Test that oil saturation only occurs in oil sands and salt carries no fluid."""
        table = dome.table
        assert (table.loc[table["ROCKTYPE"] != "OilSand", "GRADE_CU"] == 0.0).all()
        salt = table[table["ROCKTYPE"] == "Salt"]
        assert (salt["GRADE_AU"] == 0.0).all()
        assert set(salt["ECON_VALUE"]) == {-10.0}

    def test_contacts_order(self, small_grid):
        """Test that the gas-oil contact must lie above the oil-water contact."""
        params = {"gas_oil_contact": 0.6, "oil_water_contact": 0.4}
        with pytest.raises(ParameterError, match="gas_oil_contact"):
            _generate(small_grid, "salt_dome", params)

    def test_dome_top_above_base(self, small_grid):
        """Test that the dome crest must be shallower than its base."""
        with pytest.raises(ParameterError, match="dome_top"):
            _generate(small_grid, "salt_dome", {"dome_top": 0.7, "dome_base": 0.6})


class TestAir:
    """Tests for the common air and topography parameters."""

    def test_air_layer(self, small_grid):
        """Test that cells shallower than air_thickness become air."""
        model = _generate(small_grid, "layered", {"air_thickness": 15.0})
        table = model.table
        air = table[table["IS_AIR"]]
        assert set(air["K"]) == {0}
        assert len(air) == 16
        assert set(air["ROCKTYPE"]) == {"Air"}
        assert (air["DENSITY"] == 0.0).all()
        assert air["GRADE_CU"].isna().all()
        assert air["ECON_VALUE"].isna().all()
        assert model.statistics.block_count == 16
        assert model.statistics.air_count == 16
        assert len(model.standardized()) == 16
        assert "Air" not in model.statistics.rock_type_counts

    def test_air_on_reservoir(self, medium_grid):
        """Test air on a reservoir model clears porosity and saturations."""
        table = _generate(medium_grid, "salt_dome", {"air_thickness": 20.0}, seed=1).table
        air = table[table["IS_AIR"]]
        assert set(air["K"]) == {0, 1}
        assert (air["DENSITY"] == 0.0).all()
        assert air["GRADE_AU"].isna().all()

    def test_topography_varies(self, medium_grid):
        """Test that relief makes the air base uneven but keeps it above the relief depth."""
        table = _generate(medium_grid, "uniform", {"topography_relief": 40.0}, seed=2).table
        air = table[table["IS_AIR"]]
        depth = 500.0 - air["Z"]
        assert depth.max() < 40.0
        per_column = air.groupby(["I", "J"]).size()
        assert per_column.nunique() > 1
