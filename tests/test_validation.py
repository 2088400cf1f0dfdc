"""Tests for request validation."""

import pytest

from blocksmith.config import GeneratorConfig
from blocksmith.objects import GenerationRequest, GridSpec
from blocksmith.primitives.patterns import ParameterSpec
from blocksmith.tasks.validation import validate_parameters, validate_request, validate_value
from blocksmith.utils.errors import ParameterError


def _request(grid, pattern, **parameters):
    return GenerationRequest(grid, pattern, parameters)


class TestValidateRequest:
    """Tests for validate_request."""

    def test_valid_request_returned(self, small_grid):
        """Test that a valid request passes through unchanged."""
        request = _request(small_grid, "layered", layer_thickness=2)
        assert validate_request(request) is request

    def test_unknown_parameter(self, small_grid):
        """Test that parameters a pattern does not declare are rejected."""
        with pytest.raises(ParameterError) as info:
            validate_request(_request(small_grid, "checkerboard", thickness=2))
        assert info.value.parameter == "thickness"
        assert "period" in str(info.value)

    def test_common_parameters_accepted(self, small_grid):
        """Test that air parameters are accepted by every pattern."""
        validate_request(_request(small_grid, "salt_dome", air_thickness=10.0, topography_relief=5))

    @pytest.mark.parametrize(
        "pattern, name, value",
        [
            ("layered", "layer_thickness", 0),
            ("layered", "tilt_x", 60.0),
            ("ore_horizon", "thickness", 1.5),
            ("vein_ore", "n_veins", 11),
            ("inclined_vein", "dip", 95.0),
            ("random", "weight_high", -1.0),
            ("uniform", "air_thickness", -5.0),
        ],
    )
    def test_out_of_range(self, small_grid, pattern, name, value):
        """Test range checks name the parameter."""
        with pytest.raises(ParameterError) as info:
            validate_request(_request(small_grid, pattern, **{name: value}))
        assert info.value.parameter == name

    @pytest.mark.parametrize(
        "pattern, name, value",
        [
            ("layered", "layer_thickness", 1.5),
            ("layered", "axis", 2),
            ("porphyry_ore", "supergene", 1),
            ("gradient", "center_x", "middle"),
        ],
    )
    def test_wrong_kind(self, small_grid, pattern, name, value):
        """Test type checks name the parameter."""
        with pytest.raises(ParameterError) as info:
            validate_request(_request(small_grid, pattern, **{name: value}))
        assert info.value.parameter == name

    def test_choices(self, small_grid):
        """Test that string parameters must be one of their choices."""
        with pytest.raises(ParameterError, match="Valid values"):
            validate_request(_request(small_grid, "layered", axis="w"))

    def test_cross_parameter_check(self, small_grid):
        """Test that pattern specific checks run after per-value checks."""
        with pytest.raises(ParameterError) as info:
            validate_request(_request(small_grid, "gradient", threshold_low=0.2))
        assert info.value.parameter == "threshold_med"

    def test_not_a_request(self):
        """Test that only GenerationRequest instances are accepted."""
        with pytest.raises(ParameterError):
            validate_request({"pattern": "layered"})


class TestGridLimits:
    """Tests for configured grid limits."""

    def test_max_cells(self, small_grid):
        """Test the total cell limit."""
        config = GeneratorConfig(max_cells=31)
        with pytest.raises(ParameterError) as info:
            validate_request(_request(small_grid, "uniform"), config)
        assert info.value.parameter == "counts"

    def test_max_cells_per_axis(self):
        """Test the per-axis limit names the axis."""
        grid = GridSpec(origin=(0, 0, 0), cell_size=(1, 1, 1), counts=(2, 12, 2))
        with pytest.raises(ParameterError) as info:
            validate_request(_request(grid, "uniform"), GeneratorConfig(max_cells_per_axis=10))
        assert info.value.parameter == "counts.y"

    def test_max_cell_size(self):
        """Test the cell size limit names the axis."""
        grid = GridSpec(origin=(0, 0, 0), cell_size=(1, 1, 500), counts=(2, 2, 2))
        with pytest.raises(ParameterError) as info:
            validate_request(_request(grid, "uniform"), GeneratorConfig(max_cell_size=100.0))
        assert info.value.parameter == "cell_size.z"


class TestValidateParameters:
    """Tests for the generic parameter checks."""

    def test_required(self):
        """Test that required parameters must be supplied."""
        specs = (ParameterSpec("depth", float, required=True),)
        with pytest.raises(ParameterError, match="required"):
            validate_parameters(specs, {})

    def test_int_accepted_for_float(self):
        """Test that integers satisfy float parameters."""
        validate_value(ParameterSpec("depth", float, minimum=0.0), 3)

    def test_non_finite(self):
        """Test that infinite floats are rejected."""
        with pytest.raises(ParameterError, match="finite"):
            validate_value(ParameterSpec("depth", float), float("inf"))
