"""Generation request validation.

Layer 3: Tasks - User intent translation.

Every contract check on a GenerationRequest happens here, before any
generation starts. Failures raise ParameterError naming the field that
failed and why; nothing is partially processed.
"""

import logging
import math
from typing import Any, Mapping, Optional

from blocksmith.config import DEFAULT_CONFIG, GeneratorConfig
from blocksmith.objects.request import GenerationRequest
from blocksmith.primitives.patterns import (
    ParameterSpec,
    get_pattern,
    parameter_specs,
    resolve_parameters,
)
from blocksmith.utils.errors import raise_parameter_error

logger = logging.getLogger(__name__)

_AXES = ("x", "y", "z")


def validate_grid(request: GenerationRequest, config: GeneratorConfig) -> None:
    """Check grid size limits.

    Raises:
        ParameterError: If a limit is exceeded.
    """
    grid = request.grid
    for axis, count in zip(_AXES, grid.counts):
        if count > config.max_cells_per_axis:
            raise_parameter_error(
                f"counts.{axis}",
                count,
                constraint=f"must be <= {config.max_cells_per_axis} cells per axis",
            )
    for axis, size in zip(_AXES, grid.cell_size):
        if size > config.max_cell_size:
            raise_parameter_error(
                f"cell_size.{axis}",
                size,
                constraint=f"must be <= {config.max_cell_size:g} m",
            )
    if grid.n_cells > config.max_cells:
        raise_parameter_error(
            "counts",
            grid.counts,
            constraint=f"grid has {grid.n_cells:,} cells, maximum is {config.max_cells:,}",
            suggestion="Use fewer or larger cells",
        )


def validate_value(spec: ParameterSpec, value: Any) -> None:
    """Check one parameter value against its declaration.

    Raises:
        ParameterError: If the value has the wrong type or is out of range.
    """
    if spec.kind is bool:
        if not isinstance(value, bool):
            raise_parameter_error(spec.name, value, constraint="must be a boolean")
        return

    if spec.kind is str:
        if not isinstance(value, str):
            raise_parameter_error(spec.name, value, constraint="must be a string")
        if spec.choices is not None and value not in spec.choices:
            raise_parameter_error(spec.name, value, valid_values=list(spec.choices))
        return

    if spec.kind is int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise_parameter_error(spec.name, value, constraint="must be an integer")
    elif isinstance(value, bool) or not isinstance(value, (int, float)):
        raise_parameter_error(spec.name, value, constraint="must be a number")
    elif not math.isfinite(value):
        raise_parameter_error(spec.name, value, constraint="must be finite")

    if spec.minimum is not None and value < spec.minimum:
        raise_parameter_error(
            spec.name, value, constraint=f"must be >= {spec.minimum:g}"
        )
    if spec.maximum is not None and value > spec.maximum:
        raise_parameter_error(
            spec.name, value, constraint=f"must be <= {spec.maximum:g}"
        )


def validate_parameters(specs: tuple, parameters: Mapping[str, Any]) -> None:
    """Check supplied parameters against a set of declarations.

    Raises:
        ParameterError: For unknown names, missing required parameters and
            invalid values.
    """
    by_name = {spec.name: spec for spec in specs}
    for name in parameters:
        if name not in by_name:
            raise_parameter_error(
                name,
                parameters[name],
                valid_values=sorted(by_name),
                constraint="unknown parameter for this pattern",
            )
    for spec in specs:
        if spec.name not in parameters:
            if spec.required:
                raise_parameter_error(
                    spec.name, None, constraint="required parameter is missing"
                )
            continue
        validate_value(spec, parameters[spec.name])


def validate_request(
    request: GenerationRequest, config: Optional[GeneratorConfig] = None
) -> GenerationRequest:
    """Validate a request before generation.

    Args:
        request: Request to check.
        config: Limits to enforce, defaults to ``DEFAULT_CONFIG``.

    Returns:
        The request, unchanged.

    Raises:
        ParameterError: Naming the first field that failed.

    Example:
        >>> from blocksmith.objects import GenerationRequest, GridSpec
        >>> grid = GridSpec(origin=(0, 0, 0), cell_size=(10, 10, 10), counts=(4, 4, 2))
        >>> request = GenerationRequest(grid, "layered", {"layer_thickness": 0})
        >>> validate_request(request)  # raises ParameterError naming layer_thickness
    """
    if not isinstance(request, GenerationRequest):
        raise_parameter_error(
            "request", request, constraint="must be a GenerationRequest"
        )
    config = config or DEFAULT_CONFIG
    validate_grid(request, config)

    definition = get_pattern(request.pattern)
    validate_parameters(parameter_specs(request.pattern), request.parameters)
    if definition.check is not None:
        definition.check(resolve_parameters(request.pattern, request.parameters))

    logger.debug(f"Validated request {request.fingerprint()[:12]} ({request.pattern.value})")
    return request
