"""Utility modules for BlockSmith."""

from blocksmith.utils.errors import (
    BlockSmithError,
    CacheUnavailableError,
    DataValidationError,
    GenerationBusyError,
    GenerationCancelledError,
    GenerationError,
    ParameterError,
    ResourceExhaustedError,
    format_parameter_error,
    format_validation_error,
    raise_parameter_error,
    raise_validation_error,
)

__all__ = [
    "BlockSmithError",
    "CacheUnavailableError",
    "DataValidationError",
    "GenerationBusyError",
    "GenerationCancelledError",
    "GenerationError",
    "ParameterError",
    "ResourceExhaustedError",
    "format_validation_error",
    "format_parameter_error",
    "raise_validation_error",
    "raise_parameter_error",
]
