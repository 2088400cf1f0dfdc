"""Generation request object.

Layer 1: Objects - Immutable data representations.

A GenerationRequest fully determines a block model: generating twice from
the same request yields identical blocks. Requests, not block arrays, are
what gets saved and reloaded.
"""

import hashlib
import json
import math
import numbers
from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Union

from blocksmith.objects.gridspec import GridSpec
from blocksmith.utils.errors import raise_parameter_error, raise_validation_error

MAX_SEED = 2**63

ParameterValue = Union[int, float, str, bool]


class PatternType(str, Enum):
    """The twelve supported synthesis patterns."""

    UNIFORM = "uniform"
    LAYERED = "layered"
    GRADIENT = "gradient"
    CHECKERBOARD = "checkerboard"
    RANDOM = "random"
    RANDOM_CLUSTERS = "random_clusters"
    ORE_HORIZON = "ore_horizon"
    INCLINED_VEIN = "inclined_vein"
    ELLIPSOID_ORE = "ellipsoid_ore"
    VEIN_ORE = "vein_ore"
    PORPHYRY_ORE = "porphyry_ore"
    SALT_DOME = "salt_dome"

    @classmethod
    def parse(cls, value: Union[str, "PatternType"]) -> "PatternType":
        """Resolve a pattern id, raising ParameterError for unknown ids."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise_parameter_error(
                "pattern",
                value,
                valid_values=[p.value for p in cls],
                suggestion="Use one of the supported pattern ids",
            )


@dataclass(frozen=True)
class GenerationRequest:
    """Immutable description of one block model to generate.

    Attributes:
        grid: Grid definition.
        pattern: Pattern to synthesize (PatternType or its string id).
        parameters: Pattern parameters. Values must be int, float, str or
            bool. Stored as a read-only mapping.
        seed: Random seed, 0 <= seed < 2**63.
    """

    grid: GridSpec
    pattern: PatternType
    parameters: Mapping[str, ParameterValue] = field(default_factory=dict)
    seed: int = 0

    def __post_init__(self):
        """Validate and freeze request fields."""
        if not isinstance(self.grid, GridSpec):
            raise_parameter_error(
                "grid", self.grid, constraint="must be a GridSpec instance"
            )
        object.__setattr__(self, "pattern", PatternType.parse(self.pattern))

        if not isinstance(self.parameters, Mapping):
            raise_parameter_error(
                "parameters", self.parameters, constraint="must be a mapping"
            )
        params = {}
        for name, value in self.parameters.items():
            if not isinstance(name, str):
                raise_parameter_error(
                    "parameters", name, constraint="parameter names must be strings"
                )
            params[name] = _normalize_value(name, value)
        object.__setattr__(self, "parameters", MappingProxyType(params))

        seed = self.seed
        if isinstance(seed, bool) or not isinstance(seed, numbers.Integral):
            raise_parameter_error("seed", seed, constraint="must be an integer")
        if not 0 <= seed < MAX_SEED:
            raise_parameter_error(
                "seed", seed, constraint=f"must satisfy 0 <= seed < {MAX_SEED}"
            )
        object.__setattr__(self, "seed", int(seed))

    @property
    def n_cells(self) -> int:
        return self.grid.n_cells

    def with_seed(self, seed: int) -> "GenerationRequest":
        """Return an identical request with a different seed."""
        return replace(self, seed=seed)

    def with_parameters(self, **parameters: ParameterValue) -> "GenerationRequest":
        """Return a copy with parameters added or replaced."""
        return replace(self, parameters={**self.parameters, **parameters})

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-compatible dictionary."""
        return {
            "grid": self.grid.to_dict(),
            "pattern": self.pattern.value,
            "parameters": dict(self.parameters),
            "seed": self.seed,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "GenerationRequest":
        """Create a request from a dictionary produced by ``to_dict``.

        Raises:
            DataValidationError: If the mapping lacks required fields.
            ParameterError: If a field value is invalid.
        """
        if not isinstance(data, Mapping):
            raise_validation_error(
                "Generation request must be a mapping",
                expected="mapping",
                received=type(data).__name__,
            )
        missing = [key for key in ("grid", "pattern") if key not in data]
        if missing:
            raise_validation_error(
                f"Generation request is missing required field '{missing[0]}'",
                expected="grid, pattern, parameters, seed",
                received=", ".join(sorted(data)),
            )
        grid = data["grid"]
        if not isinstance(grid, GridSpec):
            if not isinstance(grid, Mapping):
                raise_validation_error(
                    "Field 'grid' must be a mapping",
                    received=type(grid).__name__,
                )
            grid = GridSpec.from_dict(grid)
        return cls(
            grid=grid,
            pattern=data["pattern"],
            parameters=data.get("parameters") or {},
            seed=data.get("seed", 0),
        )

    def fingerprint(self) -> str:
        """Content hash of every request field.

        Parameter order does not matter. Requests that differ in any field,
        including only the seed, produce different fingerprints.

        Returns:
            Hex SHA-256 digest.
        """
        canonical = json.dumps(
            self.to_dict(), sort_keys=True, separators=(",", ":"), allow_nan=False
        )
        return hashlib.sha256(canonical.encode("utf-8")).hexdigest()

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"GenerationRequest(pattern={self.pattern.value}, grid={self.grid!r}, "
            f"parameters={dict(self.parameters)}, seed={self.seed})"
        )


def _normalize_value(name: str, value: Any) -> ParameterValue:
    if isinstance(value, (bool, str)):
        return value
    if isinstance(value, numbers.Integral):
        return int(value)
    if isinstance(value, numbers.Real):
        value = float(value)
        if not math.isfinite(value):
            raise_parameter_error(name, value, constraint="must be finite")
        return value
    if hasattr(value, "item") and not isinstance(value, (list, tuple, dict)):
        # numpy scalars, including numpy booleans
        return _normalize_value(name, value.item())
    raise_parameter_error(
        name, value, constraint="must be an int, float, str or bool"
    )
