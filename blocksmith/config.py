"""Generator configuration.

Tuning knobs for the generation pipeline: chunking thresholds, the maximum
grid the engine accepts, cache bounds and the economic model used to derive
block values. Configuration can be built in code or loaded from a YAML or
JSON file.

Example config.yaml:

    chunk_threshold: 50000
    chunk_size: 10000
    cache_capacity: 4
    economics:
      cu_factor: 22.0
      processing_cost: 12.5
"""

import json
import logging
import math
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Optional, Union

import yaml

from blocksmith.utils.errors import raise_parameter_error

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EconomicParams:
    """Economic value model for mining blocks.

    Ore value is ``cu * cu_factor + au * au_factor - processing_cost`` per
    tonne. Waste blocks are worth ``waste_value`` per tonne. When
    ``per_tonne`` is False both are multiplied by block tonnage
    (density times cell volume).

    Attributes:
        cu_factor: Value per tonne for each percent of copper.
        au_factor: Value per tonne for each g/t of gold.
        processing_cost: Processing cost per tonne of ore.
        waste_value: Value per tonne of waste (usually negative).
        per_tonne: Report values per tonne instead of per block.
    """

    cu_factor: float = 20.0
    au_factor: float = 50.0
    processing_cost: float = 10.0
    waste_value: float = -15.0
    per_tonne: bool = True

    def __post_init__(self):
        """Validate economic parameters."""
        for name in ("cu_factor", "au_factor", "processing_cost", "waste_value"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise_parameter_error(name, value, constraint="must be a number")
            if not math.isfinite(value):
                raise_parameter_error(name, value, constraint="must be finite")
            object.__setattr__(self, name, float(value))
        if not isinstance(self.per_tonne, bool):
            raise_parameter_error(
                "per_tonne", self.per_tonne, constraint="must be a boolean"
            )


@dataclass(frozen=True)
class GeneratorConfig:
    """Configuration for the generation pipeline.

    Attributes:
        chunk_threshold: Grids with at least this many cells are generated in
            chunks, report progress and are eligible for caching.
        chunk_size: Cells per chunk in chunked mode. Bounds cancellation
            latency to one chunk.
        max_cells: Largest grid (nx * ny * nz) accepted.
        max_cells_per_axis: Largest cell count along any one axis.
        max_cell_size: Largest cell edge length in meters.
        cache_capacity: Maximum number of cached models.
        cache_max_bytes: Memory budget for cached models.
        yield_interval: Seconds the async driver sleeps between chunks.
        economics: Economic value model.
    """

    chunk_threshold: int = 50_000
    chunk_size: int = 10_000
    max_cells: int = 100_000_000
    max_cells_per_axis: int = 1000
    max_cell_size: float = 10_000.0
    cache_capacity: int = 8
    cache_max_bytes: int = 512 * 1024 * 1024
    yield_interval: float = 0.0
    economics: EconomicParams = field(default_factory=EconomicParams)

    def __post_init__(self):
        """Validate configuration values."""
        for name in (
            "chunk_threshold",
            "chunk_size",
            "max_cells",
            "max_cells_per_axis",
            "cache_capacity",
            "cache_max_bytes",
        ):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise_parameter_error(name, value, constraint="must be an integer")

        if self.chunk_threshold < 1:
            raise_parameter_error(
                "chunk_threshold", self.chunk_threshold, constraint="must be >= 1"
            )
        if self.chunk_size < 1:
            raise_parameter_error(
                "chunk_size", self.chunk_size, constraint="must be >= 1"
            )
        if self.max_cells < 1:
            raise_parameter_error("max_cells", self.max_cells, constraint="must be >= 1")
        if self.max_cells_per_axis < 1:
            raise_parameter_error(
                "max_cells_per_axis", self.max_cells_per_axis, constraint="must be >= 1"
            )
        if self.cache_capacity < 0:
            raise_parameter_error(
                "cache_capacity", self.cache_capacity, constraint="must be >= 0"
            )
        if self.cache_max_bytes < 0:
            raise_parameter_error(
                "cache_max_bytes", self.cache_max_bytes, constraint="must be >= 0"
            )

        for name in ("max_cell_size", "yield_interval"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise_parameter_error(name, value, constraint="must be a number")
            if not math.isfinite(value):
                raise_parameter_error(name, value, constraint="must be finite")
            object.__setattr__(self, name, float(value))

        if self.max_cell_size <= 0:
            raise_parameter_error(
                "max_cell_size", self.max_cell_size, constraint="must be > 0"
            )
        if self.yield_interval < 0:
            raise_parameter_error(
                "yield_interval", self.yield_interval, constraint="must be >= 0"
            )

        if isinstance(self.economics, dict):
            object.__setattr__(self, "economics", _economics_from_dict(self.economics))
        elif not isinstance(self.economics, EconomicParams):
            raise_parameter_error(
                "economics",
                self.economics,
                constraint="must be an EconomicParams or a mapping",
            )

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to a plain dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GeneratorConfig":
        """Build a configuration from a dictionary, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise_parameter_error(
                unknown[0],
                data[unknown[0]],
                valid_values=sorted(known),
                constraint="unknown configuration key",
            )
        return cls(**data)

    def with_overrides(self, **overrides: Any) -> "GeneratorConfig":
        """Return a copy with selected fields replaced."""
        return GeneratorConfig.from_dict({**_shallow_dict(self), **overrides})


def _shallow_dict(config: GeneratorConfig) -> dict[str, Any]:
    return {f.name: getattr(config, f.name) for f in fields(config)}


def _economics_from_dict(data: dict[str, Any]) -> EconomicParams:
    known = {f.name for f in fields(EconomicParams)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise_parameter_error(
            f"economics.{unknown[0]}",
            data[unknown[0]],
            valid_values=sorted(known),
            constraint="unknown economics key",
        )
    return EconomicParams(**data)


def load_config(
    path: Optional[Union[str, Path]] = None, **overrides: Any
) -> GeneratorConfig:
    """Load generator configuration from a YAML or JSON file.

    Args:
        path: Optional path to a ``.yaml``, ``.yml`` or ``.json`` file. When
            None, defaults are used.
        **overrides: Field values applied on top of the file contents.

    Returns:
        GeneratorConfig instance.

    Raises:
        FileNotFoundError: If the file does not exist.
        ParameterError: If the format is unsupported or a value is invalid.

    Example:
        >>> from blocksmith.config import load_config
        >>> config = load_config("generator.yaml", chunk_size=5000)
    """
    data: dict[str, Any] = {}
    if path is not None:
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        suffix = path.suffix.lower()
        with open(path) as f:
            if suffix in (".yaml", ".yml"):
                loaded = yaml.safe_load(f)
            elif suffix == ".json":
                loaded = json.load(f)
            else:
                raise_parameter_error(
                    "path",
                    str(path),
                    valid_values=[".yaml", ".yml", ".json"],
                    constraint="unsupported config file format",
                )

        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise_parameter_error(
                "path", str(path), constraint="config file must contain a mapping"
            )
        data.update(loaded)
        logger.info(f"Loaded generator config from {path}")

    economics_override = overrides.pop("economics", None)
    data.update(overrides)
    if economics_override is not None:
        if isinstance(economics_override, EconomicParams):
            data["economics"] = economics_override
        else:
            base = data.get("economics") or {}
            if isinstance(base, EconomicParams):
                base = asdict(base)
            data["economics"] = {**base, **economics_override}

    return GeneratorConfig.from_dict(data)


def save_config(config: GeneratorConfig, path: Union[str, Path]) -> None:
    """Write configuration to a YAML or JSON file."""
    path = Path(path)
    suffix = path.suffix.lower()
    with open(path, "w") as f:
        if suffix in (".yaml", ".yml"):
            yaml.safe_dump(config.to_dict(), f, sort_keys=False)
        elif suffix == ".json":
            json.dump(config.to_dict(), f, indent=2)
        else:
            raise_parameter_error(
                "path",
                str(path),
                valid_values=[".yaml", ".yml", ".json"],
                constraint="unsupported config file format",
            )


DEFAULT_CONFIG = GeneratorConfig()

__all__ = [
    "DEFAULT_CONFIG",
    "EconomicParams",
    "GeneratorConfig",
    "load_config",
    "save_config",
]
