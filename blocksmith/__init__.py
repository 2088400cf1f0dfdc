"""BlockSmith: deterministic synthetic block models.

Generates 3D voxel block models that mimic mining deposits (porphyries,
veins, ore horizons) and petroleum traps (salt domes) for use as test data.

Layers:
    objects: Immutable data (GridSpec, GenerationRequest, BlockModel).
    primitives: Pure operations (grid indexing, random stream, patterns).
    tasks: Validation and the chunked generation scheduler.
    workflows: Generator with model cache, persistence and export.
"""

from blocksmith.config import EconomicParams, GeneratorConfig, load_config
from blocksmith.objects import (
    Block,
    BlockModel,
    FieldSemantics,
    GenerationRequest,
    GridSpec,
    ModelStatistics,
    PatternType,
)
from blocksmith.tasks import (
    CancellationToken,
    GenerationOutcome,
    GenerationProgress,
    GenerationScheduler,
    GenerationState,
    validate_request,
)
from blocksmith.utils.errors import (
    BlockSmithError,
    CacheUnavailableError,
    DataValidationError,
    GenerationCancelledError,
    GenerationError,
    ParameterError,
    ResourceExhaustedError,
)
from blocksmith.workflows import (
    BlockModelGenerator,
    ModelCache,
    blocks_to_csv,
    export_block_model_gslib,
    generate_block_model,
    load_request,
    save_request,
    write_block_model_csv,
)

__version__ = "0.1.0"

__all__ = [
    "Block",
    "BlockModel",
    "BlockModelGenerator",
    "BlockSmithError",
    "CacheUnavailableError",
    "CancellationToken",
    "DataValidationError",
    "EconomicParams",
    "FieldSemantics",
    "GenerationCancelledError",
    "GenerationError",
    "GenerationOutcome",
    "GenerationProgress",
    "GenerationRequest",
    "GenerationScheduler",
    "GenerationState",
    "GeneratorConfig",
    "GridSpec",
    "ModelCache",
    "ModelStatistics",
    "ParameterError",
    "PatternType",
    "ResourceExhaustedError",
    "blocks_to_csv",
    "export_block_model_gslib",
    "generate_block_model",
    "load_config",
    "load_request",
    "save_request",
    "validate_request",
    "write_block_model_csv",
]
