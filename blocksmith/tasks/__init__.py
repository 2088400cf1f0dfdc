"""Layer 3: Tasks - User intent translation.

Tasks translate a generation request into validated primitive calls and
drive them chunk by chunk. Tasks do not touch files or caches.
"""

from blocksmith.tasks.generationtask import (
    CancellationToken,
    GenerationJob,
    GenerationOutcome,
    GenerationProgress,
    GenerationScheduler,
    GenerationState,
)
from blocksmith.tasks.validation import (
    validate_grid,
    validate_parameters,
    validate_request,
    validate_value,
)

__all__ = [
    "CancellationToken",
    "GenerationJob",
    "GenerationOutcome",
    "GenerationProgress",
    "GenerationScheduler",
    "GenerationState",
    "validate_grid",
    "validate_parameters",
    "validate_request",
    "validate_value",
]
