"""Block model generator.

Layer 4: Workflows - Public entry points.

BlockModelGenerator ties the scheduler to a model cache. Requests are
serialized: a second caller waits until the in-flight generation finishes
or is cancelled. Large models (at or above ``chunk_threshold`` cells) are
served from and stored in the cache; cache failures are logged and never
reach the caller.
"""

import asyncio
import logging
import threading
from pathlib import Path
from typing import Any, Mapping, Optional, Union

from blocksmith.config import DEFAULT_CONFIG, GeneratorConfig
from blocksmith.objects.blockmodel import BlockModel
from blocksmith.objects.gridspec import GridSpec
from blocksmith.objects.request import GenerationRequest
from blocksmith.tasks.generationtask import (
    CancellationToken,
    GenerationOutcome,
    GenerationScheduler,
    GenerationState,
    ProgressCallback,
)
from blocksmith.tasks.validation import validate_request
from blocksmith.utils.errors import CacheUnavailableError
from blocksmith.workflows.cache import ModelCache
from blocksmith.workflows.persistence import load_request

logger = logging.getLogger(__name__)

# Seconds an async caller waits between attempts to take the generator lock
LOCK_POLL_INTERVAL = 0.01


class BlockModelGenerator:
    """Generate block models with caching and serialized execution.

    Args:
        config: Generator configuration. Defaults to ``DEFAULT_CONFIG``.
        cache: Model cache to use. When None a cache sized from ``config`` is
            created. Pass ``ModelCache(capacity=0)`` to disable caching.

    Example:
        >>> from blocksmith import BlockModelGenerator, GenerationRequest, GridSpec
        >>> grid = GridSpec(origin=(0, 0, 0), cell_size=(10, 10, 10), counts=(4, 4, 2))
        >>> generator = BlockModelGenerator()
        >>> model = generator.generate_model(GenerationRequest(grid, "layered"))
        >>> len(model)
        32
    """

    def __init__(
        self,
        config: Optional[GeneratorConfig] = None,
        cache: Optional[ModelCache] = None,
    ):
        self.config = config or DEFAULT_CONFIG
        self.cache = (
            cache
            if cache is not None
            else ModelCache(self.config.cache_capacity, self.config.cache_max_bytes)
        )
        self.scheduler = GenerationScheduler(self.config)
        self._lock = threading.Lock()

    @property
    def state(self) -> GenerationState:
        """IDLE or RUNNING."""
        return self.scheduler.state

    def is_cacheable(self, request: GenerationRequest) -> bool:
        """Whether a request's model goes through the cache."""
        return request.n_cells >= self.config.chunk_threshold

    def _cached(self, request: GenerationRequest) -> Optional[GenerationOutcome]:
        try:
            model = self.cache.get(request.fingerprint())
        except CacheUnavailableError as e:
            logger.warning(f"Model cache unavailable, generating uncached: {e}")
            return None
        if model is None:
            return None
        logger.info(
            f"Serving {request.n_cells:,} blocks ({request.pattern.value}) from cache"
        )
        return GenerationOutcome(GenerationState.COMPLETED, request, model=model)

    def _lookup(self, request: GenerationRequest) -> Optional[GenerationOutcome]:
        if not self.is_cacheable(request):
            return None
        return self._cached(request)

    def _store(self, outcome: GenerationOutcome) -> None:
        if not outcome.completed or not self.is_cacheable(outcome.request):
            return
        try:
            stored = self.cache.put(outcome.request.fingerprint(), outcome.model)
        except (CacheUnavailableError, MemoryError) as e:
            logger.warning(f"Could not cache generated model: {e}")
            return
        if not stored:
            logger.debug("Generated model not cached: exceeds cache budget")

    def generate(
        self,
        request: GenerationRequest,
        progress: Optional[ProgressCallback] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> GenerationOutcome:
        """Generate a request, using the cache for large models.

        Args:
            request: Request to generate.
            progress: Optional callback for progress reports.
            cancel_token: Optional cancellation flag.

        Returns:
            GenerationOutcome in a terminal state.

        Raises:
            ParameterError: If the request is invalid. Nothing is generated.
        """
        validate_request(request, self.config)
        cached = self._lookup(request)
        if cached is not None:
            return cached

        with self._lock:
            # An earlier caller may have generated this request while we waited
            cached = self._lookup(request)
            if cached is not None:
                return cached
            outcome = self.scheduler.run(request, progress, cancel_token)
            self._store(outcome)
        return outcome

    async def generate_async(
        self,
        request: GenerationRequest,
        progress: Optional[ProgressCallback] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> GenerationOutcome:
        """Generate a request from an event loop, suspending between chunks."""
        validate_request(request, self.config)
        cached = self._lookup(request)
        if cached is not None:
            return cached

        while not self._lock.acquire(blocking=False):
            await asyncio.sleep(max(self.config.yield_interval, LOCK_POLL_INTERVAL))
        try:
            cached = self._lookup(request)
            if cached is not None:
                return cached
            outcome = await self.scheduler.run_async(request, progress, cancel_token)
            self._store(outcome)
        finally:
            self._lock.release()
        return outcome

    def generate_model(
        self,
        request: GenerationRequest,
        progress: Optional[ProgressCallback] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> BlockModel:
        """Generate a request and return its model.

        Raises:
            GenerationCancelledError: If the generation was cancelled.
            ResourceExhaustedError: If memory ran out.
        """
        return self.generate(request, progress, cancel_token).unwrap()

    def regenerate(
        self,
        path: Union[str, Path],
        progress: Optional[ProgressCallback] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> BlockModel:
        """Reload a saved request and generate its model again."""
        request = load_request(path)
        logger.info(f"Regenerating {request.pattern.value} model from {path}")
        return self.generate_model(request, progress, cancel_token)

    def __repr__(self) -> str:
        return f"BlockModelGenerator(state={self.state.value}, cache={self.cache!r})"


def generate_block_model(
    grid: Union[GridSpec, Mapping[str, Any]],
    pattern: str,
    parameters: Optional[Mapping[str, Any]] = None,
    seed: int = 0,
    config: Optional[GeneratorConfig] = None,
) -> BlockModel:
    """Generate one block model without caching.

    Args:
        grid: GridSpec or a mapping with origin, cell_size and counts.
        pattern: Pattern id, e.g. ``"porphyry_ore"``.
        parameters: Pattern parameters.
        seed: Random seed.
        config: Optional generator configuration.

    Returns:
        BlockModel instance.

    Example:
        >>> from blocksmith import generate_block_model
        >>> grid = {"origin": [0, 0, 0], "cell_size": [10, 10, 10], "counts": [20, 20, 10]}
        >>> model = generate_block_model(grid, "porphyry_ore", seed=42)
    """
    if not isinstance(grid, GridSpec):
        grid = GridSpec.from_dict(dict(grid))
    request = GenerationRequest(grid, pattern, parameters or {}, seed)
    generator = BlockModelGenerator(config, cache=ModelCache(capacity=0))
    return generator.generate_model(request)
