"""Chunked generation scheduler.

Layer 3: Tasks - User intent translation.

A GenerationJob is an explicit resumable computation: each ``step()``
processes one chunk of cells through the synthesize and standardize
pipeline. Drivers step a job to completion synchronously (``run``) or
cooperatively from an event loop (``run_async``), which suspends between
chunks and nowhere else.

Job lifecycle: RUNNING -> COMPLETED | CANCELLED | FAILED. The scheduler
itself is IDLE or RUNNING and returns to IDLE whenever its job ends.

Grids below ``chunk_threshold`` cells are generated in one step with no
progress events. Larger grids are split into ``chunk_size`` chunks; after
each chunk a GenerationProgress is reported. Progress increases strictly
and reaches the total exactly once, as the last report before completion.
"""

import asyncio
import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterator, Optional

import pandas as pd

from blocksmith.config import DEFAULT_CONFIG, GeneratorConfig
from blocksmith.objects.blockmodel import BlockModel
from blocksmith.objects.request import GenerationRequest
from blocksmith.primitives.grid import cell_batch, iter_chunks
from blocksmith.primitives.patterns import PreparedPattern, prepare_pattern, synthesize_cells
from blocksmith.primitives.random_stream import RandomStream
from blocksmith.primitives.standardize import assemble_model, standardize_chunk
from blocksmith.tasks.validation import validate_request
from blocksmith.utils.errors import (
    GenerationBusyError,
    GenerationCancelledError,
    GenerationError,
    ResourceExhaustedError,
)

logger = logging.getLogger(__name__)

ProgressCallback = Callable[["GenerationProgress"], None]


class GenerationState(str, Enum):
    """Lifecycle states of the scheduler and its jobs."""

    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (
            GenerationState.COMPLETED,
            GenerationState.CANCELLED,
            GenerationState.FAILED,
        )


@dataclass(frozen=True)
class GenerationProgress:
    """Cells processed so far out of the grid total."""

    processed: int
    total: int

    @property
    def fraction(self) -> float:
        return self.processed / self.total if self.total else 1.0

    @property
    def percent(self) -> float:
        return 100.0 * self.fraction

    @property
    def complete(self) -> bool:
        return self.processed >= self.total


class CancellationToken:
    """Cooperative cancellation flag, safe to set from any thread.

    Generation checks the flag before each chunk, so cancellation takes
    effect within one chunk.
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        """Request cancellation."""
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self.cancelled})"


@dataclass(frozen=True)
class GenerationOutcome:
    """Terminal result of one generation.

    Attributes:
        state: COMPLETED, CANCELLED or FAILED.
        request: The request that was generated.
        model: The complete model, only when COMPLETED.
        error: The triggering error, only when FAILED.
    """

    state: GenerationState
    request: GenerationRequest
    model: Optional[BlockModel] = None
    error: Optional[BaseException] = None

    @property
    def completed(self) -> bool:
        return self.state is GenerationState.COMPLETED

    @property
    def cancelled(self) -> bool:
        return self.state is GenerationState.CANCELLED

    @property
    def failed(self) -> bool:
        return self.state is GenerationState.FAILED

    def unwrap(self) -> BlockModel:
        """The model, or raise what prevented it.

        Raises:
            GenerationCancelledError: If the generation was cancelled.
            GenerationError: The failure, if the generation failed.
        """
        if self.state is GenerationState.COMPLETED and self.model is not None:
            return self.model
        if self.state is GenerationState.CANCELLED:
            raise GenerationCancelledError(
                f"Generation of {self.request.pattern.value} was cancelled"
            )
        if self.error is not None:
            raise self.error
        raise GenerationError(f"Generation ended in state {self.state.value}")


class GenerationJob:
    """One request's generation, stepped a chunk at a time.

    Jobs are created by ``GenerationScheduler.start``. Iterating a job steps
    it to the end and yields each progress report.

    Args:
        request: Validated request.
        config: Chunking and economics configuration.
        cancel_token: Optional cancellation flag.
        on_finish: Called once with the job when it reaches a terminal state.
    """

    def __init__(
        self,
        request: GenerationRequest,
        config: GeneratorConfig,
        cancel_token: Optional[CancellationToken] = None,
        on_finish: Optional[Callable[["GenerationJob"], None]] = None,
    ):
        self.request = request
        self.config = config
        self.cancel_token = cancel_token or CancellationToken()
        self._on_finish = on_finish

        total = request.grid.n_cells
        self.total = total
        self.chunked = total >= config.chunk_threshold
        chunk_size = config.chunk_size if self.chunked else total
        self._ranges = list(iter_chunks(total, chunk_size))
        self._next_range = 0
        self._chunks: list[pd.DataFrame] = []
        self._stream: Optional[RandomStream] = None
        self._prepared: Optional[PreparedPattern] = None
        self._model: Optional[BlockModel] = None
        self._error: Optional[BaseException] = None
        self._state = GenerationState.RUNNING
        self._started_at = time.perf_counter()
        self.processed = 0

        logger.info(
            f"Generating {total:,} blocks ({request.pattern.value}, seed={request.seed}) "
            f"in {len(self._ranges)} chunk(s)"
        )

    @property
    def state(self) -> GenerationState:
        return self._state

    @property
    def finished(self) -> bool:
        return self._state.is_terminal

    @property
    def n_chunks(self) -> int:
        return len(self._ranges)

    @property
    def progress(self) -> GenerationProgress:
        return GenerationProgress(self.processed, self.total)

    @property
    def outcome(self) -> GenerationOutcome:
        """Outcome of a finished job.

        Raises:
            GenerationError: If the job is still running.
        """
        if not self.finished:
            raise GenerationError("Generation job is still running")
        return GenerationOutcome(
            state=self._state,
            request=self.request,
            model=self._model if self._state is GenerationState.COMPLETED else None,
            error=self._error,
        )

    def cancel(self) -> None:
        """Request cancellation at the next chunk boundary."""
        self.cancel_token.cancel()

    def step(self) -> Optional[GenerationProgress]:
        """Advance the job by one chunk.

        Returns:
            Progress after the chunk in chunked mode, otherwise None. Also
            None for the final step that completes, cancels or finishes a
            job.

        Raises:
            Exception: Unexpected errors mark the job FAILED and propagate.
        """
        if self.finished:
            return None

        if self._model is not None:
            self._finish(GenerationState.COMPLETED)
            return None

        if self.cancel_token.cancelled:
            self._chunks.clear()
            self._finish(GenerationState.CANCELLED)
            return None

        start, stop = self._ranges[self._next_range]
        try:
            if self._prepared is None:
                self._stream = RandomStream(self.request.seed)
                self._prepared = prepare_pattern(self.request, self._stream)
            batch = cell_batch(self.request.grid, start, stop)
            raw = synthesize_cells(self._prepared, batch, self._stream)
            self._chunks.append(
                standardize_chunk(
                    batch,
                    raw,
                    self._prepared.semantics,
                    self.config.economics,
                    self.request.grid.cell_volume,
                )
            )
            self._next_range += 1
            self.processed = stop
            if self._next_range == len(self._ranges):
                self._model = assemble_model(
                    self.request, self._chunks, self._prepared.semantics
                )
                self._chunks = []
        except MemoryError as e:
            self._chunks.clear()
            self._error = ResourceExhaustedError(
                f"Out of memory generating cells {start:,}-{stop:,} of {self.total:,}",
                suggestion="Reduce the grid size or the chunk size",
                details={"start": start, "stop": stop, "total": self.total},
            )
            self._error.__cause__ = e
            logger.error(f"Generation failed: {self._error.message}")
            self._finish(GenerationState.FAILED)
            return None
        except Exception as e:
            self._chunks.clear()
            self._error = e
            logger.error(f"Generation failed in chunk {start:,}-{stop:,}: {e}")
            self._finish(GenerationState.FAILED)
            raise

        if self.chunked:
            logger.debug(f"Chunk done: {self.processed:,}/{self.total:,} cells")
            return self.progress
        return None

    def __iter__(self) -> Iterator[GenerationProgress]:
        """Step to the end, yielding every progress report."""
        while not self.finished:
            progress = self.step()
            if progress is not None:
                yield progress

    def abort(self) -> None:
        """Stop a job that will not be stepped further."""
        if not self.finished:
            self.cancel()
            self._model = None
            self.step()

    def _finish(self, state: GenerationState) -> None:
        self._state = state
        elapsed = time.perf_counter() - self._started_at
        if state is GenerationState.COMPLETED:
            logger.info(
                f"Generated {self.total:,} blocks ({self.request.pattern.value}) "
                f"in {elapsed:.3f}s"
            )
        elif state is GenerationState.CANCELLED:
            self._model = None
            logger.warning(
                f"Generation cancelled after {self.processed:,}/{self.total:,} cells"
            )
        if self._on_finish is not None:
            callback, self._on_finish = self._on_finish, None
            callback(self)

    def __repr__(self) -> str:
        return (
            f"GenerationJob(pattern={self.request.pattern.value}, state={self._state.value}, "
            f"progress={self.processed}/{self.total})"
        )


class GenerationScheduler:
    """Runs one generation at a time.

    Args:
        config: Generator configuration. Defaults to ``DEFAULT_CONFIG``.

    Example:
        >>> scheduler = GenerationScheduler()
        >>> outcome = scheduler.run(request, progress=lambda p: print(f"{p.percent:.0f}%"))
        >>> model = outcome.unwrap()
    """

    def __init__(self, config: Optional[GeneratorConfig] = None):
        self.config = config or DEFAULT_CONFIG
        self._lock = threading.Lock()
        self._active: Optional[GenerationJob] = None

    @property
    def state(self) -> GenerationState:
        with self._lock:
            return GenerationState.IDLE if self._active is None else GenerationState.RUNNING

    @property
    def active_job(self) -> Optional[GenerationJob]:
        with self._lock:
            return self._active

    def start(
        self,
        request: GenerationRequest,
        cancel_token: Optional[CancellationToken] = None,
    ) -> GenerationJob:
        """Validate a request and create its job.

        Raises:
            ParameterError: If the request is invalid.
            GenerationBusyError: If another job is still running.
        """
        validate_request(request, self.config)
        with self._lock:
            if self._active is not None:
                raise GenerationBusyError(
                    "A generation is already running",
                    suggestion="Wait for it to finish or cancel it first",
                    details={"active": self._active.request.fingerprint()},
                )
            job = GenerationJob(request, self.config, cancel_token, on_finish=self._release)
            self._active = job
        return job

    def _release(self, job: GenerationJob) -> None:
        with self._lock:
            if self._active is job:
                self._active = None

    def run(
        self,
        request: GenerationRequest,
        progress: Optional[ProgressCallback] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> GenerationOutcome:
        """Generate a request to the end on the calling thread.

        Args:
            request: Request to generate.
            progress: Optional callback for progress reports (chunked mode).
            cancel_token: Optional cancellation flag.

        Returns:
            GenerationOutcome in a terminal state.
        """
        job = self.start(request, cancel_token)
        try:
            for report in job:
                if progress is not None:
                    progress(report)
        finally:
            job.abort()
        return job.outcome

    async def run_async(
        self,
        request: GenerationRequest,
        progress: Optional[ProgressCallback] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> GenerationOutcome:
        """Generate a request, yielding to the event loop between chunks."""
        job = self.start(request, cancel_token)
        try:
            while not job.finished:
                report = job.step()
                if report is not None and progress is not None:
                    progress(report)
                if not job.finished:
                    await asyncio.sleep(self.config.yield_interval)
        finally:
            job.abort()
        return job.outcome
