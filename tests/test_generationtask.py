"""Tests for the chunked generation scheduler."""

import asyncio

import pytest

from blocksmith.config import GeneratorConfig
from blocksmith.objects import GenerationRequest
from blocksmith.tasks.generationtask import (
    CancellationToken,
    GenerationProgress,
    GenerationScheduler,
    GenerationState,
)
from blocksmith.utils.errors import (
    GenerationBusyError,
    GenerationCancelledError,
    GenerationError,
    ParameterError,
    ResourceExhaustedError,
)


@pytest.fixture
def scheduler(chunked_config):
    return GenerationScheduler(chunked_config)


class TestProgress:
    """Progress reporting in chunked and single-step mode."""

    def test_monotonic_and_complete_once(self, scheduler, porphyry_request):
        """Test progress strictly increases and reaches 100% exactly once, last."""
        reports = []
        outcome = scheduler.run(porphyry_request, progress=reports.append)
        assert outcome.completed
        processed = [r.processed for r in reports]
        assert processed == sorted(set(processed))
        assert processed[0] == 64
        assert [r.complete for r in reports].count(True) == 1
        assert reports[-1].percent == 100.0
        assert len(reports) == -(-porphyry_request.grid.n_cells // 64)

    def test_no_progress_below_threshold(self, scheduler, small_grid):
        """Test that small grids are generated in one step without reports."""
        reports = []
        outcome = scheduler.run(GenerationRequest(small_grid, "layered"), progress=reports.append)
        assert outcome.completed
        assert reports == []

    def test_progress_values(self):
        """Test GenerationProgress arithmetic."""
        progress = GenerationProgress(processed=250, total=1000)
        assert progress.fraction == 0.25
        assert progress.percent == 25.0
        assert not progress.complete
        assert GenerationProgress(0, 0).complete

    def test_job_iteration(self, scheduler, porphyry_request):
        """Test stepping a job by iteration."""
        job = scheduler.start(porphyry_request)
        assert scheduler.state is GenerationState.RUNNING
        assert job.n_chunks == 63
        reports = list(job)
        assert len(reports) == 63
        assert job.state is GenerationState.COMPLETED
        assert scheduler.state is GenerationState.IDLE
        assert len(job.outcome.unwrap()) == porphyry_request.grid.n_cells


class TestCancellation:
    """Cooperative cancellation."""

    def test_cancel_before_start(self, scheduler, porphyry_request):
        """Test that a pre-cancelled token produces no model."""
        token = CancellationToken()
        token.cancel()
        outcome = scheduler.run(porphyry_request, cancel_token=token)
        assert outcome.cancelled
        assert outcome.model is None
        assert scheduler.state is GenerationState.IDLE

    def test_cancel_mid_run(self, scheduler, porphyry_request):
        """Test that cancellation stops within one chunk and discards partial work."""
        token = CancellationToken()
        reports = []

        def on_progress(report):
            reports.append(report)
            if len(reports) == 3:
                token.cancel()

        outcome = scheduler.run(porphyry_request, progress=on_progress, cancel_token=token)
        assert outcome.state is GenerationState.CANCELLED
        assert len(reports) == 3
        assert outcome.model is None
        with pytest.raises(GenerationCancelledError):
            outcome.unwrap()
        assert scheduler.state is GenerationState.IDLE

    def test_job_cancel(self, scheduler, porphyry_request):
        """Test cancelling through the job handle."""
        job = scheduler.start(porphyry_request)
        job.step()
        job.cancel()
        job.step()
        assert job.state is GenerationState.CANCELLED
        assert job.processed == 64
        assert scheduler.active_job is None


class TestFailures:
    """Failure handling and scheduler state."""

    def test_memory_error(self, scheduler, porphyry_request, monkeypatch):
        """Test that exhausting memory fails the job without raising."""

        def exhausted(*args, **kwargs):
            raise MemoryError()

        monkeypatch.setattr("blocksmith.tasks.generationtask.standardize_chunk", exhausted)
        outcome = scheduler.run(porphyry_request)
        assert outcome.failed
        assert isinstance(outcome.error, ResourceExhaustedError)
        assert outcome.model is None
        with pytest.raises(ResourceExhaustedError):
            outcome.unwrap()
        assert scheduler.state is GenerationState.IDLE

    def test_unexpected_error_propagates(self, scheduler, porphyry_request, monkeypatch):
        """Test that other errors fail the job, propagate and free the scheduler."""

        def broken(*args, **kwargs):
            raise RuntimeError("broken chunk")

        monkeypatch.setattr("blocksmith.tasks.generationtask.standardize_chunk", broken)
        with pytest.raises(RuntimeError, match="broken chunk"):
            scheduler.run(porphyry_request)
        assert scheduler.state is GenerationState.IDLE

    def test_busy(self, scheduler, porphyry_request):
        """Test that a second start while running is rejected."""
        job = scheduler.start(porphyry_request)
        with pytest.raises(GenerationBusyError):
            scheduler.start(porphyry_request.with_seed(1))
        job.abort()
        assert job.state is GenerationState.CANCELLED
        assert scheduler.state is GenerationState.IDLE

    def test_invalid_request_not_started(self, scheduler, small_grid):
        """Test that validation happens before a job exists."""
        request = GenerationRequest(small_grid, "layered", {"layer_thickness": 0})
        with pytest.raises(ParameterError):
            scheduler.run(request)
        assert scheduler.active_job is None

    def test_outcome_while_running(self, scheduler, porphyry_request):
        """Test that a running job has no outcome yet."""
        job = scheduler.start(porphyry_request)
        with pytest.raises(GenerationError):
            job.outcome
        job.abort()


class TestRunAsync:
    """Tests for the event loop driver."""

    def test_run_async(self, scheduler, porphyry_request):
        """Test async generation matches the synchronous result."""
        reports = []
        outcome = asyncio.run(scheduler.run_async(porphyry_request, progress=reports.append))
        expected = GenerationScheduler(GeneratorConfig()).run(porphyry_request).unwrap()
        assert outcome.completed
        assert outcome.model.identical_to(expected)
        assert reports[-1].complete

    def test_run_async_cancel(self, scheduler, porphyry_request):
        """Test cancelling from another task while the generation yields."""
        token = CancellationToken()

        async def main():
            task = asyncio.create_task(scheduler.run_async(porphyry_request, cancel_token=token))
            await asyncio.sleep(0)
            token.cancel()
            return await task

        outcome = asyncio.run(main())
        assert outcome.cancelled
        assert scheduler.state is GenerationState.IDLE
