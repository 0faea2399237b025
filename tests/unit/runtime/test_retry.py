"""Unit tests for the retrying request executor."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from shardline.cosmos.core import (
    NotFoundError,
    OperationCancelledError,
    RetryLimitExceededError,
    StoreError,
    ThrottlingError,
    UnexpectedStatusError,
)
from shardline.cosmos.io import StoreResponse
from shardline.cosmos.runtime import RetryingRequestExecutor, RetryPolicy


class RecordingSleep:
    """Stands in for asyncio.sleep and records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def throttled(retry_after_ms: int | None = None) -> StoreResponse:
    headers = {"x-ms-retry-after-ms": str(retry_after_ms)} if retry_after_ms is not None else {}
    return StoreResponse(status_code=429, headers=headers)


def ok(body=None) -> StoreResponse:
    return StoreResponse(status_code=200, headers={"x-ms-request-charge": "1.5"}, body=body)


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


class TestRetryPolicy:
    """Test RetryPolicy delay computation and validation."""

    def test_linear_backoff(self):
        """Test that delays grow linearly with the retry count."""
        policy = RetryPolicy(default_retry_delay=1.0, backoff_factor=0.2)
        assert policy.compute_delay(0) == pytest.approx(1.0)
        assert policy.compute_delay(1) == pytest.approx(1.2)
        assert policy.compute_delay(5) == pytest.approx(2.0)

    def test_suggested_delay_wins(self):
        """Test that a server-suggested delay replaces the default."""
        policy = RetryPolicy(default_retry_delay=5.0, backoff_factor=0.0)
        assert policy.compute_delay(3, suggested=0.25) == pytest.approx(0.25)

    def test_max_delay_caps(self):
        """Test that max_delay caps a single wait."""
        policy = RetryPolicy(default_retry_delay=1.0, backoff_factor=1.0, max_delay=2.5)
        assert policy.compute_delay(4) == 2.5

    def test_validation(self):
        """Test that invalid settings are rejected."""
        with pytest.raises(ValueError):
            RetryPolicy(default_retry_delay=0)
        with pytest.raises(ValueError):
            RetryPolicy(max_retries=-1)


class TestRetryingRequestExecutor:
    """Test status handling and throttle retries."""

    @pytest.mark.asyncio
    async def test_success_first_try(self, sleep):
        """Test that a successful first attempt never waits."""
        executor = RetryingRequestExecutor(sleep=sleep)
        operation = AsyncMock(return_value=ok({"id": "1"}))

        response = await executor.execute(operation)

        assert response.body == {"id": "1"}
        operation.assert_awaited_once()
        assert sleep.delays == []

    @pytest.mark.asyncio
    async def test_retries_throttles_then_succeeds(self, sleep):
        """Test that throttled attempts are retried with growing delays."""
        executor = RetryingRequestExecutor(
            RetryPolicy(default_retry_delay=1.0, backoff_factor=0.2), sleep=sleep
        )
        operation = AsyncMock(side_effect=[throttled(), throttled(), throttled(), ok()])

        response = await executor.execute(operation, operation_name="upsert_item")

        assert response.status_code == 200
        assert operation.await_count == 4
        assert sleep.delays == pytest.approx([1.0, 1.2, 1.4])
        assert sleep.delays == sorted(sleep.delays)

    @pytest.mark.asyncio
    async def test_uses_server_suggested_delay(self, sleep):
        """Test that the retry-after header drives the wait."""
        executor = RetryingRequestExecutor(
            RetryPolicy(default_retry_delay=5.0, backoff_factor=0.0), sleep=sleep
        )
        operation = AsyncMock(side_effect=[throttled(retry_after_ms=250), ok()])

        await executor.execute(operation)

        assert sleep.delays == pytest.approx([0.25])

    @pytest.mark.asyncio
    async def test_raised_throttling_error_is_retried(self, sleep):
        """Test that a raised ThrottlingError is retried like a 429 response."""
        executor = RetryingRequestExecutor(sleep=sleep)
        operation = AsyncMock(side_effect=[ThrottlingError("busy", retry_after=0.1), ok()])

        response = await executor.execute(operation)

        assert response.status_code == 200
        assert sleep.delays == pytest.approx([0.1])

    @pytest.mark.asyncio
    async def test_retry_ceiling(self, sleep):
        """Test that max_retries bounds the number of attempts."""
        executor = RetryingRequestExecutor(
            RetryPolicy(default_retry_delay=0.1, max_retries=2), sleep=sleep
        )
        operation = AsyncMock(return_value=throttled())

        with pytest.raises(RetryLimitExceededError) as exc_info:
            await executor.execute(operation)

        assert exc_info.value.attempts == 3
        assert operation.await_count == 3
        assert len(sleep.delays) == 2
        assert isinstance(exc_info.value, ThrottlingError)

    @pytest.mark.asyncio
    async def test_cumulative_wait_budget(self, sleep):
        """Test that max_retry_wait bounds the total wait."""
        executor = RetryingRequestExecutor(
            RetryPolicy(
                default_retry_delay=1.0, backoff_factor=0.2, max_retries=None, max_retry_wait=2.5
            ),
            sleep=sleep,
        )
        operation = AsyncMock(return_value=throttled())

        with pytest.raises(RetryLimitExceededError):
            await executor.execute(operation)

        assert sleep.delays == pytest.approx([1.0, 1.2])
        assert sum(sleep.delays) <= 2.5

    @pytest.mark.asyncio
    async def test_default_limits_wait_budget_applies_first(self, sleep):
        """Test that the default 60 s budget stops retrying after 7 retries."""
        executor = RetryingRequestExecutor(RetryPolicy(), sleep=sleep)
        operation = AsyncMock(return_value=throttled())

        with pytest.raises(RetryLimitExceededError) as exc_info:
            await executor.execute(operation)

        assert sleep.delays == pytest.approx([5.0, 6.0, 7.0, 8.0, 9.0, 10.0, 11.0])
        assert exc_info.value.attempts == 8
        assert operation.await_count == 8

    @pytest.mark.asyncio
    async def test_not_found_raises(self, sleep):
        """Test that a 404 raises NotFoundError without retrying."""
        executor = RetryingRequestExecutor(sleep=sleep)
        operation = AsyncMock(return_value=StoreResponse(status_code=404))

        with pytest.raises(NotFoundError, match="An item was not found"):
            await executor.execute(operation)

        operation.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_not_found_suppressed(self, sleep):
        """Test that a suppressed 404 returns None."""
        executor = RetryingRequestExecutor(sleep=sleep)
        operation = AsyncMock(return_value=StoreResponse(status_code=404))

        assert await executor.execute(operation, throw_if_not_found=False) is None

    @pytest.mark.asyncio
    async def test_raised_not_found_is_suppressed(self, sleep):
        """Test that a raised NotFoundError can be suppressed."""
        executor = RetryingRequestExecutor(sleep=sleep)
        operation = AsyncMock(side_effect=NotFoundError("gone"))

        assert await executor.execute(operation, throw_if_not_found=False) is None

    @pytest.mark.asyncio
    async def test_unexpected_status_not_retried(self, sleep):
        """Test that other failure statuses raise immediately."""
        executor = RetryingRequestExecutor(sleep=sleep)
        operation = AsyncMock(return_value=StoreResponse(status_code=500))

        with pytest.raises(UnexpectedStatusError) as exc_info:
            await executor.execute(operation)

        assert exc_info.value.status_code == 500
        assert "Unexpected status code" in str(exc_info.value)
        operation.assert_awaited_once()
        assert sleep.delays == []

    @pytest.mark.asyncio
    async def test_raised_store_error_maps_status(self, sleep):
        """Test that a raised StoreError is mapped by its status."""
        executor = RetryingRequestExecutor(sleep=sleep)
        operation = AsyncMock(side_effect=StoreError("conflict", status_code=409))

        with pytest.raises(UnexpectedStatusError) as exc_info:
            await executor.execute(operation)

        assert exc_info.value.status_code == 409
        assert isinstance(exc_info.value.__cause__, StoreError)

    @pytest.mark.asyncio
    async def test_other_exceptions_propagate(self, sleep):
        """Test that exceptions without a store status propagate unchanged."""
        executor = RetryingRequestExecutor(sleep=sleep)
        operation = AsyncMock(side_effect=ConnectionResetError("reset"))

        with pytest.raises(ConnectionResetError):
            await executor.execute(operation)

    @pytest.mark.asyncio
    async def test_cancel_before_first_attempt(self, sleep):
        """Test that a set cancel event prevents any attempt."""
        executor = RetryingRequestExecutor(sleep=sleep)
        operation = AsyncMock(return_value=ok())
        event = asyncio.Event()
        event.set()

        with pytest.raises(OperationCancelledError):
            await executor.execute(operation, cancel_event=event)

        operation.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_cancel_during_backoff(self):
        """Test that setting the cancel event interrupts a backoff wait."""
        event = asyncio.Event()

        async def blocking_sleep(delay: float) -> None:
            event.set()
            await asyncio.Event().wait()

        executor = RetryingRequestExecutor(sleep=blocking_sleep)
        operation = AsyncMock(return_value=throttled())

        with pytest.raises(OperationCancelledError):
            await asyncio.wait_for(executor.execute(operation, cancel_event=event), timeout=5)

        operation.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_task_cancellation_aborts_wait(self):
        """Test that cancelling the task aborts a backoff wait."""
        started = asyncio.Event()

        async def blocking_sleep(delay: float) -> None:
            started.set()
            await asyncio.Event().wait()

        executor = RetryingRequestExecutor(sleep=blocking_sleep)
        task = asyncio.ensure_future(executor.execute(AsyncMock(return_value=throttled())))
        await started.wait()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
