"""Throttle-aware execution of single store requests.

The executor runs one store operation until it succeeds, retrying only
when the store answers 429 (request rate too large). Each wait uses the
delay suggested by the store, or the policy default, grown linearly with
the number of retries already made:

    delay = (suggested or default_retry_delay) * (1 + backoff_factor * retry_count)

Retrying stops once ``max_retries`` retries were made or the cumulative
wait would exceed ``max_retry_wait``; the last throttle is then raised as
``RetryLimitExceededError``. A 404 maps to ``NotFoundError`` (or ``None``
when suppressed) and any other non-success status to
``UnexpectedStatusError``; neither is retried.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from ..core.enums import StatusCode
from ..core.exceptions import (
    NotFoundError,
    OperationCancelledError,
    RetryLimitExceededError,
    StoreError,
    ThrottlingError,
    UnexpectedStatusError,
)
from ..io.transport import StoreResponse
from .telemetry import log_request_failed, log_request_not_found, log_request_throttled

NOT_FOUND_MESSAGE = "An item was not found"
UNEXPECTED_STATUS_MESSAGE = "Unexpected status code"


@dataclass(frozen=True)
class RetryPolicy:
    """Backoff configuration for throttled requests.

    Attributes:
        default_retry_delay: Seconds to wait when the store suggests nothing
        backoff_factor: Linear growth of the delay per retry already made
        max_retries: Retry ceiling (None for unbounded)
        max_retry_wait: Cumulative wait budget in seconds (None for unbounded)
        max_delay: Cap on a single wait in seconds (None for no cap)
    """

    default_retry_delay: float = 5.0
    backoff_factor: float = 0.2
    max_retries: int | None = 9
    max_retry_wait: float | None = 60.0
    max_delay: float | None = None

    def __post_init__(self) -> None:
        if self.default_retry_delay <= 0:
            raise ValueError("default_retry_delay must be positive")
        if self.backoff_factor < 0:
            raise ValueError("backoff_factor must not be negative")
        if self.max_retries is not None and self.max_retries < 0:
            raise ValueError("max_retries must not be negative")

    def compute_delay(self, retry_count: int, suggested: float | None = None) -> float:
        """Seconds to wait before retry number ``retry_count + 1``."""
        base = suggested if suggested is not None and suggested > 0 else self.default_retry_delay
        delay = base * (1.0 + self.backoff_factor * retry_count)
        if self.max_delay is not None:
            delay = min(delay, self.max_delay)
        return delay


@dataclass
class RetryState:
    """Progress of a single ``execute`` call."""

    retry_count: int = 0
    delay: float = 0.0
    total_delay: float = 0.0

    @property
    def attempts(self) -> int:
        return self.retry_count + 1


@dataclass(frozen=True)
class _Outcome:
    status_code: int | None
    response: StoreResponse | None = None
    error: StoreError | None = None
    retry_after: float | None = None
    activity_id: str | None = None


class RetryingRequestExecutor:
    """Runs store operations with throttle handling and status mapping."""

    def __init__(
        self,
        policy: RetryPolicy | None = None,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Initialize executor.

        Args:
            policy: Retry policy (default: ``RetryPolicy()``)
            sleep: Coroutine function used to wait between attempts
        """
        self.policy = policy or RetryPolicy()
        self._sleep = sleep

    async def execute(
        self,
        operation: Callable[[], Awaitable[StoreResponse]],
        *,
        operation_name: str = "request",
        throw_if_not_found: bool = True,
        cancel_event: asyncio.Event | None = None,
    ) -> StoreResponse | None:
        """Run ``operation`` until it succeeds or fails for good.

        Args:
            operation: Zero-argument coroutine function performing one attempt
            operation_name: Name used in log events
            throw_if_not_found: Raise ``NotFoundError`` on 404 instead of
                returning None
            cancel_event: Set to abandon the operation before the next
                attempt or during a backoff wait

        Returns:
            The successful response, or None for a suppressed 404

        Raises:
            RetryLimitExceededError: Throttling outlasted the policy
            NotFoundError: 404 with ``throw_if_not_found``
            UnexpectedStatusError: Any other non-success status
            OperationCancelledError: ``cancel_event`` was set
        """
        state = RetryState()

        while True:
            if cancel_event is not None and cancel_event.is_set():
                raise OperationCancelledError(f"{operation_name} was cancelled")

            outcome = await self._attempt(operation)
            status = outcome.status_code

            if outcome.response is not None and outcome.response.is_success:
                return outcome.response

            if status == StatusCode.TOO_MANY_REQUESTS:
                await self._back_off(state, outcome, operation_name, cancel_event)
                continue

            if status == StatusCode.NOT_FOUND:
                log_request_not_found(operation=operation_name, suppressed=not throw_if_not_found)
                if not throw_if_not_found:
                    return None
                if isinstance(outcome.error, NotFoundError):
                    raise outcome.error
                raise NotFoundError(NOT_FOUND_MESSAGE, activity_id=outcome.activity_id) from outcome.error

            log_request_failed(
                operation=operation_name,
                status_code=status,
                error_type=type(outcome.error).__name__ if outcome.error else "UnexpectedStatus",
                error_message=str(outcome.error) if outcome.error else UNEXPECTED_STATUS_MESSAGE,
                attempts=state.attempts,
                activity_id=outcome.activity_id,
            )
            if outcome.error is not None and (
                status is None or isinstance(outcome.error, UnexpectedStatusError)
            ):
                raise outcome.error
            raise UnexpectedStatusError(
                f"{UNEXPECTED_STATUS_MESSAGE}: {status}",
                status_code=status,
                activity_id=outcome.activity_id,
            ) from outcome.error

    async def _attempt(self, operation: Callable[[], Awaitable[StoreResponse]]) -> _Outcome:
        try:
            response = await operation()
        except StoreError as e:
            return _Outcome(
                status_code=e.status_code,
                error=e,
                retry_after=e.retry_after if isinstance(e, ThrottlingError) else None,
                activity_id=e.activity_id,
            )
        return _Outcome(
            status_code=response.status_code,
            response=response,
            retry_after=response.retry_after,
            activity_id=response.activity_id,
        )

    async def _back_off(
        self,
        state: RetryState,
        outcome: _Outcome,
        operation_name: str,
        cancel_event: asyncio.Event | None,
    ) -> None:
        policy = self.policy
        delay = policy.compute_delay(state.retry_count, outcome.retry_after)

        exhausted = policy.max_retries is not None and state.retry_count >= policy.max_retries
        over_budget = (
            policy.max_retry_wait is not None and state.total_delay + delay > policy.max_retry_wait
        )
        if exhausted or over_budget:
            log_request_failed(
                operation=operation_name,
                status_code=StatusCode.TOO_MANY_REQUESTS,
                error_type=RetryLimitExceededError.__name__,
                error_message="retry budget exhausted",
                attempts=state.attempts,
                activity_id=outcome.activity_id,
            )
            raise RetryLimitExceededError(
                f"{operation_name} still throttled after {state.attempts} attempts",
                attempts=state.attempts,
                retry_after=delay,
                activity_id=outcome.activity_id,
            ) from outcome.error

        state.delay = delay
        state.total_delay += delay
        log_request_throttled(
            operation=operation_name,
            retry_count=state.retry_count,
            delay=delay,
            total_delay=state.total_delay,
            activity_id=outcome.activity_id,
        )
        await self._wait(delay, cancel_event, operation_name)
        state.retry_count += 1

    async def _wait(
        self, delay: float, cancel_event: asyncio.Event | None, operation_name: str
    ) -> None:
        if cancel_event is None:
            await self._sleep(delay)
            return

        sleeper = asyncio.ensure_future(self._sleep(delay))
        watcher = asyncio.ensure_future(cancel_event.wait())
        try:
            done, _ = await asyncio.wait({sleeper, watcher}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (sleeper, watcher):
                if not task.done():
                    task.cancel()

        if watcher in done:
            raise OperationCancelledError(f"{operation_name} was cancelled during backoff")
