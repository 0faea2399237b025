"""Structured logging for store requests and query paging.

Each helper emits one event whose message is the event name and whose
fields travel in ``extra``, so log handlers can route on them.
"""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


def log_request_throttled(
    *,
    operation: str,
    retry_count: int,
    delay: float,
    total_delay: float,
    activity_id: str | None = None,
) -> None:
    """Log a throttled request that is about to be retried.

    Args:
        operation: Operation name (e.g. "upsert_item")
        retry_count: Number of retries already performed
        delay: Seconds until the next attempt
        total_delay: Seconds waited so far including this delay
        activity_id: Store activity id of the throttled request
    """
    logger.warning(
        "request_throttled",
        extra={
            "operation": operation,
            "retry_count": retry_count,
            "delay": delay,
            "total_delay": total_delay,
            "activity_id": activity_id,
        },
    )


def log_request_failed(
    *,
    operation: str,
    status_code: int | None,
    error_type: str,
    error_message: str,
    attempts: int = 1,
    activity_id: str | None = None,
) -> None:
    """Log a request that failed without further retries."""
    logger.error(
        "request_failed",
        extra={
            "operation": operation,
            "status_code": status_code,
            "error_type": error_type,
            "error_message": error_message,
            "attempts": attempts,
            "activity_id": activity_id,
        },
    )


def log_request_not_found(*, operation: str, suppressed: bool) -> None:
    logger.debug("request_not_found", extra={"operation": operation, "suppressed": suppressed})


def log_query_page_fetched(
    *,
    page_index: int,
    item_count: int,
    request_charge: float,
    has_more_results: bool,
    latency_ms: float | None = None,
) -> None:
    """Log one fetched query page.

    Args:
        page_index: Zero-based page index within the iteration
        item_count: Items on the page
        request_charge: Request units charged for the page
        has_more_results: Whether the store returned a continuation token
        latency_ms: Fetch latency in milliseconds (optional)
    """
    logger.info(
        "query_page_fetched",
        extra={
            "page_index": page_index,
            "item_count": item_count,
            "request_charge": request_charge,
            "has_more_results": has_more_results,
            "latency_ms": latency_ms,
        },
    )


def log_query_completed(
    *,
    pages: int,
    total_items: int,
    total_request_charge: float,
    total_latency_ms: float | None = None,
) -> None:
    logger.info(
        "query_completed",
        extra={
            "pages": pages,
            "total_items": total_items,
            "total_request_charge": total_request_charge,
            "total_latency_ms": total_latency_ms,
        },
    )
