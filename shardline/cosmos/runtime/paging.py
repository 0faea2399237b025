"""Continuation-token paging over query results.

Architecture:
    ``QueryPager`` owns the paging loop for one query: it fetches a page
    for a continuation token, converts the page's ``Documents`` into items
    and wraps them in an immutable ``QueryResult`` snapshot. Each snapshot
    can fetch its successor through ``get_next_result()``; ``pages()`` and
    ``items()`` drive the same loop lazily until the store stops returning
    a continuation token. The first page is always fetched, even when it
    turns out to be empty.
"""

from __future__ import annotations

from collections.abc import AsyncIterable, AsyncIterator, Awaitable, Callable
from dataclasses import dataclass, field
from time import perf_counter
from typing import Any, Generic, TypeVar

from ..core.exceptions import SerializationError
from ..io.transport import StoreResponse
from .telemetry import log_query_completed, log_query_page_fetched

T = TypeVar("T")

FetchPage = Callable[[str | None], Awaitable[StoreResponse]]


@dataclass(frozen=True)
class QueryOptions:
    """Per-query request options.

    Attributes:
        continuation_token: Resume from this token instead of the first page
        max_item_count: Page size hint (None uses the store default)
        partition_key: Restrict the query to one partition (value or PartitionKey)
    """

    continuation_token: str | None = None
    max_item_count: int | None = None
    partition_key: Any = None

    def __post_init__(self) -> None:
        if self.max_item_count is not None and self.max_item_count <= 0:
            raise ValueError("max_item_count must be positive")


@dataclass(frozen=True)
class QueryResult(Generic[T]):
    """One page of query results."""

    items: tuple[T, ...] = ()
    continuation_token: str | None = None
    request_charge: float = 0.0
    _pager: QueryPager[T] | None = field(default=None, repr=False, compare=False)

    @property
    def has_more_results(self) -> bool:
        return bool(self.continuation_token)

    async def get_next_result(self) -> QueryResult[T] | None:
        """Fetch the following page, or return None when this is the last one."""
        if not self.has_more_results or self._pager is None:
            return None
        return await self._pager.fetch(self.continuation_token)

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self):
        return iter(self.items)


class QueryPager(Generic[T]):
    """Fetches and converts the pages of one query.

    Args:
        fetch_page: Coroutine function returning the store response for a
            continuation token (None for the first page)
        convert: Converts one raw document into an item; None drops it
    """

    def __init__(self, fetch_page: FetchPage, convert: Callable[[Any], T | None]) -> None:
        self._fetch_page = fetch_page
        self._convert = convert
        self._page_index = 0

    async def fetch(self, continuation_token: str | None = None) -> QueryResult[T]:
        started = perf_counter()
        response = await self._fetch_page(continuation_token)
        documents = _documents(response.body)

        items = tuple(item for item in map(self._convert, documents) if item is not None)
        result = QueryResult(
            items=items,
            continuation_token=response.continuation_token,
            request_charge=response.request_charge,
            _pager=self,
        )

        log_query_page_fetched(
            page_index=self._page_index,
            item_count=len(items),
            request_charge=result.request_charge,
            has_more_results=result.has_more_results,
            latency_ms=(perf_counter() - started) * 1000.0,
        )
        self._page_index += 1
        return result

    async def pages(self, continuation_token: str | None = None) -> AsyncIterator[QueryResult[T]]:
        """Yield page snapshots until the continuation token runs out."""
        started = perf_counter()
        pages = 0
        total_items = 0
        total_charge = 0.0

        result = await self.fetch(continuation_token)
        while True:
            pages += 1
            total_items += len(result.items)
            total_charge += result.request_charge
            yield result

            next_result = await result.get_next_result()
            if next_result is None:
                break
            result = next_result

        log_query_completed(
            pages=pages,
            total_items=total_items,
            total_request_charge=total_charge,
            total_latency_ms=(perf_counter() - started) * 1000.0,
        )

    async def items(self, continuation_token: str | None = None) -> AsyncIterator[T]:
        """Yield items across all pages, fetching each page on demand."""
        async for page in self.pages(continuation_token):
            for item in page.items:
                yield item


def _documents(body: Any) -> list[Any]:
    if body is None:
        return []
    if not isinstance(body, dict):
        raise SerializationError(f"Expected a query page object, got {type(body).__name__}")
    documents = body.get("Documents") or []
    if not isinstance(documents, list):
        raise SerializationError("Query page 'Documents' is not an array")
    return documents


async def to_list(source: AsyncIterable[T]) -> list[T]:
    """Collect an async sequence into a list."""
    return [item async for item in source]
