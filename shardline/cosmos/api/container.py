"""Container facade over a store transport.

Architecture:
    ``ContainerProxy`` is the entry point applications use. It serializes
    items, resolves partition keys, runs every request through a
    ``RetryingRequestExecutor`` and turns query pages into ``QueryResult``
    snapshots. The transport underneath performs single attempts only,
    so the same facade works against the azure-cosmos SDK and the in-memory
    container used in tests.

Example:
    >>> async with ContainerProxy.from_connection_options(connection) as container:
    ...     response = await container.upsert_item(Person(first_name="Jane"))
    ...     async for person in container.query_items(query, Person):
    ...         print(person.first_name)
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from typing import Any, TypeVar

from ..core.exceptions import InvalidPartitionKeyValueError
from ..core.options import ClientOptions, ConnectionOptions
from ..io.transport import StoreResponse, StoreTransport, value_at_path
from ..io.azure_sdk import AzureCosmosTransport
from ..models.partition_key import PartitionKey, coerce_partition_key
from ..models.properties import MISSING
from ..runtime.paging import QueryOptions, QueryPager, QueryResult
from ..runtime.retry import RetryingRequestExecutor
from ..runtime.serialization import DocumentSerializer, ItemResponse
from .query_builder import QueryDefinition

T = TypeVar("T")

DEFAULT_PARTITION_KEY_PATH = "/partition"


class ContainerProxy:
    """Resilient document operations against one container.

    Args:
        transport: Store transport performing single attempts
        options: Client behaviour (default: ``ClientOptions()``)
        partition_key_path: Path of the partition key in stored items
            (default: the transport's, else ``/partition``)
        executor: Request executor (default: built from ``options``)
    """

    def __init__(
        self,
        transport: StoreTransport,
        options: ClientOptions | None = None,
        *,
        partition_key_path: str | None = None,
        executor: RetryingRequestExecutor | None = None,
    ) -> None:
        self.options = options or ClientOptions()
        self._transport = transport
        self._executor = executor or RetryingRequestExecutor(self.options.retry_policy())
        self.serializer = DocumentSerializer(self.options.property_naming, self.options.exclude_none)
        self.partition_key_path = (
            partition_key_path
            or getattr(transport, "partition_key_path", None)
            or DEFAULT_PARTITION_KEY_PATH
        )

    @classmethod
    def from_connection_options(
        cls,
        connection: ConnectionOptions,
        options: ClientOptions | None = None,
    ) -> ContainerProxy:
        """Create a proxy talking to the account through the azure-cosmos SDK."""
        return cls(AzureCosmosTransport(connection), options)

    @property
    def transport(self) -> StoreTransport:
        return self._transport

    def create_partition_key(self, value: Any, *, parse_strings: bool = False) -> PartitionKey:
        """Convert a value into a partition key.

        Raises:
            InvalidPartitionKeyValueError: If the value has no key representation
        """
        return coerce_partition_key(value, parse_strings=parse_strings)

    def _item_partition_key(self, value: Any) -> PartitionKey:
        if value is None:
            raise InvalidPartitionKeyValueError(
                "Ambiguous partition key None: pass PartitionKey.NONE for items stored "
                "without a key or PartitionKey.null() for a null-valued key",
                value=value,
            )
        return self.create_partition_key(value)

    def _throw_if_not_found(self, override: bool | None) -> bool:
        return self.options.throw_if_not_found if override is None else override

    async def upsert_item(
        self,
        item: T,
        *,
        partition_key: Any = MISSING,
        cancel_event: asyncio.Event | None = None,
    ) -> ItemResponse[T]:
        """Create or replace an item.

        Args:
            item: Document, pydantic model, dataclass or mapping
            partition_key: Explicit key; by default the value at the
                container's partition key path is used, or no key when the
                item has no such value. A bare ``None`` is rejected; pass
                ``PartitionKey.NONE`` or ``PartitionKey.null()``.
            cancel_event: Abandon the request when set

        Returns:
            ItemResponse tagged with the runtime type of ``item``
        """
        body = self.serializer.to_wire(item)
        if partition_key is not MISSING:
            key = self._item_partition_key(partition_key)
        else:
            embedded = value_at_path(body, self.partition_key_path)
            key = PartitionKey.NONE if embedded is MISSING else coerce_partition_key(embedded)

        response = await self._executor.execute(
            lambda: self._transport.upsert_document(body, key),
            operation_name="upsert_item",
            cancel_event=cancel_event,
        )
        return ItemResponse(
            status_code=response.status_code,
            raw=response.body if isinstance(response.body, dict) else None,
            item_type=type(item),
            request_charge=response.request_charge,
            activity_id=response.activity_id,
            serializer=self.serializer,
        )

    async def read_item(
        self,
        id: str,
        partition_key: Any,
        item_type: type[T] | Any = dict,
        *,
        throw_if_not_found: bool | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> T | None:
        """Read one item, or None when it is missing and not-found is suppressed.

        Raises:
            InvalidPartitionKeyValueError: ``partition_key`` is None or has no
                key representation
        """
        key = self._item_partition_key(partition_key)
        response = await self._executor.execute(
            lambda: self._transport.read_document(id, key),
            operation_name="read_item",
            throw_if_not_found=self._throw_if_not_found(throw_if_not_found),
            cancel_event=cancel_event,
        )
        if response is None:
            return None
        return self.serializer.from_wire(response.body, item_type)

    async def delete_item(
        self,
        id: str,
        partition_key: Any,
        *,
        throw_if_not_found: bool | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> StoreResponse | None:
        """Delete one item.

        Args:
            id: Item id
            partition_key: ``PartitionKey`` or a raw value to coerce; None is
                rejected as ambiguous
            throw_if_not_found: Override ``ClientOptions.throw_if_not_found``
            cancel_event: Abandon the request when set

        Returns:
            The store response, or None when the item was missing and
            not-found is suppressed

        Raises:
            NotFoundError: The item does not exist and not-found is not suppressed
            InvalidPartitionKeyValueError: ``partition_key`` is None or has no
                key representation
        """
        key = self._item_partition_key(partition_key)
        return await self._executor.execute(
            lambda: self._transport.delete_document(id, key),
            operation_name="delete_item",
            throw_if_not_found=self._throw_if_not_found(throw_if_not_found),
            cancel_event=cancel_event,
        )

    def _pager(
        self,
        query: QueryDefinition | str,
        options: QueryOptions,
        target_type: Any,
    ) -> QueryPager[Any]:
        if isinstance(query, str):
            query = QueryDefinition(query)
        body = query.to_wire()
        key = (
            None if options.partition_key is None else self.create_partition_key(options.partition_key)
        )
        page_size = options.max_item_count or self.options.max_item_count

        async def fetch_page(token: str | None) -> StoreResponse:
            return await self._executor.execute(
                lambda: self._transport.query_documents(
                    body,
                    partition_key=key,
                    continuation_token=token,
                    max_item_count=page_size,
                ),
                operation_name="query_items",
            )

        def convert(raw: Any) -> Any:
            return self.serializer.from_wire(raw, target_type)

        return QueryPager(fetch_page, convert)

    async def query(
        self,
        query: QueryDefinition | str,
        options: QueryOptions | None = None,
        *,
        item_type: type[T] | Any = dict,
        return_as: type[T] | Any = None,
    ) -> QueryResult[T]:
        """Fetch one page of query results.

        Args:
            query: Query definition or plain query text
            options: Continuation token, page size and partition scope
            item_type: Type each item is deserialized into
            return_as: Overrides ``item_type`` for deserialization

        Returns:
            The page; ``get_next_result()`` fetches the next one
        """
        options = options or QueryOptions()
        pager = self._pager(query, options, return_as or item_type)
        return await pager.fetch(options.continuation_token)

    def query_items(
        self,
        query: QueryDefinition | str,
        item_type: type[T] | Any = dict,
        *,
        return_as: type[T] | Any = None,
        max_item_count: int | None = None,
        partition_key: Any = None,
    ) -> AsyncIterator[T]:
        """Lazily iterate over every item the query returns."""
        options = QueryOptions(max_item_count=max_item_count, partition_key=partition_key)
        return self._pager(query, options, return_as or item_type).items()

    async def first_or_default(
        self,
        query: QueryDefinition | str,
        item_type: type[T] | Any = dict,
        *,
        return_as: type[T] | Any = None,
        partition_key: Any = None,
    ) -> T | None:
        """Return the first item the query yields, or None."""
        items = self.query_items(
            query, item_type, return_as=return_as, partition_key=partition_key
        )
        try:
            async for item in items:
                return item
        finally:
            await items.aclose()
        return None

    async def close(self) -> None:
        await self._transport.close()

    async def __aenter__(self) -> ContainerProxy:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
