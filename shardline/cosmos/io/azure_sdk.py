"""Store transport built on the azure-cosmos async SDK.

The SDK handles authentication, request signing and partition routing.
Its own throttle retries are turned off so that every 429 reaches
``RetryingRequestExecutor``; each call here is a single attempt and SDK
failures are translated into the ``StoreError`` hierarchy.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any

import aiohttp
from azure.core.exceptions import AzureError
from azure.core.pipeline.transport import AioHttpTransport
from azure.cosmos import documents
from azure.cosmos.aio import CosmosClient
from azure.cosmos.exceptions import CosmosHttpResponseError
from azure.cosmos.partition_key import NonePartitionKeyValue, NullPartitionKeyValue

from ..core.enums import PartitionKeyKind, StatusCode
from ..core.exceptions import NotFoundError, StoreError, ThrottlingError, UnexpectedStatusError
from ..core.options import ConnectionOptions
from ..models.partition_key import PartitionKey
from .transport import CONTINUATION_HEADER, REQUEST_CHARGE_HEADER, StoreResponse

logger = logging.getLogger(__name__)


def sdk_partition_key(partition_key: PartitionKey) -> Any:
    """Translate a ``PartitionKey`` into the value the SDK expects."""
    if partition_key.kind is PartitionKeyKind.NONE:
        return NonePartitionKeyValue
    if partition_key.kind is PartitionKeyKind.NULL:
        return NullPartitionKeyValue
    return partition_key.value


def single_attempt_policy(timeout: float) -> documents.ConnectionPolicy:
    """Connection policy with the SDK's throttle retries disabled."""
    policy = documents.ConnectionPolicy()
    retry_options = type(policy.RetryOptions)
    policy.RetryOptions = retry_options(max_retry_attempt_count=0, max_wait_time_in_seconds=0)
    policy.RequestTimeout = timeout
    return policy


def store_error(error: CosmosHttpResponseError) -> StoreError:
    """Map an SDK status error onto the library's exception hierarchy."""
    response = StoreResponse(error.status_code or 0, dict(error.headers or {}))
    message = error.message or str(error)
    if response.status_code == StatusCode.TOO_MANY_REQUESTS:
        return ThrottlingError(
            message, retry_after=response.retry_after, activity_id=response.activity_id
        )
    if response.status_code == StatusCode.NOT_FOUND:
        return NotFoundError(message, activity_id=response.activity_id)
    return UnexpectedStatusError(
        message, status_code=response.status_code or None, activity_id=response.activity_id
    )


class _ResponseCapture:
    """``raw_response_hook`` target keeping the last status and headers."""

    def __init__(self) -> None:
        self.status_code: int = StatusCode.OK
        self.headers: dict[str, str] = {}
        self.request_charge = 0.0

    def __call__(self, pipeline_response: Any) -> None:
        http_response = pipeline_response.http_response
        self.status_code = http_response.status_code
        self.headers = dict(http_response.headers)
        self.request_charge += StoreResponse(self.status_code, self.headers).request_charge

    def response(
        self, body: Any = None, extra_headers: dict[str, str] | None = None
    ) -> StoreResponse:
        headers = dict(self.headers)
        headers.update(extra_headers or {})
        # a query page may span several store requests
        headers[REQUEST_CHARGE_HEADER] = str(self.request_charge)
        return StoreResponse(self.status_code, headers, body)


class AzureCosmosTransport:
    """Single-attempt document operations against one container.

    Args:
        connection: Account endpoint, key and container coordinates
        client: SDK client to use (default: one created from ``connection``)
        session: aiohttp session the SDK sends requests through (default:
            one owned by this transport)
    """

    def __init__(
        self,
        connection: ConnectionOptions,
        *,
        client: CosmosClient | None = None,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self.connection = connection
        self._client = client
        self._owns_client = client is None
        self._session = session
        self._owns_session = session is None
        self._container: Any = None

    @property
    def partition_key_path(self) -> str:
        return self.connection.partition_key_path

    def _container_client(self) -> Any:
        if self._container is None:
            if self._client is None:
                if self._session is None or self._session.closed:
                    self._session = aiohttp.ClientSession()
                self._client = CosmosClient(
                    self.connection.endpoint,
                    credential=self.connection.key.get_secret_value(),
                    connection_policy=single_attempt_policy(self.connection.timeout),
                    transport=AioHttpTransport(session=self._session, session_owner=False),
                )
            database = self._client.get_database_client(self.connection.database_id)
            self._container = database.get_container_client(self.connection.container_id)
        return self._container

    async def _call(
        self, operation: Callable[[_ResponseCapture], Awaitable[Any]]
    ) -> tuple[Any, _ResponseCapture]:
        capture = _ResponseCapture()
        try:
            result = await operation(capture)
        except CosmosHttpResponseError as e:
            raise store_error(e) from e
        except AzureError as e:
            raise StoreError(str(e)) from e
        return result, capture

    async def upsert_document(
        self, body: dict[str, Any], partition_key: PartitionKey
    ) -> StoreResponse:
        # The SDK routes upserts by the key value inside the body.
        container = self._container_client()
        result, capture = await self._call(
            lambda hook: container.upsert_item(body, raw_response_hook=hook)
        )
        return capture.response(dict(result) if result is not None else None)

    async def read_document(self, id: str, partition_key: PartitionKey) -> StoreResponse:
        container = self._container_client()
        result, capture = await self._call(
            lambda hook: container.read_item(
                item=id,
                partition_key=sdk_partition_key(partition_key),
                raw_response_hook=hook,
            )
        )
        return capture.response(dict(result))

    async def delete_document(self, id: str, partition_key: PartitionKey) -> StoreResponse:
        container = self._container_client()
        _, capture = await self._call(
            lambda hook: container.delete_item(
                item=id,
                partition_key=sdk_partition_key(partition_key),
                raw_response_hook=hook,
            )
        )
        return capture.response()

    async def query_documents(
        self,
        query: dict[str, Any],
        *,
        partition_key: PartitionKey | None = None,
        continuation_token: str | None = None,
        max_item_count: int | None = None,
    ) -> StoreResponse:
        container = self._container_client()
        kwargs: dict[str, Any] = {}
        if partition_key is not None:
            kwargs["partition_key"] = sdk_partition_key(partition_key)
        if max_item_count is not None:
            kwargs["max_item_count"] = max_item_count

        async def fetch(hook: _ResponseCapture) -> tuple[list[dict[str, Any]], str | None]:
            pages = container.query_items(
                query=query["query"],
                parameters=query.get("parameters") or None,
                raw_response_hook=hook,
                **kwargs,
            ).by_page(continuation_token)
            page = await anext(pages, None)
            if page is None:
                return [], None
            return [item async for item in page], pages.continuation_token

        logger.debug(
            "query_request",
            extra={
                "container": self.connection.container_id,
                "has_continuation": bool(continuation_token),
            },
        )
        (items, token), capture = await self._call(fetch)
        extra = {CONTINUATION_HEADER: token} if token else {}
        return capture.response({"Documents": items}, extra)

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.close()
            self._client = None
            self._container = None
        if self._session is not None and self._owns_session:
            if not self._session.closed:
                await self._session.close()
            self._session = None

    async def __aenter__(self) -> AzureCosmosTransport:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
