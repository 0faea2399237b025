"""In-process container implementing the transport contract.

Useful for unit tests and local development. Items are keyed by
``(partition key, id)`` and queries page through them in insertion order.
There is no query language: every query matches all items in scope
unless a ``query_handler`` filters them.
"""

from __future__ import annotations

import base64
import copy
import json
import logging
import time
from collections.abc import Callable, Iterable
from typing import Any
from uuid import uuid4

from ..core.enums import StatusCode
from ..core.exceptions import InvalidPartitionKeyValueError
from ..models.partition_key import PartitionKey, coerce_partition_key
from ..models.properties import MISSING
from .transport import (
    ACTIVITY_ID_HEADER,
    CONTINUATION_HEADER,
    REQUEST_CHARGE_HEADER,
    RETRY_AFTER_MS_HEADER,
    StoreResponse,
    value_at_path,
)

logger = logging.getLogger(__name__)

QueryHandler = Callable[[dict[str, Any], list[dict[str, Any]]], Iterable[dict[str, Any]]]


def encode_continuation(offset: int) -> str:
    raw = json.dumps({"offset": offset}).encode()
    return base64.urlsafe_b64encode(raw).decode()


def decode_continuation(token: str) -> int:
    try:
        offset = json.loads(base64.urlsafe_b64decode(token.encode()))["offset"]
    except (ValueError, KeyError, TypeError) as e:
        raise ValueError(f"Malformed continuation token: {token!r}") from e
    if not isinstance(offset, int) or offset < 0:
        raise ValueError(f"Malformed continuation token: {token!r}")
    return offset


class InMemoryTransport:
    """Store transport backed by a dictionary.

    Args:
        partition_key_path: Path of the partition key inside stored items
        page_size: Items per query page when the caller gives no page size
        request_charge: Request units reported for every operation
        query_handler: Called with the query body and the items in scope;
            returns the matching items in result order
    """

    def __init__(
        self,
        partition_key_path: str = "/partition",
        *,
        page_size: int = 100,
        request_charge: float = 1.0,
        query_handler: QueryHandler | None = None,
    ) -> None:
        if page_size <= 0:
            raise ValueError("page_size must be positive")
        self.partition_key_path = partition_key_path
        self.page_size = page_size
        self.request_charge = request_charge
        self.query_handler = query_handler
        self._items: dict[tuple[PartitionKey, str], dict[str, Any]] = {}
        self._throttles_remaining = 0
        self._throttle_retry_after_ms: int | None = None
        self.request_count = 0
        self.closed = False

    # --- test controls ------------------------------------------------------

    def inject_throttling(self, count: int, retry_after_ms: int | None = None) -> None:
        """Answer the next ``count`` requests with 429."""
        self._throttles_remaining = count
        self._throttle_retry_after_ms = retry_after_ms

    @property
    def items(self) -> list[dict[str, Any]]:
        return [copy.deepcopy(item) for item in self._items.values()]

    def __len__(self) -> int:
        return len(self._items)

    # --- transport ----------------------------------------------------------

    async def upsert_document(
        self, body: dict[str, Any], partition_key: PartitionKey
    ) -> StoreResponse:
        throttled = self._throttled()
        if throttled is not None:
            return throttled

        item_id = body.get("id")
        if not isinstance(item_id, str) or not item_id:
            return self._response(StatusCode.BAD_REQUEST, {"message": "Item must have a string id"})

        embedded = value_at_path(body, self.partition_key_path)
        if not partition_key.is_none and embedded is not MISSING:
            try:
                matches = coerce_partition_key(embedded) == partition_key
            except InvalidPartitionKeyValueError:
                matches = False
            if not matches:
                return self._response(
                    StatusCode.BAD_REQUEST,
                    {"message": "Partition key provided does not match the item"},
                )

        key = (partition_key, item_id)
        created = key not in self._items
        stored = copy.deepcopy(body)
        stored["_ts"] = int(time.time())
        self._items[key] = stored

        status = StatusCode.CREATED if created else StatusCode.OK
        return self._response(status, copy.deepcopy(stored))

    async def read_document(self, id: str, partition_key: PartitionKey) -> StoreResponse:
        throttled = self._throttled()
        if throttled is not None:
            return throttled
        item = self._items.get((partition_key, id))
        if item is None:
            return self._response(StatusCode.NOT_FOUND, {"code": "NotFound"})
        return self._response(StatusCode.OK, copy.deepcopy(item))

    async def delete_document(self, id: str, partition_key: PartitionKey) -> StoreResponse:
        throttled = self._throttled()
        if throttled is not None:
            return throttled
        if self._items.pop((partition_key, id), None) is None:
            return self._response(StatusCode.NOT_FOUND, {"code": "NotFound"})
        return self._response(StatusCode.NO_CONTENT)

    async def query_documents(
        self,
        query: dict[str, Any],
        *,
        partition_key: PartitionKey | None = None,
        continuation_token: str | None = None,
        max_item_count: int | None = None,
    ) -> StoreResponse:
        throttled = self._throttled()
        if throttled is not None:
            return throttled

        try:
            offset = decode_continuation(continuation_token) if continuation_token else 0
        except ValueError as e:
            return self._response(StatusCode.BAD_REQUEST, {"message": str(e)})

        scope = [
            copy.deepcopy(item)
            for (pk, _), item in self._items.items()
            if partition_key is None or pk == partition_key
        ]
        if self.query_handler is not None:
            scope = list(self.query_handler(query, scope))

        size = max_item_count or self.page_size
        page = scope[offset : offset + size]
        headers = {}
        if offset + size < len(scope):
            headers[CONTINUATION_HEADER] = encode_continuation(offset + size)

        return self._response(
            StatusCode.OK, {"Documents": page, "_count": len(page)}, headers=headers
        )

    async def close(self) -> None:
        self.closed = True

    # --- helpers ------------------------------------------------------------

    def _throttled(self) -> StoreResponse | None:
        self.request_count += 1
        if self._throttles_remaining <= 0:
            return None
        self._throttles_remaining -= 1
        headers = {}
        if self._throttle_retry_after_ms is not None:
            headers[RETRY_AFTER_MS_HEADER] = str(self._throttle_retry_after_ms)
        logger.debug("memory_transport_throttled", extra={"remaining": self._throttles_remaining})
        return self._response(
            StatusCode.TOO_MANY_REQUESTS, {"code": "TooManyRequests"}, headers=headers
        )

    def _response(
        self,
        status: int,
        body: Any = None,
        headers: dict[str, str] | None = None,
    ) -> StoreResponse:
        merged = {
            REQUEST_CHARGE_HEADER: str(self.request_charge),
            ACTIVITY_ID_HEADER: str(uuid4()),
        }
        merged.update(headers or {})
        return StoreResponse(status_code=int(status), headers=merged, body=body)
