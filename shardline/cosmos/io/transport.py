"""Transport contract between the client and a document store."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from ..core.enums import StatusCode
from ..models.partition_key import PartitionKey
from ..models.properties import MISSING

CONTINUATION_HEADER = "x-ms-continuation"
REQUEST_CHARGE_HEADER = "x-ms-request-charge"
RETRY_AFTER_MS_HEADER = "x-ms-retry-after-ms"
ACTIVITY_ID_HEADER = "x-ms-activity-id"


def value_at_path(document: dict[str, Any], path: str) -> Any:
    """Return the value at a ``/a/b`` style path, or ``MISSING`` if absent."""
    current: Any = document
    for segment in path.strip("/").split("/"):
        if not isinstance(current, dict) or segment not in current:
            return MISSING
        current = current[segment]
    return current


def _lower_keys(headers: Mapping[str, str] | None) -> dict[str, str]:
    return {k.lower(): v for k, v in (headers or {}).items()}


@dataclass(frozen=True)
class StoreResponse:
    """Status, headers and decoded JSON body of one store request.

    Header names are stored lower-cased.
    """

    status_code: int
    headers: dict[str, str] = field(default_factory=dict)
    body: Any = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "headers", _lower_keys(self.headers))

    @property
    def is_success(self) -> bool:
        return StatusCode.is_success(self.status_code)

    @property
    def continuation_token(self) -> str | None:
        return self.headers.get(CONTINUATION_HEADER) or None

    @property
    def request_charge(self) -> float:
        try:
            return float(self.headers.get(REQUEST_CHARGE_HEADER, 0.0))
        except ValueError:
            return 0.0

    @property
    def retry_after(self) -> float | None:
        """Server-suggested wait in seconds, if the store sent one."""
        millis = self.headers.get(RETRY_AFTER_MS_HEADER)
        if millis:
            try:
                return float(millis) / 1000.0
            except ValueError:
                pass
        seconds = self.headers.get("retry-after")
        if seconds:
            try:
                return float(seconds)
            except ValueError:
                pass
        return None

    @property
    def activity_id(self) -> str | None:
        return self.headers.get(ACTIVITY_ID_HEADER)


@runtime_checkable
class StoreTransport(Protocol):
    """Single-attempt store operations.

    Implementations return the store's answer as a ``StoreResponse``
    without interpreting the status code; retrying and status mapping
    belong to ``RetryingRequestExecutor``. Failures that carry a store
    status may instead be raised as ``StoreError``.
    """

    async def upsert_document(
        self, body: dict[str, Any], partition_key: PartitionKey
    ) -> StoreResponse: ...

    async def read_document(self, id: str, partition_key: PartitionKey) -> StoreResponse: ...

    async def delete_document(self, id: str, partition_key: PartitionKey) -> StoreResponse: ...

    async def query_documents(
        self,
        query: dict[str, Any],
        *,
        partition_key: PartitionKey | None = None,
        continuation_token: str | None = None,
        max_item_count: int | None = None,
    ) -> StoreResponse: ...

    async def close(self) -> None: ...
