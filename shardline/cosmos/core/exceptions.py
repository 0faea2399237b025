"""Custom exception hierarchy."""

from __future__ import annotations

from typing import Any


class CosmosError(Exception):
    """Base exception for all library errors."""

    pass


class StoreError(CosmosError):
    """Error reported by the document store for a single request.

    Transports raise this (or a subclass) when the store answers with a
    status code instead of a response object; the retry executor inspects
    ``status_code`` the same way it inspects a returned response.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        activity_id: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.activity_id = activity_id


class ThrottlingError(StoreError):
    """Store rejected the request because provisioned throughput was exceeded."""

    def __init__(
        self,
        message: str,
        retry_after: float | None = None,
        activity_id: str | None = None,
    ) -> None:
        super().__init__(message, status_code=429, activity_id=activity_id)
        self.retry_after = retry_after


class RetryLimitExceededError(ThrottlingError):
    """Throttling persisted past the configured retry ceiling or wait budget."""

    def __init__(
        self,
        message: str,
        attempts: int,
        retry_after: float | None = None,
        activity_id: str | None = None,
    ) -> None:
        super().__init__(message, retry_after=retry_after, activity_id=activity_id)
        self.attempts = attempts


class NotFoundError(StoreError):
    """The addressed item does not exist."""

    def __init__(self, message: str, activity_id: str | None = None) -> None:
        super().__init__(message, status_code=404, activity_id=activity_id)


class UnexpectedStatusError(StoreError):
    """The store answered with a non-success status that is never retried."""

    pass


class SerializationError(CosmosError):
    """An item could not be converted to or from its wire representation."""

    def __init__(self, message: str, target_type: type | None = None) -> None:
        super().__init__(message)
        self.target_type = target_type


class InvalidPartitionKeyValueError(CosmosError, ValueError):
    """Value cannot be represented in the partition key domain."""

    def __init__(self, message: str, value: Any = None) -> None:
        super().__init__(message)
        self.value = value


class FormatError(CosmosError, ValueError):
    """A partition key format string does not fit the property value."""

    def __init__(
        self,
        message: str,
        property_name: str | None = None,
        format_spec: str | None = None,
        culture: str | None = None,
    ) -> None:
        super().__init__(message)
        self.property_name = property_name
        self.format_spec = format_spec
        self.culture = culture


class OperationCancelledError(CosmosError):
    """The caller signalled cancellation before the operation completed."""

    pass
