"""Core components."""

from .enums import PartitionKeyKind, PropertyNaming, StatusCode
from .exceptions import (
    CosmosError,
    FormatError,
    InvalidPartitionKeyValueError,
    NotFoundError,
    OperationCancelledError,
    RetryLimitExceededError,
    SerializationError,
    StoreError,
    ThrottlingError,
    UnexpectedStatusError,
)
from .options import ClientOptions, ConnectionOptions

__all__ = [
    "StatusCode",
    "PartitionKeyKind",
    "PropertyNaming",
    "ClientOptions",
    "ConnectionOptions",
    "CosmosError",
    "StoreError",
    "ThrottlingError",
    "RetryLimitExceededError",
    "NotFoundError",
    "UnexpectedStatusError",
    "SerializationError",
    "InvalidPartitionKeyValueError",
    "FormatError",
    "OperationCancelledError",
]
