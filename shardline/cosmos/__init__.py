"""Resilient async client for a partitioned JSON document store.

Architecture:
    - core: enums, options and the exception hierarchy
    - models: documents, synthetic partition keys and partition key values
    - api: the ContainerProxy facade and the query builder
    - runtime: retry executor, query paging, serialization and telemetry
    - io: the transport contract, the azure-cosmos SDK transport and an in-memory container

Example:
    >>> from shardline.cosmos import ClientOptions, ContainerProxy, InMemoryTransport
    >>> container = ContainerProxy(InMemoryTransport(), ClientOptions(default_retry_delay=0.1))
"""

from .api import ContainerProxy, QueryDefinition, QueryDefinitionBuilder, QueryParameter
from .core import (
    ClientOptions,
    ConnectionOptions,
    CosmosError,
    FormatError,
    InvalidPartitionKeyValueError,
    NotFoundError,
    OperationCancelledError,
    PartitionKeyKind,
    PropertyNaming,
    RetryLimitExceededError,
    SerializationError,
    StatusCode,
    StoreError,
    ThrottlingError,
    UnexpectedStatusError,
)
from .io import AzureCosmosTransport, InMemoryTransport, StoreResponse, StoreTransport
from .models import (
    Document,
    DocumentProperty,
    PartitionKey,
    PartitionKeyDescriptor,
    PartitionKeyField,
    PropertyChange,
    PropertyStore,
    TimestampedDocument,
    coerce_partition_key,
    parse_partition_key,
    partition_key_property,
)
from .runtime import (
    DocumentSerializer,
    ItemResponse,
    QueryOptions,
    QueryPager,
    QueryResult,
    RetryingRequestExecutor,
    RetryPolicy,
    to_list,
)

__version__ = "0.1.0"

__all__ = [
    # API
    "ContainerProxy",
    "QueryDefinition",
    "QueryDefinitionBuilder",
    "QueryParameter",
    # Core
    "ClientOptions",
    "ConnectionOptions",
    "StatusCode",
    "PartitionKeyKind",
    "PropertyNaming",
    # Exceptions
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
    # Models
    "Document",
    "DocumentProperty",
    "TimestampedDocument",
    "partition_key_property",
    "PartitionKey",
    "PartitionKeyDescriptor",
    "PartitionKeyField",
    "PropertyChange",
    "PropertyStore",
    "coerce_partition_key",
    "parse_partition_key",
    # Runtime
    "RetryPolicy",
    "RetryingRequestExecutor",
    "QueryOptions",
    "QueryPager",
    "QueryResult",
    "to_list",
    "DocumentSerializer",
    "ItemResponse",
    # IO
    "StoreResponse",
    "StoreTransport",
    "InMemoryTransport",
    "AzureCosmosTransport",
]
