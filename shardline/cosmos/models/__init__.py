"""Document models and partition key handling.

Model Categories:
    - Documents: Document, TimestampedDocument, DocumentProperty
    - Partition composition: PartitionKeyField, PartitionKeyDescriptor
    - Partition values: PartitionKey, coerce_partition_key
    - Change tracking: PropertyStore, PropertyChange
"""

from .document import (
    Document,
    DocumentProperty,
    TimestampedDocument,
    partition_key_property,
    sanitize_id,
)
from .partition_key import PartitionKey, coerce_partition_key, parse_partition_key
from .partitioning import (
    DEFAULT_SEPARATOR,
    PartitionKeyDescriptor,
    PartitionKeyEntry,
    PartitionKeyField,
    format_partition_value,
)
from .properties import MISSING, PropertyChange, PropertyStore

__all__ = [
    "Document",
    "DocumentProperty",
    "TimestampedDocument",
    "partition_key_property",
    "sanitize_id",
    "PartitionKey",
    "coerce_partition_key",
    "parse_partition_key",
    "DEFAULT_SEPARATOR",
    "PartitionKeyDescriptor",
    "PartitionKeyEntry",
    "PartitionKeyField",
    "format_partition_value",
    "MISSING",
    "PropertyChange",
    "PropertyStore",
]
