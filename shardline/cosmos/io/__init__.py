"""Transports: the store contract and its implementations."""

from .azure_sdk import AzureCosmosTransport
from .memory import InMemoryTransport
from .transport import StoreResponse, StoreTransport

__all__ = [
    "StoreResponse",
    "StoreTransport",
    "InMemoryTransport",
    "AzureCosmosTransport",
]
