"""Public API: the container facade and the query builder."""

from .container import ContainerProxy
from .query_builder import QueryDefinition, QueryDefinitionBuilder, QueryParameter

__all__ = [
    "ContainerProxy",
    "QueryDefinition",
    "QueryDefinitionBuilder",
    "QueryParameter",
]
