"""Runtime components: retries, paging, serialization and telemetry."""

from .paging import QueryOptions, QueryPager, QueryResult, to_list
from .retry import RetryingRequestExecutor, RetryPolicy, RetryState
from .serialization import DocumentSerializer, ItemResponse

__all__ = [
    "RetryPolicy",
    "RetryState",
    "RetryingRequestExecutor",
    "QueryOptions",
    "QueryPager",
    "QueryResult",
    "to_list",
    "DocumentSerializer",
    "ItemResponse",
]
