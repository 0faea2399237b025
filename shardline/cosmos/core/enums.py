"""Enumerations shared across the client."""

from __future__ import annotations

from enum import Enum, IntEnum


class StatusCode(IntEnum):
    """HTTP status codes the client reacts to."""

    OK = 200
    CREATED = 201
    NO_CONTENT = 204
    BAD_REQUEST = 400
    NOT_FOUND = 404
    CONFLICT = 409
    PRECONDITION_FAILED = 412
    TOO_MANY_REQUESTS = 429

    @staticmethod
    def is_success(code: int) -> bool:
        return 200 <= code < 300


class PartitionKeyKind(str, Enum):
    """Value domain of a partition key on the wire."""

    NONE = "none"
    NULL = "null"
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"


class PropertyNaming(str, Enum):
    """How declared document property names are written to the store."""

    CAMEL_CASE = "camel_case"
    PRESERVE = "preserve"
