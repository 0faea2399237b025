"""Typed partition key values and coercion from arbitrary Python values."""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, ClassVar
from uuid import UUID

from ..core.enums import PartitionKeyKind
from ..core.exceptions import InvalidPartitionKeyValueError

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


@dataclass(frozen=True)
class PartitionKey:
    """A partition key in the store's key domain.

    ``PartitionKey.NONE`` addresses items stored without a partition key
    value; ``PartitionKey.null()`` addresses items whose partition key
    value is JSON ``null``. The two address different items.
    """

    kind: PartitionKeyKind
    value: str | int | float | bool | None = None

    NONE: ClassVar[PartitionKey]

    @classmethod
    def none(cls) -> PartitionKey:
        return cls.NONE

    @classmethod
    def null(cls) -> PartitionKey:
        return cls(PartitionKeyKind.NULL)

    @classmethod
    def of(cls, value: Any) -> PartitionKey:
        return coerce_partition_key(value)

    @property
    def is_none(self) -> bool:
        return self.kind is PartitionKeyKind.NONE

    def __str__(self) -> str:
        if self.kind is PartitionKeyKind.NONE:
            return "<none>"
        return json.dumps(self.value, ensure_ascii=True)


PartitionKey.NONE = PartitionKey(PartitionKeyKind.NONE)


def _string_key(value: str) -> PartitionKey:
    return PartitionKey(PartitionKeyKind.STRING, value)


def _number_key(value: int | float) -> PartitionKey:
    if isinstance(value, int):
        if _INT64_MIN <= value <= _INT64_MAX:
            return PartitionKey(PartitionKeyKind.NUMBER, value)
        value = float(value)
    if not math.isfinite(value):
        raise InvalidPartitionKeyValueError(
            f"Partition key number must be finite, got {value!r}", value=value
        )
    return PartitionKey(PartitionKeyKind.NUMBER, value)


def _exact_number_key(value: Decimal) -> PartitionKey:
    """Integer representation when exact, else double."""
    if not value.is_finite():
        raise InvalidPartitionKeyValueError(
            f"Partition key number must be finite, got {value!r}", value=value
        )
    if value == value.to_integral_value():
        integral = int(value)
        if _INT64_MIN <= integral <= _INT64_MAX:
            return PartitionKey(PartitionKeyKind.NUMBER, integral)
    return _number_key(float(value))


def _parse_text(text: str) -> PartitionKey | None:
    stripped = text.strip()
    try:
        return _number_key(int(stripped))
    except ValueError:
        pass
    try:
        number = float(stripped)
    except ValueError:
        pass
    else:
        if math.isfinite(number):
            return _number_key(number)
    lowered = stripped.lower()
    if lowered in ("true", "false"):
        return PartitionKey(PartitionKeyKind.BOOLEAN, lowered == "true")
    return None


def coerce_partition_key(value: Any, *, parse_strings: bool = False) -> PartitionKey:
    """Convert ``value`` into a ``PartitionKey``.

    Args:
        value: Value to convert
        parse_strings: Interpret native strings as text input: integer,
            then double, then boolean, falling back to a string key

    Raises:
        InvalidPartitionKeyValueError: For composite values and anything
            that cannot be read as a string, number or boolean
    """
    if isinstance(value, PartitionKey):
        return value
    if value is None:
        return PartitionKey.null()
    if isinstance(value, str):
        if parse_strings:
            return _parse_text(value) or _string_key(value)
        return _string_key(value)
    if isinstance(value, bool):
        return PartitionKey(PartitionKeyKind.BOOLEAN, value)
    if isinstance(value, (int, float)):
        return _number_key(value)

    # Tagged values: inspect what they carry.
    if isinstance(value, Enum):
        return coerce_partition_key(value.value, parse_strings=parse_strings)
    if isinstance(value, Decimal):
        return _exact_number_key(value)
    if isinstance(value, UUID):
        return _string_key(str(value))
    if isinstance(value, (list, tuple, dict, set, frozenset)):
        raise InvalidPartitionKeyValueError(
            f"Composite value of type {type(value).__name__} cannot be a partition key",
            value=value,
        )

    key = _parse_text(str(value))
    if key is None:
        raise InvalidPartitionKeyValueError(
            f"Cannot convert value of type {type(value).__name__} to a partition key",
            value=value,
        )
    return key


def parse_partition_key(text: str) -> PartitionKey:
    """Read a partition key from text input ("true", "12", "12.5", "abc")."""
    return coerce_partition_key(text, parse_strings=True)
