"""Unit tests for partition key values and coercion."""

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from uuid import UUID

import pytest

from shardline.cosmos.core import InvalidPartitionKeyValueError, PartitionKeyKind
from shardline.cosmos.models import PartitionKey, coerce_partition_key, parse_partition_key


class Region(Enum):
    NORTH = 3
    SOUTH = "south"


class Wrapped:
    def __init__(self, text: str) -> None:
        self.text = text

    def __str__(self) -> str:
        return self.text


class TestPartitionKey:
    """Test PartitionKey kinds."""

    def test_none_and_null_are_distinct(self):
        """Test that NONE and the null key differ."""
        assert PartitionKey.NONE != PartitionKey.null()
        assert PartitionKey.none() is PartitionKey.NONE
        assert PartitionKey.NONE.is_none

    def test_string_forms(self):
        """Test the string form of each key kind."""
        assert str(PartitionKey.of("aä")) == '"a\\u00e4"'
        assert str(PartitionKey.of(True)) == "true"
        assert str(PartitionKey.of(12.5)) == "12.5"
        assert str(PartitionKey.null()) == "null"
        assert str(PartitionKey.NONE) == "<none>"


class TestCoercion:
    """Test coercing values into partition keys."""

    def test_none_is_null_key(self):
        """Test that None converts to the null key."""
        assert coerce_partition_key(None) == PartitionKey(PartitionKeyKind.NULL)

    def test_existing_key_passes_through(self):
        """Test that a PartitionKey converts to itself."""
        key = PartitionKey.of("x")
        assert coerce_partition_key(key) is key

    @pytest.mark.parametrize("text", ["true", "12.5", "", "abc"])
    def test_strings_stay_strings(self, text):
        """Test that strings are never reparsed."""
        assert coerce_partition_key(text) == PartitionKey(PartitionKeyKind.STRING, text)

    @pytest.mark.parametrize(
        "text, kind, value",
        [
            ("true", PartitionKeyKind.BOOLEAN, True),
            ("FALSE", PartitionKeyKind.BOOLEAN, False),
            ("12", PartitionKeyKind.NUMBER, 12),
            ("12.5", PartitionKeyKind.NUMBER, 12.5),
            ("abc", PartitionKeyKind.STRING, "abc"),
        ],
    )
    def test_parse_strings(self, text, kind, value):
        """Test parsing text forms into keys."""
        key = parse_partition_key(text)
        assert key.kind is kind
        assert key.value == value
        assert type(key.value) is type(value)

    def test_bool_before_int(self):
        """Test that booleans are not treated as integers."""
        assert coerce_partition_key(True).kind is PartitionKeyKind.BOOLEAN

    def test_integers(self):
        """Test integer keys."""
        key = coerce_partition_key(42)
        assert key.kind is PartitionKeyKind.NUMBER
        assert key.value == 42

    def test_integer_outside_64_bit_becomes_double(self):
        """Test that integers beyond 64 bits become doubles."""
        key = coerce_partition_key(2**70)
        assert isinstance(key.value, float)

    @pytest.mark.parametrize("value", [float("nan"), float("inf")])
    def test_non_finite_rejected(self, value):
        """Test that NaN and infinities are rejected."""
        with pytest.raises(InvalidPartitionKeyValueError):
            coerce_partition_key(value)

    def test_decimal(self):
        """Test decimal keys."""
        assert coerce_partition_key(Decimal("3")).value == 3
        assert isinstance(coerce_partition_key(Decimal("3")).value, int)
        assert coerce_partition_key(Decimal("2.5")).value == 2.5

    def test_enum_uses_value(self):
        """Test that enum members use their value."""
        assert coerce_partition_key(Region.NORTH) == PartitionKey(PartitionKeyKind.NUMBER, 3)
        assert coerce_partition_key(Region.SOUTH) == PartitionKey(PartitionKeyKind.STRING, "south")

    def test_uuid_is_string(self):
        """Test that UUIDs become string keys."""
        value = UUID("12345678-1234-5678-1234-567812345678")
        key = coerce_partition_key(value)
        assert key == PartitionKey(PartitionKeyKind.STRING, str(value))

    @pytest.mark.parametrize("value", [[1], (1,), {"a": 1}, {1}])
    def test_composites_rejected(self, value):
        """Test that composite values are rejected."""
        with pytest.raises(InvalidPartitionKeyValueError) as exc_info:
            coerce_partition_key(value)
        assert exc_info.value.value == value

    def test_fallback_parses_text_form(self):
        """Test the text-form fallback for other types."""
        assert coerce_partition_key(Wrapped("7")).value == 7
        assert coerce_partition_key(Wrapped("true")).value is True

    def test_fallback_rejects_unparseable(self):
        """Test that unparseable fallback text is rejected."""
        with pytest.raises(ValueError):
            coerce_partition_key(Wrapped("not a key"))
