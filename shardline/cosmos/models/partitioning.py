"""Synthetic partition key composition.

A document kind declares which of its properties make up its partition key
by annotating them with a ``PartitionKeyField``. The annotations are
collected once per kind into a ``PartitionKeyDescriptor``; whenever one of
the referenced properties changes, the descriptor composes the new
partition value from the current property values.

Composition:
    Each entry's value is formatted with ``format(value, format_spec)``
    when a format spec is given, then localised to the entry's culture
    (decimal and grouping symbols of numeric values), else stringified.
    The pieces are joined with the kind's separator. An empty descriptor
    leaves the partition at its default, the document type name.
"""

from __future__ import annotations

import numbers
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

from babel.core import Locale, UnknownLocaleError
from babel.numbers import get_decimal_symbol, get_group_symbol

from ..core.exceptions import FormatError

DEFAULT_SEPARATOR = "/"


@dataclass(frozen=True)
class PartitionKeyField:
    """Marks a property as part of a document's synthetic partition key.

    Attributes:
        index: Position of the property in the composed key (ascending)
        format_spec: Python format specification, e.g. ``".1f"`` or ``"%Y%m%d"``
        culture: Culture whose number symbols are used, e.g. ``"fi-FI"``
    """

    index: int
    format_spec: str | None = None
    culture: str | None = None


@dataclass(frozen=True)
class PartitionKeyEntry:
    property_name: str
    field: PartitionKeyField


@dataclass(frozen=True)
class PartitionKeyDescriptor:
    """Ordered partition key layout of one document kind."""

    entries: tuple[PartitionKeyEntry, ...] = ()
    separator: str = DEFAULT_SEPARATOR
    inherit_base_properties: bool = True

    @classmethod
    def from_fields(
        cls,
        fields: list[tuple[str, PartitionKeyField]],
        *,
        separator: str = DEFAULT_SEPARATOR,
        inherit_base_properties: bool = True,
    ) -> PartitionKeyDescriptor:
        """Build a descriptor, ordering entries by index.

        ``sorted`` is stable, so entries sharing an index keep the order in
        which they were supplied.
        """
        ordered = sorted(fields, key=lambda item: item[1].index)
        return cls(
            entries=tuple(PartitionKeyEntry(name, f) for name, f in ordered),
            separator=separator,
            inherit_base_properties=inherit_base_properties,
        )

    @property
    def property_names(self) -> frozenset[str]:
        return frozenset(entry.property_name for entry in self.entries)

    @property
    def is_empty(self) -> bool:
        return not self.entries

    def references(self, name: str) -> bool:
        return any(entry.property_name == name for entry in self.entries)

    def compose(self, document: Any) -> str:
        """Compose the partition value from the current property values."""
        parts = [
            format_partition_value(
                getattr(document, entry.property_name),
                entry.field.format_spec,
                entry.field.culture,
                property_name=entry.property_name,
            )
            for entry in self.entries
        ]
        return self.separator.join(parts)


@lru_cache(maxsize=64)
def _number_symbols(culture: str) -> tuple[str, str]:
    locale = Locale.parse(culture.replace("-", "_"))
    return get_decimal_symbol(locale), get_group_symbol(locale)


def format_partition_value(
    value: Any,
    format_spec: str | None = None,
    culture: str | None = None,
    *,
    property_name: str | None = None,
) -> str:
    """Format one partition key component.

    Raises:
        FormatError: If the format spec does not apply to the value or the
            culture is unknown
    """
    if value is None:
        return ""
    if not format_spec:
        return str(value)

    try:
        text = format(value, format_spec)
    except (TypeError, ValueError) as e:
        raise FormatError(
            f"Cannot format {type(value).__name__} value with {format_spec!r}"
            + (f" for property '{property_name}'" if property_name else ""),
            property_name=property_name,
            format_spec=format_spec,
            culture=culture,
        ) from e

    if culture and isinstance(value, numbers.Number) and not isinstance(value, bool):
        try:
            decimal_symbol, group_symbol = _number_symbols(culture)
        except (UnknownLocaleError, ValueError) as e:
            raise FormatError(
                f"Unknown culture {culture!r}",
                property_name=property_name,
                format_spec=format_spec,
                culture=culture,
            ) from e
        text = text.translate(str.maketrans({".": decimal_symbol, ",": group_symbol}))

    return text
