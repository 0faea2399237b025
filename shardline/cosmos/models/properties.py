"""Change-notifying property bag backing every document instance."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Any


class _Missing:
    """Marker for a property that had no value before a change."""

    _instance: _Missing | None = None

    def __new__(cls) -> _Missing:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()


@dataclass(frozen=True)
class PropertyChange:
    """A single property value change.

    Attributes:
        name: Name of the property that changed
        old_value: Previous value, or MISSING if the property was absent
        new_value: Value now stored
    """

    name: str
    old_value: Any
    new_value: Any

    @property
    def was_absent(self) -> bool:
        return self.old_value is MISSING


class PropertyStore:
    """Named values with synchronous change notification.

    A read miss materialises the default (write-on-read-miss), so a read can
    itself emit a change notification. The store assumes a single writer.
    """

    def __init__(self, on_change: Callable[[PropertyChange], None] | None = None) -> None:
        self._values: dict[str, Any] = {}
        self._on_change = on_change

    def get(self, name: str, default_factory: Callable[[], Any] | None = None) -> Any:
        """Return the value of ``name``, storing a default on a miss.

        Args:
            name: Property name
            default_factory: Invoked once, only when the property is absent.
                ``None`` stores ``None``.

        Returns:
            The stored value
        """
        if name not in self._values:
            self.set(name, default_factory() if default_factory is not None else None)
        return self._values[name]

    def set(self, name: str, value: Any) -> bool:
        """Store ``value`` under ``name``.

        Returns:
            True if the stored value changed (and a notification fired)
        """
        old_value = self._values.get(name, MISSING)
        # 1, 1.0 and True compare equal but are different stored values
        if old_value is not MISSING and type(old_value) is type(value) and old_value == value:
            return False

        self._values[name] = value
        if self._on_change is not None:
            self._on_change(PropertyChange(name, old_value, value))
        return True

    def peek(self, name: str, default: Any = None) -> Any:
        """Return the value of ``name`` without materialising a default."""
        return self._values.get(name, default)

    def items(self) -> Iterator[tuple[str, Any]]:
        return iter(list(self._values.items()))

    def to_dict(self) -> dict[str, Any]:
        return dict(self._values)

    def __contains__(self, name: object) -> bool:
        return name in self._values

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._values))

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"PropertyStore({self._values!r})"
