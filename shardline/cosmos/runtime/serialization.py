"""Conversion between Python items and the store's JSON documents."""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, TypeAdapter, ValidationError
from pydantic_core import PydanticSerializationError, to_jsonable_python

from ..core.enums import PropertyNaming
from ..core.exceptions import SerializationError
from ..models.document import Document

T = TypeVar("T")


@lru_cache(maxsize=256)
def _adapter(target_type: Any) -> TypeAdapter[Any]:
    return TypeAdapter(target_type)


def _type_name(target_type: Any) -> str:
    return getattr(target_type, "__name__", repr(target_type))


class DocumentSerializer:
    """Serializes items for writes and deserializes query and read results.

    Args:
        naming: Naming policy for declared document properties
        exclude_none: Omit ``None`` values from written documents
    """

    def __init__(
        self,
        naming: PropertyNaming = PropertyNaming.CAMEL_CASE,
        exclude_none: bool = True,
    ) -> None:
        self.naming = naming
        self.exclude_none = exclude_none

    def to_wire(self, item: Any) -> dict[str, Any]:
        """Convert ``item`` into a JSON object.

        Raises:
            SerializationError: If the item does not serialize to a JSON object
        """
        try:
            if isinstance(item, Document):
                return item.to_dict(self.naming, self.exclude_none)
            if isinstance(item, BaseModel):
                data = item.model_dump(
                    mode="json",
                    by_alias=True,
                    exclude_none=self.exclude_none,
                )
            elif dataclasses.is_dataclass(item) and not isinstance(item, type):
                data = to_jsonable_python(dataclasses.asdict(item))
            elif isinstance(item, Mapping):
                data = to_jsonable_python(dict(item))
            else:
                raise SerializationError(
                    f"Cannot serialize {type(item).__name__} as a document",
                    target_type=type(item),
                )
        except PydanticSerializationError as e:
            raise SerializationError(
                f"Cannot serialize {type(item).__name__}: {e}", target_type=type(item)
            ) from e

        if not isinstance(data, dict):
            raise SerializationError(
                f"{type(item).__name__} did not serialize to a JSON object",
                target_type=type(item),
            )
        if self.exclude_none and not isinstance(item, BaseModel):
            data = {k: v for k, v in data.items() if v is not None}
        return data

    def from_wire(self, data: Any, target_type: type[T] | Any) -> T:
        """Convert a stored JSON object into ``target_type``.

        Raises:
            SerializationError: If the data does not fit the target type
        """
        if target_type is Any or target_type is dict:
            if target_type is dict and not isinstance(data, dict):
                raise SerializationError(
                    f"Expected a JSON object, got {type(data).__name__}", target_type=dict
                )
            return data

        if isinstance(target_type, type) and issubclass(target_type, Document):
            return target_type.from_dict(data, self.naming)

        try:
            return _adapter(target_type).validate_python(data)
        except ValidationError as e:
            raise SerializationError(
                f"Cannot deserialize into {_type_name(target_type)}: {e}",
                target_type=target_type,
            ) from e


@dataclass(frozen=True)
class ItemResponse(Generic[T]):
    """Result of a write, tagged with the type of the item that was written.

    ``raw`` holds the document the store returned. ``resource()`` converts
    it back into ``item_type``, so a derived document kind upserted through
    a base-kind reference comes back as the derived kind.
    """

    status_code: int
    raw: dict[str, Any] | None
    item_type: type[T]
    request_charge: float = 0.0
    activity_id: str | None = None
    serializer: DocumentSerializer = field(default_factory=DocumentSerializer, repr=False)

    def resource(self) -> T | None:
        if self.raw is None:
            return None
        return self.serializer.from_wire(self.raw, self.item_type)
