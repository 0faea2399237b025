"""Document model with synthetic partition keys.

Architecture:
    A ``Document`` keeps all of its values in a ``PropertyStore``. Declared
    properties are ``DocumentProperty`` descriptors that read and write
    through that store, so every assignment produces a change notification.
    The document owns the single consumer of those notifications: it
    recomputes ``partition`` when a property referenced by its kind's
    ``PartitionKeyDescriptor`` changes, then hands the change to the
    optional per-instance ``property_changed`` callback.

    Per-kind configuration is passed as class keyword arguments and the
    descriptor is computed once, when the class is created:

    >>> class Person(Document, partition_key_separator="|"):
    ...     type = Document.type.as_partition_key(0)
    ...     first_name = DocumentProperty(str)
    ...     last_name = partition_key_property(1, str)
    >>> Person(first_name="John", last_name="Doe").partition
    'Person|Doe'

Serialization:
    ``to_dict`` and ``from_dict`` convert to and from the stored JSON
    shape. Declared property names follow the naming policy (camelCase by
    default); open-bag names are written verbatim. ``from_dict`` resolves
    the concrete kind from the ``type`` field so derived kinds survive a
    round-trip through a base-kind call.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable, Mapping
from datetime import datetime, timezone
from typing import Any, ClassVar, Generic, TypeVar
from uuid import uuid4

from pydantic import TypeAdapter, ValidationError
from pydantic.alias_generators import to_camel
from pydantic_core import to_jsonable_python

from ..core.enums import PropertyNaming
from ..core.exceptions import SerializationError
from .partitioning import DEFAULT_SEPARATOR, PartitionKeyDescriptor, PartitionKeyField
from .properties import PropertyChange, PropertyStore

logger = logging.getLogger(__name__)

T = TypeVar("T")
D = TypeVar("D", bound="Document")

_ID_FORBIDDEN = str.maketrans({"#": "_", "/": "_", "\\": "_"})


def sanitize_id(value: str) -> str:
    """Replace characters the store forbids in resource ids with ``_``."""
    if not isinstance(value, str):
        raise TypeError(f"id must be a string, got {type(value).__name__}")
    return value.translate(_ID_FORBIDDEN)


def wire_name(name: str, naming: PropertyNaming) -> str:
    if naming is PropertyNaming.CAMEL_CASE:
        return to_camel(name)
    return name


class DocumentProperty(Generic[T]):
    """A declared document property stored in the document's property bag.

    Args:
        value_type: Type used to validate values read from the store
        default: Value stored on first read when the property is unset
        default_factory: Zero-argument callable producing the default
        default_from: Callable receiving the document, producing the default
        converter: Applied to every assigned value before it is stored
        partition_key: Marks the property as part of the partition key
    """

    def __init__(
        self,
        value_type: Any = Any,
        *,
        default: Any = None,
        default_factory: Callable[[], T] | None = None,
        default_from: Callable[[Any], T] | None = None,
        converter: Callable[[Any], T] | None = None,
        partition_key: PartitionKeyField | None = None,
    ) -> None:
        if default_factory is not None and default_from is not None:
            raise ValueError("default_factory and default_from are mutually exclusive")
        self.value_type = value_type
        self.default = default
        self.default_factory = default_factory
        self.default_from = default_from
        self.converter = converter
        self.partition_key = partition_key
        self.name = ""
        self._adapter: TypeAdapter[Any] | None = None

    def __set_name__(self, owner: type, name: str) -> None:
        self.name = name

    def __get__(self, instance: Any, owner: type | None = None) -> Any:
        if instance is None:
            return self
        return instance._properties.get(self.name, lambda: self.default_value(instance))

    def __set__(self, instance: Any, value: Any) -> None:
        self.assign(instance, value)

    def assign(self, instance: Any, value: Any) -> bool:
        """Convert and store ``value``; True if the stored value changed."""
        if self.converter is not None:
            value = self.converter(value)
        return instance._properties.set(self.name, value)

    def default_value(self, instance: Any) -> Any:
        if self.default_from is not None:
            return self.default_from(instance)
        if self.default_factory is not None:
            return self.default_factory()
        return self.default

    def as_partition_key(
        self,
        index: int,
        format_spec: str | None = None,
        culture: str | None = None,
    ) -> DocumentProperty[T]:
        """Return a copy of this property annotated as a partition key part.

        Used to annotate a property inherited from a base kind:
        ``type = Document.type.as_partition_key(0)``.
        """
        annotated = copy.copy(self)
        annotated.partition_key = PartitionKeyField(index, format_spec, culture)
        return annotated

    def validate(self, value: Any) -> Any:
        if self.value_type is Any or value is None:
            return value
        if self._adapter is None:
            self._adapter = TypeAdapter(self.value_type)
        return self._adapter.validate_python(value)

    def __repr__(self) -> str:
        return f"DocumentProperty(name={self.name!r}, partition_key={self.partition_key!r})"


def partition_key_property(
    index: int,
    value_type: Any = Any,
    *,
    format_spec: str | None = None,
    culture: str | None = None,
    **kwargs: Any,
) -> DocumentProperty[Any]:
    """Declare a new property that takes part in the partition key."""
    return DocumentProperty(
        value_type,
        partition_key=PartitionKeyField(index, format_spec, culture),
        **kwargs,
    )


class Document:
    """An identified record with an open property bag and a derived partition.

    Class keyword arguments:
        kind: Type name written to ``type`` (default: the class name)
        partition_key_separator: Separator between partition key parts
        inherit_partition_key_properties: Whether annotated properties
            declared on base kinds take part in the partition key
    """

    __kind__: ClassVar[str]
    __partition_key__: ClassVar[PartitionKeyDescriptor]
    __document_properties__: ClassVar[dict[str, DocumentProperty[Any]]]
    _kinds: ClassVar[dict[str, type[Document]]] = {}

    id = DocumentProperty(str, default_factory=lambda: str(uuid4()), converter=sanitize_id)
    type = DocumentProperty(str, default_from=lambda doc: type(doc).__kind__)
    partition = DocumentProperty(str, default_from=lambda doc: doc._default_partition())

    def __init_subclass__(
        cls,
        *,
        kind: str | None = None,
        partition_key_separator: str | None = None,
        inherit_partition_key_properties: bool | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init_subclass__(**kwargs)
        cls._configure_kind(kind, partition_key_separator, inherit_partition_key_properties)

    @classmethod
    def _configure_kind(
        cls,
        kind: str | None,
        separator: str | None,
        inherit: bool | None,
    ) -> None:
        parent = next(
            (base.__partition_key__ for base in cls.__mro__[1:] if "__partition_key__" in vars(base)),
            None,
        )
        if separator is None:
            separator = parent.separator if parent else DEFAULT_SEPARATOR
        if inherit is None:
            inherit = parent.inherit_base_properties if parent else True

        properties: dict[str, DocumentProperty[Any]] = {}
        for klass in reversed(cls.__mro__):
            for name, attr in vars(klass).items():
                if isinstance(attr, DocumentProperty):
                    properties[name] = attr
                elif name in properties:
                    del properties[name]

        if inherit:
            candidates = list(properties.items())
        else:
            candidates = [
                (name, attr)
                for name, attr in vars(cls).items()
                if isinstance(attr, DocumentProperty)
            ]

        cls.__kind__ = kind or cls.__name__
        cls.__document_properties__ = properties
        cls.__partition_key__ = PartitionKeyDescriptor.from_fields(
            [(name, attr.partition_key) for name, attr in candidates if attr.partition_key],
            separator=separator,
            inherit_base_properties=inherit,
        )

        if cls.__kind__ in Document._kinds and Document._kinds[cls.__kind__] is not cls:
            logger.debug(
                "document_kind_replaced",
                extra={"kind": cls.__kind__, "document_class": cls.__qualname__},
            )
        Document._kinds[cls.__kind__] = cls

    def __init__(self, **values: Any) -> None:
        self.property_changed: Callable[[PropertyChange], None] | None = None
        self._properties = PropertyStore(on_change=self._handle_property_change)
        declared = type(self).__document_properties__
        for name, value in values.items():
            if name in declared:
                setattr(self, name, value)
            else:
                self._properties.set(name, value)

    def _default_partition(self) -> str:
        descriptor = type(self).__partition_key__
        if descriptor.is_empty:
            return self.type
        return descriptor.compose(self)

    def _handle_property_change(self, change: PropertyChange) -> None:
        descriptor = type(self).__partition_key__
        if descriptor.references(change.name):
            self.partition = descriptor.compose(self)

        if self.property_changed is not None:
            self.property_changed(change)

    # --- open property bag ---------------------------------------------------

    def __getitem__(self, name: str) -> Any:
        if name in type(self).__document_properties__:
            return getattr(self, name)
        if name not in self._properties:
            raise KeyError(name)
        return self._properties.peek(name)

    def __setitem__(self, name: str, value: Any) -> None:
        if name in type(self).__document_properties__:
            setattr(self, name, value)
        else:
            self._properties.set(name, value)

    def __contains__(self, name: object) -> bool:
        return name in self._properties

    def get(self, name: str, default: Any = None) -> Any:
        """Return an open-bag or declared value without storing ``default``."""
        if name in type(self).__document_properties__:
            return getattr(self, name)
        return self._properties.peek(name, default)

    def set_property(self, name: str, value: Any) -> bool:
        """Store ``value`` and report whether it changed."""
        declared = type(self).__document_properties__
        if name in declared:
            return declared[name].assign(self, value)
        return self._properties.set(name, value)

    # --- serialization -------------------------------------------------------

    def to_dict(
        self,
        naming: PropertyNaming = PropertyNaming.CAMEL_CASE,
        exclude_none: bool = True,
    ) -> dict[str, Any]:
        """Return the JSON-compatible stored shape of this document."""
        declared = type(self).__document_properties__
        for name in declared:
            getattr(self, name)

        out: dict[str, Any] = {}
        for name, value in self._properties.items():
            if value is None and exclude_none:
                continue
            key = wire_name(name, naming) if name in declared else name
            out[key] = to_jsonable_python(value)
        return out

    @classmethod
    def from_dict(
        cls: type[D],
        data: Mapping[str, Any],
        naming: PropertyNaming = PropertyNaming.CAMEL_CASE,
        *,
        polymorphic: bool = True,
    ) -> D:
        """Build a document from its stored shape.

        Args:
            data: Stored JSON object
            naming: Naming policy the data was written with
            polymorphic: Resolve the concrete kind from the ``type`` field.
                Only subclasses of ``cls`` are considered.

        Raises:
            SerializationError: If a declared property value fails validation
        """
        if not isinstance(data, Mapping):
            raise SerializationError(
                f"Cannot build {cls.__name__} from {type(data).__name__}", target_type=cls
            )

        target: type[D] = cls
        if polymorphic:
            kind = data.get("type")
            candidate = Document._kinds.get(kind) if isinstance(kind, str) else None
            if candidate is not None and issubclass(candidate, cls):
                target = candidate

        declared = target.__document_properties__
        by_wire_name = {wire_name(name, naming): name for name in declared}
        by_wire_name.update({name: name for name in declared})

        document = target()
        for key, value in data.items():
            name = by_wire_name.get(key)
            if name is None:
                document._properties.set(key, value)
                continue
            try:
                setattr(document, name, declared[name].validate(value))
            except (ValidationError, TypeError) as e:
                raise SerializationError(
                    f"Invalid value for {target.__name__}.{name}: {e}", target_type=target
                ) from e
        return document

    @classmethod
    def kind_for(cls, kind: str) -> type[Document] | None:
        """Return the registered document class for a type name."""
        return Document._kinds.get(kind)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._properties.to_dict()!r})"


Document._configure_kind(None, None, None)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TimestampedDocument(Document):
    """Document with caller-managed creation and modification timestamps."""

    created = DocumentProperty(datetime, default_factory=_utcnow)
    modified = DocumentProperty(datetime, default_factory=_utcnow)
