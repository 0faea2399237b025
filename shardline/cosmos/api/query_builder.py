"""Fluent builder for parameterized query definitions.

Architecture:
    ``QueryDefinitionBuilder`` accumulates query text and named parameters,
    optionally guarded by conditions, and ``build()`` returns an immutable
    ``QueryDefinition``. Value providers passed to the conditional methods
    are only invoked when their condition holds, so expensive lookups can
    be wired in without evaluating them up front.

Example:
    >>> query = (QueryDefinitionBuilder()
    ...     .append_text("SELECT * FROM c WHERE c.type = @type")
    ...     .with_parameter("@type", "Person")
    ...     .append_text_if(" AND c.lastName = @lastName", last_name is not None)
    ...     .with_parameter_if("@lastName", last_name, last_name is not None)
    ...     .build())
"""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Union

from pydantic_core import to_jsonable_python

Condition = Union[bool, Callable[[], bool]]
AsyncCondition = Union[bool, Callable[[], Union[bool, Awaitable[bool]]]]


@dataclass(frozen=True)
class QueryParameter:
    name: str
    value: Any


@dataclass(frozen=True)
class QueryDefinition:
    """Immutable query text with its named parameters."""

    text: str
    parameters: tuple[QueryParameter, ...] = ()

    def to_wire(self) -> dict[str, Any]:
        """Request body for a query call."""
        return {
            "query": self.text,
            "parameters": [
                {"name": p.name, "value": to_jsonable_python(p.value)} for p in self.parameters
            ],
        }

    def parameter(self, name: str) -> Any:
        for p in self.parameters:
            if p.name == name:
                return p.value
        raise KeyError(name)


def _holds(condition: Condition) -> bool:
    return bool(condition() if callable(condition) else condition)


async def _holds_async(condition: AsyncCondition) -> bool:
    result = condition() if callable(condition) else condition
    if inspect.isawaitable(result):
        result = await result
    return bool(result)


class QueryDefinitionBuilder:
    """Fluent builder for ``QueryDefinition``.

    Every method returns the builder so calls can be chained; the async
    variants return an awaitable resolving to the builder.
    """

    def __init__(self, text: str = "") -> None:
        self._parts: list[str] = [text] if text else []
        self._parameters: list[QueryParameter] = []

    def append_text(self, text: str) -> QueryDefinitionBuilder:
        self._parts.append(text)
        return self

    def append_text_if(self, text: str, condition: Condition) -> QueryDefinitionBuilder:
        if _holds(condition):
            self._parts.append(text)
        return self

    async def append_text_if_async(
        self, text: str, condition: AsyncCondition
    ) -> QueryDefinitionBuilder:
        if await _holds_async(condition):
            self._parts.append(text)
        return self

    def with_parameter(self, name: str, value: Any) -> QueryDefinitionBuilder:
        """Add a named parameter.

        Raises:
            ValueError: If ``name`` does not start with ``@``
        """
        if not name.startswith("@") or len(name) < 2:
            raise ValueError(f"Parameter name must start with '@', got {name!r}")
        self._parameters.append(QueryParameter(name, value))
        return self

    def with_parameter_if(
        self,
        name: str,
        value: Any,
        condition: Condition,
    ) -> QueryDefinitionBuilder:
        """Add a named parameter when ``condition`` holds.

        Args:
            name: Parameter name, including the leading ``@``
            value: The value, or a zero-argument callable providing it.
                The provider is not called when the condition is false.
            condition: Boolean or zero-argument predicate
        """
        if _holds(condition):
            self.with_parameter(name, value() if callable(value) else value)
        return self

    async def with_parameter_if_async(
        self,
        name: str,
        value: Any,
        condition: AsyncCondition,
    ) -> QueryDefinitionBuilder:
        """Async form of ``with_parameter_if``.

        Both the predicate and the value provider may be coroutine functions.
        """
        if not await _holds_async(condition):
            return self
        if callable(value):
            value = value()
        if inspect.isawaitable(value):
            value = await value
        return self.with_parameter(name, value)

    def build(self) -> QueryDefinition:
        """Build the query definition.

        Raises:
            ValueError: If the query text is empty or a parameter name repeats
        """
        text = "".join(self._parts)
        if not text.strip():
            raise ValueError("Query text is required")

        seen: set[str] = set()
        for p in self._parameters:
            if p.name in seen:
                raise ValueError(f"Duplicate query parameter: {p.name}")
            seen.add(p.name)

        return QueryDefinition(text=text, parameters=tuple(self._parameters))
