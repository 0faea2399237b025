"""Unit tests for QueryDefinitionBuilder."""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from shardline.cosmos.api import QueryDefinition, QueryDefinitionBuilder, QueryParameter


class TestQueryDefinitionBuilder:
    """Test fluent query construction."""

    def test_build_text_and_parameters(self):
        """Test building query text and parameters."""
        query = (
            QueryDefinitionBuilder("SELECT * FROM c")
            .append_text(" WHERE c.type = @type")
            .with_parameter("@type", "Person")
            .build()
        )
        assert query.text == "SELECT * FROM c WHERE c.type = @type"
        assert query.parameters == (QueryParameter("@type", "Person"),)
        assert query.parameter("@type") == "Person"

    def test_conditional_text(self):
        """Test text appended only when its condition holds."""
        query = (
            QueryDefinitionBuilder("SELECT * FROM c")
            .append_text_if(" WHERE c.a = 1", True)
            .append_text_if(" AND c.b = 2", False)
            .append_text_if(" AND c.c = 3", lambda: True)
            .build()
        )
        assert query.text == "SELECT * FROM c WHERE c.a = 1 AND c.c = 3"

    def test_provider_not_called_when_condition_false(self):
        """Test that a value provider is skipped for a false condition."""
        provider = MagicMock(return_value="expensive")
        builder = QueryDefinitionBuilder("SELECT * FROM c")

        builder.with_parameter_if("@value", provider, False)

        provider.assert_not_called()
        assert builder.build().parameters == ()

    def test_provider_called_when_condition_true(self):
        """Test that a value provider is called for a true condition."""
        provider = MagicMock(return_value="expensive")
        query = (
            QueryDefinitionBuilder("SELECT * FROM c WHERE c.v = @value")
            .with_parameter_if("@value", provider, lambda: True)
            .build()
        )
        provider.assert_called_once_with()
        assert query.parameter("@value") == "expensive"

    @pytest.mark.asyncio
    async def test_async_condition_and_provider(self):
        """Test awaitable conditions and providers."""
        condition = AsyncMock(return_value=True)
        provider = AsyncMock(return_value=42)
        builder = QueryDefinitionBuilder("SELECT * FROM c")

        await builder.append_text_if_async(" WHERE c.n = @n", condition)
        await builder.with_parameter_if_async("@n", provider, condition)

        query = builder.build()
        assert query.text == "SELECT * FROM c WHERE c.n = @n"
        assert query.parameter("@n") == 42

    @pytest.mark.asyncio
    async def test_async_provider_not_awaited_when_condition_false(self):
        """Test that an awaitable provider is not awaited for a false condition."""
        provider = AsyncMock(return_value=42)
        builder = QueryDefinitionBuilder("SELECT * FROM c")

        await builder.with_parameter_if_async("@n", provider, AsyncMock(return_value=False))
        await builder.append_text_if_async(" WHERE false", False)

        provider.assert_not_called()
        assert builder.build().text == "SELECT * FROM c"

    def test_parameter_name_requires_at_sign(self):
        """Test that parameter names must start with @."""
        with pytest.raises(ValueError, match="@"):
            QueryDefinitionBuilder("SELECT * FROM c").with_parameter("type", "x")

    def test_duplicate_parameter_rejected(self):
        """Test that a parameter name is accepted once."""
        builder = (
            QueryDefinitionBuilder("SELECT * FROM c")
            .with_parameter("@a", 1)
            .with_parameter("@a", 2)
        )
        with pytest.raises(ValueError, match="Duplicate"):
            builder.build()

    def test_empty_text_rejected(self):
        """Test that empty query text is rejected."""
        with pytest.raises(ValueError):
            QueryDefinitionBuilder().build()


class TestQueryDefinition:
    """Test QueryDefinition."""

    def test_to_wire_serializes_values(self):
        """Test that parameter values are serialized for the store."""
        when = datetime(2024, 5, 1, tzinfo=timezone.utc)
        query = QueryDefinition(
            "SELECT * FROM c WHERE c.created > @since",
            (QueryParameter("@since", when),),
        )
        assert query.to_wire() == {
            "query": "SELECT * FROM c WHERE c.created > @since",
            "parameters": [{"name": "@since", "value": "2024-05-01T00:00:00Z"}],
        }

    def test_missing_parameter(self):
        """Test that a referenced but undefined parameter raises."""
        with pytest.raises(KeyError):
            QueryDefinition("SELECT 1").parameter("@x")
