"""Shared fixtures for integration tests."""

import os

import pytest
import pytest_asyncio

from shardline.cosmos import ClientOptions, ConnectionOptions, ContainerProxy

# Skip all integration tests unless RUN_SHARDLINE_COSMOS_TESTS=1
pytestmark = pytest.mark.skipif(
    os.environ.get("RUN_SHARDLINE_COSMOS_TESTS") != "1",
    reason="Requires a live account. Set RUN_SHARDLINE_COSMOS_TESTS=1 to run",
)


@pytest.fixture
def connection() -> ConnectionOptions:
    connection_string = os.environ.get("SHARDLINE_COSMOS_CONNECTION_STRING")
    if not connection_string:
        pytest.skip("SHARDLINE_COSMOS_CONNECTION_STRING is not set")
    return ConnectionOptions.from_connection_string(
        connection_string,
        database_id=os.environ.get("SHARDLINE_COSMOS_DATABASE", "shardline-tests"),
        container_id=os.environ.get("SHARDLINE_COSMOS_CONTAINER", "items"),
    )


@pytest_asyncio.fixture
async def container(connection):
    proxy = ContainerProxy.from_connection_options(connection, ClientOptions(default_retry_delay=1.0))
    yield proxy
    await proxy.close()
