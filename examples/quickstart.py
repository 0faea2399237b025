#!/usr/bin/env python3
from __future__ import annotations

import argparse
import asyncio
import os

from shardline.cosmos import (
    ClientOptions,
    ConnectionOptions,
    ContainerProxy,
    InMemoryTransport,
    QueryDefinitionBuilder,
    TimestampedDocument,
    partition_key_property,
)
from shardline.cosmos.models import DocumentProperty


class Note(TimestampedDocument, partition_key_separator="|"):
    type = TimestampedDocument.type.as_partition_key(0)
    author = partition_key_property(1, str)
    text = DocumentProperty(str)


def parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Write and query a few notes")
    p.add_argument("author", nargs="?", default="jane")
    p.add_argument("count", nargs="?", type=int, default=5)
    p.add_argument("--live", action="store_true", help="use SHARDLINE_COSMOS_CONNECTION_STRING")
    return p.parse_args()


def build_container(live: bool) -> ContainerProxy:
    options = ClientOptions(default_retry_delay=1.0)
    if not live:
        return ContainerProxy(InMemoryTransport(page_size=2), options)
    connection = ConnectionOptions.from_connection_string(
        os.environ["SHARDLINE_COSMOS_CONNECTION_STRING"],
        database_id=os.environ.get("SHARDLINE_COSMOS_DATABASE", "notes"),
        container_id=os.environ.get("SHARDLINE_COSMOS_CONTAINER", "items"),
    )
    return ContainerProxy.from_connection_options(connection, options)


async def main() -> None:
    args = parse_args()

    async with build_container(args.live) as container:
        for n in range(args.count):
            response = await container.upsert_item(Note(author=args.author, text=f"note {n}"))
            print(f"upserted {response.resource().id} ({response.request_charge} RU)")

        query = (
            QueryDefinitionBuilder("SELECT * FROM c WHERE c.type = @type")
            .with_parameter("@type", "Note")
            .build()
        )
        print("=" * 65)
        async for note in container.query_items(query, Note, partition_key=f"Note|{args.author}"):
            print(f"{note.partition:20} | {note.created.isoformat():32} | {note.text}")
        print("=" * 65)


if __name__ == "__main__":
    asyncio.run(main())
