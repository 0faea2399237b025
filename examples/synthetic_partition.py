#!/usr/bin/env python3
from __future__ import annotations

from datetime import datetime

from shardline.cosmos import Document, DocumentProperty, partition_key_property


class Reading(Document, partition_key_separator="/"):
    sensor = partition_key_property(0, str)
    day = partition_key_property(1, datetime, format_spec="%Y%m%d")
    value = partition_key_property(2, float, format_spec=".1f", culture="fi-FI")
    unit = DocumentProperty(str, default="C")


def main() -> None:
    reading = Reading(sensor="greenhouse-1", day=datetime(2023, 3, 9, 14, 0), value=12.5)
    reading.property_changed = lambda change: print(f"  {change.name}: {change.old_value!r} -> {change.new_value!r}")

    print(f"partition : {reading.partition}")
    print("changing value...")
    reading.value = 13.25
    print(f"partition : {reading.partition}")
    print(f"stored    : {reading.to_dict()}")


if __name__ == "__main__":
    main()
