from __future__ import annotations

from typing import Tuple

TABLE_NAME = "items"

# Seeded by bootstrap() into an empty table and by reset().
SAMPLE_ITEMS: Tuple[Tuple[str, int], ...] = (
    ("Apples", 50),
    ("Bottled Water", 120),
    ("Chips", 75),
    ("Chocolate Bars", 40),
    ("Coffee Packets", 30),
)

# Lexicographic order of this format matches chronological order.
TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"

# SQLite INTEGER is a signed 64-bit value.
SQLITE_INT_MIN = -(2**63)
SQLITE_INT_MAX = 2**63 - 1
