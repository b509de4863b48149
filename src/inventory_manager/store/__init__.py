"""Inventory item persistence backed by a single SQLite table.

Modules:
- db: connection handling, schema, bootstrap and CRUD (`ItemStore`)
- models: the `Item` record and input coercion helpers
- constants: table name, sample dataset, timestamp format
"""

from .db import ItemStore
from .models import Item, clean_name, clean_qty

__all__ = [
    "ItemStore",
    "Item",
    "clean_name",
    "clean_qty",
]
