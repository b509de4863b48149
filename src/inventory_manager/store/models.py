from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from typing import Any, Dict

from ..errors import ValidationError
from .constants import SQLITE_INT_MAX, SQLITE_INT_MIN

REQUIRED_FIELDS_MESSAGE = "Name and quantity are required"


@dataclass
class Item:
    id: int
    name: str
    qty: int
    last_updated: str

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "Item":
        return cls(
            id=int(row["id"]),
            name=row["name"],
            qty=int(row["qty"]),
            last_updated=row["lastUpdated"],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "qty": self.qty,
            "lastUpdated": self.last_updated,
        }


def clean_name(value: Any) -> str:
    """Return the stripped name or raise ValidationError."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(REQUIRED_FIELDS_MESSAGE)
    return value.strip()


def fits_sqlite_integer(value: int) -> bool:
    return SQLITE_INT_MIN <= value <= SQLITE_INT_MAX


def _bounded(value: int) -> int:
    if not fits_sqlite_integer(value):
        raise ValidationError("Quantity must be an integer")
    return value


def clean_qty(value: Any) -> int:
    """Accept ints and integer strings ("12", " -3 "); reject everything else.

    Floats are accepted only when integral, e.g. 5.0 from a JSON client.
    The result must fit SQLite's signed 64-bit INTEGER.
    """
    if value is None:
        raise ValidationError(REQUIRED_FIELDS_MESSAGE)
    if isinstance(value, bool):
        raise ValidationError("Quantity must be an integer")
    if isinstance(value, int):
        return _bounded(value)
    if isinstance(value, float):
        if value.is_integer():
            return _bounded(int(value))
        raise ValidationError("Quantity must be an integer")
    if isinstance(value, str):
        text = value.strip()
        if not text:
            raise ValidationError(REQUIRED_FIELDS_MESSAGE)
        try:
            parsed = int(text, 10)
        except ValueError:
            raise ValidationError("Quantity must be an integer") from None
        return _bounded(parsed)
    raise ValidationError("Quantity must be an integer")
