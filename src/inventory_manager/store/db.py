from __future__ import annotations

import os
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator, List, Optional

from ..errors import NotFoundError, StorageError
from ..logging import get_logger
from ..paths import MEMORY_DB, resolve_db_path
from .constants import SAMPLE_ITEMS, TABLE_NAME, TIMESTAMP_FORMAT
from .models import Item, clean_name, clean_qty, fits_sqlite_integer


LOG = get_logger("store")


SCHEMA_SQL = f"""
CREATE TABLE IF NOT EXISTS {TABLE_NAME} (
  id           INTEGER PRIMARY KEY AUTOINCREMENT,
  name         TEXT NOT NULL,
  qty          INTEGER NOT NULL DEFAULT 0,
  lastUpdated  TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))
);
CREATE INDEX IF NOT EXISTS idx_{TABLE_NAME}_last_updated ON {TABLE_NAME}(lastUpdated);
"""

ITEM_COLUMNS = "id, name, qty, lastUpdated"


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).strftime(TIMESTAMP_FORMAT)


class ItemStore:
    """SQLite-backed inventory store.

    - Opens one connection at construction and reuses it for every call.
    - Ensures the table exists on construction; sample rows are only written
      by `bootstrap()` (when empty) or `reset()`.
    - sqlite errors are re-raised as `StorageError`.
    """

    def __init__(self, db_path: Optional[str] = None) -> None:
        self.db_path = resolve_db_path(db_path)
        if self.db_path != MEMORY_DB:
            os.makedirs(os.path.dirname(self.db_path), exist_ok=True)
        LOG.info(f"Inventory DB path: {self.db_path}")
        try:
            # isolation_level=None: transactions are opened explicitly in _transaction().
            self._conn = sqlite3.connect(self.db_path, check_same_thread=False, isolation_level=None)
        except sqlite3.Error as exc:
            raise StorageError(f"Could not open database: {exc}") from exc
        self._conn.row_factory = sqlite3.Row
        self._ensure_schema()

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Cursor]:
        try:
            cur = self._conn.cursor()
        except sqlite3.Error as exc:
            raise StorageError(str(exc)) from exc
        try:
            cur.execute("BEGIN IMMEDIATE;")
            yield cur
            cur.execute("COMMIT;")
        except (sqlite3.Error, OverflowError) as exc:
            self._rollback()
            LOG.error(f"Database error: {exc}")
            raise StorageError(str(exc)) from exc
        except BaseException:
            self._rollback()
            raise
        finally:
            cur.close()

    def _rollback(self) -> None:
        if self._conn.in_transaction:
            self._conn.rollback()

    def _query(self, sql: str, params: tuple = ()) -> List[sqlite3.Row]:
        try:
            return self._conn.execute(sql, params).fetchall()
        except (sqlite3.Error, OverflowError) as exc:
            LOG.error(f"Database error: {exc}")
            raise StorageError(str(exc)) from exc

    def _ensure_schema(self) -> None:
        if self.db_path != MEMORY_DB:
            try:
                self._conn.execute("PRAGMA journal_mode=WAL;")
                self._conn.execute("PRAGMA synchronous=NORMAL;")
            except sqlite3.Error:
                # Non-fatal; continue with schema creation
                LOG.debug("Could not switch journal mode to WAL")
        try:
            self._conn.executescript(SCHEMA_SQL)
        except sqlite3.Error as exc:
            raise StorageError(f"Could not create schema: {exc}") from exc

    def close(self) -> None:
        self._conn.close()
        LOG.debug("Inventory DB connection closed.")

    # --------------- Lifecycle ---------------
    def bootstrap(self) -> int:
        """Create the table if missing and seed sample rows only into an empty table.

        Returns the number of rows inserted (0 when data already existed).
        """
        self._ensure_schema()
        with self._transaction() as cur:
            cur.execute(f"SELECT COUNT(*) FROM {TABLE_NAME};")
            existing = int(cur.fetchone()[0])
            if existing:
                LOG.info(f"Inventory table already holds {existing} item(s); skipping sample data.")
                return 0
            self._insert_samples(cur)
        LOG.info(f"Seeded {len(SAMPLE_ITEMS)} sample item(s).")
        return len(SAMPLE_ITEMS)

    def reset(self) -> int:
        """Delete every item and reseed the sample dataset; ids restart at 1."""
        self._ensure_schema()
        with self._transaction() as cur:
            cur.execute(f"DELETE FROM {TABLE_NAME};")
            cur.execute("DELETE FROM sqlite_sequence WHERE name = ?;", (TABLE_NAME,))
            self._insert_samples(cur)
        LOG.info(f"Inventory reset to {len(SAMPLE_ITEMS)} sample item(s).")
        return len(SAMPLE_ITEMS)

    def _insert_samples(self, cur: sqlite3.Cursor) -> None:
        stamp = utc_timestamp()
        cur.executemany(
            f"INSERT INTO {TABLE_NAME} (name, qty, lastUpdated) VALUES (?, ?, ?);",
            [(name, qty, stamp) for name, qty in SAMPLE_ITEMS],
        )

    def ping(self) -> bool:
        try:
            self._conn.execute("SELECT 1;").fetchone()
        except sqlite3.Error as exc:
            LOG.warning(f"Database ping failed: {exc}")
            return False
        return True

    def count(self) -> int:
        rows = self._query(f"SELECT COUNT(*) FROM {TABLE_NAME};")
        return int(rows[0][0])

    # --------------- CRUD ---------------
    def list(self) -> List[Item]:
        rows = self._query(
            f"SELECT {ITEM_COLUMNS} FROM {TABLE_NAME} ORDER BY lastUpdated DESC, id DESC;"
        )
        return [Item.from_row(row) for row in rows]

    @staticmethod
    def _require_storable_id(item_id: int) -> None:
        # No row can carry an id outside SQLite's INTEGER range.
        if not fits_sqlite_integer(item_id):
            raise NotFoundError()

    def get(self, item_id: int) -> Item:
        self._require_storable_id(item_id)
        rows =self._query(f"SELECT {ITEM_COLUMNS} FROM {TABLE_NAME} WHERE id = ?;", (item_id,))
        if not rows:
            raise NotFoundError()
        return Item.from_row(rows[0])

    def create(self, name: str, qty: int) -> Item:
        name = clean_name(name)
        qty = clean_qty(qty)
        with self._transaction() as cur:
            cur.execute(
                f"""
                INSERT INTO {TABLE_NAME} (name, qty, lastUpdated)
                VALUES (?, ?, ?)
                RETURNING {ITEM_COLUMNS};
                """,
                (name, qty, utc_timestamp()),
            )
            item = Item.from_row(cur.fetchone())
        LOG.debug(f"Created item id={item.id} name={item.name!r} qty={item.qty}")
        return item

    def update(self, item_id: int, name: str, qty: int) -> Item:
        name = clean_name(name)
        qty = clean_qty(qty)
        self._require_storable_id(item_id)
        with self._transaction() as cur:
            # MAX() keeps lastUpdated non-decreasing if the wall clock steps back.
            cur.execute(
                f"""
                UPDATE {TABLE_NAME}
                SET name = ?, qty = ?, lastUpdated = MAX(?, COALESCE(lastUpdated, ''))
                WHERE id = ?
                RETURNING {ITEM_COLUMNS};
                """,
                (name, qty, utc_timestamp(), item_id),
            )
            row = cur.fetchone()
        if row is None:
            raise NotFoundError()
        item = Item.from_row(row)
        LOG.debug(f"Updated item id={item.id} name={item.name!r} qty={item.qty}")
        return item

    def delete(self, item_id: int) -> None:
        self._require_storable_id(item_id)
        with self._transaction() as cur:
            cur.execute(f"DELETE FROM {TABLE_NAME} WHERE id = ?;", (item_id,))
            deleted = cur.rowcount
        if deleted == 0:
            raise NotFoundError()
        LOG.debug(f"Deleted item id={item_id}")
