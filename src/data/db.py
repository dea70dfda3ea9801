"""
GTD Assistant — Item Database.

Items persist in SQLite across days, surviving bot restarts. Completed
items are soft-deleted (status = 1), never removed.

The store is shared by the Telegram update handlers and the daily
scheduler, so every write goes through one process-wide lock.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator

from src.data.models import Item, ItemStatus, Topic

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised when any item store operation fails."""


@contextmanager
def _storage_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except sqlite3.Error as exc:
        logger.error("SQLite error during %s: %s", operation, exc)
        raise StorageError(f"Failed to {operation}: {exc}") from exc


class ItemDB:
    """SQLite-backed storage for topic items and a few key/value settings."""

    _write_lock = threading.Lock()

    def __init__(self, db_path: str | None = None) -> None:
        if db_path is None:
            from src.config import settings
            db_path = settings.DATABASE_PATH

        self._db_path = db_path
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self) -> None:
        """Create the items and settings tables if they don't exist."""
        with _storage_errors("initialize database"), self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS items (
                    id         INTEGER PRIMARY KEY AUTOINCREMENT,
                    chat_id    INTEGER NOT NULL,
                    topic      TEXT    NOT NULL,
                    text       TEXT    NOT NULL,
                    created_at INTEGER NOT NULL,
                    status     INTEGER NOT NULL DEFAULT 0
                )
            """)
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_items_chat_topic_status "
                "ON items(chat_id, topic, status)"
            )
            conn.execute("""
                CREATE TABLE IF NOT EXISTS settings (
                    key   TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
            """)
        logger.debug("Items table initialized at %s", self._db_path)

    @staticmethod
    def _row_to_item(row: sqlite3.Row) -> Item:
        return Item(
            id=row["id"],
            chat_id=row["chat_id"],
            topic=Topic(row["topic"]),
            text=row["text"],
            created_at=datetime.fromtimestamp(row["created_at"], tz=timezone.utc),
            status=ItemStatus(row["status"]),
        )

    def add_item(
        self, chat_id: int, topic: Topic, text: str, created_at: datetime | None = None,
    ) -> Item:
        """Insert a new active item and return it with its assigned ID."""
        if created_at is None:
            created_at = datetime.now(timezone.utc)

        with _storage_errors("add item"), self._write_lock, self._connect() as conn:
            cursor = conn.execute(
                """
                INSERT INTO items (chat_id, topic, text, created_at, status)
                VALUES (?, ?, ?, ?, ?)
                """,
                (chat_id, topic.value, text, int(created_at.timestamp()), int(ItemStatus.ACTIVE)),
            )
            item_id = cursor.lastrowid

        logger.info("Item #%d added to %s for chat %d", item_id, topic.value, chat_id)
        return Item(
            id=item_id,
            chat_id=chat_id,
            topic=topic,
            text=text,
            created_at=created_at,
        )

    def list_active(self, chat_id: int, topic: Topic | None = None) -> list[Item]:
        """Return active items of a chat (all topics when topic is None), oldest first."""
        query = "SELECT * FROM items WHERE chat_id = ? AND status = ?"
        params: list = [chat_id, int(ItemStatus.ACTIVE)]
        if topic is not None:
            query += " AND topic = ?"
            params.append(topic.value)
        query += " ORDER BY id"

        with _storage_errors("list items"), self._connect() as conn:
            rows = conn.execute(query, params).fetchall()

        return [self._row_to_item(r) for r in rows]

    def mark_done(self, chat_id: int, item_id: int) -> Item | None:
        """Soft-delete an active item.

        Returns the completed item, or None when the ID doesn't name an
        active item of this chat (unknown, foreign or already done).
        """
        with _storage_errors("mark item done"), self._write_lock, self._connect() as conn:
            cursor = conn.execute(
                "UPDATE items SET status = ? WHERE id = ? AND chat_id = ? AND status = ?",
                (int(ItemStatus.DONE), item_id, chat_id, int(ItemStatus.ACTIVE)),
            )
            if cursor.rowcount == 0:
                return None
            row = conn.execute("SELECT * FROM items WHERE id = ?", (item_id,)).fetchone()

        logger.info("Item #%d marked done for chat %d", item_id, chat_id)
        return self._row_to_item(row)

    def delete_all_in_topic(self, chat_id: int, topic: Topic) -> int:
        """Soft-delete every active item of a chat's topic. Returns the count."""
        with _storage_errors("clear topic"), self._write_lock, self._connect() as conn:
            cursor = conn.execute(
                "UPDATE items SET status = ? WHERE chat_id = ? AND topic = ? AND status = ?",
                (int(ItemStatus.DONE), chat_id, topic.value, int(ItemStatus.ACTIVE)),
            )
        cleared = cursor.rowcount
        logger.info("Cleared %d %s item(s) for chat %d", cleared, topic.value, chat_id)
        return cleared

    def get_setting(self, key: str) -> str | None:
        with _storage_errors("read setting"), self._connect() as conn:
            row = conn.execute(
                "SELECT value FROM settings WHERE key = ?", (key,),
            ).fetchone()
        return None if row is None else row["value"]

    def set_setting(self, key: str, value: str) -> None:
        with _storage_errors("write setting"), self._write_lock, self._connect() as conn:
            conn.execute(
                """
                INSERT INTO settings (key, value) VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value
                """,
                (key, value),
            )
        logger.debug("Setting %s updated", key)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")

    db = ItemDB(db_path="data/test_gtd.db")
    first = db.add_item(1, Topic.REMINDERS, "Call mom")
    db.add_item(1, Topic.SHOPPING, "Milk")
    print(f"Reminders: {db.list_active(1, Topic.REMINDERS)}")

    db.mark_done(1, first.id)
    print(f"After done: {db.list_active(1)}")
