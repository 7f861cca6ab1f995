"""Durable record of indexed messages and per-channel backfill cursors."""

from __future__ import annotations

import sqlite3
from functools import wraps
from typing import Callable, TypeVar

from chat_search.core.errors import LedgerIOError
from chat_search.db.sqlite import SQLiteDatabase
from chat_search.utils.ids import message_key
from chat_search.utils.time import now_ms

T = TypeVar("T")


def _ledger_io(func: Callable[..., T]) -> Callable[..., T]:
    @wraps(func)
    def wrapper(*args, **kwargs) -> T:
        try:
            return func(*args, **kwargs)
        except sqlite3.Error as exc:
            raise LedgerIOError(f"Ledger {func.__name__} failed: {exc}") from exc

    return wrapper


class Ledger:
    """Dedup set and cursor store backed by a single SQLite handle.

    Open once at process start and share the same instance between the
    crawler, the live handler and the search service. Every call runs on the
    event loop thread, so a ``has_indexed``/``mark_indexed`` pair for one key
    cannot interleave with another task's pair.
    """

    def __init__(self, db: SQLiteDatabase) -> None:
        self.db = db

    @classmethod
    @_ledger_io
    def open(cls, db: SQLiteDatabase) -> "Ledger":
        db.ensure_schema()
        db.commit()
        return cls(db)

    @_ledger_io
    def has_indexed(self, channel_id: int, message_id: int) -> bool:
        row = self.db.execute(
            "SELECT 1 FROM indexed_messages WHERE message_key = ?",
            [message_key(channel_id, message_id)],
        ).fetchone()
        return row is not None

    @_ledger_io
    def get_indexed_guild(self, channel_id: int, message_id: int) -> int | None:
        row = self.db.execute(
            "SELECT guild_id FROM indexed_messages WHERE message_key = ?",
            [message_key(channel_id, message_id)],
        ).fetchone()
        return int(row["guild_id"]) if row else None

    @_ledger_io
    def mark_indexed(self, channel_id: int, message_id: int, guild_id: int) -> None:
        self.db.execute(
            """
            INSERT INTO indexed_messages (message_key, guild_id, indexed_at) VALUES (?, ?, ?)
            ON CONFLICT(message_key) DO UPDATE SET guild_id = excluded.guild_id
            """,
            [message_key(channel_id, message_id), str(guild_id), now_ms()],
        )
        self.db.commit()

    @_ledger_io
    def indexed_count(self) -> int:
        row = self.db.execute("SELECT COUNT(*) AS count FROM indexed_messages").fetchone()
        return int(row["count"]) if row else 0

    @_ledger_io
    def get_cursor(self, channel_id: int) -> int | None:
        """Last message id backfill advanced past; ``None`` if never backfilled."""
        row = self.db.execute(
            "SELECT message_id FROM channel_cursors WHERE channel_id = ?",
            [str(channel_id)],
        ).fetchone()
        return int(row["message_id"]) if row else None

    @_ledger_io
    def advance_cursor(self, channel_id: int, message_id: int) -> None:
        """Overwrite the cursor. Callers are responsible for monotonicity."""
        self.db.execute(
            """
            INSERT INTO channel_cursors (channel_id, message_id, updated_at) VALUES (?, ?, ?)
            ON CONFLICT(channel_id) DO UPDATE SET
              message_id = excluded.message_id,
              updated_at = excluded.updated_at
            """,
            [str(channel_id), str(message_id), now_ms()],
        )
        self.db.commit()

    @_ledger_io
    def reset_cursor(self, channel_id: int) -> bool:
        cursor = self.db.execute("DELETE FROM channel_cursors WHERE channel_id = ?", [str(channel_id)])
        self.db.commit()
        return cursor.rowcount > 0

    @_ledger_io
    def cursors(self) -> dict[int, int]:
        rows = self.db.query("SELECT channel_id, message_id FROM channel_cursors", [])
        return {int(row["channel_id"]): int(row["message_id"]) for row in rows}

    def close(self) -> None:
        self.db.close()


__all__ = ["Ledger"]
