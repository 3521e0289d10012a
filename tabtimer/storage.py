"""Storage tiers — durable SQLite key/value area and an in-process session area."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

import aiosqlite

from tabtimer.config import settings

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

_CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS storage (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
)
"""


@runtime_checkable
class StorageArea(Protocol):
    """A key/value area holding JSON-serialisable values."""

    async def get(self, key: str) -> Any | None:
        """Return the stored value for *key*, or None if absent."""
        ...

    async def set(self, key: str, value: Any) -> None:
        """Store *value* under *key*, replacing any previous value."""
        ...

    async def remove(self, key: str) -> None:
        """Delete *key* if present."""
        ...


class SqliteStorageArea:
    """Durable tier: survives process restarts.

    Pass an explicit *db_path* for test isolation (e.g. ``tmp_path / "test.db"``).
    """

    def __init__(self, db_path: Path | None = None) -> None:
        self._db_path = db_path or settings.database_path
        self._initialised = False

    # -- Internal helpers ------------------------------------------------------

    async def _connect(self) -> aiosqlite.Connection:
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        db = await aiosqlite.connect(str(self._db_path))
        if not self._initialised:
            await db.execute(_CREATE_TABLE)
            await db.commit()
            self._initialised = True
        return db

    # -- Key/value -------------------------------------------------------------

    async def get(self, key: str) -> Any | None:
        db = await self._connect()
        try:
            cursor = await db.execute("SELECT value FROM storage WHERE key = ?", (key,))
            row = await cursor.fetchone()
            return json.loads(row[0]) if row else None
        finally:
            await db.close()

    async def set(self, key: str, value: Any) -> None:
        payload = json.dumps(value)
        db = await self._connect()
        try:
            await db.execute(
                """
                INSERT INTO storage (key, value) VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value
                """,
                (key, payload),
            )
            await db.commit()
        finally:
            await db.close()

    async def remove(self, key: str) -> None:
        db = await self._connect()
        try:
            await db.execute("DELETE FROM storage WHERE key = ?", (key,))
            await db.commit()
        finally:
            await db.close()


class MemoryStorageArea:
    """Ephemeral tier: discarded when the process exits.

    Values are stored as JSON text so callers never share mutable state with
    the area, mirroring the durable tier.
    """

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    async def get(self, key: str) -> Any | None:
        raw = self._data.get(key)
        return json.loads(raw) if raw is not None else None

    async def set(self, key: str, value: Any) -> None:
        self._data[key] = json.dumps(value)

    async def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def clear(self) -> None:
        self._data.clear()
