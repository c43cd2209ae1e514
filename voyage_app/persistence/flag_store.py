"""Persisted flag store for one-time gating that survives process restarts."""

import sqlite3
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

import structlog

from ..errors import FlagReadError, PersistenceError

logger = structlog.get_logger(__name__)


class PersistedFlagStore(ABC):
    """Durable key -> integer store. A value of 0 means not done, > 0 means done."""

    @abstractmethod
    def get(self, key: str) -> int:
        """Return the stored value for key, or 0 if absent."""

    @abstractmethod
    def set(self, key: str, value: int) -> None:
        """Store value for key."""

    @abstractmethod
    def clear_all(self) -> None:
        """Remove every stored flag."""


def coerce_flag_value(key: str, raw: Any) -> int:
    """Interpret a stored raw value as a flag integer, rejecting corrupt data."""
    if raw is None:
        return 0
    if isinstance(raw, bool):
        return int(raw)
    if isinstance(raw, int):
        return raw
    if isinstance(raw, str):
        try:
            return int(raw.strip())
        except ValueError:
            pass
    raise FlagReadError(f"Corrupt persisted flag value for {key}", key=key, raw_value=raw)


class InMemoryFlagStore(PersistedFlagStore):
    """Dictionary-backed store, durable only for the lifetime of the object."""

    def __init__(self, initial: Optional[dict[str, Any]] = None):
        self._values: dict[str, Any] = dict(initial or {})

    def get(self, key: str) -> int:
        return coerce_flag_value(key, self._values.get(key))

    def set(self, key: str, value: int) -> None:
        self._values[key] = int(value)

    def clear_all(self) -> None:
        self._values.clear()

    def __contains__(self, key: str) -> bool:
        return key in self._values


class SqliteFlagStore(PersistedFlagStore):
    """SQLite-based flag persistence layer."""

    def __init__(self, db_path: str = "flags.db"):
        self.db_path = Path(db_path)
        self.logger = logger.bind(store="sqlite", db_path=str(self.db_path))
        self._lock = threading.Lock()

        self._init_database()

    def _init_database(self) -> None:
        """Initialize database schema."""
        with self._get_connection("init") as conn:
            # Untyped value column so corrupt rows are detectable on read
            conn.execute("""
                CREATE TABLE IF NOT EXISTS flags (
                    key TEXT PRIMARY KEY,
                    value,
                    updated_at TEXT NOT NULL
                )
            """)
            conn.commit()

    @contextmanager
    def _get_connection(self, operation: str):
        """Get database connection, translating driver errors to PersistenceError."""
        conn = None
        try:
            conn = sqlite3.connect(self.db_path, timeout=30.0)
            yield conn
        except sqlite3.Error as e:
            if conn:
                conn.rollback()
            self.logger.error("Database error", operation=operation, error=str(e))
            raise PersistenceError(
                f"Flag store {operation} failed: {e}",
                operation=operation,
                target=str(self.db_path)
            ) from e
        finally:
            if conn:
                conn.close()

    def get(self, key: str) -> int:
        with self._lock:
            with self._get_connection("get") as conn:
                row = conn.execute(
                    "SELECT value FROM flags WHERE key = ?", (key,)
                ).fetchone()

        if row is None:
            return 0
        return coerce_flag_value(key, row[0])

    def set(self, key: str, value: int) -> None:
        with self._lock:
            with self._get_connection("set") as conn:
                conn.execute("""
                    INSERT INTO flags (key, value, updated_at) VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET
                        value = excluded.value,
                        updated_at = excluded.updated_at
                """, (key, int(value), datetime.now(timezone.utc).isoformat()))
                conn.commit()

        self.logger.info("Flag stored", key=key, value=int(value))

    def clear_all(self) -> None:
        with self._lock:
            with self._get_connection("clear_all") as conn:
                cursor = conn.execute("DELETE FROM flags")
                conn.commit()
                removed = cursor.rowcount

        self.logger.info("Flags cleared", removed=removed)

    def keys(self) -> list[str]:
        """All stored flag keys, for diagnostics."""
        with self._lock:
            with self._get_connection("keys") as conn:
                rows = conn.execute("SELECT key FROM flags ORDER BY key").fetchall()
        return [row[0] for row in rows]


class FlagCache:
    """
    In-memory cache in front of a PersistedFlagStore.

    Each key is read from the store at most once; read failures and corrupt
    values degrade to 0 ("not completed"). Writes go through to the store.
    """

    def __init__(self, store: PersistedFlagStore):
        self.store = store
        self._values: dict[str, int] = {}
        self.logger = logger.bind(component="flag_cache")

    def read(self, key: str) -> int:
        if key in self._values:
            return self._values[key]

        try:
            value = self.store.get(key)
        except (FlagReadError, PersistenceError) as e:
            self.logger.warning(
                "Flag read failed, treating as not completed",
                key=key,
                error=str(e),
                fallback="0"
            )
            value = 0

        self._values[key] = value
        return value

    def is_set(self, key: str) -> bool:
        return self.read(key) > 0

    def write(self, key: str, value: int = 1) -> None:
        self.store.set(key, value)
        self._values[key] = int(value)

    def cached(self, key: str) -> bool:
        return key in self._values

    def invalidate(self) -> None:
        self._values.clear()

    def clear_all(self) -> None:
        """Global "reset progress": wipe the durable store and the cache."""
        self.store.clear_all()
        self.invalidate()
        self.logger.info("Progress reset")
