import logging
import sqlite3
from typing import Dict, Optional, Protocol

logger = logging.getLogger(__name__)


class StorageUnavailableError(Exception):
    """The underlying key-value store could not be read or written."""


class KeyValueStore(Protocol):
    """Flat string key-value store holding the persisted collections."""

    def get_item(self, key: str) -> Optional[str]: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


def get_db_connection(db_file: str) -> sqlite3.Connection:
    """Open a connection to the SQLite database file."""
    conn = sqlite3.connect(db_file)
    conn.row_factory = sqlite3.Row
    return conn


def create_tables(conn: sqlite3.Connection) -> None:
    """Create the key-value table if it does not exist."""
    conn.execute("""
        CREATE TABLE IF NOT EXISTS kv_store (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL
        )
    """)
    conn.commit()


class SQLiteKeyValueStore:
    """Key-value store backed by a single SQLite table.

    A connection is opened per operation, so the store holds no open handles
    between calls and a missing or locked file only affects the call that
    touches it.
    """

    def __init__(self, db_file: str) -> None:
        self.db_file = db_file
        self._initialized = False

    def _connect(self) -> sqlite3.Connection:
        try:
            conn = get_db_connection(self.db_file)
            if not self._initialized:
                create_tables(conn)
                self._initialized = True
                logger.debug("Key-value store ready at %s", self.db_file)
            return conn
        except sqlite3.Error as exc:
            raise StorageUnavailableError(f"Cannot open {self.db_file}: {exc}") from exc

    def get_item(self, key: str) -> Optional[str]:
        conn = self._connect()
        try:
            row = conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,)).fetchone()
            return row["value"] if row else None
        except (sqlite3.Error, UnicodeError) as exc:
            raise StorageUnavailableError(f"Cannot read '{key}': {exc}") from exc
        finally:
            conn.close()

    def set_item(self, key: str, value: str) -> None:
        conn = self._connect()
        try:
            conn.execute(
                "INSERT INTO kv_store (key, value) VALUES (?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                (key, value),
            )
            conn.commit()
        except (sqlite3.Error, UnicodeError) as exc:
            raise StorageUnavailableError(f"Cannot write '{key}': {exc}") from exc
        finally:
            conn.close()

    def remove_item(self, key: str) -> None:
        conn = self._connect()
        try:
            conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
            conn.commit()
        except sqlite3.Error as exc:
            raise StorageUnavailableError(f"Cannot remove '{key}': {exc}") from exc
        finally:
            conn.close()


class MemoryKeyValueStore:
    """In-process store; ``available=False`` makes every call fail like a disabled store."""

    def __init__(self, initial: Optional[Dict[str, str]] = None, available: bool = True) -> None:
        self.data: Dict[str, str] = dict(initial or {})
        self.available = available

    def _check(self) -> None:
        if not self.available:
            raise StorageUnavailableError("Store is unavailable")

    def get_item(self, key: str) -> Optional[str]:
        self._check()
        return self.data.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._check()
        self.data[key] = value

    def remove_item(self, key: str) -> None:
        self._check()
        self.data.pop(key, None)
