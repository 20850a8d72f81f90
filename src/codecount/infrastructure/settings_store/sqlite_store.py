"""
SQLite-backed settings store.

One row per directory; pattern lists are stored as JSON arrays. Every write
is a single transaction, so a reader never sees half an update.
"""

import json
import logging
import sqlite3
import threading
from pathlib import Path
from typing import Optional

from codecount.core.errors import SettingsStoreError
from codecount.core.settings.interfaces import SettingsStoreInterface
from codecount.core.settings.models import DirectorySettings

from .schema import initialize_schema

logger = logging.getLogger(__name__)


class SqliteSettingsStore(SettingsStoreInterface):
    """
    SQLite-based settings storage.

    The connection is shared between threads and guarded by a lock.
    """

    def __init__(self, db_path: Path | str):
        self._db_path = Path(db_path)
        self._conn: Optional[sqlite3.Connection] = None
        self._initialized = False
        self._lock = threading.Lock()

    def _get_connection(self) -> sqlite3.Connection:
        """Open the connection on first use (WAL, busy timeout)."""
        if self._conn is None:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA journal_mode=WAL;")
            self._conn.execute("PRAGMA busy_timeout=5000;")
        return self._conn

    def initialize(self) -> None:
        """Create the schema."""
        with self._lock:
            self._initialize_locked()

    def _initialize_locked(self) -> sqlite3.Connection:
        conn = self._get_connection()
        if self._initialized:
            return conn
        try:
            initialize_schema(conn)
            self._initialized = True
            logger.info(f"Initialized settings store: {self._db_path}")
        except sqlite3.Error as e:
            raise SettingsStoreError(f"Failed to initialize schema: {e}") from e
        return conn

    def get(self, path: str) -> DirectorySettings | None:
        try:
            with self._lock:
                row = self._initialize_locked().execute(
                    "SELECT exclude_patterns, include_patterns, mid_threshold, high_threshold "
                    "FROM directory_settings WHERE path = ?",
                    (path,),
                ).fetchone()
        except sqlite3.Error as e:
            raise SettingsStoreError(f"Failed to get settings for {path!r}: {e}") from e

        if row is None:
            return None

        try:
            data = {
                "exclude_patterns": json.loads(row["exclude_patterns"]),
                "include_patterns": (
                    json.loads(row["include_patterns"])
                    if row["include_patterns"] is not None
                    else None
                ),
                "mid_threshold": row["mid_threshold"],
                "high_threshold": row["high_threshold"],
            }
        except (TypeError, json.JSONDecodeError) as e:
            raise SettingsStoreError(f"Corrupt settings row for {path!r}: {e}") from e
        return DirectorySettings.from_dict(path, data)

    def put(self, path: str, settings: DirectorySettings) -> None:
        includes = settings.include_patterns
        try:
            with self._lock:
                conn = self._initialize_locked()
                with conn:
                    conn.execute(
                        """
                        INSERT INTO directory_settings
                            (path, exclude_patterns, include_patterns,
                             mid_threshold, high_threshold, updated_at)
                        VALUES (?, ?, ?, ?, ?, CURRENT_TIMESTAMP)
                        ON CONFLICT(path) DO UPDATE SET
                            exclude_patterns = excluded.exclude_patterns,
                            include_patterns = excluded.include_patterns,
                            mid_threshold = excluded.mid_threshold,
                            high_threshold = excluded.high_threshold,
                            updated_at = excluded.updated_at
                        """,
                        (
                            path,
                            json.dumps(list(settings.exclude_patterns)),
                            json.dumps(list(includes)) if includes is not None else None,
                            settings.mid_threshold,
                            settings.high_threshold,
                        ),
                    )
        except sqlite3.Error as e:
            raise SettingsStoreError(f"Failed to store settings for {path!r}: {e}") from e
        logger.debug(f"Stored settings for {path}")

    def delete(self, path: str) -> bool:
        try:
            with self._lock:
                conn = self._initialize_locked()
                with conn:
                    cursor = conn.execute(
                        "DELETE FROM directory_settings WHERE path = ?", (path,)
                    )
                return cursor.rowcount > 0
        except sqlite3.Error as e:
            raise SettingsStoreError(f"Failed to delete settings for {path!r}: {e}") from e

    def list_paths(self) -> list[str]:
        try:
            with self._lock:
                rows = self._initialize_locked().execute(
                    "SELECT path FROM directory_settings ORDER BY path"
                ).fetchall()
        except sqlite3.Error as e:
            raise SettingsStoreError(f"Failed to list settings: {e}") from e
        return [row["path"] for row in rows]

    def close(self) -> None:
        """Close the connection; the next call reopens it."""
        with self._lock:
            if self._conn:
                self._conn.close()
                self._conn = None
                self._initialized = False
