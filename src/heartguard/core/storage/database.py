"""SQLite database management for the HeartGuard record store.

Handles connection lifecycle, schema creation, migrations, and the raw
key/value reads and writes the record store is built on.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

logger = logging.getLogger(__name__)

# Current schema version
SCHEMA_VERSION = 2

# ---------------------------------------------------------------------------
# Schema DDL
# ---------------------------------------------------------------------------

_SCHEMA_V1 = """
-- One row per namespaced key; streams are stored as one JSON array each
CREATE TABLE IF NOT EXISTS kv_store (
    key        TEXT PRIMARY KEY,
    value      TEXT NOT NULL,
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS schema_version (
    version    INTEGER NOT NULL,
    applied_at TEXT NOT NULL DEFAULT (datetime('now'))
);
"""

# ---------------------------------------------------------------------------
# V2: Audit log table (deletions, exports, threshold changes)
# ---------------------------------------------------------------------------

_SCHEMA_V2 = """
CREATE TABLE IF NOT EXISTS audit_log (
    id            TEXT PRIMARY KEY,
    timestamp     TEXT NOT NULL DEFAULT (datetime('now')),
    action        TEXT NOT NULL,
    target        TEXT,
    record_count  INTEGER,
    status        TEXT NOT NULL DEFAULT 'success',
    error_type    TEXT,
    metadata_json TEXT
);

CREATE INDEX IF NOT EXISTS idx_audit_timestamp ON audit_log(timestamp);
CREATE INDEX IF NOT EXISTS idx_audit_action    ON audit_log(action);
"""


class PersistenceError(Exception):
    """Raised when a storage read or write fails."""


class HealthDatabase:
    """SQLite database manager for the HeartGuard record store.

    Supports both file-based and in-memory (`:memory:`) databases.
    In-memory mode is used for testing.

    Usage::

        db = HealthDatabase(":memory:")
        db.initialize()
        db.write_value("@HeartGuard:thresholds", '{"min":60,"max":100}')
        db.read_value("@HeartGuard:thresholds")
        db.close()
    """

    def __init__(self, db_path: str = ":memory:") -> None:
        """Initialize database manager.

        Args:
            db_path: Path to SQLite file, or ":memory:" for in-memory DB.
        """
        self._db_path = db_path
        self._conn: sqlite3.Connection | None = None

    @property
    def connection(self) -> sqlite3.Connection:
        """Get the active database connection.

        Raises:
            PersistenceError: If the database has not been initialized.
        """
        if self._conn is None:
            raise PersistenceError("Database not initialized. Call initialize() first.")
        return self._conn

    def initialize(self) -> None:
        """Create the database connection and ensure schema exists.

        For file-based databases, creates parent directories if needed.
        Idempotent: safe to call multiple times.
        """
        if self._conn is not None:
            return  # Already initialized

        if self._db_path != ":memory:":
            db_file = Path(self._db_path).expanduser()
            db_file.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(str(db_file))
        else:
            self._conn = sqlite3.connect(":memory:")

        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL")

        self._ensure_schema()
        logger.info("HeartGuard database initialized: %s", self._db_path)

    def _ensure_schema(self) -> None:
        """Create tables if they don't exist and apply migrations."""
        conn = self.connection

        conn.executescript(_SCHEMA_V1)

        cursor = conn.execute("SELECT MAX(version) FROM schema_version")
        row = cursor.fetchone()
        current_version = row[0] if row[0] is not None else 0

        if current_version < 2:
            conn.executescript(_SCHEMA_V2)
            logger.info("Applied schema migration V2: audit_log table")

        if current_version < SCHEMA_VERSION:
            conn.execute(
                "INSERT INTO schema_version (version) VALUES (?)",
                (SCHEMA_VERSION,),
            )
            conn.commit()
            logger.info(
                "Schema updated from version %d to %d", current_version, SCHEMA_VERSION
            )

    def get_schema_version(self) -> int:
        """Return the current schema version."""
        cursor = self.connection.execute("SELECT MAX(version) FROM schema_version")
        row = cursor.fetchone()
        return row[0] if row[0] is not None else 0

    # ------------------------------------------------------------------
    # Key/value access
    # ------------------------------------------------------------------

    def read_value(self, key: str) -> str | None:
        """Return the stored value for ``key``, or None if absent.

        Raises:
            PersistenceError: If the read fails.
        """
        try:
            row = self.connection.execute(
                "SELECT value FROM kv_store WHERE key = ?", (key,)
            ).fetchone()
        except sqlite3.Error as exc:
            raise PersistenceError(f"Failed to read {key!r}: {exc}") from exc
        return row[0] if row is not None else None

    def write_value(self, key: str, value: str) -> None:
        """Replace the value stored under ``key`` in a single transaction.

        Readers observe either the previous value or the new one.

        Raises:
            PersistenceError: If the write fails. The transaction is rolled back.
        """
        conn = self.connection
        try:
            with conn:
                conn.execute(
                    """INSERT INTO kv_store (key, value, updated_at)
                       VALUES (?, ?, datetime('now'))
                       ON CONFLICT(key) DO UPDATE SET
                           value = excluded.value,
                           updated_at = excluded.updated_at""",
                    (key, value),
                )
        except sqlite3.Error as exc:
            raise PersistenceError(f"Failed to write {key!r}: {exc}") from exc

    def delete_values(self, keys: list[str]) -> int:
        """Delete the given keys. Missing keys are ignored.

        Returns:
            Number of rows removed.

        Raises:
            PersistenceError: If the delete fails.
        """
        if not keys:
            return 0
        conn = self.connection
        placeholders = ",".join("?" for _ in keys)
        try:
            with conn:
                cursor = conn.execute(
                    f"DELETE FROM kv_store WHERE key IN ({placeholders})", keys
                )
        except sqlite3.Error as exc:
            raise PersistenceError(f"Failed to delete {keys!r}: {exc}") from exc
        return cursor.rowcount

    def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            logger.info("HeartGuard database closed")

    def __enter__(self) -> HealthDatabase:
        self.initialize()
        return self

    def __exit__(self, *args) -> None:
        self.close()
