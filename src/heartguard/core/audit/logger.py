"""Audit logger: a record of destructive and outbound data operations.

Clearing streams is irreversible and exports copy health data off the
device, so both are recorded in the ``audit_log`` table together with
threshold and settings changes. Entries carry counts and metadata only,
never readings.
"""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from heartguard.core.storage.database import HealthDatabase

logger = logging.getLogger(__name__)


@dataclass
class AuditEvent:
    """A single audit log entry."""

    action: str                          # 'data_delete' | 'data_export' | 'thresholds_update' | 'settings_update'
    target: str = ""                     # stream names, export format, ...
    record_count: int | None = None
    status: str = "success"              # 'success' | 'failure'
    error_type: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


class AuditLogger:
    """Records audit events to the ``audit_log`` SQLite table.

    Writes are committed immediately. A failed write is logged and reported
    as an empty event ID; it never interrupts the operation being audited.

    Usage::

        audit = AuditLogger(health_db)
        audit.log_data_delete(streams=["heartRateHistory"], count=120)
    """

    def __init__(self, database: HealthDatabase) -> None:
        self._db = database

    # ---------------------------------------------------------------
    # Write
    # ---------------------------------------------------------------

    def log_event(self, event: AuditEvent) -> str:
        """Insert an audit event and return its UUID (empty string on failure)."""
        event_id = str(uuid.uuid4())
        now = datetime.now(timezone.utc).isoformat()
        metadata_json = (
            json.dumps(event.metadata, separators=(",", ":"))
            if event.metadata
            else None
        )

        try:
            conn = self._db.connection
            conn.execute(
                """INSERT INTO audit_log
                   (id, timestamp, action, target, record_count,
                    status, error_type, metadata_json)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    event_id,
                    now,
                    event.action,
                    event.target or None,
                    event.record_count,
                    event.status,
                    event.error_type,
                    metadata_json,
                ),
            )
            conn.commit()
        except Exception:
            logger.exception("Failed to write audit event, event lost")
            return ""

        return event_id

    def log_data_delete(
        self,
        *,
        streams: list[str],
        count: int = 0,
        status: str = "success",
    ) -> str:
        """Log removal of whole streams. ``count`` is the number of entries removed."""
        return self.log_event(AuditEvent(
            action="data_delete",
            target=",".join(streams),
            record_count=count,
            status=status,
        ))

    def log_export(self, *, export_format: str, count: int, status: str = "success") -> str:
        """Log a CSV or JSON export of ``count`` entries."""
        return self.log_event(AuditEvent(
            action="data_export",
            target=export_format,
            record_count=count,
            status=status,
        ))

    def log_thresholds_update(
        self,
        *,
        thresholds: dict[str, Any],
        status: str = "success",
        error_type: str | None = None,
    ) -> str:
        """Log an attempted threshold change; rejected input is logged as a failure."""
        return self.log_event(AuditEvent(
            action="thresholds_update",
            target="thresholds",
            status=status,
            error_type=error_type,
            metadata=thresholds,
        ))

    def log_settings_update(self, *, settings: dict[str, Any]) -> str:
        return self.log_event(AuditEvent(
            action="settings_update",
            target="userSettings",
            metadata=settings,
        ))

    # ---------------------------------------------------------------
    # Read
    # ---------------------------------------------------------------

    def get_events(
        self,
        *,
        action: str | None = None,
        since: str | None = None,
        limit: int = 50,
    ) -> list[dict[str, Any]]:
        """Query audit events, newest first.

        Args:
            action: Filter by action type.
            since: ISO 8601 timestamp lower bound.
            limit: Maximum events to return.
        """
        conditions: list[str] = []
        params: list[Any] = []

        if action:
            conditions.append("action = ?")
            params.append(action)
        if since:
            conditions.append("timestamp >= ?")
            params.append(since)

        where = (" WHERE " + " AND ".join(conditions)) if conditions else ""
        query = f"SELECT * FROM audit_log{where} ORDER BY timestamp DESC LIMIT ?"
        params.append(limit)

        rows = self._db.connection.execute(query, params).fetchall()
        return [dict(row) for row in rows]

    def count_events(self, *, action: str | None = None) -> int:
        """Count audit events, optionally of one action type."""
        if action:
            row = self._db.connection.execute(
                "SELECT COUNT(*) FROM audit_log WHERE action = ?", (action,)
            ).fetchone()
        else:
            row = self._db.connection.execute("SELECT COUNT(*) FROM audit_log").fetchone()
        return row[0]
