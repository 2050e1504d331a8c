"""CSV and JSON export of stored health data.

CSV rows use en-US local date and time strings (``3/7/2026``,
``2:05:09 PM``); none of the fields can contain a comma, so no quoting is
applied.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping, Sequence

from heartguard.core.storage.models import (
    HEALTH_RECORDS,
    HEART_RATE_HISTORY,
    HealthRecord,
    Sample,
    StreamEntry,
    Thresholds,
    UserSettings,
    iso_format,
    now_ms,
)
from heartguard.core.storage.record_store import RecordStore

logger = logging.getLogger(__name__)

CSV_HEADER = "Date,Time,Heart Rate (BPM)"


# ---------------------------------------------------------------------------
# CSV
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CsvRow:
    date: str
    time: str
    value: int | float


def format_local_date(timestamp: int) -> str:
    """en-US short date in local time, e.g. ``3/7/2026``."""
    dt = datetime.fromtimestamp(timestamp / 1000)
    return f"{dt.month}/{dt.day}/{dt.year}"


def format_local_time(timestamp: int) -> str:
    """en-US 12-hour time in local time, e.g. ``2:05:09 PM``."""
    dt = datetime.fromtimestamp(timestamp / 1000)
    hour = dt.hour % 12 or 12
    suffix = "AM" if dt.hour < 12 else "PM"
    return f"{hour}:{dt.minute:02d}:{dt.second:02d} {suffix}"


def to_csv(samples: Sequence[Sample]) -> str:
    """Render samples as CSV, one row per sample in the order given.

    N samples produce exactly N + 1 lines (no trailing newline).
    """
    rows = [
        f"{format_local_date(s.timestamp)},{format_local_time(s.timestamp)},{s.value}"
        for s in samples
    ]
    return "\n".join([CSV_HEADER, *rows])


def _parse_value(text: str) -> int | float:
    try:
        return int(text)
    except ValueError:
        return float(text)


def parse_csv(text: str) -> list[CsvRow]:
    """Parse CSV produced by :func:`to_csv` back into rows.

    Raises:
        ValueError: If the header or a row is malformed.
    """
    lines = text.split("\n")
    if not lines or lines[0] != CSV_HEADER:
        raise ValueError("Missing heart rate CSV header")

    rows = []
    for line_no, line in enumerate(lines[1:], start=2):
        if not line:
            continue
        parts = line.split(",")
        if len(parts) != 3:
            raise ValueError(f"Line {line_no}: expected 3 fields, got {len(parts)}")
        rows.append(CsvRow(date=parts[0], time=parts[1], value=_parse_value(parts[2])))
    return rows


# ---------------------------------------------------------------------------
# JSON bundle
# ---------------------------------------------------------------------------

@dataclass
class ExportBundle:
    """Everything the app stores, as exported."""

    export_date: str
    heart_rate_history: list[Sample] = field(default_factory=list)
    health_records: list[HealthRecord] = field(default_factory=list)
    thresholds: Thresholds = field(default_factory=Thresholds)
    settings: UserSettings = field(default_factory=UserSettings)


def to_json_export(
    streams: Mapping[str, Sequence[StreamEntry]],
    thresholds: Thresholds,
    settings: UserSettings,
    *,
    export_date: str | None = None,
) -> dict[str, Any]:
    """Bundle both streams, thresholds and settings into one JSON-ready dict.

    Args:
        streams: Entries keyed by stream name (``heartRateHistory``,
            ``healthRecords``). Missing streams export as empty arrays.
        thresholds: Current thresholds.
        settings: Current user settings.
        export_date: ISO timestamp to stamp the bundle with; defaults to now.
    """
    if export_date is None:
        export_date = iso_format(now_ms())
    return {
        "exportDate": export_date,
        "heartRateHistory": [e.to_dict() for e in streams.get(HEART_RATE_HISTORY, [])],
        "healthRecords": [e.to_dict() for e in streams.get(HEALTH_RECORDS, [])],
        "thresholds": thresholds.to_dict(),
        "settings": settings.to_dict(),
    }


def serialize_export(bundle: Mapping[str, Any]) -> str:
    return json.dumps(bundle, indent=2)


def parse_export(text: str) -> ExportBundle:
    """Rebuild an :class:`ExportBundle` from serialized export JSON.

    Raises:
        ValueError: If the text is not valid JSON or an entry is malformed.
    """
    data = json.loads(text)
    return ExportBundle(
        export_date=data.get("exportDate", ""),
        heart_rate_history=[Sample.from_dict(d) for d in data.get("heartRateHistory", [])],
        health_records=[HealthRecord.from_dict(d) for d in data.get("healthRecords", [])],
        thresholds=Thresholds.from_dict(data.get("thresholds", {})),
        settings=UserSettings.from_dict(data.get("settings", {})),
    )


async def export_store(store: RecordStore) -> str | None:
    """Serialize everything in ``store``; None if serialization fails."""
    streams = {
        HEART_RATE_HISTORY: await store.query(HEART_RATE_HISTORY),
        HEALTH_RECORDS: await store.query(HEALTH_RECORDS),
    }
    bundle = to_json_export(
        streams,
        await store.get_thresholds(),
        await store.get_settings(),
        export_date=iso_format(store.now()),
    )
    try:
        return serialize_export(bundle)
    except (TypeError, ValueError):
        logger.exception("Failed to export data as JSON")
        return None
