"""Record store: append-only sample streams with rolling-window retention.

Each stream is persisted as one JSON array under a namespaced key. Every
append reads the whole stream, adds the new entry, drops entries that fell
out of the retention window, and writes the result back in one transaction.

Storage failures never propagate to callers: writes report ``False`` and
reads fall back to empty lists or default values, with a logged diagnostic.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Iterable, Mapping

from heartguard.core.storage.database import HealthDatabase, PersistenceError
from heartguard.core.storage.encryption import EncryptionError, PayloadCodec, dumps_compact
from heartguard.core.storage.models import (
    DAY_MS,
    HEALTH_RECORDS,
    HEART_RATE_HISTORY,
    HealthRecord,
    QueryRange,
    Sample,
    StreamEntry,
    Thresholds,
    UserSettings,
    ValidationError,
    now_ms,
)

logger = logging.getLogger(__name__)

DEFAULT_NAMESPACE = "@HeartGuard"
DEFAULT_RETENTION_DAYS = 30

THRESHOLDS_KEY = "thresholds"
SETTINGS_KEY = "userSettings"

EntryPredicate = Callable[[StreamEntry], bool]


class RecordStore:
    """Persists sample streams, thresholds and settings in a HealthDatabase.

    Callers are expected to serialize access (one producer loop per store);
    appends are additionally guarded by a per-store lock.

    Usage::

        db = HealthDatabase(":memory:")
        db.initialize()
        store = RecordStore(db, PayloadCodec())

        await store.append("heartRateHistory", 72)
        today = await store.query("heartRateHistory", QueryRange.today())
    """

    def __init__(
        self,
        database: HealthDatabase,
        codec: PayloadCodec | None = None,
        *,
        namespace: str = DEFAULT_NAMESPACE,
        retention_days: int = DEFAULT_RETENTION_DAYS,
        clock: Callable[[], int] | None = None,
    ) -> None:
        self._db = database
        self._codec = codec or PayloadCodec()
        self._namespace = namespace
        self._retention_ms = retention_days * DAY_MS
        self._clock = clock or now_ms
        self._lock = asyncio.Lock()

    def key(self, name: str) -> str:
        """Namespaced storage key for a stream or settings object."""
        return f"{self._namespace}:{name}"

    def now(self) -> int:
        """Current time according to the store's clock (epoch millis)."""
        return self._clock()

    # ------------------------------------------------------------------
    # Streams
    # ------------------------------------------------------------------

    async def append(self, stream: str, entry: Any) -> bool:
        """Append one entry to ``stream`` and apply retention.

        Args:
            stream: Stream name, e.g. ``heartRateHistory``.
            entry: A Sample/HealthRecord, a mapping with ``value`` and an
                optional ``timestamp``, or a bare number. Missing timestamps
                default to now.

        Returns:
            True if the filtered stream was persisted, False otherwise. On
            failure the entry is dropped; callers may retry.
        """
        async with self._lock:
            try:
                now = self._clock()
                new_entry = self._coerce(stream, entry, now)
                entries = self._read_stream(stream)
                entries.append(new_entry)

                cutoff = now - self._retention_ms
                kept = [e for e in entries if e.timestamp > cutoff]
                self._write_stream(stream, kept)
            except ValidationError as exc:
                logger.warning("Rejected entry for stream %s: %s", stream, exc)
                return False
            except PersistenceError:
                logger.exception("Failed to save record to stream %s", stream)
                return False

        dropped = len(entries) - len(kept)
        if dropped:
            logger.debug("Retention dropped %d entries from %s", dropped, stream)
        return True

    async def append_record(self, record: HealthRecord | Mapping[str, Any]) -> bool:
        """Append a composite health record to the ``healthRecords`` stream."""
        return await self.append(HEALTH_RECORDS, record)

    async def query(
        self,
        stream: str,
        criteria: QueryRange | EntryPredicate | None = None,
    ) -> list[StreamEntry]:
        """Return the entries of ``stream`` matching ``criteria``, in stored order.

        Args:
            stream: Stream name.
            criteria: A QueryRange, a predicate over entries, or None for all.

        Returns:
            A new list; the stored stream is never modified. Empty on a
            missing stream or storage failure.
        """
        try:
            entries = self._read_stream(stream)
        except PersistenceError:
            logger.exception("Failed to read stream %s", stream)
            return []

        if criteria is None:
            return entries
        if isinstance(criteria, QueryRange):
            matches = criteria.predicate(self._clock())
            return [e for e in entries if matches(e.timestamp)]
        return [e for e in entries if criteria(e)]

    async def recent(self, days: int = 7) -> list[StreamEntry]:
        """Heart-rate samples from the last ``days`` days."""
        return await self.query(HEART_RATE_HISTORY, QueryRange.last_days(days))

    async def today(self) -> list[StreamEntry]:
        """Heart-rate samples since local midnight."""
        return await self.query(HEART_RATE_HISTORY, QueryRange.today())

    async def in_range(self, start: int, end: int) -> list[StreamEntry]:
        """Heart-rate samples with ``start <= timestamp <= end``."""
        return await self.query(HEART_RATE_HISTORY, QueryRange.between(start, end))

    async def clear(self, streams: Iterable[str] | None = None) -> bool:
        """Remove streams entirely. Defaults to both built-in streams.

        Idempotent; clearing a missing stream succeeds.
        """
        names = list(streams) if streams is not None else [HEART_RATE_HISTORY, HEALTH_RECORDS]
        async with self._lock:
            try:
                removed = self._db.delete_values([self.key(n) for n in names])
            except PersistenceError:
                logger.exception("Failed to clear streams %s", names)
                return False
        logger.warning("Cleared streams %s (%d keys removed)", names, removed)
        return True

    async def estimate_size(self, stream: str) -> int:
        """Approximate byte size of the stream's compact JSON form."""
        entries = await self.query(stream)
        return _json_size([e.to_dict() for e in entries])

    async def storage_info(self) -> dict[str, int]:
        """Entry counts and estimated size of the built-in streams."""
        heart_rate = await self.query(HEART_RATE_HISTORY)
        records = await self.query(HEALTH_RECORDS)
        return {
            "heartRateCount": len(heart_rate),
            "healthRecordCount": len(records),
            "estimatedSize": (
                _json_size([e.to_dict() for e in heart_rate])
                + _json_size([e.to_dict() for e in records])
            ),
        }

    # ------------------------------------------------------------------
    # Thresholds & settings
    # ------------------------------------------------------------------

    async def get_thresholds(self) -> Thresholds:
        """Stored thresholds, or the defaults (60/100/95)."""
        data = self._read_object(THRESHOLDS_KEY)
        return Thresholds.from_dict(data) if data is not None else Thresholds()

    async def save_thresholds(self, thresholds: Thresholds) -> bool:
        return self._write_object(THRESHOLDS_KEY, thresholds.to_dict())

    async def update_thresholds(
        self,
        min: Any = None,
        max: Any = None,
        min_blood_oxygen: Any = None,
    ) -> bool:
        """Merge new values into the stored thresholds, validate, then persist.

        Raises:
            ValidationError: If the merged thresholds are invalid. Nothing is
                written and the previous thresholds stay in effect.
        """
        current = await self.get_thresholds()
        updated = Thresholds.validated(
            current.min if min is None else min,
            current.max if max is None else max,
            current.min_blood_oxygen if min_blood_oxygen is None else min_blood_oxygen,
        )
        return await self.save_thresholds(updated)

    async def get_settings(self) -> UserSettings:
        """Stored user settings, or the defaults."""
        data = self._read_object(SETTINGS_KEY)
        return UserSettings.from_dict(data) if data is not None else UserSettings()

    async def save_settings(self, settings: UserSettings) -> bool:
        return self._write_object(SETTINGS_KEY, settings.to_dict())

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _entry_type(stream: str) -> type[Sample] | type[HealthRecord]:
        return HealthRecord if stream == HEALTH_RECORDS else Sample

    def _coerce(self, stream: str, entry: Any, now: int) -> StreamEntry:
        entry_type = self._entry_type(stream)
        if isinstance(entry, entry_type):
            return entry
        if isinstance(entry, Mapping):
            return entry_type.from_dict(entry, now_ms=now)
        if entry_type is Sample:
            return Sample.create(entry, now_ms=now)
        raise ValidationError(
            f"Stream {stream!r} expects {entry_type.__name__}, got {type(entry).__name__}"
        )

    def _decode(self, name: str) -> Any:
        raw = self._db.read_value(self.key(name))
        if raw is None:
            return None
        try:
            return self._codec.decode(raw)
        except EncryptionError as exc:
            raise PersistenceError(f"Failed to decode {self.key(name)!r}: {exc}") from exc

    def _read_stream(self, stream: str) -> list[StreamEntry]:
        data = self._decode(stream)
        if data is None:
            return []
        if not isinstance(data, list):
            raise PersistenceError(f"Stream {stream!r} is not a JSON array")
        entry_type = self._entry_type(stream)
        try:
            return [entry_type.from_dict(item) for item in data]
        except (ValidationError, AttributeError) as exc:
            raise PersistenceError(f"Stream {stream!r} holds a malformed entry: {exc}") from exc

    def _write_stream(self, stream: str, entries: list[StreamEntry]) -> None:
        payload = [e.to_dict() for e in entries]
        try:
            encoded = self._codec.encode(payload)
        except EncryptionError as exc:
            raise PersistenceError(f"Failed to encode stream {stream!r}: {exc}") from exc
        self._db.write_value(self.key(stream), encoded)

    def _read_object(self, name: str) -> dict[str, Any] | None:
        try:
            data = self._decode(name)
        except PersistenceError:
            logger.exception("Failed to read %s", name)
            return None
        return data if isinstance(data, dict) else None

    def _write_object(self, name: str, data: dict[str, Any]) -> bool:
        try:
            self._db.write_value(self.key(name), self._codec.encode(data))
        except (PersistenceError, EncryptionError):
            logger.exception("Failed to save %s", name)
            return False
        return True


def _json_size(data: Any) -> int:
    return len(dumps_compact(data).encode("utf-8"))
