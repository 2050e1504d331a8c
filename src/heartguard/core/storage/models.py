"""Data models for the HeartGuard record store."""

from __future__ import annotations

import math
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Literal, Mapping

DAY_MS = 24 * 60 * 60 * 1000

# Built-in stream names (persisted under "<namespace>:<stream>")
HEART_RATE_HISTORY = "heartRateHistory"
HEALTH_RECORDS = "healthRecords"

# camelCase keys match the persisted JSON layout of the mobile app
_RECORD_FIELDS = {
    "heart_rate": "heartRate",
    "blood_oxygen": "bloodOxygen",
    "steps": "steps",
    "calories": "calories",
    "distance": "distance",
}


class ValidationError(ValueError):
    """Raised when a sample or threshold value is malformed."""


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def iso_format(timestamp: int) -> str:
    """Format epoch millis as an ISO-8601 UTC string, e.g. ``2026-02-01T12:00:00.000Z``."""
    seconds, millis = divmod(int(timestamp), 1000)
    dt = datetime.fromtimestamp(seconds, tz=timezone.utc) + timedelta(milliseconds=millis)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _check_number(value: Any, name: str) -> int | float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"{name} must be numeric, got {value!r}")
    if not math.isfinite(value):
        raise ValidationError(f"{name} must be finite, got {value!r}")
    return value


def _check_timestamp(timestamp: Any, default: int | None) -> int:
    if timestamp is None:
        return default if default is not None else now_ms()
    checked = int(_check_number(timestamp, "timestamp"))
    try:
        iso_format(checked)
    except (ValueError, OverflowError, OSError) as exc:
        raise ValidationError(f"timestamp out of range, got {timestamp!r}") from exc
    return checked


# ---------------------------------------------------------------------------
# Stream entries
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Sample:
    """One metric observation.

    ``date`` is a display cache derived from ``timestamp`` and is never set
    independently.
    """

    value: int | float
    timestamp: int

    @property
    def date(self) -> str:
        return iso_format(self.timestamp)

    @classmethod
    def create(
        cls,
        value: Any,
        timestamp: Any = None,
        *,
        now_ms: int | None = None,
    ) -> Sample:
        """Validate inputs and build a sample; ``timestamp`` defaults to now.

        Raises:
            ValidationError: If ``value`` is not a finite number or
                ``timestamp`` is not numeric.
        """
        return cls(
            value=_check_number(value, "value"),
            timestamp=_check_timestamp(timestamp, now_ms),
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], *, now_ms: int | None = None) -> Sample:
        return cls.create(data.get("value"), data.get("timestamp"), now_ms=now_ms)

    def to_dict(self) -> dict[str, Any]:
        return {"value": self.value, "timestamp": self.timestamp, "date": self.date}


@dataclass(frozen=True)
class HealthRecord:
    """A composite observation. Any subset of metrics may be present."""

    timestamp: int
    heart_rate: int | float | None = None
    blood_oxygen: int | float | None = None
    steps: int | float | None = None
    calories: int | float | None = None
    distance: int | float | None = None

    @property
    def date(self) -> str:
        return iso_format(self.timestamp)

    @classmethod
    def create(
        cls,
        *,
        timestamp: Any = None,
        now_ms: int | None = None,
        **metrics: Any,
    ) -> HealthRecord:
        """Validate metric values and build a record.

        Raises:
            ValidationError: On unknown metric names or non-numeric values.
        """
        unknown = set(metrics) - set(_RECORD_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown health record fields: {sorted(unknown)}")
        checked = {
            name: _check_number(value, name)
            for name, value in metrics.items()
            if value is not None
        }
        return cls(timestamp=_check_timestamp(timestamp, now_ms), **checked)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], *, now_ms: int | None = None) -> HealthRecord:
        """Build from either the persisted camelCase layout or snake_case keys."""
        metrics = {}
        for attr, key in _RECORD_FIELDS.items():
            value = data.get(key, data.get(attr))
            if value is not None:
                metrics[attr] = value
        return cls.create(timestamp=data.get("timestamp"), now_ms=now_ms, **metrics)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        for attr, key in _RECORD_FIELDS.items():
            value = getattr(self, attr)
            if value is not None:
                data[key] = value
        data["timestamp"] = self.timestamp
        data["date"] = self.date
        return data

    def metric_sample(self, metric: str) -> Sample | None:
        """Project one metric into a Sample, or None if it was not recorded.

        ``metric`` may be given as ``heart_rate`` or ``heartRate``.
        """
        attr = next((a for a, k in _RECORD_FIELDS.items() if metric in (a, k)), None)
        if attr is None:
            raise ValidationError(f"Unknown health metric: {metric!r}")
        value = getattr(self, attr)
        if value is None:
            return None
        return Sample(value=value, timestamp=self.timestamp)


StreamEntry = Sample | HealthRecord


# ---------------------------------------------------------------------------
# Thresholds & settings
# ---------------------------------------------------------------------------

HEART_RATE_FLOOR = 40
HEART_RATE_CEILING = 200


@dataclass(frozen=True)
class Thresholds:
    """Heart-rate bounds and the blood-oxygen floor."""

    min: int | float = 60
    max: int | float = 100
    min_blood_oxygen: int | float = 95

    @classmethod
    def validated(
        cls,
        min: Any,
        max: Any,
        min_blood_oxygen: Any = 95,
    ) -> Thresholds:
        """Build thresholds from user input, rejecting malformed values.

        Strings are parsed as numbers (the settings screen submits text).

        Raises:
            ValidationError: Non-numeric input, ``min >= max``, heart-rate
                bounds outside 40-200, or blood oxygen outside 0-100.
        """
        low = _parse_number(min, "min")
        high = _parse_number(max, "max")
        spo2 = _parse_number(min_blood_oxygen, "minBloodOxygen")
        if low >= high:
            raise ValidationError("Minimum heart rate must be less than maximum")
        if low < HEART_RATE_FLOOR or high > HEART_RATE_CEILING:
            raise ValidationError(
                f"Heart rate range must be within {HEART_RATE_FLOOR}-{HEART_RATE_CEILING}"
            )
        if not 0 < spo2 <= 100:
            raise ValidationError("Minimum blood oxygen must be a percentage (0-100]")
        return cls(min=low, max=high, min_blood_oxygen=spo2)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Thresholds:
        defaults = cls()
        return cls(
            min=data.get("min", defaults.min),
            max=data.get("max", defaults.max),
            min_blood_oxygen=data.get("minBloodOxygen", defaults.min_blood_oxygen),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"min": self.min, "max": self.max, "minBloodOxygen": self.min_blood_oxygen}


def _parse_number(value: Any, name: str) -> int | float:
    if isinstance(value, str):
        text = value.strip()
        try:
            value = int(text)
        except ValueError:
            try:
                value = float(text)
            except ValueError:
                raise ValidationError(f"{name} must be a number, got {text!r}") from None
    return _check_number(value, name)


@dataclass(frozen=True)
class UserSettings:
    """App preferences persisted alongside the streams."""

    notifications: bool = True
    auto_save: bool = True
    theme: str = "light"

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> UserSettings:
        defaults = cls()
        return cls(
            notifications=bool(data.get("notifications", defaults.notifications)),
            auto_save=bool(data.get("autoSave", defaults.auto_save)),
            theme=str(data.get("theme", defaults.theme)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "notifications": self.notifications,
            "autoSave": self.auto_save,
            "theme": self.theme,
        }


# ---------------------------------------------------------------------------
# Query ranges
# ---------------------------------------------------------------------------

def local_midnight_ms(at_ms: int) -> int:
    """Epoch millis of local midnight on the day containing ``at_ms``."""
    local = datetime.fromtimestamp(at_ms / 1000)
    midnight = local.replace(hour=0, minute=0, second=0, microsecond=0)
    return int(midnight.timestamp() * 1000)


@dataclass(frozen=True)
class QueryRange:
    """A timestamp filter resolved against the store's clock at query time."""

    kind: Literal["all", "last_days", "today", "between"]
    days: int | None = None
    start: int | None = None
    end: int | None = None

    @classmethod
    def all(cls) -> QueryRange:
        return cls("all")

    @classmethod
    def last_days(cls, days: int) -> QueryRange:
        if days < 0:
            raise ValidationError(f"days must be non-negative, got {days}")
        return cls("last_days", days=days)

    @classmethod
    def today(cls) -> QueryRange:
        return cls("today")

    @classmethod
    def between(cls, start: int, end: int) -> QueryRange:
        return cls("between", start=int(start), end=int(end))

    def predicate(self, now: int) -> Callable[[int], bool]:
        """Return a timestamp predicate for this range as of ``now``."""
        if self.kind == "last_days":
            cutoff = now - self.days * DAY_MS
            return lambda ts: ts > cutoff
        if self.kind == "today":
            start_of_day = local_midnight_ms(now)
            return lambda ts: ts >= start_of_day
        if self.kind == "between":
            return lambda ts: self.start <= ts <= self.end
        return lambda ts: True


def parse_period(period: str) -> QueryRange:
    """Map a history period selector (``today``, ``all``, or a day count) to a range.

    Raises:
        ValidationError: If the period is not recognized.
    """
    text = str(period).strip().lower()
    if text == "today":
        return QueryRange.today()
    if text == "all":
        return QueryRange.all()
    if text.isdigit():
        return QueryRange.last_days(int(text))
    raise ValidationError(f"Unknown period: {period!r}. Use 'today', 'all', or a number of days.")
