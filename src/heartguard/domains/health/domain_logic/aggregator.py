"""Statistics, trend classification, and day/hour bucketing for sample streams.

The trend rule compares the mean of the first half of a chronologically
ordered stream with the mean of the second half; a gap of more than
``TREND_THRESHOLD`` in either direction is a trend.
"""

from __future__ import annotations

import logging
import math
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Iterable, Literal, Sequence

from heartguard.core.storage.models import (
    HEART_RATE_HISTORY,
    HealthRecord,
    QueryRange,
    Sample,
)
from heartguard.core.storage.record_store import RecordStore

logger = logging.getLogger(__name__)

TREND_THRESHOLD = 5

Trend = Literal["rising", "falling", "stable"]


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves rounded up (2.5 -> 3)."""
    return int(math.floor(value + 0.5))


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class StreamStatistics:
    """Summary of a sample set."""

    average: int = 0
    max: int | float = 0
    min: int | float = 0
    count: int = 0
    trend: Trend = "stable"
    first_half_average: int | None = None
    second_half_average: int | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "average": self.average,
            "max": self.max,
            "min": self.min,
            "count": self.count,
            "trend": self.trend,
        }
        if self.first_half_average is not None:
            data["firstAvg"] = self.first_half_average
            data["secondAvg"] = self.second_half_average
        return data


@dataclass(frozen=True)
class DailySummary:
    """Per-day bucket. ``date`` is a local calendar date in ``YYYY-MM-DD`` form."""

    date: str
    average: int
    count: int
    max: int | float
    min: int | float

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date,
            "average": self.average,
            "count": self.count,
            "max": self.max,
            "min": self.min,
        }


@dataclass(frozen=True)
class HourlyBucket:
    """Per-hour bucket labelled ``H:00`` (local hour, not zero-padded)."""

    hour: int
    average: int
    count: int

    @property
    def label(self) -> str:
        return f"{self.hour}:00"

    def to_dict(self) -> dict[str, Any]:
        return {"hour": self.label, "average": self.average, "count": self.count}


# ---------------------------------------------------------------------------
# Pure aggregation
# ---------------------------------------------------------------------------

def classify_trend(values: Sequence[float]) -> tuple[Trend, float | None, float | None]:
    """Compare first-half and second-half means of ``values``.

    Returns:
        ``(trend, first_mean, second_mean)``. The means are None when there
        are fewer than two values; such sets are always ``stable``.
    """
    if len(values) < 2:
        return "stable", None, None

    mid = len(values) // 2
    first_half = values[:mid]
    second_half = values[mid:]
    first_avg = sum(first_half) / len(first_half)
    second_avg = sum(second_half) / len(second_half)

    trend: Trend = "stable"
    if second_avg > first_avg + TREND_THRESHOLD:
        trend = "rising"
    elif second_avg < first_avg - TREND_THRESHOLD:
        trend = "falling"
    return trend, first_avg, second_avg


def compute_statistics(samples: Sequence[Sample]) -> StreamStatistics:
    """Average/min/max/count/trend of a chronologically ordered sample set.

    An empty set yields the zero state with trend ``stable``.
    """
    if not samples:
        return StreamStatistics()

    values = [s.value for s in samples]
    trend, first_avg, second_avg = classify_trend(values)
    return StreamStatistics(
        average=round_half_up(sum(values) / len(values)),
        max=max(values),
        min=min(values),
        count=len(values),
        trend=trend,
        first_half_average=round_half_up(first_avg) if first_avg is not None else None,
        second_half_average=round_half_up(second_avg) if second_avg is not None else None,
    )


def day_key(timestamp: int) -> str:
    """Local calendar date of ``timestamp`` as ``YYYY-MM-DD``."""
    return datetime.fromtimestamp(timestamp / 1000).date().isoformat()


def group_by_day(samples: Iterable[Sample]) -> list[DailySummary]:
    """Bucket samples by local calendar date, oldest day first."""
    grouped: dict[str, list[float]] = defaultdict(list)
    for sample in samples:
        grouped[day_key(sample.timestamp)].append(sample.value)

    result = [
        DailySummary(
            date=key,
            average=round_half_up(sum(values) / len(values)),
            count=len(values),
            max=max(values),
            min=min(values),
        )
        for key, values in grouped.items()
    ]
    result.sort(key=lambda bucket: date.fromisoformat(bucket.date))
    return result


def group_by_hour(samples: Iterable[Sample]) -> list[HourlyBucket]:
    """Bucket samples by local hour of day, ordered numerically by hour."""
    grouped: dict[int, list[float]] = defaultdict(list)
    for sample in samples:
        grouped[datetime.fromtimestamp(sample.timestamp / 1000).hour].append(sample.value)

    return [
        HourlyBucket(
            hour=hour,
            average=round_half_up(sum(values) / len(values)),
            count=len(values),
        )
        for hour, values in sorted(grouped.items())
    ]


# ---------------------------------------------------------------------------
# Store-backed views
# ---------------------------------------------------------------------------

class HistoryAnalyzer:
    """Statistics and chart buckets over a stored stream.

    Usage::

        analyzer = HistoryAnalyzer(store)
        stats = await analyzer.statistics(days=7)
        days = await analyzer.daily_summary(days=30)
        hours = await analyzer.hourly_summary()
    """

    def __init__(
        self,
        store: RecordStore,
        stream: str = HEART_RATE_HISTORY,
        *,
        metric: str = "heart_rate",
    ) -> None:
        self._store = store
        self._stream = stream
        self._metric = metric  # used when the stream holds HealthRecords

    async def _samples(self, query_range: QueryRange) -> list[Sample]:
        entries = await self._store.query(self._stream, query_range)
        samples: list[Sample] = []
        for entry in entries:
            if isinstance(entry, HealthRecord):
                projected = entry.metric_sample(self._metric)
                if projected is not None:
                    samples.append(projected)
            else:
                samples.append(entry)
        return samples

    async def statistics(self, days: int = 7) -> StreamStatistics:
        """Statistics over the last ``days`` days."""
        return compute_statistics(await self._samples(QueryRange.last_days(days)))

    async def statistics_for(self, query_range: QueryRange) -> StreamStatistics:
        """Statistics over an arbitrary range."""
        return compute_statistics(await self._samples(query_range))

    async def daily_summary(self, days: int = 7) -> list[DailySummary]:
        """Per-day buckets over the last ``days`` days."""
        return group_by_day(await self._samples(QueryRange.last_days(days)))

    async def hourly_summary(self) -> list[HourlyBucket]:
        """Per-hour buckets for today."""
        return group_by_hour(await self._samples(QueryRange.today()))
