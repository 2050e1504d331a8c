"""Tests for statistics, trend classification, and day/hour bucketing."""

from __future__ import annotations

import asyncio
from datetime import datetime

import pytest
from conftest import NOW_MS, local_ms

from heartguard.core.storage.models import (
    DAY_MS,
    HEALTH_RECORDS,
    HEART_RATE_HISTORY,
    QueryRange,
    Sample,
)
from heartguard.domains.health.domain_logic.aggregator import (
    HistoryAnalyzer,
    StreamStatistics,
    classify_trend,
    compute_statistics,
    day_key,
    group_by_day,
    group_by_hour,
    round_half_up,
)


def _run(coro):
    """Run an async coroutine synchronously (no pytest-asyncio required)."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def _samples(*values: float, start: int = NOW_MS - 3600_000, step: int = 60_000) -> list[Sample]:
    return [Sample(v, start + i * step) for i, v in enumerate(values)]


class TestRounding:
    @pytest.mark.parametrize("value, expected", [(2.5, 3), (2.4, 2), (71.5, 72), (-0.5, 0)])
    def test_half_up(self, value, expected):
        assert round_half_up(value) == expected


class TestTrend:
    def test_rising(self):
        assert classify_trend([60, 60, 80, 80])[0] == "rising"

    def test_falling(self):
        assert classify_trend([90, 90, 70, 70])[0] == "falling"

    def test_eight_sample_examples(self):
        assert classify_trend([70] * 4 + [80] * 4)[0] == "rising"
        assert classify_trend([70] * 8)[0] == "stable"
        assert classify_trend([80] * 4 + [70] * 4)[0] == "falling"

    def test_small_change_is_stable(self):
        assert classify_trend([70, 71, 72, 73])[0] == "stable"

    def test_exactly_threshold_is_stable(self):
        assert classify_trend([70, 75])[0] == "stable"

    def test_odd_length_puts_middle_in_second_half(self):
        trend, first, second = classify_trend([60, 80, 80])
        assert first == 60
        assert second == 80
        assert trend == "rising"

    @pytest.mark.parametrize("values", [[], [72]])
    def test_fewer_than_two_is_stable(self, values):
        assert classify_trend(values) == ("stable", None, None)


class TestComputeStatistics:
    def test_empty_set_is_zero_state(self):
        stats = compute_statistics([])
        assert stats == StreamStatistics()
        assert stats.to_dict() == {
            "average": 0, "max": 0, "min": 0, "count": 0, "trend": "stable",
        }

    def test_single_sample(self):
        stats = compute_statistics(_samples(72))
        assert (stats.average, stats.max, stats.min, stats.count) == (72, 72, 72, 1)
        assert stats.trend == "stable"
        assert "firstAvg" not in stats.to_dict()

    def test_average_rounds_half_up(self):
        assert compute_statistics(_samples(70, 71)).average == 71

    def test_bounds_bracket_average(self):
        stats = compute_statistics(_samples(58, 64, 99, 120, 75))
        assert stats.min <= stats.average <= stats.max
        assert stats.count == 5

    def test_half_averages_reported(self):
        data = compute_statistics(_samples(60, 60, 80, 80)).to_dict()
        assert data["firstAvg"] == 60
        assert data["secondAvg"] == 80
        assert data["trend"] == "rising"


class TestGrouping:
    def test_day_key_is_local_date(self):
        assert day_key(local_ms(2026, 2, 9, 23, 59)) == "2026-02-09"
        assert day_key(local_ms(2026, 2, 10, 0, 0)) == "2026-02-10"

    def test_day_key_pads_early_years(self):
        early = int(datetime(1, 1, 2, 12).timestamp() * 1000)
        assert day_key(early) == "0001-01-02"
        assert [d.date for d in group_by_day([Sample(70, early)])] == ["0001-01-02"]

    def test_group_by_day_sorted_chronologically(self):
        samples = [
            Sample(80, local_ms(2026, 2, 10, 8)),
            Sample(60, local_ms(2026, 1, 31, 8)),
            Sample(70, local_ms(2026, 2, 9, 8)),
            Sample(90, local_ms(2026, 2, 10, 9)),
        ]
        days = group_by_day(samples)
        assert [d.date for d in days] == ["2026-01-31", "2026-02-09", "2026-02-10"]
        assert days[-1].to_dict() == {
            "date": "2026-02-10", "average": 85, "count": 2, "max": 90, "min": 80,
        }

    def test_group_by_day_keys_are_unique(self):
        samples = [Sample(70 + i, local_ms(2026, 2, 10, i)) for i in range(10)]
        assert len(group_by_day(samples)) == 1

    def test_group_by_hour_numeric_order(self):
        samples = [
            Sample(80, local_ms(2026, 2, 10, 10, 5)),
            Sample(70, local_ms(2026, 2, 10, 9, 30)),
            Sample(74, local_ms(2026, 2, 10, 9, 45)),
        ]
        hours = group_by_hour(samples)
        assert [h.label for h in hours] == ["9:00", "10:00"]
        assert hours[0].to_dict() == {"hour": "9:00", "average": 72, "count": 2}

    def test_group_by_hour_empty(self):
        assert group_by_hour([]) == []


class TestHistoryAnalyzer:
    def test_statistics_over_stored_samples(self, store):
        for i, value in enumerate((60, 60, 80, 80)):
            _run(store.append(HEART_RATE_HISTORY, {"value": value, "timestamp": NOW_MS - (4 - i) * 1000}))
        stats = _run(HistoryAnalyzer(store).statistics())
        assert stats.count == 4
        assert stats.average == 70
        assert stats.trend == "rising"

    def test_statistics_of_empty_store(self, store):
        assert _run(HistoryAnalyzer(store).statistics()) == StreamStatistics()

    def test_statistics_respect_window(self, store):
        _run(store.append(HEART_RATE_HISTORY, {"value": 50, "timestamp": NOW_MS - 10 * DAY_MS}))
        _run(store.append(HEART_RATE_HISTORY, 70))
        assert _run(HistoryAnalyzer(store).statistics(days=7)).count == 1
        assert _run(HistoryAnalyzer(store).statistics_for(QueryRange.all())).count == 2

    def test_daily_and_hourly_summary(self, store):
        _run(store.append(HEART_RATE_HISTORY, {"value": 60, "timestamp": NOW_MS - DAY_MS}))
        _run(store.append(HEART_RATE_HISTORY, {"value": 70, "timestamp": local_ms(2026, 2, 10, 9)}))
        _run(store.append(HEART_RATE_HISTORY, 80))
        analyzer = HistoryAnalyzer(store)

        days = _run(analyzer.daily_summary(days=7))
        assert [d.date for d in days] == ["2026-02-09", "2026-02-10"]

        hours = _run(analyzer.hourly_summary())
        assert [h.label for h in hours] == ["9:00", "15:00"]

    def test_record_stream_projects_metric(self, store):
        _run(store.append_record({"heartRate": 70, "timestamp": NOW_MS - 2000}))
        _run(store.append_record({"steps": 500, "timestamp": NOW_MS - 1000}))
        _run(store.append_record({"heartRate": 90}))
        stats = _run(HistoryAnalyzer(store, HEALTH_RECORDS).statistics())
        assert stats.count == 2
        assert stats.average == 80

        steps = _run(HistoryAnalyzer(store, HEALTH_RECORDS, metric="steps").statistics())
        assert steps.count == 1
        assert steps.max == 500
