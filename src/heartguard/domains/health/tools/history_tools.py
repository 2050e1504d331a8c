"""MCP tools for reading stored history: raw samples, statistics, chart buckets."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from fastmcp import Context, FastMCP

from heartguard.core.storage.models import (
    HEART_RATE_HISTORY,
    QueryRange,
    ValidationError,
    parse_period,
)

if TYPE_CHECKING:
    from heartguard.core.storage.record_store import RecordStore
    from heartguard.domains.health.domain_logic.aggregator import HistoryAnalyzer

logger = logging.getLogger(__name__)


def register_history_tools(
    mcp: FastMCP,
    store: RecordStore,
    analyzer: HistoryAnalyzer,
) -> None:
    """Register history and statistics tools on the MCP server."""

    @mcp.tool
    async def get_history(
        ctx: Context,
        period: str = "7",
        start_ms: int | None = None,
        end_ms: int | None = None,
        stream: str = HEART_RATE_HISTORY,
    ) -> str:
        """Stored entries of a stream, oldest first.

        Args:
            period: 'today', 'all', or a number of days. Ignored when both
                start_ms and end_ms are given.
            start_ms: Inclusive range start in epoch milliseconds.
            end_ms: Inclusive range end in epoch milliseconds.
            stream: 'heartRateHistory' or 'healthRecords'.
        """
        try:
            if start_ms is not None and end_ms is not None:
                query_range = QueryRange.between(start_ms, end_ms)
            else:
                query_range = parse_period(period)
        except ValidationError as exc:
            return json.dumps({"status": "error", "message": str(exc)})

        entries = await store.query(stream, query_range)
        return json.dumps({
            "stream": stream,
            "count": len(entries),
            "entries": [e.to_dict() for e in entries],
        })

    @mcp.tool
    async def get_statistics(ctx: Context, period: str = "7") -> str:
        """Average, min, max, count and trend of heart rate over a period.

        Args:
            period: 'today', 'all', or a number of days.
        """
        try:
            query_range = parse_period(period)
        except ValidationError as exc:
            return json.dumps({"status": "error", "message": str(exc)})

        stats = await analyzer.statistics_for(query_range)
        return json.dumps({"period": period, **stats.to_dict()})

    @mcp.tool
    async def get_daily_summary(ctx: Context, days: int = 7) -> str:
        """Per-day heart-rate averages for the last N days, oldest first.

        Args:
            days: Number of days to look back.
        """
        if days < 1:
            return json.dumps({"status": "error", "message": "days must be at least 1."})
        buckets = await analyzer.daily_summary(days)
        return json.dumps({"days": days, "buckets": [b.to_dict() for b in buckets]})

    @mcp.tool
    async def get_hourly_summary(ctx: Context) -> str:
        """Per-hour heart-rate averages for today, earliest hour first."""
        buckets = await analyzer.hourly_summary()
        return json.dumps({"buckets": [b.to_dict() for b in buckets]})
