"""MCP tools for recording readings and classifying them against thresholds."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from fastmcp import Context, FastMCP

from heartguard.core.storage.models import (
    HEART_RATE_HISTORY,
    HealthRecord,
    Sample,
    ValidationError,
)
from heartguard.domains.health.domain_logic import monitoring
from heartguard.domains.health.domain_logic import thresholds as threshold_logic

if TYPE_CHECKING:
    from heartguard.core.storage.record_store import RecordStore
    from heartguard.domains.health.connectors import HealthDataProducer

logger = logging.getLogger(__name__)


def register_monitoring_tools(
    mcp: FastMCP,
    store: RecordStore,
    producer: HealthDataProducer,
    *,
    age: int = threshold_logic.DEFAULT_AGE,
) -> None:
    """Register reading and threshold tools on the MCP server."""

    @mcp.tool
    async def record_heart_rate(
        ctx: Context,
        value: float,
        timestamp_ms: int | None = None,
    ) -> str:
        """Store one heart-rate reading.

        Args:
            value: Heart rate in BPM.
            timestamp_ms: Observation time in epoch milliseconds. Defaults to now.
        """
        try:
            sample = Sample.create(value, timestamp_ms, now_ms=store.now())
        except ValidationError as exc:
            return json.dumps({"status": "error", "message": str(exc)})

        saved = await store.append(HEART_RATE_HISTORY, sample)
        return json.dumps({
            "status": "saved" if saved else "failed",
            "sample": sample.to_dict(),
        })

    @mcp.tool
    async def record_health_record(
        ctx: Context,
        heart_rate: float | None = None,
        blood_oxygen: float | None = None,
        steps: int | None = None,
        calories: float | None = None,
        distance: float | None = None,
        timestamp_ms: int | None = None,
    ) -> str:
        """Store a composite health record. Omitted metrics are left out.

        Args:
            heart_rate: Heart rate in BPM.
            blood_oxygen: Blood oxygen saturation in percent.
            steps: Steps taken today.
            calories: Calories burned today.
            distance: Distance walked today in kilometers.
            timestamp_ms: Observation time in epoch milliseconds. Defaults to now.
        """
        try:
            record = HealthRecord.create(
                timestamp=timestamp_ms,
                now_ms=store.now(),
                heart_rate=heart_rate,
                blood_oxygen=blood_oxygen,
                steps=steps,
                calories=calories,
                distance=distance,
            )
        except ValidationError as exc:
            return json.dumps({"status": "error", "message": str(exc)})

        saved = await store.append_record(record)
        return json.dumps({
            "status": "saved" if saved else "failed",
            "record": record.to_dict(),
        })

    @mcp.tool
    async def collect_observation(ctx: Context) -> str:
        """Take one reading of every metric from the active producer.

        Readings are classified against the stored thresholds and saved when
        the user's auto-save setting is on.
        """
        thresholds = await store.get_thresholds()
        settings = await store.get_settings()
        observation = await monitoring.collect_observation(
            producer,
            store,
            thresholds,
            age=age,
            auto_save=settings.auto_save,
        )
        result = observation.to_dict()
        result["dataSource"] = producer.data_source
        return json.dumps(result)

    @mcp.tool
    async def check_heart_rate(
        ctx: Context,
        value: float,
        user_age: int | None = None,
    ) -> str:
        """Classify a heart-rate reading against the stored thresholds.

        Args:
            value: Heart rate in BPM.
            user_age: Age used for the danger limit (220 - age). Defaults to
                the configured age.
        """
        thresholds = await store.get_thresholds()
        result = threshold_logic.evaluate_heart_rate(
            value, thresholds, user_age if user_age is not None else age
        )
        return json.dumps(result.to_dict())

    @mcp.tool
    async def check_blood_oxygen(ctx: Context, value: float) -> str:
        """Classify a blood-oxygen reading against the stored thresholds.

        Args:
            value: Saturation in percent.
        """
        thresholds = await store.get_thresholds()
        return json.dumps(threshold_logic.evaluate_blood_oxygen(value, thresholds).to_dict())

    @mcp.tool
    async def target_heart_rate_zone(
        ctx: Context,
        user_age: int | None = None,
        intensity: str = "moderate",
    ) -> str:
        """Exercise heart-rate zone for an intensity level.

        Args:
            user_age: Age in years. Defaults to the configured age.
            intensity: 'light', 'moderate', or 'vigorous'.
        """
        zone = threshold_logic.target_heart_rate_zone(
            user_age if user_age is not None else age, intensity
        )
        return json.dumps(zone)

    @mcp.tool
    async def health_recommendations(
        ctx: Context,
        heart_rate: float,
        blood_oxygen: float,
        steps: int,
    ) -> str:
        """Plain-language suggestions for a set of current readings.

        Args:
            heart_rate: Heart rate in BPM.
            blood_oxygen: Blood oxygen saturation in percent.
            steps: Steps taken today.
        """
        thresholds = await store.get_thresholds()
        return json.dumps({
            "recommendations": threshold_logic.health_recommendations(
                heart_rate, blood_oxygen, steps, thresholds
            ),
        })
