"""One tick of the monitoring loop: read, classify, persist.

The loop itself (cadence, cancellation) belongs to the caller; this module
only defines the unit of work each tick performs.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from heartguard.core.storage.models import HEART_RATE_HISTORY, HealthRecord, Sample, Thresholds
from heartguard.core.storage.record_store import RecordStore
from heartguard.domains.health.connectors import HealthDataProducer
from heartguard.domains.health.domain_logic.thresholds import (
    DEFAULT_AGE,
    ThresholdResult,
    evaluate_blood_oxygen,
    evaluate_heart_rate,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Observation:
    """Readings from one tick and what happened to them."""

    record: HealthRecord
    heart_rate_status: ThresholdResult
    blood_oxygen_status: ThresholdResult
    saved: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "record": self.record.to_dict(),
            "heartRateStatus": self.heart_rate_status.to_dict(),
            "bloodOxygenStatus": self.blood_oxygen_status.to_dict(),
            "saved": self.saved,
        }


async def collect_observation(
    producer: HealthDataProducer,
    store: RecordStore,
    thresholds: Thresholds,
    *,
    age: int = DEFAULT_AGE,
    auto_save: bool = True,
) -> Observation:
    """Read every metric once, classify, and append to both streams.

    Args:
        producer: Source of readings.
        store: Destination store.
        thresholds: Bounds for classification.
        age: User age for the high-heart-rate danger limit.
        auto_save: When False, readings are classified but not persisted.

    Returns:
        The observation. ``saved`` is True only if both appends succeeded.
    """
    heart_rate = await producer.get_heart_rate()
    blood_oxygen = await producer.get_blood_oxygen()
    steps = await producer.get_steps()
    calories = await producer.get_calories()
    distance = await producer.get_distance()

    timestamp = store.now()
    record = HealthRecord.create(
        timestamp=timestamp,
        heart_rate=heart_rate,
        blood_oxygen=blood_oxygen,
        steps=steps,
        calories=calories,
        distance=distance,
    )
    hr_status = evaluate_heart_rate(heart_rate, thresholds, age)
    spo2_status = evaluate_blood_oxygen(blood_oxygen, thresholds)
    if hr_status.severity != "normal":
        logger.info("Heart rate %s (%s): %d BPM", hr_status.status, hr_status.severity, heart_rate)

    saved = False
    if auto_save:
        hr_saved = await store.append(
            HEART_RATE_HISTORY, Sample.create(heart_rate, timestamp)
        )
        record_saved = await store.append_record(record)
        saved = hr_saved and record_saved
        if not saved:
            logger.warning("Observation at %d was not fully persisted", timestamp)

    return Observation(
        record=record,
        heart_rate_status=hr_status,
        blood_oxygen_status=spo2_status,
        saved=saved,
    )
