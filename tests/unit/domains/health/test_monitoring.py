"""Tests for a single monitoring tick."""

from __future__ import annotations

import asyncio

from conftest import NOW_MS

from heartguard.core.storage.database import HealthDatabase
from heartguard.core.storage.models import HEALTH_RECORDS, HEART_RATE_HISTORY, Sample, Thresholds
from heartguard.core.storage.record_store import RecordStore
from heartguard.domains.health.connectors.producers import ScriptedHealthProducer
from heartguard.domains.health.domain_logic.monitoring import collect_observation


def _run(coro):
    """Run an async coroutine synchronously (no pytest-asyncio required)."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def test_observation_is_classified_and_saved(store):
    producer = ScriptedHealthProducer(heart_rates=[72], blood_oxygen=[98], steps=[1000])
    obs = _run(collect_observation(producer, store, Thresholds()))

    assert obs.saved is True
    assert obs.heart_rate_status.status == "normal"
    assert obs.blood_oxygen_status.status == "normal"
    assert obs.record.timestamp == NOW_MS
    assert obs.record.calories == 45

    assert _run(store.query(HEART_RATE_HISTORY)) == [Sample(72, NOW_MS)]
    assert _run(store.query(HEALTH_RECORDS)) == [obs.record]


def test_abnormal_readings(store):
    producer = ScriptedHealthProducer(heart_rates=[170], blood_oxygen=[88])
    obs = _run(collect_observation(producer, store, Thresholds(), age=30))
    assert obs.heart_rate_status.severity == "danger"
    assert obs.blood_oxygen_status.status == "critical"


def test_auto_save_disabled(store):
    obs = _run(collect_observation(ScriptedHealthProducer(), store, Thresholds(), auto_save=False))
    assert obs.saved is False
    assert _run(store.query(HEART_RATE_HISTORY)) == []


def test_storage_failure_reported(clock):
    db = HealthDatabase(":memory:")
    db.initialize()
    store = RecordStore(db, clock=clock)
    db.close()
    obs = _run(collect_observation(ScriptedHealthProducer(), store, Thresholds()))
    assert obs.saved is False
    assert obs.record.heart_rate == 72


def test_to_dict_layout(store):
    obs = _run(collect_observation(ScriptedHealthProducer(), store, Thresholds()))
    data = obs.to_dict()
    assert set(data) == {"record", "heartRateStatus", "bloodOxygenStatus", "saved"}
    assert data["record"]["heartRate"] == 72
