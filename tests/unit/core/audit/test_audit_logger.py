"""Tests for the AuditLogger."""

from __future__ import annotations

import json

from heartguard.core.audit.logger import AuditEvent, AuditLogger
from heartguard.core.storage.database import HealthDatabase


class TestLogEvent:
    def test_returns_uuid(self, audit_logger):
        event_id = audit_logger.log_event(AuditEvent(action="data_export", target="csv"))
        assert len(event_id) == 36

    def test_event_is_persisted(self, audit_logger):
        audit_logger.log_event(AuditEvent(action="data_export", target="csv", record_count=3))
        (event,) = audit_logger.get_events()
        assert event["action"] == "data_export"
        assert event["target"] == "csv"
        assert event["record_count"] == 3
        assert event["status"] == "success"

    def test_metadata_stored_as_json(self, audit_logger):
        audit_logger.log_event(AuditEvent(action="settings_update", metadata={"theme": "dark"}))
        (event,) = audit_logger.get_events()
        assert json.loads(event["metadata_json"]) == {"theme": "dark"}

    def test_empty_metadata_stored_as_null(self, audit_logger):
        audit_logger.log_event(AuditEvent(action="data_export"))
        assert audit_logger.get_events()[0]["metadata_json"] is None

    def test_write_failure_returns_empty_id(self):
        db = HealthDatabase(":memory:")
        db.initialize()
        audit = AuditLogger(db)
        db.close()
        assert audit.log_event(AuditEvent(action="data_delete")) == ""


class TestConvenienceWrappers:
    def test_log_data_delete(self, audit_logger):
        audit_logger.log_data_delete(streams=["heartRateHistory", "healthRecords"], count=42)
        (event,) = audit_logger.get_events(action="data_delete")
        assert event["target"] == "heartRateHistory,healthRecords"
        assert event["record_count"] == 42

    def test_log_export(self, audit_logger):
        audit_logger.log_export(export_format="json", count=7)
        (event,) = audit_logger.get_events(action="data_export")
        assert event["target"] == "json"
        assert event["record_count"] == 7

    def test_log_rejected_thresholds(self, audit_logger):
        audit_logger.log_thresholds_update(
            thresholds={"min": 120, "max": 100},
            status="failure",
            error_type="ValidationError",
        )
        (event,) = audit_logger.get_events(action="thresholds_update")
        assert event["status"] == "failure"
        assert event["error_type"] == "ValidationError"

    def test_log_settings_update(self, audit_logger):
        audit_logger.log_settings_update(settings={"autoSave": False})
        assert audit_logger.count_events(action="settings_update") == 1


class TestQueries:
    def test_filter_by_action(self, audit_logger):
        audit_logger.log_export(export_format="csv", count=1)
        audit_logger.log_data_delete(streams=["heartRateHistory"], count=1)
        assert len(audit_logger.get_events(action="data_export")) == 1
        assert audit_logger.count_events() == 2

    def test_limit(self, audit_logger):
        for _ in range(5):
            audit_logger.log_export(export_format="csv", count=1)
        assert len(audit_logger.get_events(limit=3)) == 3

    def test_since_filter(self, audit_logger):
        audit_logger.log_export(export_format="csv", count=1)
        assert audit_logger.get_events(since="2999-01-01T00:00:00") == []
