"""Tests for HealthDatabase: schema versioning and key/value access."""

from __future__ import annotations

import pytest

from heartguard.core.storage.database import SCHEMA_VERSION, HealthDatabase, PersistenceError


class TestInitialization:
    def test_in_memory_initialize(self):
        db = HealthDatabase(":memory:")
        db.initialize()
        assert db.connection is not None
        db.close()

    def test_double_initialize_is_idempotent(self):
        db = HealthDatabase(":memory:")
        db.initialize()
        conn1 = db.connection
        db.initialize()
        assert db.connection is conn1
        db.close()

    def test_connection_before_init_raises(self):
        db = HealthDatabase(":memory:")
        with pytest.raises(PersistenceError, match="not initialized"):
            _ = db.connection

    def test_context_manager(self):
        with HealthDatabase(":memory:") as db:
            assert db.connection is not None
        with pytest.raises(PersistenceError):
            _ = db.connection

    def test_file_database_creates_parent_dirs(self, tmp_path):
        path = tmp_path / "nested" / "dir" / "health.db"
        with HealthDatabase(str(path)) as db:
            db.write_value("k", "v")
        assert path.exists()

    def test_file_database_persists_across_connections(self, tmp_path):
        path = str(tmp_path / "health.db")
        with HealthDatabase(path) as db:
            db.write_value("@HeartGuard:thresholds", '{"min":60}')
        with HealthDatabase(path) as db:
            assert db.read_value("@HeartGuard:thresholds") == '{"min":60}'
            assert db.get_schema_version() == SCHEMA_VERSION


class TestSchema:
    def test_schema_version_recorded(self):
        with HealthDatabase(":memory:") as db:
            assert db.get_schema_version() == SCHEMA_VERSION

    def test_tables_created(self):
        with HealthDatabase(":memory:") as db:
            cursor = db.connection.execute(
                "SELECT name FROM sqlite_master WHERE type='table' AND name NOT LIKE 'sqlite_%'"
            )
            tables = {row[0] for row in cursor.fetchall()}
        assert {"kv_store", "schema_version", "audit_log"} <= tables


class TestKeyValue:
    def test_missing_key_reads_none(self, health_db):
        assert health_db.read_value("nope") is None

    def test_write_then_read(self, health_db):
        health_db.write_value("a", "[1,2,3]")
        assert health_db.read_value("a") == "[1,2,3]"

    def test_write_replaces_previous_value(self, health_db):
        health_db.write_value("a", "old")
        health_db.write_value("a", "new")
        assert health_db.read_value("a") == "new"
        count = health_db.connection.execute("SELECT COUNT(*) FROM kv_store").fetchone()[0]
        assert count == 1

    def test_delete_values(self, health_db):
        health_db.write_value("a", "1")
        health_db.write_value("b", "2")
        assert health_db.delete_values(["a", "missing"]) == 1
        assert health_db.read_value("a") is None
        assert health_db.read_value("b") == "2"

    def test_delete_empty_list_is_noop(self, health_db):
        assert health_db.delete_values([]) == 0

    def test_read_after_close_raises(self):
        db = HealthDatabase(":memory:")
        db.initialize()
        db.close()
        with pytest.raises(PersistenceError):
            db.read_value("a")
        with pytest.raises(PersistenceError):
            db.write_value("a", "1")
