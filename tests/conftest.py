"""Shared test fixtures for HeartGuard tests."""

from __future__ import annotations

import sys
from datetime import datetime
from pathlib import Path

import pytest

# Allow running tests without `pip install -e .` by making `src/` importable.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_SRC_DIR = _PROJECT_ROOT / "src"
if str(_SRC_DIR) not in sys.path:
    sys.path.insert(0, str(_SRC_DIR))


# ---------------------------------------------------------------------------
# Test hermeticity
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _force_hermetic_test_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("ENCRYPTION_KEY", "")
    monkeypatch.setenv("DB_PATH", str(tmp_path / "health.db"))


# ---------------------------------------------------------------------------
# Time helpers
# ---------------------------------------------------------------------------

def local_ms(*args: int) -> int:
    """Epoch millis of a naive local datetime, e.g. ``local_ms(2026, 2, 10, 15)``."""
    return int(datetime(*args).timestamp() * 1000)


# Mid-afternoon on a day far from any DST transition
NOW_MS = local_ms(2026, 2, 10, 15, 0, 0)


class FakeClock:
    """Callable clock returning a settable epoch-millis value."""

    def __init__(self, now: int = NOW_MS) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# ---------------------------------------------------------------------------
# In-memory storage fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def health_db():
    """Create an in-memory HealthDatabase for testing."""
    from heartguard.core.storage.database import HealthDatabase

    db = HealthDatabase(":memory:")
    db.initialize()
    yield db
    db.close()


@pytest.fixture
def codec():
    """Plain JSON codec (no encryption)."""
    from heartguard.core.storage.encryption import PayloadCodec

    return PayloadCodec()


@pytest.fixture
def store(health_db, codec, clock):
    """Create a RecordStore backed by in-memory SQLite and a fixed clock."""
    from heartguard.core.storage.record_store import RecordStore

    return RecordStore(health_db, codec, clock=clock)


@pytest.fixture
def audit_logger(health_db):
    """Create an AuditLogger backed by in-memory SQLite."""
    from heartguard.core.audit.logger import AuditLogger

    return AuditLogger(health_db)
