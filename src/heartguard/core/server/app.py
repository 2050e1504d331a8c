"""HeartGuard MCP Server: application factory.

This module provides:
- create_app() for testability (integration tests create fresh server instances)
- Module-level `mcp` variable for FastMCP discovery
"""

from __future__ import annotations

import logging

from fastmcp import FastMCP

from heartguard.core.audit.logger import AuditLogger
from heartguard.core.config.settings import get_settings
from heartguard.core.storage.database import HealthDatabase
from heartguard.core.storage.encryption import EncryptionError, PayloadCodec
from heartguard.core.storage.record_store import RecordStore
from heartguard.domains.health.connectors import HealthDataProducer
from heartguard.domains.health.connectors.producers import SimulatedHealthProducer
from heartguard.domains.health.domain_logic.aggregator import HistoryAnalyzer
from heartguard.domains.health.tools.data_management_tools import (
    register_data_management_tools,
)
from heartguard.domains.health.tools.history_tools import register_history_tools
from heartguard.domains.health.tools.monitoring_tools import register_monitoring_tools

logger = logging.getLogger(__name__)


def create_app(
    *,
    store_override: RecordStore | None = None,
    producer_override: HealthDataProducer | None = None,
    audit_logger_override: AuditLogger | None = None,
) -> FastMCP:
    """Create and configure the HeartGuard MCP server.

    This is the main application factory. It:
    1. Creates the FastMCP server instance
    2. Opens the record store (SQLite, optionally encrypted)
    3. Selects the health data producer (simulated unless overridden)
    4. Registers monitoring, history and data management tools
    """
    settings = get_settings()

    # --- Server instance ---
    server = FastMCP(
        "HeartGuard",
        instructions=(
            "HeartGuard health monitor core. Records heart-rate and health "
            "readings, keeps a rolling 30-day history, reports statistics and "
            "trends, classifies readings against alert thresholds, and exports "
            "data as CSV or JSON."
        ),
    )

    # --- Storage ---
    audit_logger = audit_logger_override
    if store_override is not None:
        store = store_override
    else:
        try:
            codec = PayloadCodec(settings.encryption_key or None)
        except EncryptionError as exc:
            logger.error("Invalid ENCRYPTION_KEY: %s", exc)
            logger.warning("Continuing with unencrypted storage")
            codec = PayloadCodec()

        health_db = HealthDatabase(settings.db_path)
        health_db.initialize()
        store = RecordStore(
            health_db,
            codec,
            namespace=settings.storage_namespace,
            retention_days=settings.retention_days,
        )
        if audit_logger is None:
            audit_logger = AuditLogger(health_db)
        logger.info(
            "Record store initialized: %s (schema v%d, encrypted=%s)",
            settings.db_path,
            health_db.get_schema_version(),
            codec.encrypted,
        )

    # --- Producer ---
    if producer_override is not None:
        producer = producer_override
    else:
        producer = SimulatedHealthProducer()
        logger.info("Using simulated health data producer")

    # --- Register tools ---
    @server.tool
    async def health_check() -> dict:
        """Check server health and return basic status information."""
        info = await store.storage_info()
        return {
            "status": "ok",
            "server": "HeartGuard",
            "version": "0.1.0",
            "data_source": producer.data_source,
            "retention_days": settings.retention_days,
            "audit_enabled": audit_logger is not None,
            **info,
        }

    register_monitoring_tools(server, store, producer, age=settings.user_age)
    register_history_tools(server, store, HistoryAnalyzer(store))
    register_data_management_tools(server, store, audit_logger)
    logger.info("HeartGuard tools registered")

    return server


# Module-level instance for FastMCP discovery.
# Lazy: only created when this attribute is accessed (not when tests import create_app).
def __getattr__(name: str):
    if name == "mcp":
        global mcp  # noqa: PLW0603
        mcp = create_app()
        return mcp
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
