"""MCP tools for data management: storage usage, export, deletion, thresholds, settings.

Deletions and exports are audit-logged when an audit logger is configured.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import replace
from typing import TYPE_CHECKING

from fastmcp import Context, FastMCP

from heartguard.core.storage.models import (
    HEALTH_RECORDS,
    HEART_RATE_HISTORY,
    Sample,
    ValidationError,
)
from heartguard.domains.health.domain_logic.export import export_store, to_csv

if TYPE_CHECKING:
    from heartguard.core.audit.logger import AuditLogger
    from heartguard.core.storage.record_store import RecordStore

logger = logging.getLogger(__name__)


def register_data_management_tools(
    mcp: FastMCP,
    store: RecordStore,
    audit_logger: AuditLogger | None = None,
) -> None:
    """Register data management tools on the MCP server."""

    @mcp.tool
    async def storage_info(ctx: Context) -> str:
        """Number of stored entries and their approximate size in bytes."""
        return json.dumps(await store.storage_info())

    @mcp.tool
    async def export_heart_rate_csv(ctx: Context) -> str:
        """Export the heart-rate history as CSV (Date, Time, Heart Rate)."""
        samples = [s for s in await store.query(HEART_RATE_HISTORY) if isinstance(s, Sample)]
        if not samples:
            return json.dumps({
                "status": "empty",
                "message": "No data available to export.",
            })

        csv_text = to_csv(samples)
        if audit_logger is not None:
            audit_logger.log_export(export_format="csv", count=len(samples))
        return json.dumps({
            "status": "exported",
            "records": len(samples),
            "csv": csv_text,
        })

    @mcp.tool
    async def export_all_data(ctx: Context) -> str:
        """Export every stream plus thresholds and settings as one JSON bundle."""
        bundle = await export_store(store)
        if bundle is None:
            if audit_logger is not None:
                audit_logger.log_export(export_format="json", count=0, status="failure")
            return json.dumps({"status": "error", "message": "Export failed."})

        info = await store.storage_info()
        if audit_logger is not None:
            audit_logger.log_export(
                export_format="json",
                count=info["heartRateCount"] + info["healthRecordCount"],
            )
        return bundle

    @mcp.tool
    async def clear_all_data(ctx: Context, confirm: str = "") -> str:
        """Permanently delete all stored heart-rate history and health records.

        Thresholds and settings are kept. This cannot be undone.

        Args:
            confirm: Must be exactly 'DELETE_ALL' to proceed. Safety gate.
        """
        if confirm != "DELETE_ALL":
            return json.dumps({
                "status": "cancelled",
                "message": (
                    "To delete all historical data, call this tool with "
                    "confirm='DELETE_ALL'. This action cannot be undone."
                ),
            })

        start_time = time.monotonic()
        info = await store.storage_info()
        count = info["heartRateCount"] + info["healthRecordCount"]
        streams = [HEART_RATE_HISTORY, HEALTH_RECORDS]
        cleared = await store.clear(streams)
        elapsed_ms = (time.monotonic() - start_time) * 1000

        if audit_logger is not None:
            audit_logger.log_data_delete(
                streams=streams,
                count=count if cleared else 0,
                status="success" if cleared else "failure",
            )

        if not cleared:
            return json.dumps({"status": "error", "message": "Error clearing data."})
        return json.dumps({
            "status": "all_deleted",
            "records_deleted": count,
            "duration_ms": round(elapsed_ms, 1),
        })

    @mcp.tool
    async def get_thresholds(ctx: Context) -> str:
        """Current heart-rate bounds and blood-oxygen floor."""
        return json.dumps((await store.get_thresholds()).to_dict())

    @mcp.tool
    async def update_thresholds(
        ctx: Context,
        min_heart_rate: float | None = None,
        max_heart_rate: float | None = None,
        min_blood_oxygen: float | None = None,
    ) -> str:
        """Change alert thresholds. Omitted values keep their current setting.

        Args:
            min_heart_rate: Lower heart-rate bound in BPM (at least 40).
            max_heart_rate: Upper heart-rate bound in BPM (at most 200).
            min_blood_oxygen: Blood oxygen floor in percent.
        """
        requested = {
            "min": min_heart_rate,
            "max": max_heart_rate,
            "minBloodOxygen": min_blood_oxygen,
        }
        try:
            saved = await store.update_thresholds(
                min=min_heart_rate,
                max=max_heart_rate,
                min_blood_oxygen=min_blood_oxygen,
            )
        except ValidationError as exc:
            if audit_logger is not None:
                audit_logger.log_thresholds_update(
                    thresholds=requested, status="failure", error_type="ValidationError"
                )
            return json.dumps({
                "status": "rejected",
                "message": str(exc),
                "thresholds": (await store.get_thresholds()).to_dict(),
            })

        if audit_logger is not None:
            audit_logger.log_thresholds_update(
                thresholds=requested, status="success" if saved else "failure"
            )
        return json.dumps({
            "status": "saved" if saved else "failed",
            "thresholds": (await store.get_thresholds()).to_dict(),
        })

    @mcp.tool
    async def get_user_settings(ctx: Context) -> str:
        """Current notification, auto-save and theme preferences."""
        return json.dumps((await store.get_settings()).to_dict())

    @mcp.tool
    async def update_user_settings(
        ctx: Context,
        notifications: bool | None = None,
        auto_save: bool | None = None,
        theme: str | None = None,
    ) -> str:
        """Change user preferences. Omitted values keep their current setting.

        Args:
            notifications: Alert on abnormal heart rate.
            auto_save: Persist readings during monitoring.
            theme: UI theme name, e.g. 'light' or 'dark'.
        """
        current = await store.get_settings()
        changes = {
            name: value
            for name, value in (
                ("notifications", notifications),
                ("auto_save", auto_save),
                ("theme", theme),
            )
            if value is not None
        }
        updated = replace(current, **changes)
        saved = await store.save_settings(updated)
        if saved and audit_logger is not None:
            audit_logger.log_settings_update(settings=updated.to_dict())
        return json.dumps({
            "status": "saved" if saved else "failed",
            "settings": updated.to_dict(),
        })
