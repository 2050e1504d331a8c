"""Run the HeartGuard monitor core as a Streamable HTTP MCP server.

Readings are health data, and no tool checks who is calling. The server
therefore binds to loopback only unless ``HEARTGUARD_ALLOW_INSECURE_BIND``
is set.

Usage::

    heartguard-server
    python -m heartguard.core.server.main
"""

from __future__ import annotations

import logging
from ipaddress import ip_address

from heartguard.core.config.settings import Settings, get_settings
from heartguard.core.server.app import create_app

logger = logging.getLogger(__name__)


def _is_loopback_host(host: str) -> bool:
    if host == "localhost":
        return True
    try:
        return ip_address(host).is_loopback
    except ValueError:
        return False


def check_bind_address(settings: Settings) -> None:
    """Raise RuntimeError when the configured host would expose health data."""
    if settings.heartguard_allow_insecure_bind:
        if not _is_loopback_host(settings.heartguard_host):
            logger.warning(
                "Serving health data on non-loopback host %s without authentication",
                settings.heartguard_host,
            )
        return
    if not _is_loopback_host(settings.heartguard_host):
        raise RuntimeError(
            f"HeartGuard will not serve health readings on {settings.heartguard_host}: "
            "no auth layer guards the tools. Bind to 127.0.0.1 or set "
            "HEARTGUARD_ALLOW_INSECURE_BIND=true."
        )


def run() -> None:
    """Configure logging, check the bind address, and serve until interrupted."""
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.heartguard_log_level.upper(), logging.INFO)
    )
    check_bind_address(settings)

    mcp = create_app()
    logger.info(
        "HeartGuard listening on %s:%d (store %s, %d-day retention, encryption %s)",
        settings.heartguard_host,
        settings.heartguard_port,
        settings.db_path,
        settings.retention_days,
        "on" if settings.encryption_key else "off",
    )
    mcp.run(
        transport="streamable-http",
        host=settings.heartguard_host,
        port=settings.heartguard_port,
    )


if __name__ == "__main__":
    run()
