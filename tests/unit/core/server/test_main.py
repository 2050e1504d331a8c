"""Tests for the server entry point's bind-address check."""

from __future__ import annotations

import pytest

from heartguard.core.config.settings import Settings
from heartguard.core.server.main import check_bind_address


@pytest.mark.parametrize("host", ["127.0.0.1", "localhost", "::1"])
def test_loopback_hosts_allowed(host):
    check_bind_address(Settings(_env_file=None, heartguard_host=host))


def test_public_host_refused():
    with pytest.raises(RuntimeError, match="0.0.0.0"):
        check_bind_address(Settings(_env_file=None, heartguard_host="0.0.0.0"))


def test_hostname_refused():
    with pytest.raises(RuntimeError):
        check_bind_address(Settings(_env_file=None, heartguard_host="heartguard.local"))


def test_public_host_allowed_with_override():
    settings = Settings(
        _env_file=None,
        heartguard_host="0.0.0.0",
        heartguard_allow_insecure_bind=True,
    )
    check_bind_address(settings)
