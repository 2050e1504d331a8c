"""Application settings loaded from environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """HeartGuard server configuration."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    # Server
    # Loopback by default: there is no auth layer in front of the tools.
    heartguard_host: str = "127.0.0.1"
    heartguard_port: int = 8001
    heartguard_log_level: str = "info"
    heartguard_allow_insecure_bind: bool = False

    # Storage
    db_path: str = "~/.heartguard/health.db"
    storage_namespace: str = "@HeartGuard"
    retention_days: int = 30

    # Encryption (empty = store plain JSON)
    encryption_key: str = ""

    # Threshold evaluation
    user_age: int = 30


def get_settings() -> Settings:
    """Create and return a Settings instance."""
    return Settings()
