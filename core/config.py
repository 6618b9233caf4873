"""
Centralized configuration for the order dashboard service.

This module provides a single source of truth for all configuration values.
Configuration is loaded from environment variables with sensible defaults.

Usage:
    from core.config import config

    db_path = config.store.db_path
    tz = config.dashboard.tz
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

DEFAULT_DB_PATH = Path(__file__).parent.parent / "data" / "orders.duckdb"


@dataclass(frozen=True)
class StoreConfig:
    """DuckDB data store configuration."""

    db_path: str = field(
        default_factory=lambda: os.getenv("DASHBOARD_DB_PATH", str(DEFAULT_DB_PATH))
    )
    query_timeout: float = field(
        default_factory=lambda: float(os.getenv("DASHBOARD_QUERY_TIMEOUT", "30"))
    )
    connect_attempts: int = 3
    connect_base_delay: float = 0.5  # seconds


@dataclass(frozen=True)
class DashboardConfig:
    """Dashboard aggregation settings."""

    # Business timezone; stored timestamps are wall-clock values in this zone
    timezone: str = field(
        default_factory=lambda: os.getenv("DASHBOARD_TIMEZONE", "Asia/Karachi")
    )
    top_products_limit: int = 10
    weekly_window_days: int = 7
    new_vendor_window_days: int = 30

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


@dataclass(frozen=True)
class WebConfig:
    """Web API configuration."""

    host: str = field(default_factory=lambda: os.getenv("WEB_HOST", "0.0.0.0"))
    port: int = field(default_factory=lambda: int(os.getenv("WEB_PORT", "8080")))

    # Rate limiting
    rate_limit_per_minute: int = 30
    request_timeout: float = 30.0


@dataclass(frozen=True)
class AppConfig:
    """Main application configuration."""

    version: str = "1.0.0"
    store: StoreConfig = field(default_factory=StoreConfig)
    dashboard: DashboardConfig = field(default_factory=DashboardConfig)
    web: WebConfig = field(default_factory=WebConfig)


# Global config instance
config = AppConfig()


# ─── Convenience Exports ──────────────────────────────────────────────────────
VERSION = config.version


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""
    pass


def validate_config(app_config: AppConfig = None) -> None:
    """
    Validate that all required configuration is present.

    Call this on application startup to fail fast with clear error messages
    instead of cryptic runtime failures.

    Raises:
        ConfigurationError: If configuration is invalid
    """
    app_config = app_config or config
    errors = []

    try:
        ZoneInfo(app_config.dashboard.timezone)
    except (ZoneInfoNotFoundError, ValueError):
        errors.append(f"DASHBOARD_TIMEZONE is not a known timezone: {app_config.dashboard.timezone!r}")

    if app_config.store.query_timeout <= 0:
        errors.append("DASHBOARD_QUERY_TIMEOUT must be positive")

    if not app_config.store.db_path:
        errors.append("DASHBOARD_DB_PATH is required but empty")

    if app_config.dashboard.top_products_limit < 1:
        errors.append("top_products_limit must be at least 1")

    if app_config.dashboard.weekly_window_days < 1:
        errors.append("weekly_window_days must be at least 1")

    if errors:
        error_msg = "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
        raise ConfigurationError(error_msg)
