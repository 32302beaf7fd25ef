"""Configuration system using pydantic-settings with environment variable loading.

These values are the process defaults. The settings store (see
``ratewatch.data.store``) holds the user-adjustable subset and overrides them
at startup.
"""

from decimal import Decimal
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class SourceSettings(BaseSettings):
    """Quote source selection and aggregation policy."""

    model_config = SettingsConfigDict(env_prefix="SOURCES_")

    policy: Literal["weighted", "fallback"] = "weighted"
    # Priority order for the fallback policy; also the set of enabled sources
    enabled: list[str] = ["frankfurter", "exchangerate_api", "open_er_api"]
    weights: dict[str, Decimal] = {
        "frankfurter": Decimal("0.5"),  # central bank reference
        "exchangerate_api": Decimal("0.25"),
        "open_er_api": Decimal("0.25"),
        "coingecko": Decimal("0.25"),
        "luno": Decimal("0.25"),
    }
    outlier_tolerance: Decimal = Decimal("0.01")  # 1% relative to the mean
    http_timeout_seconds: float = 10.0
    user_agent: str = "RateWatch/1.0"


class MonitorSettings(BaseSettings):
    """Spread monitoring defaults, risk thresholds and cadence."""

    model_config = SettingsConfigDict(env_prefix="MONITOR_")

    platform_rate: Decimal = Decimal("4.35")
    cost_buffer: Decimal = Decimal("0.025")  # USDT acquisition cost
    usdt_premium: Decimal = Decimal("0")

    warning_threshold: Decimal = Decimal("0.05")
    danger_threshold: Decimal = Decimal("0.08")
    critical_threshold: Decimal = Decimal("0.10")
    lock_warning_threshold: Decimal | None = None  # defaults to warning_threshold

    smoothing_enabled: bool = True
    smoothing_max_step: Decimal = Decimal("0.003")  # 0.3% per cycle
    smoothing_factor: Decimal = Decimal("0.1")  # weight of the new target

    dedupe_history: bool = True
    lock_refresh_seconds: float = 10.0
    normal_refresh_seconds: float = 30.0
    interval_check_seconds: float = 60.0
    critical_alert_cooldown_seconds: float = 300.0


class StoreSettings(BaseSettings):
    """Settings/history store location."""

    model_config = SettingsConfigDict(env_prefix="STORE_")

    db_path: str = "data/ratewatch.db"


class DashboardSettings(BaseSettings):
    """HTTP surface configuration."""

    model_config = SettingsConfigDict(env_prefix="DASHBOARD_")

    host: str = "0.0.0.0"
    port: int = 8080
    enabled: bool = True


class AppSettings(BaseSettings):
    """Root application settings, composing all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    log_level: str = "INFO"
    sources: SourceSettings = SourceSettings()
    monitor: MonitorSettings = MonitorSettings()
    store: StoreSettings = StoreSettings()
    dashboard: DashboardSettings = DashboardSettings()
