"""Shared test fixtures for the spread monitor."""

from decimal import Decimal

import pytest

from ratewatch.config import MonitorSettings


@pytest.fixture
def monitor_settings() -> MonitorSettings:
    """MonitorSettings with smoothing off so cycles publish the raw rate."""
    return MonitorSettings(
        platform_rate=Decimal("4.35"),
        cost_buffer=Decimal("0.025"),
        usdt_premium=Decimal("0"),
        warning_threshold=Decimal("0.05"),
        danger_threshold=Decimal("0.08"),
        critical_threshold=Decimal("0.10"),
        smoothing_enabled=False,
        dedupe_history=True,
    )
