"""Test helpers shared across test packages."""

from datetime import datetime
from decimal import Decimal
from unittest.mock import AsyncMock

from ratewatch.exceptions import SourceFetchError
from ratewatch.market_data.time_window import REPORTING_TZ
from ratewatch.models import RateRecord, RiskLevel
from ratewatch.sources.base import RateSource


def make_source(name: str, rate: str | None = None, weight: str = "1", error: str = "down") -> AsyncMock:
    """Mock RateSource returning ``rate``, or failing when rate is None."""
    source = AsyncMock(spec=RateSource)
    source.name = name
    source.weight = Decimal(weight)
    if rate is None:
        source.fetch_rate.side_effect = SourceFetchError(name, error)
    else:
        source.fetch_rate.return_value = Decimal(rate)
    return source


def local_ms(year: int, month: int, day: int, hour: int = 12, minute: int = 0) -> int:
    """Unix ms for a GMT+8 wall-clock time."""
    return int(datetime(year, month, day, hour, minute, tzinfo=REPORTING_TZ).timestamp() * 1000)


def make_record(
    timestamp: int,
    market: str = "4.40",
    platform: str = "4.35",
    risk: RiskLevel = RiskLevel.SAFE,
) -> RateRecord:
    """RateRecord with diff derived as market - platform."""
    m, p = Decimal(market), Decimal(platform)
    return RateRecord(
        timestamp=timestamp,
        market_rate=m,
        platform_rate=p,
        diff=m - p,
        risk_level=risk,
    )
