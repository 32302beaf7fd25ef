"""Quote source layer -- fiat JSON feeds and exchange tickers."""

from decimal import Decimal

from ratewatch.config import SourceSettings
from ratewatch.sources.base import RateSource
from ratewatch.sources.exchange_source import ExchangeTickerSource, luno
from ratewatch.sources.http_sources import (
    JsonRateSource,
    coingecko,
    exchangerate_api,
    frankfurter,
    open_er_api,
)

_HTTP_FACTORIES = {
    "frankfurter": frankfurter,
    "exchangerate_api": exchangerate_api,
    "open_er_api": open_er_api,
    "coingecko": coingecko,
}


def build_sources(settings: SourceSettings) -> list[RateSource]:
    """Instantiate the enabled sources in configured priority order.

    Raises:
        ValueError: If an enabled source name is unknown.
    """
    sources: list[RateSource] = []
    for name in settings.enabled:
        weight = settings.weights.get(name, Decimal("1"))
        if name in _HTTP_FACTORIES:
            sources.append(
                _HTTP_FACTORIES[name](
                    weight,
                    timeout=settings.http_timeout_seconds,
                    user_agent=settings.user_agent,
                )
            )
        elif name == "luno":
            sources.append(luno(weight, timeout=settings.http_timeout_seconds))
        else:
            raise ValueError(f"Unknown rate source: {name}")
    return sources


__all__ = [
    "ExchangeTickerSource",
    "JsonRateSource",
    "RateSource",
    "build_sources",
]
