"""JSON-over-HTTP fiat rate sources.

Uses urllib.request (stdlib) run in a worker thread so the blocking call
never stalls the event loop. The remote call's own timeout bounds each fetch;
the aggregator adds none.

USD/MYR from these feeds is used as the USDT/MYR reference (USDT is pegged to
USD); the ``usdt_premium`` setting accounts for the difference downstream.
"""

import asyncio
import json
import urllib.error
import urllib.request
from collections.abc import Callable
from decimal import Decimal
from typing import Any

from ratewatch.exceptions import SourceFetchError
from ratewatch.logging import get_logger
from ratewatch.sources.base import RateSource

logger = get_logger(__name__)


class JsonRateSource(RateSource):
    """Rate source backed by a JSON endpoint.

    Args:
        name: Source identifier.
        weight: Trust weight.
        url: Endpoint returning a JSON document.
        extract: Callable pulling the raw rate out of the decoded document.
        timeout: Socket timeout in seconds for the request.
        user_agent: User-Agent header value.
    """

    def __init__(
        self,
        name: str,
        weight: Decimal,
        url: str,
        extract: Callable[[Any], Any],
        timeout: float = 10.0,
        user_agent: str = "RateWatch/1.0",
    ) -> None:
        super().__init__(name, weight)
        self._url = url
        self._extract = extract
        self._timeout = timeout
        self._user_agent = user_agent

    async def fetch_rate(self) -> Decimal:
        data = await asyncio.to_thread(self._get_json)
        try:
            raw = self._extract(data)
        except (KeyError, TypeError, IndexError) as e:
            raise SourceFetchError(self.name, f"unexpected payload: {e!r}") from e
        rate = self._validate(raw)
        logger.debug("source_rate_fetched", source=self.name, rate=str(rate))
        return rate

    def _get_json(self) -> Any:
        headers = {"Accept": "application/json", "User-Agent": self._user_agent}
        req = urllib.request.Request(self._url, headers=headers)
        try:
            with urllib.request.urlopen(req, timeout=self._timeout) as resp:
                return json.loads(resp.read(), parse_float=Decimal)
        except urllib.error.HTTPError as e:
            raise SourceFetchError(self.name, f"HTTP {e.code}") from e
        except (urllib.error.URLError, TimeoutError, OSError) as e:
            raise SourceFetchError(self.name, f"transport error: {e}") from e
        except ValueError as e:
            raise SourceFetchError(self.name, "invalid JSON") from e


def frankfurter(weight: Decimal, timeout: float = 10.0, user_agent: str = "RateWatch/1.0") -> JsonRateSource:
    """ECB reference rate via the Frankfurter API."""
    return JsonRateSource(
        "frankfurter",
        weight,
        "https://api.frankfurter.app/latest?from=USD&to=MYR",
        lambda d: d["rates"]["MYR"],
        timeout,
        user_agent,
    )


def exchangerate_api(weight: Decimal, timeout: float = 10.0, user_agent: str = "RateWatch/1.0") -> JsonRateSource:
    """ExchangeRate-API v4 aggregate feed."""
    return JsonRateSource(
        "exchangerate_api",
        weight,
        "https://api.exchangerate-api.com/v4/latest/USD",
        lambda d: d["rates"]["MYR"],
        timeout,
        user_agent,
    )


def open_er_api(weight: Decimal, timeout: float = 10.0, user_agent: str = "RateWatch/1.0") -> JsonRateSource:
    """Open Exchange Rates (open.er-api.com) v6 feed."""
    return JsonRateSource(
        "open_er_api",
        weight,
        "https://open.er-api.com/v6/latest/USD",
        lambda d: d["rates"]["MYR"],
        timeout,
        user_agent,
    )


def coingecko(weight: Decimal, timeout: float = 10.0, user_agent: str = "RateWatch/1.0") -> JsonRateSource:
    """Tether price in MYR from the CoinGecko free API."""
    return JsonRateSource(
        "coingecko",
        weight,
        "https://api.coingecko.com/api/v3/simple/price?ids=tether&vs_currencies=myr",
        lambda d: d["tether"]["myr"],
        timeout,
        user_agent,
    )
