"""Exchange ticker rate source via ccxt async.

Reads the last traded USDT/MYR price from a ccxt-supported exchange that
lists the pair directly (Luno by default). Unlike the fiat feeds this is a
true USDT quote, so it already carries the market premium.
"""

from decimal import Decimal

import ccxt.async_support as ccxt_async

from ratewatch.exceptions import SourceFetchError
from ratewatch.logging import get_logger
from ratewatch.sources.base import RateSource

logger = get_logger(__name__)


class ExchangeTickerSource(RateSource):
    """Rate source reading a spot ticker through ccxt.

    Args:
        name: Source identifier.
        weight: Trust weight.
        exchange_id: ccxt exchange id (e.g. "luno").
        symbol: Unified market symbol.
        timeout: ccxt request timeout in seconds.
        exchange: Pre-built ccxt exchange instance (tests inject a mock).
    """

    def __init__(
        self,
        name: str,
        weight: Decimal,
        exchange_id: str = "luno",
        symbol: str = "USDT/MYR",
        timeout: float = 10.0,
        exchange: ccxt_async.Exchange | None = None,
    ) -> None:
        super().__init__(name, weight)
        self._symbol = symbol
        if exchange is None:
            exchange_cls = getattr(ccxt_async, exchange_id)
            exchange = exchange_cls(
                {
                    "enableRateLimit": True,
                    "timeout": int(timeout * 1000),
                }
            )
        self._exchange = exchange

    async def fetch_rate(self) -> Decimal:
        try:
            ticker = await self._exchange.fetch_ticker(self._symbol)
        except ccxt_async.BaseError as e:
            raise SourceFetchError(self.name, f"{type(e).__name__}: {e}") from e

        raw = ticker.get("last")
        if raw is None:
            # Fall back to the mid price when no trade has printed
            bid, ask = ticker.get("bid"), ticker.get("ask")
            if bid is not None and ask is not None:
                raw = (Decimal(str(bid)) + Decimal(str(ask))) / 2
        rate = self._validate(raw)
        logger.debug(
            "source_rate_fetched",
            source=self.name,
            symbol=self._symbol,
            rate=str(rate),
        )
        return rate

    async def close(self) -> None:
        """Clean up ccxt async resources. CRITICAL: must be called to avoid resource leaks."""
        await self._exchange.close()


def luno(weight: Decimal, timeout: float = 10.0) -> ExchangeTickerSource:
    """Luno USDT/MYR spot ticker."""
    return ExchangeTickerSource("luno", weight, "luno", "USDT/MYR", timeout)
