"""Quote aggregation across independent rate sources.

Two policies:

- ``weighted`` (default): query every source concurrently and wait for all of
  them to settle. Compute the plain mean of the successful quotes, discard
  quotes more than ``outlier_tolerance`` (1%) away from it, and return the
  weight-averaged survivors. If every quote is an outlier, the plain mean is
  returned.
- ``fallback``: try sources one by one in priority order; the first success
  wins.

Both raise AllSourcesFailed when no source produced a usable rate.
"""

import asyncio
from decimal import Decimal
from typing import Literal

from ratewatch.exceptions import AllSourcesFailed, SourceFetchError
from ratewatch.logging import get_logger
from ratewatch.models import RateQuote
from ratewatch.sources.base import RateSource

logger = get_logger(__name__)

AggregationPolicy = Literal["weighted", "fallback"]


class QuoteAggregator:
    """Combines quotes from several sources into one trusted rate.

    Args:
        sources: Rate sources, in priority order for the fallback policy.
        policy: "weighted" or "fallback".
        outlier_tolerance: Max relative deviation from the plain mean before a
            quote is dropped (weighted policy only).
    """

    def __init__(
        self,
        sources: list[RateSource],
        policy: AggregationPolicy = "weighted",
        outlier_tolerance: Decimal = Decimal("0.01"),
    ) -> None:
        if policy not in ("weighted", "fallback"):
            raise ValueError(f"Unknown aggregation policy: {policy}")
        self._sources = sources
        self._policy = policy
        self._outlier_tolerance = outlier_tolerance
        self._last_quotes: list[RateQuote] = []

    @property
    def policy(self) -> AggregationPolicy:
        return self._policy

    @property
    def last_quotes(self) -> list[RateQuote]:
        """Per-source outcomes of the most recent aggregate() call."""
        return list(self._last_quotes)

    async def aggregate(self) -> Decimal:
        """Return the aggregated rate for this cycle.

        Raises:
            AllSourcesFailed: If no source succeeded.
        """
        if self._policy == "fallback":
            return await self._aggregate_fallback()
        return await self._aggregate_weighted()

    async def close(self) -> None:
        for source in self._sources:
            await source.close()

    async def _fetch_quote(self, source: RateSource) -> RateQuote:
        """Fetch one source, converting any failure into a failed quote."""
        try:
            rate = await source.fetch_rate()
        except SourceFetchError as e:
            logger.warning("source_fetch_failed", source=source.name, reason=e.reason)
            return RateQuote(source.name, None, source.weight, ok=False, error=e.reason)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(
                "source_fetch_failed",
                source=source.name,
                reason=repr(e),
                exc_info=True,
            )
            return RateQuote(source.name, None, source.weight, ok=False, error=repr(e))
        return RateQuote(source.name, rate, source.weight, ok=True)

    def _failure(self, quotes: list[RateQuote]) -> AllSourcesFailed:
        errors = [SourceFetchError(q.source, q.error or "unknown error") for q in quotes]
        return AllSourcesFailed(errors)

    async def _aggregate_fallback(self) -> Decimal:
        quotes: list[RateQuote] = []
        self._last_quotes = quotes
        for source in self._sources:
            quote = await self._fetch_quote(source)
            quotes.append(quote)
            if quote.ok and quote.rate is not None:
                logger.debug("fallback_source_selected", source=source.name, rate=str(quote.rate))
                return quote.rate

        failure = self._failure(quotes)
        if failure.errors:
            raise failure from failure.errors[-1]
        raise failure

    async def _aggregate_weighted(self) -> Decimal:
        quotes = list(await asyncio.gather(*(self._fetch_quote(s) for s in self._sources)))
        self._last_quotes = quotes

        valid = [q for q in quotes if q.ok and q.rate is not None]
        if not valid:
            raise self._failure(quotes)

        reference = sum((q.rate for q in valid), Decimal("0")) / len(valid)

        filtered: list[RateQuote] = []
        dropped: list[str] = []
        for q in valid:
            if abs(q.rate - reference) / reference <= self._outlier_tolerance:
                filtered.append(q)
            else:
                dropped.append(q.source)
        if dropped:
            logger.info(
                "outlier_quotes_dropped",
                sources=dropped,
                reference=str(reference),
            )

        total_weight = sum((q.weight for q in filtered), Decimal("0"))
        if not filtered or total_weight <= 0:
            return reference

        weighted_sum = sum((q.rate * q.weight for q in filtered), Decimal("0"))
        rate = weighted_sum / total_weight

        logger.debug(
            "quotes_aggregated",
            succeeded=len(valid),
            used=len(filtered),
            total=len(quotes),
            rate=str(rate),
        )
        return rate
