"""Abstract quote source interface.

The aggregator depends only on this interface, keeping provider-specific
URLs and payload shapes isolated in the concrete implementations.
"""

from abc import ABC, abstractmethod
from decimal import Decimal, InvalidOperation

from ratewatch.exceptions import SourceFetchError


class RateSource(ABC):
    """A single provider of the USDT/MYR (or USD/MYR) rate.

    Args:
        name: Stable identifier used in config and logs.
        weight: Trust weight used by the weighted aggregation policy.
    """

    def __init__(self, name: str, weight: Decimal) -> None:
        self.name = name
        self.weight = weight

    @abstractmethod
    async def fetch_rate(self) -> Decimal:
        """Fetch the current rate.

        Raises:
            SourceFetchError: On any transport, payload or value failure.
        """
        ...

    async def close(self) -> None:
        """Release any held resources. No-op by default."""

    def _validate(self, raw: object) -> Decimal:
        """Convert a raw payload value to a positive Decimal."""
        if raw is None or isinstance(raw, bool):
            raise SourceFetchError(self.name, f"missing rate (got {raw!r})")
        try:
            rate = Decimal(str(raw))
        except InvalidOperation as e:
            raise SourceFetchError(self.name, f"invalid rate {raw!r}") from e
        if not rate.is_finite() or rate <= 0:
            raise SourceFetchError(self.name, f"non-positive rate {raw!r}")
        return rate

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, weight={self.weight})"
