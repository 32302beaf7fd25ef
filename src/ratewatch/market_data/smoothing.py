"""Rate smoothing filter for the published market rate.

Applies the USDT premium to the raw aggregated rate, limits the change per
cycle to ``max_step`` of the previous published rate, then blends with
exponential smoothing. The first reading (no previous rate) is published as
the premium-adjusted target.

CRITICAL: All computations use Decimal.
"""

from decimal import Decimal

#: Precision limit for published rates (10 decimal places).
_RATE_QUANTIZE = Decimal("0.0000000001")


def apply_premium(raw_rate: Decimal, premium: Decimal) -> Decimal:
    """Return ``raw_rate * (1 + premium)``."""
    return raw_rate * (Decimal("1") + premium)


def clamp_step(target: Decimal, previous: Decimal, max_step: Decimal) -> Decimal:
    """Clip ``target`` to within ``previous * max_step`` of ``previous``."""
    bound = previous * max_step
    if target - previous > bound:
        return previous + bound
    if previous - target > bound:
        return previous - bound
    return target


class RateSmoother:
    """Premium, volatility clamp and exponential smoothing.

    Args:
        premium: Multiplicative premium over the raw rate (0.002 = +0.2%).
        max_step: Max relative change per cycle.
        factor: Weight of the new target in the blend (0.1 = 90/10).
    """

    def __init__(
        self,
        premium: Decimal = Decimal("0"),
        max_step: Decimal = Decimal("0.003"),
        factor: Decimal = Decimal("0.1"),
    ) -> None:
        self.premium = premium
        self._max_step = max_step
        self._factor = factor

    def smooth(self, raw_rate: Decimal, previous: Decimal) -> Decimal:
        """Return the rate to publish given the previous published rate."""
        target = apply_premium(raw_rate, self.premium)
        if previous <= 0:
            return target.quantize(_RATE_QUANTIZE)

        target = clamp_step(target, previous, self._max_step)
        published = (Decimal("1") - self._factor) * previous + self._factor * target
        return published.quantize(_RATE_QUANTIZE)
