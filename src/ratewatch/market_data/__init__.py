"""Market data layer -- quote aggregation, smoothing, and reporting-time windows."""

from ratewatch.market_data.aggregator import QuoteAggregator
from ratewatch.market_data.smoothing import RateSmoother
from ratewatch.market_data.time_window import classify_moment, is_lock_window

__all__ = ["QuoteAggregator", "RateSmoother", "classify_moment", "is_lock_window"]
