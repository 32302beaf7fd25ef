"""Risk layer -- spread classification, expansion tracking, and alert state."""

from ratewatch.risk.alerts import AlertState
from ratewatch.risk.classifier import adjusted_diff, classify_risk, compute_diff
from ratewatch.risk.expansion import ExpansionTracker

__all__ = [
    "AlertState",
    "ExpansionTracker",
    "adjusted_diff",
    "classify_risk",
    "compute_diff",
]
