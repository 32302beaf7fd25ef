"""Consecutive spread expansion tracker.

Counts back-to-back cycles in which the absolute spread strictly grew. Any
cycle where it did not grow resets the count. The monitor also resets the
count whenever the risk level comes back to safe.
"""

from decimal import Decimal

from ratewatch.models import ExpansionState


class ExpansionTracker:
    """Hysteresis counter feeding the lock window escalation rule."""

    def __init__(self, state: ExpansionState | None = None) -> None:
        state = state or ExpansionState()
        self._previous: Decimal | None = state.previous_abs_spread
        self._count = state.consecutive_expansions

    @property
    def consecutive_expansions(self) -> int:
        return self._count

    @property
    def previous_abs_spread(self) -> Decimal | None:
        return self._previous

    def observe(self, abs_spread: Decimal) -> int:
        """Record this cycle's absolute spread and return the updated count."""
        abs_spread = abs(abs_spread)
        if self._previous is not None:
            if abs_spread > self._previous:
                self._count += 1
            else:
                self._count = 0
        self._previous = abs_spread
        return self._count

    def reset(self) -> None:
        """Zero the counter. The previous reading is kept for the next comparison."""
        self._count = 0

    def snapshot(self) -> ExpansionState:
        return ExpansionState(self._previous, self._count)

    def restore(self, state: ExpansionState) -> None:
        self._previous = state.previous_abs_spread
        self._count = state.consecutive_expansions
