"""Rate history layer -- bounded ledger, daily rollups, and tabular export."""

from ratewatch.history.export import (
    DAILY_STATS_COLUMNS,
    HISTORY_COLUMNS,
    daily_stats_rows,
    history_rows,
    read_history_csv,
    write_csv,
)
from ratewatch.history.ledger import HistoryLedger

__all__ = [
    "DAILY_STATS_COLUMNS",
    "HISTORY_COLUMNS",
    "HistoryLedger",
    "daily_stats_rows",
    "history_rows",
    "read_history_csv",
    "write_csv",
]
