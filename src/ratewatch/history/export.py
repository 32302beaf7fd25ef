"""Flat tabular export of rate history and daily stats.

One row per entity, snake_case columns, Decimals rendered as plain strings so
a CSV round trip reproduces the stored values exactly. A ``local_time`` column
(GMT+8) is added to history rows for human readers and ignored on import.
"""

import csv
from collections.abc import Iterable
from decimal import Decimal
from typing import IO

from ratewatch.market_data.time_window import format_local
from ratewatch.models import DailyStats, RateRecord, RiskLevel

HISTORY_COLUMNS = [
    "timestamp",
    "local_time",
    "market_rate",
    "platform_rate",
    "diff",
    "risk_level",
]

DAILY_STATS_COLUMNS = [
    "date",
    "max_diff",
    "min_diff",
    "avg_diff",
    "max_market_rate",
    "min_market_rate",
    "avg_market_rate",
    "platform_rate",
    "risk_level",
    "lock_time_rate",
    "sample_count",
]


def history_row(record: RateRecord) -> dict[str, str]:
    return {
        "timestamp": str(record.timestamp),
        "local_time": format_local(record.timestamp),
        "market_rate": str(record.market_rate),
        "platform_rate": str(record.platform_rate),
        "diff": str(record.diff),
        "risk_level": record.risk_level.value,
    }


def history_rows(records: Iterable[RateRecord]) -> list[dict[str, str]]:
    """Convert records to export rows, newest first."""
    return [history_row(r) for r in sorted(records, key=lambda r: r.timestamp, reverse=True)]


def daily_stats_rows(stats: Iterable[DailyStats]) -> list[dict[str, str]]:
    """Convert daily rollups to export rows, oldest date first."""
    rows = []
    for s in sorted(stats, key=lambda s: s.date):
        rows.append({
            "date": s.date,
            "max_diff": str(s.max_diff),
            "min_diff": str(s.min_diff),
            "avg_diff": str(s.avg_diff),
            "max_market_rate": str(s.max_market_rate),
            "min_market_rate": str(s.min_market_rate),
            "avg_market_rate": str(s.avg_market_rate),
            "platform_rate": str(s.platform_rate),
            "risk_level": s.risk_level.value,
            "lock_time_rate": "" if s.lock_time_rate is None else str(s.lock_time_rate),
            "sample_count": str(s.sample_count),
        })
    return rows


def write_csv(rows: list[dict[str, str]], stream: IO[str], columns: list[str]) -> int:
    """Write rows with a header line. Returns the number of data rows."""
    writer = csv.DictWriter(stream, fieldnames=columns, extrasaction="ignore")
    writer.writeheader()
    writer.writerows(rows)
    return len(rows)


def record_from_row(row: dict[str, str]) -> RateRecord:
    return RateRecord(
        timestamp=int(row["timestamp"]),
        market_rate=Decimal(row["market_rate"]),
        platform_rate=Decimal(row["platform_rate"]),
        diff=Decimal(row["diff"]),
        risk_level=RiskLevel(row["risk_level"]),
    )


def read_history_csv(stream: IO[str]) -> list[RateRecord]:
    """Parse an exported history CSV back into records, oldest first.

    A leading UTF-8 BOM (as written by the HTTP export) is ignored.
    """
    reader = csv.DictReader(stream)
    fieldnames = reader.fieldnames
    if fieldnames and fieldnames[0].startswith("\ufeff"):
        reader.fieldnames = [fieldnames[0].lstrip("\ufeff"), *fieldnames[1:]]
    records = [record_from_row(row) for row in reader]
    records.sort(key=lambda r: r.timestamp)
    return records
