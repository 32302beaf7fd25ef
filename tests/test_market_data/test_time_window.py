"""Tests for GMT+8 time helpers and lock window classification."""

from datetime import datetime, timezone

import pytest

from ratewatch.market_data.time_window import (
    classify_moment,
    format_local,
    is_lock_snapshot_time,
    is_lock_window,
    local_date,
    refresh_interval,
    to_local,
)

from helpers import local_ms


class TestLockWindow:
    @pytest.mark.parametrize(
        "hour,minute,expected",
        [
            (23, 19, False),
            (23, 20, True),
            (23, 59, True),
            (0, 0, True),
            (0, 30, True),
            (0, 31, False),
            (12, 0, False),
        ],
    )
    def test_boundaries(self, hour: int, minute: int, expected: bool) -> None:
        assert is_lock_window(local_ms(2024, 5, 1, hour, minute)) is expected

    def test_utc_datetime_converted_to_local(self) -> None:
        # 15:25 UTC is 23:25 GMT+8
        moment = datetime(2024, 5, 1, 15, 25, tzinfo=timezone.utc)
        assert is_lock_window(moment) is True

    def test_naive_datetime_treated_as_utc(self) -> None:
        assert to_local(datetime(2024, 5, 1, 16, 0)).hour == 0

    def test_classify_moment_fields(self) -> None:
        window = classify_moment(local_ms(2024, 5, 1, 23, 45))
        assert (window.hour, window.minute) == (23, 45)
        assert window.is_lock_window is True


class TestLockSnapshotTime:
    @pytest.mark.parametrize(
        "hour,minute,expected",
        [(23, 44, False), (23, 45, True), (23, 50, True), (23, 55, True), (23, 56, False)],
    )
    def test_boundaries(self, hour: int, minute: int, expected: bool) -> None:
        assert is_lock_snapshot_time(local_ms(2024, 5, 1, hour, minute)) is expected


class TestFormatting:
    def test_local_date_rolls_over_at_local_midnight(self) -> None:
        assert local_date(local_ms(2024, 5, 1, 23, 59)) == "2024-05-01"
        assert local_date(local_ms(2024, 5, 2, 0, 0)) == "2024-05-02"

    def test_format_local(self) -> None:
        assert format_local(local_ms(2024, 5, 1, 9, 5)) == "2024-05-01 09:05:00"


def test_refresh_interval_is_faster_in_lock_window() -> None:
    assert refresh_interval(True) == 10.0
    assert refresh_interval(False) == 30.0
    assert refresh_interval(True, lock_seconds=5, normal_seconds=60) == 5
