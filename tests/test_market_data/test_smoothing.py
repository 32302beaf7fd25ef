"""Tests for the rate smoothing filter."""

from decimal import Decimal

from ratewatch.market_data.smoothing import RateSmoother, apply_premium, clamp_step


class TestClampStep:
    def test_within_bound_unchanged(self) -> None:
        assert clamp_step(Decimal("4.31"), Decimal("4.30"), Decimal("0.003")) == Decimal("4.31")

    def test_upward_jump_clipped(self) -> None:
        # 4.30 * 0.003 = 0.0129
        assert clamp_step(Decimal("4.35"), Decimal("4.30"), Decimal("0.003")) == Decimal("4.3129")

    def test_downward_jump_clipped(self) -> None:
        assert clamp_step(Decimal("4.20"), Decimal("4.30"), Decimal("0.003")) == Decimal("4.2871")


class TestRateSmoother:
    def test_first_reading_published_as_target(self) -> None:
        smoother = RateSmoother()
        assert smoother.smooth(Decimal("4.35"), Decimal("0")) == Decimal("4.35")

    def test_jump_is_clipped_then_blended(self) -> None:
        smoother = RateSmoother(max_step=Decimal("0.003"), factor=Decimal("0.1"))
        # clip to 4.3129, then 0.9 * 4.30 + 0.1 * 4.3129
        assert smoother.smooth(Decimal("4.35"), Decimal("4.30")) == Decimal("4.30129")

    def test_small_move_is_blended_only(self) -> None:
        smoother = RateSmoother(factor=Decimal("0.5"))
        assert smoother.smooth(Decimal("4.302"), Decimal("4.300")) == Decimal("4.301")

    def test_premium_applied_before_smoothing(self) -> None:
        smoother = RateSmoother(premium=Decimal("0.01"))
        assert smoother.smooth(Decimal("4.00"), Decimal("0")) == Decimal("4.04")

    def test_repeated_readings_converge(self) -> None:
        smoother = RateSmoother()
        published = Decimal("4.30")
        for _ in range(200):
            published = smoother.smooth(Decimal("4.35"), published)
        assert abs(published - Decimal("4.35")) < Decimal("0.0001")

    def test_apply_premium(self) -> None:
        assert apply_premium(Decimal("4.40"), Decimal("0.002")) == Decimal("4.40880")
