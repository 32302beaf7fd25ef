"""Tests for classify_risk -- ordered rules over the absolute spread."""

from decimal import Decimal

import pytest

from ratewatch.models import RiskLevel, Thresholds
from ratewatch.risk.classifier import adjusted_diff, classify_risk, compute_diff


@pytest.fixture()
def thresholds() -> Thresholds:
    return Thresholds(
        warning=Decimal("0.05"),
        danger=Decimal("0.08"),
        critical=Decimal("0.10"),
    )


class TestOutsideLockWindow:
    @pytest.mark.parametrize(
        "spread,expected",
        [
            ("0.04", RiskLevel.SAFE),
            ("0.05", RiskLevel.WARNING),
            ("0.079", RiskLevel.WARNING),
            ("0.08", RiskLevel.DANGER),
            ("0.09", RiskLevel.DANGER),
            ("0.10", RiskLevel.CRITICAL),
            ("0.25", RiskLevel.CRITICAL),
        ],
    )
    def test_threshold_bands(self, thresholds: Thresholds, spread: str, expected: RiskLevel) -> None:
        assert classify_risk(Decimal(spread), False, 0, thresholds) is expected

    def test_negative_spread_uses_magnitude(self, thresholds: Thresholds) -> None:
        assert classify_risk(Decimal("-0.09"), False, 0, thresholds) is RiskLevel.DANGER

    def test_expansions_ignored_outside_lock_window(self, thresholds: Thresholds) -> None:
        assert classify_risk(Decimal("0.06"), False, 5, thresholds) is RiskLevel.WARNING


class TestLockWindow:
    def test_sustained_expansion_escalates_to_critical(self, thresholds: Thresholds) -> None:
        assert classify_risk(Decimal("0.06"), True, 2, thresholds) is RiskLevel.CRITICAL

    def test_single_expansion_does_not_escalate(self, thresholds: Thresholds) -> None:
        assert classify_risk(Decimal("0.06"), True, 1, thresholds) is RiskLevel.WARNING

    def test_escalation_requires_warning_magnitude(self, thresholds: Thresholds) -> None:
        assert classify_risk(Decimal("0.045"), True, 3, thresholds) is RiskLevel.SAFE

    def test_escalation_with_lowered_warning(self) -> None:
        t = Thresholds(warning=Decimal("0.04"), danger=Decimal("0.08"), critical=Decimal("0.10"))
        assert classify_risk(Decimal("0.045"), True, 2, t) is RiskLevel.CRITICAL

    def test_lower_lock_warning_threshold(self) -> None:
        t = Thresholds(
            warning=Decimal("0.05"),
            danger=Decimal("0.08"),
            critical=Decimal("0.10"),
            lock_warning=Decimal("0.04"),
        )
        assert classify_risk(Decimal("0.045"), True, 0, t) is RiskLevel.WARNING
        assert classify_risk(Decimal("0.045"), True, 2, t) is RiskLevel.CRITICAL
        assert classify_risk(Decimal("0.045"), False, 2, t) is RiskLevel.SAFE

    def test_lock_warning_above_warning_is_capped(self) -> None:
        t = Thresholds(
            warning=Decimal("0.03"),
            danger=Decimal("0.08"),
            critical=Decimal("0.10"),
            lock_warning=Decimal("0.04"),
        )
        assert t.effective_lock_warning == Decimal("0.03")
        assert classify_risk(Decimal("0.035"), True, 2, t) is RiskLevel.CRITICAL

    def test_critical_threshold_wins_first(self, thresholds: Thresholds) -> None:
        assert classify_risk(Decimal("-0.12"), True, 0, thresholds) is RiskLevel.CRITICAL


class TestDiff:
    def test_market_minus_platform(self) -> None:
        assert compute_diff(Decimal("4.40"), Decimal("4.35")) == Decimal("0.05")
        assert compute_diff(Decimal("4.30"), Decimal("4.35")) == Decimal("-0.05")

    def test_adjusted_diff_subtracts_cost_buffer(self) -> None:
        assert adjusted_diff(Decimal("4.40"), Decimal("4.35"), Decimal("0.025")) == Decimal("0.025")
