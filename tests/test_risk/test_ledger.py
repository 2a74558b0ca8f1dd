"""Tests for RiskLedger -- admission, reservation, release, and daily reset.

Covers the per-trade and per-day caps, all-or-nothing admission (no dust
positions), the 0 <= used <= max_daily invariant, and the 24h reset boundary.
"""

from decimal import Decimal

import pytest

from funding_arb.config import StrategySettings
from funding_arb.exceptions import RiskLimitExceeded
from funding_arb.risk.ledger import DAILY_RESET_PERIOD, RiskLedger

START = 1_000_000.0


@pytest.fixture
def ledger(strategy_settings: StrategySettings) -> RiskLedger:
    return RiskLedger(strategy_settings, started_at=START)


def _ledger_with_caps(max_position: str, max_daily: str) -> RiskLedger:
    settings = StrategySettings(
        max_position_notional=Decimal(max_position),
        max_daily_notional=Decimal(max_daily),
    )
    return RiskLedger(settings, started_at=START)


def _use(ledger: RiskLedger, total: str) -> None:
    """Reserve total in trades no larger than the per-trade cap."""
    remaining = Decimal(total)
    while remaining > 0:
        size = min(remaining, ledger.max_position_notional)
        ledger.reserve(size)
        remaining -= size


class TestCanOpen:
    """Tests for RiskLedger.can_open."""

    def test_fresh_ledger_allows(self, ledger: RiskLedger) -> None:
        assert ledger.can_open() is True

    def test_five_full_positions_then_rejects(self, ledger: RiskLedger) -> None:
        for _ in range(5):
            assert ledger.can_open() is True
            ledger.reserve(ledger.position_size())

        assert ledger.daily_notional_used == Decimal("50000")
        assert ledger.can_open() is False

    def test_partial_headroom_rejects_dust(self) -> None:
        ledger = _ledger_with_caps("10000", "25000")
        ledger.reserve(Decimal("10000"))
        ledger.reserve(Decimal("10000"))

        # 5000 left, below the per-trade cap: no dust position
        assert ledger.remaining_capacity == Decimal("5000")
        assert ledger.can_open() is False

    def test_proposed_above_per_trade_cap_rejected(self, ledger: RiskLedger) -> None:
        assert ledger.can_open(Decimal("10001")) is False

    def test_proposed_at_per_trade_cap_allowed(self, ledger: RiskLedger) -> None:
        assert ledger.can_open(Decimal("10000")) is True

    @pytest.mark.parametrize("size", ["0", "-1"])
    def test_non_positive_proposed_rejected(self, ledger: RiskLedger, size: str) -> None:
        assert ledger.can_open(Decimal(size)) is False

    def test_small_proposed_still_needs_full_cap_headroom(self) -> None:
        ledger = _ledger_with_caps("10000", "15000")
        ledger.reserve(Decimal("10000"))
        assert ledger.can_open(Decimal("1000")) is False


class TestPositionSize:
    def test_full_cap_when_capacity_allows(self, ledger: RiskLedger) -> None:
        assert ledger.position_size() == Decimal("10000")

    def test_limited_by_remaining_capacity(self) -> None:
        ledger = _ledger_with_caps("10000", "25000")
        _use(ledger, "20000")
        assert ledger.position_size() == Decimal("5000")


class TestReserve:
    def test_adds_to_usage(self, ledger: RiskLedger) -> None:
        ledger.reserve(Decimal("2500"))
        ledger.reserve(Decimal("7500"))
        assert ledger.daily_notional_used == Decimal("10000")

    def test_reserve_past_daily_cap_raises_and_leaves_usage(
        self, ledger: RiskLedger
    ) -> None:
        _use(ledger, "45000")
        with pytest.raises(RiskLimitExceeded, match="daily cap"):
            ledger.reserve(Decimal("10000"))
        assert ledger.daily_notional_used == Decimal("45000")

    def test_reserve_up_to_cap_exactly(self, ledger: RiskLedger) -> None:
        _use(ledger, "50000")
        assert ledger.remaining_capacity == Decimal("0")

    def test_reserve_above_per_trade_cap_raises(self, ledger: RiskLedger) -> None:
        with pytest.raises(RiskLimitExceeded, match="per-trade cap"):
            ledger.reserve(Decimal("10001"))
        assert ledger.daily_notional_used == Decimal("0")

    @pytest.mark.parametrize("size", ["0", "-100"])
    def test_non_positive_reserve_raises(self, ledger: RiskLedger, size: str) -> None:
        with pytest.raises(RiskLimitExceeded, match="positive"):
            ledger.reserve(Decimal(size))
        assert ledger.daily_notional_used == Decimal("0")


class TestRelease:
    def test_release_returns_capacity(self, ledger: RiskLedger) -> None:
        _use(ledger, "30000")
        ledger.release(Decimal("10000"))
        assert ledger.daily_notional_used == Decimal("20000")

    def test_release_floors_at_zero(self, ledger: RiskLedger) -> None:
        ledger.reserve(Decimal("5000"))
        ledger.release(Decimal("10000"))
        assert ledger.daily_notional_used == Decimal("0")


class TestResetIfDue:
    """Usage resets exactly when now - last_reset >= 24h, and not before."""

    def test_no_reset_before_24h(self, ledger: RiskLedger) -> None:
        _use(ledger, "20000")
        assert ledger.reset_if_due(START + DAILY_RESET_PERIOD - 1) is False
        assert ledger.daily_notional_used == Decimal("20000")
        assert ledger.last_reset_time == START

    def test_reset_at_exactly_24h(self, ledger: RiskLedger) -> None:
        _use(ledger, "20000")
        assert ledger.reset_if_due(START + DAILY_RESET_PERIOD) is True
        assert ledger.daily_notional_used == Decimal("0")
        assert ledger.last_reset_time == START + DAILY_RESET_PERIOD

    def test_next_window_counts_from_reset_time(self, ledger: RiskLedger) -> None:
        late = START + DAILY_RESET_PERIOD + 5000
        ledger.reset_if_due(late)
        ledger.reserve(Decimal("10000"))

        assert ledger.reset_if_due(late + DAILY_RESET_PERIOD - 1) is False
        assert ledger.daily_notional_used == Decimal("10000")
        assert ledger.reset_if_due(late + DAILY_RESET_PERIOD) is True

    def test_reset_restores_admission(self, ledger: RiskLedger) -> None:
        for _ in range(5):
            ledger.reserve(ledger.position_size())
        assert ledger.can_open() is False

        ledger.reset_if_due(START + DAILY_RESET_PERIOD)

        assert ledger.can_open() is True
