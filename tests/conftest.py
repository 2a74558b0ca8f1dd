"""Shared test fixtures for the funding rate arbitrage engine."""

from decimal import Decimal

import pytest

from funding_arb.config import (
    AppSettings,
    ScheduleSettings,
    StrategySettings,
    VenueASettings,
    VenueBSettings,
)


class FakeClock:
    """Manually advanced time source (Unix seconds)."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def strategy_settings() -> StrategySettings:
    """Strategy settings with the documented defaults, static threshold."""
    return StrategySettings(
        min_funding_spread=Decimal("0.0002"),
        max_position_notional=Decimal("10000"),
        max_daily_notional=Decimal("50000"),
        leverage=Decimal("2"),
        auto_close_interval=28800,
        max_basis_divergence=Decimal("0.01"),
        stop_loss_spread=Decimal("-0.0001"),
        volatility_lookback=86400,
        spread_buffer_multiplier=Decimal("1.2"),
        use_dynamic_spread=False,
        release_on_close=False,
    )


@pytest.fixture
def mock_settings(strategy_settings: StrategySettings) -> AppSettings:
    """Return AppSettings with test defaults (bybit vs binanceusdm, fast schedule)."""
    return AppSettings(
        log_level="DEBUG",
        venue_a=VenueASettings(exchange_id="bybit", symbol="BTC/USDT:USDT"),
        venue_b=VenueBSettings(exchange_id="binanceusdm", symbol="BTC/USDT:USDT"),
        strategy=strategy_settings,
        schedule=ScheduleSettings(
            opportunity_check_interval=0.01,
            sweep_interval=0.01,
            daily_reset_check_interval=0.01,
        ),
    )
