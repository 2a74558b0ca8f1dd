"""Daily notional ledger and pre-trade admission.

The daily cap is a per-day FLOW cap: notional reserved today stays used
until the 24h reset, even if the position closes early. release() exists
for the opt-in concurrent-exposure policy (StrategySettings.release_on_close).

Admission is all-or-nothing per trade: can_open() requires a full
max_position_notional of headroom, so dust positions below the per-trade
cap are never opened.
"""

from decimal import Decimal

from funding_arb.config import StrategySettings
from funding_arb.exceptions import RiskLimitExceeded
from funding_arb.logging import get_logger

logger = get_logger(__name__)

DAILY_RESET_PERIOD = 24 * 60 * 60  # seconds


class RiskLedger:
    """Tracks daily notional usage against per-trade and per-day caps.

    Invariant: 0 <= daily_notional_used <= max_daily_notional.

    Args:
        settings: Strategy settings holding the notional caps.
        started_at: Start of the first 24h accounting window (Unix seconds).
    """

    def __init__(self, settings: StrategySettings, started_at: float) -> None:
        self._max_position_notional = settings.max_position_notional
        self._max_daily_notional = settings.max_daily_notional
        self._daily_notional_used = Decimal("0")
        self._last_reset_time = started_at

    @property
    def daily_notional_used(self) -> Decimal:
        return self._daily_notional_used

    @property
    def last_reset_time(self) -> float:
        return self._last_reset_time

    @property
    def max_position_notional(self) -> Decimal:
        return self._max_position_notional

    @property
    def max_daily_notional(self) -> Decimal:
        return self._max_daily_notional

    @property
    def remaining_capacity(self) -> Decimal:
        return self._max_daily_notional - self._daily_notional_used

    def can_open(self, proposed_notional: Decimal | None = None) -> bool:
        """Check whether a new position may be opened today.

        Requires headroom for a full max_position_notional, regardless of
        the proposed size. A proposed size, when given, must also be
        positive and within the per-trade cap.
        """
        if proposed_notional is not None and not (
            Decimal("0") < proposed_notional <= self._max_position_notional
        ):
            return False
        return self.remaining_capacity >= self._max_position_notional

    def position_size(self) -> Decimal:
        """Default size for the next position: min(per-trade cap, remaining)."""
        return min(self._max_position_notional, self.remaining_capacity)

    def reserve(self, size: Decimal) -> None:
        """Add size to today's usage.

        Raises:
            RiskLimitExceeded: If size is not positive, exceeds
                max_position_notional, or would push usage past
                max_daily_notional. Usage is unchanged in that case.
        """
        if size <= Decimal("0"):
            raise RiskLimitExceeded(f"Reserve size must be positive, got {size}")
        if size > self._max_position_notional:
            raise RiskLimitExceeded(
                f"Reserving {size} exceeds per-trade cap of {self._max_position_notional}"
            )
        if self._daily_notional_used + size > self._max_daily_notional:
            raise RiskLimitExceeded(
                f"Reserving {size} exceeds daily cap: "
                f"{self._daily_notional_used} used of {self._max_daily_notional}"
            )
        self._daily_notional_used += size

    def release(self, size: Decimal) -> None:
        """Return size to today's capacity, flooring usage at zero."""
        self._daily_notional_used = max(
            Decimal("0"), self._daily_notional_used - size
        )

    def reset_if_due(self, now: float) -> bool:
        """Zero daily usage once 24h have elapsed since the last reset.

        Returns:
            True if a reset happened.
        """
        if now - self._last_reset_time < DAILY_RESET_PERIOD:
            return False

        logger.info(
            "daily_notional_reset",
            previous_usage=str(self._daily_notional_used),
            hours_since_reset=round((now - self._last_reset_time) / 3600, 2),
        )
        self._daily_notional_used = Decimal("0")
        self._last_reset_time = now
        return True
