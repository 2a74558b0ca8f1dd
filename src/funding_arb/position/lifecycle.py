"""Position lifecycle for cross-venue funding hedges.

Open flow (one logical clock tick, in this order):
1. Admission check via RiskLedger.can_open
2. Size = size_fn(ledger), default min(max_position_notional, remaining)
3. RiskLedger.reserve(size)
4. Construct and store the active Position

Sweep flow (every tick, active positions only), first match wins:
1. Age >= auto_close_interval            -> auto-close-timeout
2. Live mid-price basis > max divergence -> basis-divergence
3. Oriented spread moved against entry by more than |stop_loss_spread| -> stop-loss

Closing only records the decision. Turning it into orders on the venues is
the execution layer's job.
"""

from collections.abc import Callable, Mapping
from decimal import Decimal
from uuid import uuid4

from funding_arb.config import StrategySettings
from funding_arb.exceptions import RiskLimitExceeded
from funding_arb.logging import get_logger
from funding_arb.models import CloseReason, Opportunity, Position, PositionStatus, VenueQuote
from funding_arb.risk.ledger import RiskLedger
from funding_arb.signals.basis import compute_basis_divergence, is_valid_reading, oriented_spread

logger = get_logger(__name__)

SizeFn = Callable[[RiskLedger], Decimal]


class PositionLifecycleManager:
    """Owns every Position the engine creates.

    The RiskLedger only ever sees aggregate notional; individual position
    fields are private to this class.

    Args:
        settings: Strategy settings (limits, leverage, close policy).
        ledger: Daily notional ledger used for admission and reservation.
        symbol: Instrument traded on both venues (for the audit trail).
    """

    def __init__(
        self,
        settings: StrategySettings,
        ledger: RiskLedger,
        symbol: str,
    ) -> None:
        self._settings = settings
        self._ledger = ledger
        self._symbol = symbol
        self._positions: dict[str, Position] = {}

    def open(
        self,
        opportunity: Opportunity,
        now: float,
        size_fn: SizeFn | None = None,
    ) -> Position:
        """Reserve notional and open an active position for an opportunity.

        Raises:
            RiskLimitExceeded: If the ledger denies admission or the
                reservation would breach the daily cap. No position is
                created in either case.
        """
        if not self._ledger.can_open():
            raise RiskLimitExceeded(
                f"Daily capacity exhausted: {self._ledger.daily_notional_used} "
                f"used of {self._ledger.max_daily_notional}"
            )

        size = size_fn(self._ledger) if size_fn is not None else self._ledger.position_size()
        self._ledger.reserve(size)

        position = Position(
            id=uuid4().hex[:16],
            symbol=self._symbol,
            long_venue=opportunity.long_venue,
            short_venue=opportunity.short_venue,
            notional=size,
            leverage=self._settings.leverage,
            entry_time=now,
            entry_spread=opportunity.spread,
            entry_threshold=opportunity.effective_threshold,
        )
        self._positions[position.id] = position

        logger.info(
            "position_opened",
            position_id=position.id,
            symbol=position.symbol,
            long_venue=position.long_venue,
            short_venue=position.short_venue,
            notional=str(size),
            leverage=str(position.leverage),
            entry_spread=str(position.entry_spread),
            threshold=str(position.entry_threshold),
            daily_notional_used=str(self._ledger.daily_notional_used),
        )
        return position

    def sweep(
        self,
        now: float,
        quotes: Mapping[str, VenueQuote] | None = None,
    ) -> list[Position]:
        """Close every active position that breaches a limit.

        Args:
            now: Current time (Unix seconds).
            quotes: Live quotes keyed by venue name. Missing or invalid
                values skip the divergence / stop-loss checks; they never
                cause a close on their own.

        Returns:
            Positions closed by this call. A repeat call at the same now
            returns an empty list.
        """
        quotes = quotes or {}
        closed: list[Position] = []
        for position in self.get_active_positions():
            reason = self._close_reason(position, now, quotes)
            if reason is not None:
                self._close(position, reason, now)
                closed.append(position)
        return closed

    def get_active_positions(self) -> list[Position]:
        """Return positions that are still open, oldest first."""
        return [p for p in self._positions.values() if p.is_active]

    def get_positions(self) -> list[Position]:
        """Return all positions ever opened, including closed ones."""
        return list(self._positions.values())

    def get_position(self, position_id: str) -> Position | None:
        return self._positions.get(position_id)

    def _close_reason(
        self,
        position: Position,
        now: float,
        quotes: Mapping[str, VenueQuote],
    ) -> CloseReason | None:
        if now - position.entry_time >= self._settings.auto_close_interval:
            return CloseReason.AUTO_CLOSE_TIMEOUT

        long_quote = quotes.get(position.long_venue)
        short_quote = quotes.get(position.short_venue)
        if long_quote is None or short_quote is None:
            return None

        if is_valid_reading(long_quote.mid_price) and is_valid_reading(short_quote.mid_price):
            divergence = compute_basis_divergence(long_quote.mid_price, short_quote.mid_price)
            if divergence > self._settings.max_basis_divergence:
                logger.warning(
                    "basis_divergence_exceeded",
                    position_id=position.id,
                    divergence=str(divergence),
                    limit=str(self._settings.max_basis_divergence),
                )
                return CloseReason.BASIS_DIVERGENCE

        if is_valid_reading(long_quote.funding_rate) and is_valid_reading(short_quote.funding_rate):
            current = oriented_spread(long_quote.funding_rate, short_quote.funding_rate)
            move = current - abs(position.entry_spread)
            if move < -abs(self._settings.stop_loss_spread):
                logger.warning(
                    "stop_loss_triggered",
                    position_id=position.id,
                    entry_spread=str(abs(position.entry_spread)),
                    current_spread=str(current),
                    stop_loss=str(self._settings.stop_loss_spread),
                )
                return CloseReason.STOP_LOSS

        return None

    def _close(self, position: Position, reason: CloseReason, now: float) -> None:
        position.status = PositionStatus.CLOSED
        position.close_time = now
        position.close_reason = reason

        released = False
        if (
            self._settings.release_on_close
            and position.entry_time >= self._ledger.last_reset_time
        ):
            self._ledger.release(position.notional)
            released = True

        logger.info(
            "position_closed",
            position_id=position.id,
            reason=reason.value,
            long_venue=position.long_venue,
            short_venue=position.short_venue,
            notional=str(position.notional),
            held_hours=round((now - position.entry_time) / 3600, 2),
            notional_released=released,
        )
