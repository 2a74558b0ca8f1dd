"""Shared data models for the funding rate arbitrage engine.

CRITICAL: All rates, prices, and notionals use Decimal. Never use float for them.
Timestamps are Unix seconds (float), matching time.time().
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum


class OrderSide(str, Enum):
    """Order direction."""

    BUY = "buy"
    SELL = "sell"


class OrderType(str, Enum):
    """Order type."""

    MARKET = "market"
    LIMIT = "limit"


class PositionStatus(str, Enum):
    """Position lifecycle state. The only transition is ACTIVE -> CLOSED."""

    ACTIVE = "active"
    CLOSED = "closed"


class CloseReason(str, Enum):
    """Why the lifecycle sweep force-closed a position."""

    AUTO_CLOSE_TIMEOUT = "auto-close-timeout"
    BASIS_DIVERGENCE = "basis-divergence"
    STOP_LOSS = "stop-loss"


@dataclass(frozen=True)
class SpreadSample:
    """One observed funding spread (rate_a - rate_b) at a point in time."""

    timestamp: float
    spread: Decimal


@dataclass(frozen=True)
class Opportunity:
    """A spread wide enough to trade.

    long_venue always has the higher funding rate. Transient: consumed by
    the orchestrator on the tick that produced it.
    """

    long_venue: str
    short_venue: str
    spread: Decimal  # rate_a - rate_b, signed
    effective_threshold: Decimal
    rate_a: Decimal
    rate_b: Decimal
    detected_at: float


@dataclass
class Position:
    """A delta-neutral hedge across two venues.

    Never deleted: closing only sets status, close_time and close_reason,
    so the position set doubles as an audit trail.
    """

    id: str
    symbol: str
    long_venue: str
    short_venue: str
    notional: Decimal
    leverage: Decimal
    entry_time: float
    entry_spread: Decimal
    entry_threshold: Decimal = Decimal("0")
    status: PositionStatus = PositionStatus.ACTIVE
    close_time: float | None = None
    close_reason: CloseReason | None = None

    @property
    def is_active(self) -> bool:
        return self.status is PositionStatus.ACTIVE


@dataclass(frozen=True)
class VenueQuote:
    """Live observation for one venue, supplied to the lifecycle sweep.

    None means the value is unknown this tick; the dependent check is skipped.
    """

    venue: str
    funding_rate: Decimal | None = None
    mid_price: Decimal | None = None


@dataclass
class OrderHandle:
    """Reference to an order placed on a venue."""

    order_id: str
    venue: str
    symbol: str
    side: OrderSide
    order_type: OrderType
    amount: Decimal
    status: str = "open"


@dataclass
class TickStats:
    """Counters that make every orchestrator tick observable."""

    checks: int = 0
    skipped: int = 0
    opportunities: int = 0
    opened: int = 0
    rejected: int = 0
    sweeps: int = 0
    closed: int = 0
    last_check_at: float | None = None
    last_skip_reason: str | None = None
