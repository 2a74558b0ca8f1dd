"""Abstract venue adapter interface.

Defines the narrow contract the engine consumes from each trading venue.
The orchestrator depends only on this interface, so the core never knows
which exchange, transport (REST polling or WebSocket push), or signing
scheme sits behind a venue.

Sentinel convention: get_funding_rate() and get_mid_price() return
Decimal("0") when the venue has no reading. Network, auth, and exchange
errors raise VenueError instead.
"""

from abc import ABC, abstractmethod
from decimal import Decimal

from funding_arb.models import OrderHandle, OrderSide, OrderType


class VenueAdapter(ABC):
    """Abstract base class for perpetual-futures venue adapters."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Venue name used in opportunities and positions."""
        ...

    @abstractmethod
    async def connect(self) -> None:
        """Initialize connection and load markets."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release network resources."""
        ...

    @abstractmethod
    async def get_funding_rate(self, symbol: str) -> Decimal:
        """Current funding rate as a fraction per funding interval."""
        ...

    @abstractmethod
    async def get_mid_price(self, symbol: str) -> Decimal:
        """Current mid price, used for basis-divergence checks."""
        ...

    @abstractmethod
    async def place_order(
        self,
        symbol: str,
        side: OrderSide,
        amount: Decimal,
        order_type: OrderType = OrderType.MARKET,
        price: Decimal | None = None,
    ) -> OrderHandle:
        """Place an order. Called by execution layers, never by the core."""
        ...

    @abstractmethod
    async def cancel_order(self, order_id: str, symbol: str) -> None:
        """Cancel an open order."""
        ...
