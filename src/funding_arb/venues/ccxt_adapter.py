"""Generic venue adapter over ccxt async.

One implementation serves every ccxt-supported perpetual venue (Bybit,
Binance USD-M, Hyperliquid, Coinbase International, ...), so venue pairs
compose freely instead of needing one adapter per pair. Order signing is
ccxt's responsibility; the engine never sees keys beyond passing them in.
"""

from decimal import Decimal, InvalidOperation

import ccxt
import ccxt.async_support as ccxt_async

from funding_arb.config import VenueSettings
from funding_arb.exceptions import ConfigurationError, VenueError
from funding_arb.logging import get_logger
from funding_arb.models import OrderHandle, OrderSide, OrderType
from funding_arb.venues.adapter import VenueAdapter

logger = get_logger(__name__)


def _to_decimal(value: object) -> Decimal:
    """Convert a ccxt numeric field to Decimal; missing, garbage, NaN or inf -> 0 sentinel."""
    if value is None:
        return Decimal("0")
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return Decimal("0")
    if not result.is_finite():
        return Decimal("0")
    return result


class CcxtVenueAdapter(VenueAdapter):
    """Concrete venue adapter backed by a ccxt async exchange instance."""

    def __init__(self, settings: VenueSettings) -> None:
        self._settings = settings
        self._name = settings.display_name

        exchange_cls = getattr(ccxt_async, settings.exchange_id, None)
        if exchange_cls is None:
            raise ConfigurationError(f"Unknown ccxt exchange id: {settings.exchange_id}")

        config: dict = {
            "apiKey": settings.api_key.get_secret_value(),
            "secret": settings.api_secret.get_secret_value(),
            "enableRateLimit": True,
            "timeout": settings.timeout_ms,
            "options": {
                "defaultType": "swap",
            },
        }
        password = settings.password.get_secret_value()
        if password:
            config["password"] = password

        self._exchange = exchange_cls(config)
        if settings.testnet:
            try:
                self._exchange.set_sandbox_mode(True)
            except ccxt.NotSupported as exc:
                raise ConfigurationError(
                    f"{settings.exchange_id} has no testnet: {exc}"
                ) from exc

    @property
    def name(self) -> str:
        return self._name

    @property
    def exchange(self) -> ccxt_async.Exchange:
        """Access the underlying ccxt exchange instance."""
        return self._exchange

    async def connect(self) -> None:
        """Initialize connection by loading markets."""
        logger.info("connecting_to_venue", venue=self._name, testnet=self._settings.testnet)
        try:
            markets = await self._exchange.load_markets()
        except ccxt.BaseError as exc:
            raise VenueError(self._name, f"load_markets failed: {exc}") from exc
        logger.info("venue_connected", venue=self._name, market_count=len(markets))

    async def close(self) -> None:
        """Clean up ccxt async resources. CRITICAL: must be called to avoid resource leaks."""
        await self._exchange.close()
        logger.info("venue_connection_closed", venue=self._name)

    async def get_funding_rate(self, symbol: str) -> Decimal:
        """Fetch the current funding rate; Decimal("0") if the venue reports none."""
        try:
            data = await self._exchange.fetch_funding_rate(symbol)
        except ccxt.BaseError as exc:
            raise VenueError(self._name, f"fetch_funding_rate({symbol}) failed: {exc}") from exc
        return _to_decimal(data.get("fundingRate"))

    async def get_mid_price(self, symbol: str) -> Decimal:
        """Bid/ask midpoint from the ticker, falling back to the last trade price."""
        try:
            ticker = await self._exchange.fetch_ticker(symbol)
        except ccxt.BaseError as exc:
            raise VenueError(self._name, f"fetch_ticker({symbol}) failed: {exc}") from exc

        bid = _to_decimal(ticker.get("bid"))
        ask = _to_decimal(ticker.get("ask"))
        if bid > 0 and ask > 0:
            return (bid + ask) / 2
        return _to_decimal(ticker.get("last"))

    async def place_order(
        self,
        symbol: str,
        side: OrderSide,
        amount: Decimal,
        order_type: OrderType = OrderType.MARKET,
        price: Decimal | None = None,
    ) -> OrderHandle:
        """Place an order via ccxt."""
        logger.info(
            "creating_order",
            venue=self._name,
            symbol=symbol,
            order_type=order_type.value,
            side=side.value,
            amount=str(amount),
        )
        try:
            order = await self._exchange.create_order(
                symbol,
                order_type.value,
                side.value,
                float(amount),
                float(price) if price is not None else None,
            )
        except ccxt.BaseError as exc:
            raise VenueError(self._name, f"create_order({symbol}) failed: {exc}") from exc

        return OrderHandle(
            order_id=str(order.get("id", "")),
            venue=self._name,
            symbol=symbol,
            side=side,
            order_type=order_type,
            amount=amount,
            status=order.get("status") or "open",
        )

    async def cancel_order(self, order_id: str, symbol: str) -> None:
        """Cancel an open order via ccxt."""
        logger.info("cancelling_order", venue=self._name, order_id=order_id, symbol=symbol)
        try:
            await self._exchange.cancel_order(order_id, symbol)
        except ccxt.BaseError as exc:
            raise VenueError(self._name, f"cancel_order({order_id}) failed: {exc}") from exc
