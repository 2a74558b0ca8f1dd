"""Configuration system using pydantic-settings with environment variable loading.

Settings are built once at startup and passed explicitly into the engine.
validate_settings() is the single fail-fast gate: nothing inside the core
reads the environment or re-validates configuration lazily.
"""

from decimal import Decimal
from typing import Literal

import ccxt
from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from funding_arb.exceptions import ConfigurationError
from funding_arb.logging import get_logger

logger = get_logger(__name__)


class VenueSettings(BaseSettings):
    """Connection settings for one perpetual-futures venue."""

    name: str = ""  # display name; defaults to exchange_id
    exchange_id: str = ""  # ccxt exchange id, e.g. "bybit", "binanceusdm"
    symbol: str = ""  # venue-native unified symbol, e.g. "BTC/USDT:USDT"
    api_key: SecretStr = SecretStr("")
    api_secret: SecretStr = SecretStr("")
    password: SecretStr = SecretStr("")  # passphrase for venues that need one
    testnet: bool = False
    require_credentials: bool = False
    timeout_ms: int = 10000

    @property
    def display_name(self) -> str:
        return self.name or self.exchange_id


class VenueASettings(VenueSettings):
    """First venue; its rate is rate_a in spread = rate_a - rate_b."""

    model_config = SettingsConfigDict(env_prefix="VENUE_A_")

    exchange_id: str = "bybit"
    symbol: str = "BTC/USDT:USDT"


class VenueBSettings(VenueSettings):
    """Second venue; its rate is rate_b in spread = rate_a - rate_b."""

    model_config = SettingsConfigDict(env_prefix="VENUE_B_")

    exchange_id: str = "binanceusdm"
    symbol: str = "BTC/USDT:USDT"


class StrategySettings(BaseSettings):
    """Entry threshold, sizing, and risk limits for the arbitrage engine."""

    model_config = SettingsConfigDict(env_prefix="STRATEGY_")

    min_funding_spread: Decimal = Decimal("0.0002")  # 0.02% per funding interval
    max_position_notional: Decimal = Decimal("10000")  # USD per trade
    max_daily_notional: Decimal = Decimal("50000")  # USD opened per 24h
    leverage: Decimal = Decimal("2")
    auto_close_interval: float = 8 * 60 * 60  # one funding period
    max_basis_divergence: Decimal = Decimal("0.01")  # 1%
    stop_loss_spread: Decimal = Decimal("-0.0001")  # -0.01%
    volatility_lookback: float = 24 * 60 * 60
    spread_buffer_multiplier: Decimal = Decimal("1.2")
    use_dynamic_spread: bool = False
    release_on_close: bool = False  # False: daily cap is a flow cap


class ScheduleSettings(BaseSettings):
    """Cadences (seconds) of the orchestrator's periodic jobs."""

    model_config = SettingsConfigDict(env_prefix="SCHEDULE_")

    opportunity_check_interval: float = 3600.0
    sweep_interval: float = 60.0
    daily_reset_check_interval: float = 3600.0


class ApiSettings(BaseSettings):
    """Read-only status API server configuration."""

    model_config = SettingsConfigDict(env_prefix="API_")

    enabled: bool = False
    host: str = "127.0.0.1"
    port: int = 8080


class AppSettings(BaseSettings):
    """Root application settings, composing all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    log_level: str = "INFO"
    log_format: Literal["console", "json"] = "console"
    venue_a: VenueASettings = VenueASettings()
    venue_b: VenueBSettings = VenueBSettings()
    strategy: StrategySettings = StrategySettings()
    schedule: ScheduleSettings = ScheduleSettings()
    api: ApiSettings = ApiSettings()


def _validate_venue(label: str, venue: VenueSettings) -> None:
    if not venue.exchange_id:
        raise ConfigurationError(f"{label}: exchange_id is required")
    if not venue.symbol:
        raise ConfigurationError(f"{label}: symbol mapping is required")
    if venue.exchange_id not in ccxt.exchanges:
        raise ConfigurationError(
            f"{label}: unknown exchange_id {venue.exchange_id!r}"
        )
    if venue.timeout_ms <= 0:
        raise ConfigurationError(f"{label}: timeout_ms must be positive")

    has_credentials = bool(
        venue.api_key.get_secret_value() and venue.api_secret.get_secret_value()
    )
    if venue.require_credentials and not has_credentials:
        raise ConfigurationError(
            f"{label}: api_key and api_secret are required "
            f"for {venue.exchange_id}"
        )
    if not has_credentials:
        logger.warning(
            "no_api_keys_configured",
            venue=venue.display_name,
            note="Public endpoints (funding rates, prices) will work. "
            "Order placement will fail.",
        )


def validate_settings(settings: AppSettings) -> AppSettings:
    """Validate settings once at startup.

    Raises:
        ConfigurationError: On missing venue/symbol mapping, missing required
            credentials, or inconsistent risk limits. Trading with partial
            configuration is never attempted.

    Returns:
        The same settings object, for chaining.
    """
    _validate_venue("venue_a", settings.venue_a)
    _validate_venue("venue_b", settings.venue_b)

    if settings.venue_a.display_name == settings.venue_b.display_name:
        raise ConfigurationError(
            "venue_a and venue_b must have distinct names "
            f"(both are {settings.venue_a.display_name!r})"
        )

    strategy = settings.strategy
    if strategy.min_funding_spread < Decimal("0"):
        raise ConfigurationError("min_funding_spread must not be negative")
    if strategy.max_position_notional <= Decimal("0"):
        raise ConfigurationError("max_position_notional must be positive")
    if strategy.max_daily_notional < strategy.max_position_notional:
        raise ConfigurationError(
            "max_daily_notional must be at least max_position_notional"
        )
    if strategy.leverage <= Decimal("0"):
        raise ConfigurationError("leverage must be positive")
    if strategy.auto_close_interval <= 0 or strategy.volatility_lookback <= 0:
        raise ConfigurationError(
            "auto_close_interval and volatility_lookback must be positive"
        )
    if strategy.max_basis_divergence <= Decimal("0"):
        raise ConfigurationError("max_basis_divergence must be positive")
    if strategy.spread_buffer_multiplier < Decimal("0"):
        raise ConfigurationError("spread_buffer_multiplier must not be negative")

    schedule = settings.schedule
    if min(
        schedule.opportunity_check_interval,
        schedule.sweep_interval,
        schedule.daily_reset_check_interval,
    ) <= 0:
        raise ConfigurationError("schedule intervals must be positive")

    return settings
