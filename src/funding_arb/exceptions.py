"""Custom exceptions for the funding rate arbitrage engine.

All engine, venue, and configuration exceptions live here
to avoid circular imports between modules.
"""


class ArbitrageError(Exception):
    """Base exception for all engine errors."""


class ConfigurationError(ArbitrageError):
    """Raised at startup when required settings are missing or inconsistent."""


class VenueError(ArbitrageError):
    """Raised by a venue adapter on network, auth, or exchange errors."""

    def __init__(self, venue: str, message: str) -> None:
        super().__init__(f"{venue}: {message}")
        self.venue = venue


class RiskLimitExceeded(ArbitrageError):
    """Raised when a risk limit prevents reserving notional or opening a position."""
