"""Delta-neutral funding-rate arbitrage decision engine."""

__version__ = "0.1.0"
