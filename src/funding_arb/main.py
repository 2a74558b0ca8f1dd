"""Entry point for the funding rate arbitrage engine.

Wires all components together, optionally embeds the FastAPI status API,
and starts the orchestrator. When the API is enabled, the engine and the
API share a single asyncio event loop via uvicorn's programmatic API and
FastAPI's lifespan context manager.

Handles SIGINT/SIGTERM for graceful shutdown. Shutdown never liquidates:
open positions are logged and left open.

Component wiring order (in build_components):
1. AppSettings (configuration, validated fail-fast)
2. Logging setup
3. Venue adapters (one CcxtVenueAdapter per venue)
4. SpreadVolatilityTracker + ThresholdPolicy + OpportunityDetector
5. RiskLedger
6. PositionLifecycleManager
7. ArbitrageOrchestrator
"""

import asyncio
import signal
import sys
import time
from contextlib import asynccontextmanager
from typing import Any

import uvicorn
from fastapi import FastAPI

from funding_arb.config import AppSettings, validate_settings
from funding_arb.exceptions import ConfigurationError
from funding_arb.logging import get_logger, setup_logging
from funding_arb.orchestrator import ArbitrageOrchestrator
from funding_arb.position.lifecycle import PositionLifecycleManager
from funding_arb.risk.ledger import RiskLedger
from funding_arb.signals.detector import OpportunityDetector
from funding_arb.signals.threshold import ThresholdPolicy
from funding_arb.signals.volatility import SpreadVolatilityTracker
from funding_arb.venues.ccxt_adapter import CcxtVenueAdapter


def build_components(settings: AppSettings) -> dict[str, Any]:
    """Build all engine components from validated settings.

    Note: Does NOT connect the venue adapters -- that happens in the
    lifespan (API mode) or run() (headless mode).

    Args:
        settings: Application-wide settings, already validated.

    Returns:
        Dict mapping component names to instances.
    """
    strategy = settings.strategy

    venue_a = CcxtVenueAdapter(settings.venue_a)
    venue_b = CcxtVenueAdapter(settings.venue_b)

    tracker = SpreadVolatilityTracker(lookback=strategy.volatility_lookback)
    policy = ThresholdPolicy(buffer_multiplier=strategy.spread_buffer_multiplier)
    detector = OpportunityDetector(
        settings=strategy,
        tracker=tracker,
        policy=policy,
        venue_a=venue_a.name,
        venue_b=venue_b.name,
    )

    risk_ledger = RiskLedger(strategy, started_at=time.time())
    lifecycle = PositionLifecycleManager(
        settings=strategy,
        ledger=risk_ledger,
        symbol=settings.venue_a.symbol,
    )

    orchestrator = ArbitrageOrchestrator(
        settings=settings,
        venue_a=venue_a,
        venue_b=venue_b,
        detector=detector,
        risk_ledger=risk_ledger,
        lifecycle=lifecycle,
    )

    return {
        "venue_a": venue_a,
        "venue_b": venue_b,
        "tracker": tracker,
        "detector": detector,
        "risk_ledger": risk_ledger,
        "lifecycle": lifecycle,
        "orchestrator": orchestrator,
    }


def _setup_signal_handlers(orchestrator: ArbitrageOrchestrator) -> None:
    """Register SIGINT/SIGTERM to stop the orchestrator gracefully.

    Must be called after the asyncio event loop is running.
    """
    logger = get_logger("funding_arb.main")
    loop = asyncio.get_running_loop()

    def _graceful_handler() -> None:
        logger.info("graceful_shutdown_signal")
        asyncio.create_task(orchestrator.stop())

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _graceful_handler)


async def _connect_venues(components: dict[str, Any]) -> None:
    await asyncio.gather(
        components["venue_a"].connect(),
        components["venue_b"].connect(),
    )


async def _close_venues(components: dict[str, Any]) -> None:
    await asyncio.gather(
        components["venue_a"].close(),
        components["venue_b"].close(),
        return_exceptions=True,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Run the engine for the lifetime of the status API application.

    On startup: connects venues, starts the orchestrator as a background task.
    On shutdown: stops the orchestrator, cancels its task, closes venues.
    """
    logger = get_logger("funding_arb.main")
    components = app.state.components
    orchestrator = components["orchestrator"]
    app.state.orchestrator = orchestrator

    await _connect_venues(components)
    engine_task = asyncio.create_task(orchestrator.start())
    logger.info("lifespan_started")

    yield

    await orchestrator.stop()
    engine_task.cancel()
    try:
        await engine_task
    except asyncio.CancelledError:
        pass

    await _close_venues(components)
    logger.info("funding_rate_arbitrage_stopped")


async def run(settings: AppSettings) -> None:
    """Run the engine, with or without the status API."""
    logger = get_logger("funding_arb.main")
    components = build_components(settings)

    if settings.api.enabled:
        from funding_arb.api.app import create_api_app

        app = create_api_app(lifespan=lifespan)
        app.state.components = components

        logger.info("starting_with_api", host=settings.api.host, port=settings.api.port)

        config = uvicorn.Config(
            app,
            host=settings.api.host,
            port=settings.api.port,
            log_level="warning",  # Suppress uvicorn access logs
        )
        server = uvicorn.Server(config)
        await server.serve()
        return

    orchestrator = components["orchestrator"]
    _setup_signal_handlers(orchestrator)
    logger.info(
        "starting_without_api",
        venue_a=settings.venue_a.display_name,
        venue_b=settings.venue_b.display_name,
        max_position_notional=str(settings.strategy.max_position_notional),
        max_daily_notional=str(settings.strategy.max_daily_notional),
    )
    try:
        await _connect_venues(components)
        await orchestrator.start()
    finally:
        await _close_venues(components)
        logger.info("funding_rate_arbitrage_stopped")


def main() -> None:
    """Synchronous entry point: load, validate, and run."""
    settings = AppSettings()
    setup_logging(settings.log_level, settings.log_format)
    logger = get_logger("funding_arb.main")

    try:
        validate_settings(settings)
    except ConfigurationError as e:
        logger.critical("configuration_error", error=str(e))
        sys.exit(2)

    try:
        asyncio.run(run(settings))
    except ConfigurationError as e:
        logger.critical("configuration_error", error=str(e))
        sys.exit(2)


if __name__ == "__main__":
    main()
