"""Arbitrage orchestrator -- drives detection, admission, and lifecycle sweeps.

Three periodic jobs, each its own asyncio task:
  1. OPPORTUNITY CHECK (default hourly, once at start): read both funding
     rates, detect, admit via RiskLedger, open via PositionLifecycleManager
  2. SWEEP (default every minute): refresh mid prices for active positions
     and force-close any that breach age, basis, or stop-loss limits
  3. DAILY RESET (default hourly): zero the daily notional once 24h passed

The two fast/slow cadences are decoupled: opportunity checks are rate-limited
API calls, sweeps are mostly local-clock computation over known positions.

All ticks share one asyncio.Lock, so each tick runs to completion before any
other tick touches RiskLedger, spread history, or positions. Engine state is
only mutated after a tick's network awaits have returned.

Failure policy: a venue error or invalid reading skips the tick (fail-safe).
On stop, open positions are deliberately left open -- no liquidation on
shutdown.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import asdict
from decimal import Decimal

from funding_arb.config import AppSettings
from funding_arb.exceptions import RiskLimitExceeded, VenueError
from funding_arb.logging import get_logger, tick_context
from funding_arb.models import Opportunity, Position, SpreadSample, TickStats, VenueQuote
from funding_arb.position.lifecycle import PositionLifecycleManager
from funding_arb.risk.ledger import RiskLedger
from funding_arb.signals.basis import is_valid_reading
from funding_arb.signals.detector import OpportunityDetector
from funding_arb.venues.adapter import VenueAdapter

logger = get_logger(__name__)

# Pause after an unexpected loop error before the next attempt
_ERROR_BACKOFF_SECONDS = 10.0


class ArbitrageOrchestrator:
    """Control loop for one two-venue funding arbitrage.

    Args:
        settings: Application-wide settings (symbols, schedule).
        venue_a: Adapter supplying rate_a.
        venue_b: Adapter supplying rate_b.
        detector: Opportunity detector (owns the spread tracker).
        risk_ledger: Daily notional ledger.
        lifecycle: Position lifecycle manager.
        clock: Time source in Unix seconds; injectable for tests.
    """

    def __init__(
        self,
        settings: AppSettings,
        venue_a: VenueAdapter,
        venue_b: VenueAdapter,
        detector: OpportunityDetector,
        risk_ledger: RiskLedger,
        lifecycle: PositionLifecycleManager,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._settings = settings
        self._venue_a = venue_a
        self._venue_b = venue_b
        self._detector = detector
        self._risk_ledger = risk_ledger
        self._lifecycle = lifecycle
        self._clock = clock
        self._tick_lock = asyncio.Lock()
        self._running = False
        self._tasks: list[asyncio.Task] = []  # type: ignore[type-arg]
        self._stats = TickStats()
        self._last_rates: dict[str, Decimal] = {}

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Run all periodic jobs until stop() is called or the task is cancelled."""
        schedule = self._settings.schedule
        logger.info(
            "orchestrator_starting",
            venue_a=self._venue_a.name,
            venue_b=self._venue_b.name,
            min_spread=str(self._settings.strategy.min_funding_spread),
            dynamic_spread=self._settings.strategy.use_dynamic_spread,
            check_interval=schedule.opportunity_check_interval,
            sweep_interval=schedule.sweep_interval,
        )
        self._running = True
        self._tasks = [
            asyncio.create_task(
                self._periodic("opportunity_check", schedule.opportunity_check_interval, self.check_opportunity)
            ),
            asyncio.create_task(
                self._periodic("sweep", schedule.sweep_interval, self._sweep_tick, run_immediately=False)
            ),
            asyncio.create_task(
                self._periodic(
                    "daily_reset",
                    schedule.daily_reset_check_interval,
                    self._reset_tick,
                    run_immediately=False,
                )
            ),
        ]
        try:
            await asyncio.gather(*self._tasks)
        except asyncio.CancelledError:
            pass
        finally:
            await self._cancel_tasks()
            logger.info(
                "orchestrator_stopped",
                positions_left_open=len(self._lifecycle.get_active_positions()),
            )

    async def stop(self) -> None:
        """Signal the orchestrator to stop. Open positions stay open."""
        logger.info("orchestrator_stopping_gracefully")
        self._running = False
        await self._cancel_tasks()

    async def _cancel_tasks(self) -> None:
        current = asyncio.current_task()
        pending = [t for t in self._tasks if t is not current and not t.done()]
        for task in pending:
            task.cancel()
        for task in pending:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._tasks = []

    async def _periodic(
        self,
        job: str,
        interval: float,
        tick: Callable[[], Awaitable[object]],
        run_immediately: bool = True,
    ) -> None:
        """Run tick every interval seconds; errors are logged, never fatal."""
        if not run_immediately:
            await asyncio.sleep(interval)
        while self._running:
            try:
                await tick()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error("orchestrator_tick_error", job=job, error=str(e), exc_info=True)
                await asyncio.sleep(min(interval, _ERROR_BACKOFF_SECONDS))
                continue
            await asyncio.sleep(interval)

    # ------------------------------------------------------------------
    # Ticks
    # ------------------------------------------------------------------

    async def check_opportunity(self) -> Opportunity | None:
        """One opportunity-check tick.

        Returns:
            The detected Opportunity (whether or not a position was opened),
            or None when the tick was skipped or the spread is below threshold.
        """
        async with self._tick_lock:
            with tick_context("opportunity_check"):
                return await self._check_opportunity_locked()

    async def _check_opportunity_locked(self) -> Opportunity | None:
        self._stats.checks += 1
        results = await asyncio.gather(
            self._venue_a.get_funding_rate(self._settings.venue_a.symbol),
            self._venue_b.get_funding_rate(self._settings.venue_b.symbol),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, VenueError):
                logger.warning("venue_read_failed", venue=result.venue, error=str(result))
                self._skip(f"venue_error:{result.venue}")
                return None
            if isinstance(result, BaseException):
                raise result
        rate_a, rate_b = results

        now = self._clock()
        self._stats.last_check_at = now
        self._risk_ledger.reset_if_due(now)

        if not (is_valid_reading(rate_a) and is_valid_reading(rate_b)):
            logger.info(
                "invalid_funding_rate",
                rate_a=str(rate_a),
                rate_b=str(rate_b),
                note="0 or NaN reading, skipping tick",
            )
            self._skip("invalid_rate")
            return None

        self._last_rates = {self._venue_a.name: rate_a, self._venue_b.name: rate_b}

        opportunity = self._detector.detect(rate_a, rate_b, now)
        volatility = self._detector.tracker.volatility(now)
        logger.info(
            "funding_rate_check",
            rate_a=str(rate_a),
            rate_b=str(rate_b),
            spread=str(rate_a - rate_b),
            volatility=str(volatility),
            threshold=str(self._detector.current_threshold(now)),
            opportunity=opportunity is not None,
        )
        if opportunity is None:
            return None

        self._stats.opportunities += 1
        logger.info(
            "opportunity_detected",
            long_venue=opportunity.long_venue,
            short_venue=opportunity.short_venue,
            spread=str(opportunity.spread),
            threshold=str(opportunity.effective_threshold),
        )

        if not self._risk_ledger.can_open():
            self._stats.rejected += 1
            logger.info(
                "capacity_exceeded",
                daily_notional_used=str(self._risk_ledger.daily_notional_used),
                max_daily_notional=str(self._risk_ledger.max_daily_notional),
            )
            return opportunity

        try:
            self._lifecycle.open(opportunity, now)
        except RiskLimitExceeded as e:
            self._stats.rejected += 1
            logger.info("capacity_exceeded", reason=str(e))
            return opportunity

        self._stats.opened += 1
        return opportunity

    async def _sweep_tick(self) -> list[Position]:
        """Sweep with fresh mid prices and the last good funding rates."""
        async with self._tick_lock:
            if not self._lifecycle.get_active_positions():
                return []
            with tick_context("sweep"):
                quotes = await self._fetch_quotes()
                return self._sweep_locked(self._clock(), quotes)

    async def _fetch_quotes(self) -> dict[str, VenueQuote]:
        """Mid prices for both venues; a failed read contributes rates only.

        Any read failure becomes a missing price, so the local-clock timeout
        check in the sweep never depends on a healthy price feed.
        """
        results = await asyncio.gather(
            self._venue_a.get_mid_price(self._settings.venue_a.symbol),
            self._venue_b.get_mid_price(self._settings.venue_b.symbol),
            return_exceptions=True,
        )
        quotes: dict[str, VenueQuote] = {}
        for venue, result in zip((self._venue_a, self._venue_b), results):
            if isinstance(result, Exception):
                logger.warning(
                    "venue_price_read_failed",
                    venue=venue.name,
                    error=repr(result),
                )
                price = None
            elif isinstance(result, BaseException):
                raise result
            else:
                price = result
            quotes[venue.name] = VenueQuote(
                venue=venue.name,
                funding_rate=self._last_rates.get(venue.name),
                mid_price=price,
            )
        return quotes

    async def _reset_tick(self) -> bool:
        async with self._tick_lock:
            with tick_context("daily_reset"):
                return self._risk_ledger.reset_if_due(self._clock())

    def sweep_positions(
        self,
        now: float | None = None,
        quotes: dict[str, VenueQuote] | None = None,
    ) -> list[Position]:
        """Run the lifecycle sweep with caller-supplied time and quotes.

        Synchronous and lock-free: ticks only mutate state after their
        awaits complete, so a call between awaits sees consistent state.
        """
        return self._sweep_locked(self._clock() if now is None else now, quotes)

    def _sweep_locked(
        self,
        now: float,
        quotes: dict[str, VenueQuote] | None,
    ) -> list[Position]:
        self._stats.sweeps += 1
        closed = self._lifecycle.sweep(now, quotes)
        self._stats.closed += len(closed)
        return closed

    def _skip(self, reason: str) -> None:
        self._stats.skipped += 1
        self._stats.last_skip_reason = reason

    # ------------------------------------------------------------------
    # Read-only accessors
    # ------------------------------------------------------------------

    def get_spread_history(self) -> list[SpreadSample]:
        return self._detector.tracker.history()

    def get_current_volatility(self) -> Decimal:
        return self._detector.tracker.volatility(self._clock())

    def get_active_positions(self) -> list[Position]:
        return self._lifecycle.get_active_positions()

    def get_positions(self) -> list[Position]:
        return self._lifecycle.get_positions()

    def get_daily_notional_used(self) -> Decimal:
        return self._risk_ledger.daily_notional_used

    def get_tick_stats(self) -> TickStats:
        return TickStats(**asdict(self._stats))

    @property
    def is_running(self) -> bool:
        """Whether the periodic jobs are active."""
        return self._running

    def get_status(self) -> dict:
        """Return a JSON-friendly status snapshot.

        Returns:
            Dict with: running, venues, risk usage, volatility, threshold,
            active position count, tick stats. Decimals are strings.
        """
        now = self._clock()
        return {
            "running": self._running,
            "venue_a": self._venue_a.name,
            "venue_b": self._venue_b.name,
            "daily_notional_used": str(self._risk_ledger.daily_notional_used),
            "max_daily_notional": str(self._risk_ledger.max_daily_notional),
            "remaining_capacity": str(self._risk_ledger.remaining_capacity),
            "last_daily_reset": self._risk_ledger.last_reset_time,
            "volatility": str(self._detector.tracker.volatility(now)),
            "effective_threshold": str(self._detector.current_threshold(now)),
            "spread_samples": len(self._detector.tracker),
            "active_positions": len(self._lifecycle.get_active_positions()),
            "last_rates": {k: str(v) for k, v in self._last_rates.items()},
            "ticks": asdict(self._stats),
        }
