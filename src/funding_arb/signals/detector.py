"""Opportunity detection from a pair of simultaneous funding rates.

Sign convention: spread = rate_a - rate_b. The venue with the higher rate
is always the long leg, because being long there captures the payment.

detect() is NOT idempotent with respect to volatility state:
every call with a valid pair records one spread sample, mirroring "another
observation occurred". Calling it twice with the same input is two
observations.
"""

from decimal import Decimal

from funding_arb.config import StrategySettings
from funding_arb.logging import get_logger
from funding_arb.models import Opportunity
from funding_arb.signals.basis import is_valid_reading
from funding_arb.signals.threshold import ThresholdPolicy
from funding_arb.signals.volatility import SpreadVolatilityTracker

logger = get_logger(__name__)


class OpportunityDetector:
    """Classifies a rate pair as a trade opportunity or nothing.

    Args:
        settings: Strategy settings (base threshold, dynamic flag).
        tracker: Spread history shared with the orchestrator's accessors.
        policy: Threshold policy.
        venue_a: Name of the venue that supplies rate_a.
        venue_b: Name of the venue that supplies rate_b.
    """

    def __init__(
        self,
        settings: StrategySettings,
        tracker: SpreadVolatilityTracker,
        policy: ThresholdPolicy,
        venue_a: str = "venue_a",
        venue_b: str = "venue_b",
    ) -> None:
        self._settings = settings
        self._tracker = tracker
        self._policy = policy
        self._venue_a = venue_a
        self._venue_b = venue_b

    @property
    def tracker(self) -> SpreadVolatilityTracker:
        return self._tracker

    def current_threshold(self, now: float) -> Decimal:
        """Threshold that would apply to a detection at now (read-only)."""
        return self._policy.effective_threshold(
            self._settings.min_funding_spread,
            self._settings.use_dynamic_spread,
            self._tracker,
            now,
        )

    def detect(self, rate_a: Decimal, rate_b: Decimal, now: float) -> Opportunity | None:
        """Detect an opportunity between venue A and venue B.

        Args:
            rate_a: Funding rate on venue A (fraction per interval).
            rate_b: Funding rate on venue B.
            now: Observation time (Unix seconds).

        Returns:
            Opportunity when abs(spread) > effective threshold, else None.
            Always None when either rate is 0 (no reading yet) or NaN;
            such pairs are not recorded in the spread history.
        """
        if not (is_valid_reading(rate_a) and is_valid_reading(rate_b)):
            return None

        spread = rate_a - rate_b
        self._tracker.record(spread, now)
        threshold = self.current_threshold(now)

        if abs(spread) <= threshold:
            logger.debug(
                "spread_below_threshold",
                spread=str(spread),
                threshold=str(threshold),
            )
            return None

        if spread > 0:
            long_venue, short_venue = self._venue_a, self._venue_b
        else:
            long_venue, short_venue = self._venue_b, self._venue_a

        return Opportunity(
            long_venue=long_venue,
            short_venue=short_venue,
            spread=spread,
            effective_threshold=threshold,
            rate_a=rate_a,
            rate_b=rate_b,
            detected_at=now,
        )
