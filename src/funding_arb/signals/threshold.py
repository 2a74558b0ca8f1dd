"""Entry threshold policy: static floor, optionally widened by volatility.

dynamic = base + volatility * buffer_multiplier

In calm markets the dynamic threshold converges to the static base; in
volatile ones it widens so noise is not mistaken for a dislocation. The
multiplier is a tunable, not a statistically derived bound.
"""

from decimal import Decimal

from funding_arb.signals.volatility import SpreadVolatilityTracker

DEFAULT_BUFFER_MULTIPLIER = Decimal("1.2")


class ThresholdPolicy:
    """Computes the effective entry threshold for a detection.

    Args:
        buffer_multiplier: Weight applied to spread volatility.
    """

    def __init__(self, buffer_multiplier: Decimal = DEFAULT_BUFFER_MULTIPLIER) -> None:
        self._buffer_multiplier = buffer_multiplier

    @property
    def buffer_multiplier(self) -> Decimal:
        return self._buffer_multiplier

    def effective_threshold(
        self,
        base_threshold: Decimal,
        use_dynamic: bool,
        tracker: SpreadVolatilityTracker,
        now: float,
    ) -> Decimal:
        """Return base_threshold, or base + volatility * multiplier when dynamic.

        Never below base_threshold: volatility is non-negative.
        """
        if not use_dynamic:
            return base_threshold
        return base_threshold + tracker.volatility(now) * self._buffer_multiplier
