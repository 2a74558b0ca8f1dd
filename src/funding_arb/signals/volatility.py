"""Rolling spread history and realized volatility.

Every valid funding-rate observation lands here as a SpreadSample. The
history is pruned on insert so it only ever holds the lookback window;
volatility() is read-only and additionally ignores samples that have aged
out since the last insert.

CRITICAL: All computations use Decimal. Never use float.
"""

from collections import deque
from collections.abc import Iterable
from decimal import Decimal

from funding_arb.models import SpreadSample

DEFAULT_LOOKBACK_SECONDS = 24 * 60 * 60


def population_std_dev(values: Iterable[Decimal]) -> Decimal:
    """Population standard deviation (N denominator).

    Returns Decimal("0") for fewer than 2 values, which keeps a dynamic
    threshold at its static floor until there is something to measure.
    """
    data = list(values)
    if len(data) < 2:
        return Decimal("0")

    n = Decimal(len(data))
    mean = sum(data, Decimal("0")) / n
    variance = sum((v - mean) ** 2 for v in data) / n
    return variance.sqrt()


class SpreadVolatilityTracker:
    """Time-windowed spread history.

    Args:
        lookback: Window length in seconds (default 24h).
    """

    def __init__(self, lookback: float = DEFAULT_LOOKBACK_SECONDS) -> None:
        self._lookback = lookback
        self._samples: deque[SpreadSample] = deque()

    @property
    def lookback(self) -> float:
        return self._lookback

    def record(self, spread: Decimal, now: float) -> None:
        """Append a sample and purge everything older than the window."""
        self._samples.append(SpreadSample(timestamp=now, spread=spread))
        cutoff = now - self._lookback
        while self._samples and self._samples[0].timestamp < cutoff:
            self._samples.popleft()

    def volatility(self, now: float) -> Decimal:
        """Population standard deviation of spreads inside the window at now."""
        cutoff = now - self._lookback
        return population_std_dev(
            s.spread for s in self._samples if s.timestamp >= cutoff
        )

    def history(self) -> list[SpreadSample]:
        """Return a copy of the retained samples, oldest first."""
        return list(self._samples)

    def __len__(self) -> int:
        return len(self._samples)
