"""Signal layer -- spread volatility, entry threshold, and opportunity detection."""

from funding_arb.signals.basis import compute_basis_divergence, is_valid_reading, oriented_spread
from funding_arb.signals.detector import OpportunityDetector
from funding_arb.signals.threshold import ThresholdPolicy
from funding_arb.signals.volatility import SpreadVolatilityTracker, population_std_dev

__all__ = [
    "OpportunityDetector",
    "SpreadVolatilityTracker",
    "ThresholdPolicy",
    "compute_basis_divergence",
    "is_valid_reading",
    "oriented_spread",
    "population_std_dev",
]
