"""Venue layer -- exchange-agnostic adapter interface and its ccxt implementation."""

from funding_arb.venues.adapter import VenueAdapter
from funding_arb.venues.ccxt_adapter import CcxtVenueAdapter

__all__ = ["CcxtVenueAdapter", "VenueAdapter"]
