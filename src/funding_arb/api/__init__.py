"""Read-only status API -- exposes engine accessors as JSON."""

from funding_arb.api.app import create_api_app

__all__ = ["create_api_app"]
