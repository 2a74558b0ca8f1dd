"""FastAPI application factory for the read-only status API."""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI

from funding_arb.api import routes


def create_api_app(lifespan: Any = None) -> FastAPI:
    """Create and configure the status API application.

    Args:
        lifespan: Optional async context manager for application lifespan events.
                  Used by main.py to start and stop the orchestrator.

    Returns:
        Configured FastAPI application. Route handlers read the orchestrator
        from app.state.orchestrator, which the caller must set.
    """
    app = FastAPI(
        title="Funding Rate Arbitrage Engine",
        lifespan=lifespan,
    )
    app.state.orchestrator = None

    app.include_router(routes.health_router)
    app.include_router(routes.router, prefix="/api")

    return app
