"""JSON endpoints over the orchestrator's read-only accessors."""

from __future__ import annotations

from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse

from funding_arb.models import Position

health_router = APIRouter()
router = APIRouter()


def _position_to_dict(position: Position) -> dict:
    return {
        "id": position.id,
        "symbol": position.symbol,
        "long_venue": position.long_venue,
        "short_venue": position.short_venue,
        "notional": str(position.notional),
        "leverage": str(position.leverage),
        "entry_time": position.entry_time,
        "entry_spread": str(position.entry_spread),
        "entry_threshold": str(position.entry_threshold),
        "status": position.status.value,
        "close_time": position.close_time,
        "close_reason": position.close_reason.value if position.close_reason else None,
    }


@health_router.get("/health")
async def health(request: Request) -> JSONResponse:
    orchestrator = request.app.state.orchestrator
    running = orchestrator is not None and orchestrator.is_running
    return JSONResponse(content={"status": "ok", "running": running})


@router.get("/status")
async def get_status(request: Request) -> JSONResponse:
    """Engine status: risk usage, volatility, threshold, and tick counters."""
    return JSONResponse(content=request.app.state.orchestrator.get_status())


@router.get("/positions")
async def get_positions(
    request: Request,
    status: str | None = Query(default=None, pattern="^(active|closed)$"),
) -> JSONResponse:
    """All positions (audit trail), optionally filtered by status."""
    orchestrator = request.app.state.orchestrator
    positions = orchestrator.get_positions()
    if status is not None:
        positions = [p for p in positions if p.status.value == status]
    return JSONResponse(content=[_position_to_dict(p) for p in positions])


@router.get("/spread-history")
async def get_spread_history(request: Request) -> JSONResponse:
    """Spread samples currently inside the volatility lookback window."""
    history = request.app.state.orchestrator.get_spread_history()
    return JSONResponse(
        content=[{"timestamp": s.timestamp, "spread": str(s.spread)} for s in history]
    )
