"""
Sentinel Portfolio Router

Portfolio summary, positions, snapshots, opening positions and price
refreshes.
"""

import logging

from fastapi import APIRouter, Depends

from sentinel.core.core import RiskManager

from .base import ApiResponse, OpenPositionRequest, create_response, get_manager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/portfolio", tags=["Portfolio"])


@router.get("", response_model=ApiResponse)
async def get_portfolio(manager: RiskManager = Depends(get_manager)):
    """Portfolio summary: cash, value, PnL and value-weighted risk."""
    return create_response(data=manager.portfolio().to_dict())


@router.get("/positions", response_model=ApiResponse)
async def get_positions(manager: RiskManager = Depends(get_manager)):
    """Open positions in insertion order."""
    return create_response(data=[p.to_dict() for p in manager.positions()])


@router.post("/positions", response_model=ApiResponse, status_code=201)
async def open_position(
    request: OpenPositionRequest,
    manager: RiskManager = Depends(get_manager),
):
    """Open a position at the given price."""
    position = await manager.open_position(
        request.symbol,
        request.quantity,
        request.price,
        position_type=request.type,
        name=request.name,
    )
    return create_response(data=position.to_dict())


@router.post("/refresh", response_model=ApiResponse)
async def refresh_prices(manager: RiskManager = Depends(get_manager)):
    """Fetch live prices for every held symbol."""
    updated = await manager.request_price_refresh()
    return create_response(data={
        "updated": updated,
        "portfolio": manager.portfolio().to_dict(),
    })


@router.get("/snapshot", response_model=ApiResponse)
async def get_snapshot(manager: RiskManager = Depends(get_manager)):
    """Serializable book state, the same payload handed to analysis."""
    return create_response(data=manager.snapshot())
