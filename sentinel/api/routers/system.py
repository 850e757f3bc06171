"""
Sentinel System Router

Health check and a manual simulation tick for demo deployments.
"""

import logging

from fastapi import APIRouter, Depends

from sentinel.core.core import RiskManager

from .base import ApiResponse, create_response, get_manager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["System"])


@router.get("/health", response_model=ApiResponse)
async def health_check(manager: RiskManager = Depends(get_manager)):
    """Component status."""
    return create_response(data=manager.health_check())


@router.post("/simulation/tick", response_model=ApiResponse)
async def simulation_tick(manager: RiskManager = Depends(get_manager)):
    """Advance every position by one simulated tick."""
    event = await manager.simulate_market_tick()
    return create_response(data={
        "event": event.to_dict() if event else None,
        "portfolio": manager.portfolio().to_dict(),
    })
