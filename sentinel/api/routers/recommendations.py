"""
Sentinel Recommendations Router

Pending recommendations, analysis requests, execution and dismissal.
"""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from sentinel.core.core import RiskManager
from sentinel.execution import ExecutionOutcome

from .base import ApiResponse, create_response, get_manager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/recommendations", tags=["Recommendations"])


@router.get("", response_model=ApiResponse)
async def get_recommendations(manager: RiskManager = Depends(get_manager)):
    """Pending recommendations in queue order."""
    return create_response(data=[r.to_dict() for r in manager.recommendations()])


@router.post("/analyze", response_model=ApiResponse)
async def request_analysis(manager: RiskManager = Depends(get_manager)):
    """Run the analysis source; a non-empty batch replaces the queue."""
    recommendations = await manager.request_analysis()
    return create_response(data=[r.to_dict() for r in recommendations])


@router.post("/{recommendation_id}/execute", response_model=ApiResponse)
async def execute_recommendation(
    recommendation_id: str,
    manager: RiskManager = Depends(get_manager),
):
    """
    Execute a pending recommendation.

    Rejections return 409 with the recommendation left pending; unknown ids
    return 404.
    """
    result = await manager.execute_recommendation(recommendation_id)
    if result.succeeded:
        return create_response(data=result.to_dict())

    if result.outcome is ExecutionOutcome.NOT_FOUND:
        status_code = 404
    elif result.error is not None:
        status_code = result.error.http_status
    else:
        status_code = 409
    body = create_response(data=result.to_dict(), error=result.message)
    return JSONResponse(status_code=status_code, content=body.model_dump())


@router.post("/{recommendation_id}/dismiss", response_model=ApiResponse)
async def dismiss_recommendation(
    recommendation_id: str,
    manager: RiskManager = Depends(get_manager),
):
    """Dismiss a pending recommendation; dismissing an unknown id is a no-op."""
    recommendation = await manager.dismiss_recommendation(recommendation_id)
    return create_response(data=recommendation.to_dict() if recommendation else None)
