"""
Sentinel API Router Base Utilities

Response envelope, request models and the dependency that hands routers
the running RiskManager.
"""

import logging
from datetime import datetime
from typing import Any, Optional

import numpy as np
from fastapi import HTTPException, Request
from pydantic import BaseModel, Field

from sentinel.core.core import RiskManager
from sentinel.portfolio import PositionType

logger = logging.getLogger(__name__)


# =============================================================================
# Response Models
# =============================================================================


class ApiResponse(BaseModel):
    """
    Standard API response wrapper.

    Every endpoint returns this envelope so clients can branch on
    ``success`` without inspecting status codes.
    """
    success: bool = Field(..., description="Whether the request succeeded")
    data: Optional[Any] = Field(default=None, description="Response payload")
    error: Optional[str] = Field(default=None, description="Error message if failed")
    timestamp: str = Field(..., description="ISO timestamp of response")


# =============================================================================
# Request Models
# =============================================================================


class OpenPositionRequest(BaseModel):
    """Request body for opening a position."""

    symbol: str = Field(..., description="Ticker symbol", min_length=1, max_length=20, examples=["RELIANCE"])
    quantity: int = Field(..., description="Whole shares, greater than zero")
    price: float = Field(..., description="Entry price, greater than zero")
    type: PositionType = Field(default=PositionType.LONG, description="LONG or SHORT")
    name: Optional[str] = Field(default=None, description="Display name")


# =============================================================================
# Helper Functions
# =============================================================================


def get_timestamp() -> str:
    """Get current ISO timestamp with Z suffix."""
    return datetime.utcnow().isoformat() + "Z"


def convert_numpy_types(obj: Any) -> Any:
    """Convert numpy scalars nested in dicts and lists to native Python types."""
    if isinstance(obj, dict):
        return {k: convert_numpy_types(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [convert_numpy_types(v) for v in obj]
    elif isinstance(obj, np.bool_):
        return bool(obj)
    elif isinstance(obj, np.integer):
        return int(obj)
    elif isinstance(obj, np.floating):
        return float(obj) if not np.isnan(obj) else None
    return obj


def create_response(
    data: Any = None,
    error: Optional[str] = None,
    success: bool = True
) -> ApiResponse:
    """
    Create a standardized API response.

    Example:
        >>> create_response(data={"cash": 1000.0})
        ApiResponse(success=True, data={"cash": 1000.0}, error=None, timestamp="...")
    """
    converted_data = convert_numpy_types(data) if data is not None else None

    return ApiResponse(
        success=success and error is None,
        data=converted_data,
        error=error,
        timestamp=get_timestamp(),
    )


# =============================================================================
# Dependencies
# =============================================================================


def get_manager(request: Request) -> RiskManager:
    """Dependency to get the risk manager, raising 503 if not initialized."""
    manager = getattr(request.app.state, "manager", None)
    if manager is None:
        raise HTTPException(status_code=503, detail="Risk manager not initialized")
    return manager
