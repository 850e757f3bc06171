"""
Sentinel Activity Router
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from sentinel.activity import LogSeverity
from sentinel.core.core import RiskManager

from .base import ApiResponse, create_response, get_manager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/activity", tags=["Activity"])


@router.get("", response_model=ApiResponse)
async def get_activity(
    type: Optional[LogSeverity] = Query(default=None, description="Filter by entry type"),
    limit: Optional[int] = Query(default=None, ge=1, le=10000, description="Most recent N entries"),
    manager: RiskManager = Depends(get_manager),
):
    """Activity entries, oldest first."""
    entries = manager.activity_log.entries(type)
    if limit is not None:
        entries = entries[-limit:]
    return create_response(data=[e.to_dict() for e in entries])
