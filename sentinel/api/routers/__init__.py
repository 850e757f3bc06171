"""
Sentinel API Routers

Each router covers one area of the risk manager:
- portfolio: summary, positions, price refresh
- recommendations: analysis, execution, dismissal
- activity: the user-facing activity log
- system: health and the simulation tick
"""

from fastapi import FastAPI

from .activity import router as activity_router
from .portfolio import router as portfolio_router
from .recommendations import router as recommendations_router
from .system import router as system_router

__all__ = [
    "activity_router",
    "portfolio_router",
    "recommendations_router",
    "system_router",
    "register_routers",
]


def register_routers(app: FastAPI) -> None:
    """Include every router on the app."""
    for router in (system_router, portfolio_router, recommendations_router, activity_router):
        app.include_router(router)
