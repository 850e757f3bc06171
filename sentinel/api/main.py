"""
Sentinel REST API
=================

FastAPI surface over a single RiskManager: read views of the portfolio,
queue and activity log, plus the five commands.

Usage:
    uvicorn sentinel.api.main:build_app --factory --reload --port 8000

Environment Variables:
    SENTINEL_CONFIG: Path to the YAML settings file
    SENTINEL_LOG_LEVEL: Process log level
    SENTINEL_INITIAL_CASH: Starting cash
    SENTINEL_FETCH_TIMEOUT: Seconds before a fetch is abandoned
"""

import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from sentinel.api.routers import register_routers
from sentinel.api.routers.base import get_timestamp
from sentinel.config.logging import configure_logging
from sentinel.config.settings import SentinelSettings, load_settings
from sentinel.core.core import RiskManager
from sentinel.core.errors import SentinelError

logger = logging.getLogger(__name__)

DEFAULT_CORS_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:5173",
]


# =============================================================================
# Application Lifecycle
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Log startup and shutdown; the manager itself lives on app.state."""
    manager: RiskManager = app.state.manager
    logger.info(
        "Sentinel API ready (price source=%s, %d positions)",
        manager.price_source.name,
        len(manager.book),
    )

    yield

    logger.info("Sentinel API shutting down...")


# =============================================================================
# Application Factory
# =============================================================================


def create_app(
    manager: Optional[RiskManager] = None,
    settings: Optional[SentinelSettings] = None,
) -> FastAPI:
    """
    Application factory.

    Args:
        manager: Pre-built manager, e.g. with test sources
        settings: Settings for a new manager; loaded from YAML and env when omitted

    Returns:
        Configured FastAPI application instance
    """
    if manager is None:
        settings = settings or load_settings(os.environ.get("SENTINEL_CONFIG"))
        manager = RiskManager(settings)

    app = FastAPI(
        title="Sentinel API",
        description="Agentic risk manager - portfolio, recommendations and activity",
        version="0.1.0",
        lifespan=lifespan,
        openapi_tags=[
            {"name": "System", "description": "Health checks and simulation"},
            {"name": "Portfolio", "description": "Positions, cash and price refresh"},
            {"name": "Recommendations", "description": "Analysis, execution and dismissal"},
            {"name": "Activity", "description": "User-facing activity log"},
        ],
    )
    app.state.manager = manager

    app.add_middleware(
        CORSMiddleware,
        allow_origins=DEFAULT_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_routers(app)

    @app.exception_handler(SentinelError)
    async def sentinel_error_handler(request: Request, exc: SentinelError):
        """Map domain errors to their registered HTTP status."""
        exc.log()
        return JSONResponse(
            status_code=exc.http_status,
            content={
                "success": False,
                "data": exc.to_dict(),
                "error": exc.detail or exc.error_code.message,
                "timestamp": get_timestamp(),
            },
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        """Handle HTTP exceptions with structured response."""
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "success": False,
                "data": None,
                "error": exc.detail,
                "timestamp": get_timestamp(),
            },
            headers=exc.headers,
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Handle uncaught exceptions with structured response."""
        logger.error(f"Unhandled error on {request.url.path}: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "data": None,
                "error": "Internal server error",
                "timestamp": get_timestamp(),
            },
        )

    return app


def build_app() -> FastAPI:
    """Load settings, configure logging and build the app; used by uvicorn."""
    settings = load_settings(os.environ.get("SENTINEL_CONFIG"))
    configure_logging(
        level=settings.logging.level,
        json_format=settings.logging.json_format,
        service_name=settings.logging.service_name,
        environment=settings.logging.environment,
        log_file=settings.logging.log_file,
    )
    return create_app(settings=settings)



def run_server(host: str = "0.0.0.0", port: int = 8000, reload: bool = False):
    """Run the development server."""
    import uvicorn

    uvicorn.run(
        "sentinel.api.main:build_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
    )


if __name__ == "__main__":
    run_server(reload=True)
