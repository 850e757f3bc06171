"""
Sentinel API Module

FastAPI application over the risk manager.
"""

from .main import create_app

__all__ = ["create_app"]
