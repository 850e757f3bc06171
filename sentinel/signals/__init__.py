"""
Signals Module

Strategic recommendations from the analysis source and the queue that
holds them until they are executed, dismissed or superseded.
"""

from .queue import RecommendationQueue
from .recommendation import (
    Recommendation,
    RecommendationAction,
    RecommendationStatus,
    recommendations_from_payload,
)

__all__ = [
    "Recommendation",
    "RecommendationAction",
    "RecommendationStatus",
    "RecommendationQueue",
    "recommendations_from_payload",
]
