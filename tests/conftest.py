"""
Shared test fixtures for the Sentinel test suite.
"""

import numpy as np
import pytest

from sentinel.activity import ActivityLog
from sentinel.config.settings import SentinelSettings
from sentinel.core.core import RiskManager
from sentinel.data.providers import StaticAnalysisSource, StaticPriceSource
from sentinel.execution import ExecutionEngine
from sentinel.portfolio import PositionBook
from sentinel.signals import Recommendation, RecommendationAction, RecommendationQueue


@pytest.fixture
def rng():
    """Seeded generator for reproducible simulation."""
    return np.random.default_rng(42)


@pytest.fixture
def settings():
    """Default settings with a short fetch timeout."""
    return SentinelSettings(sources={"fetch_timeout_seconds": 0.5})


@pytest.fixture
def book():
    """Empty book with no cash."""
    return PositionBook()


@pytest.fixture
def funded_book():
    """Book with 5000 cash and two long positions."""
    book = PositionBook(cash=5000.0)
    book.open("RELIANCE", 100, 100.0)
    book.open("TCS", 20, 250.0)
    return book


@pytest.fixture
def queue():
    return RecommendationQueue()


@pytest.fixture
def activity_log():
    return ActivityLog()


@pytest.fixture
def engine(funded_book, queue, activity_log):
    return ExecutionEngine(funded_book, queue, activity_log)


@pytest.fixture
def make_recommendation():
    """Factory for recommendations on a symbol."""

    def _make(symbol="RELIANCE", action=RecommendationAction.EXIT, suggested_quantity=None, **kwargs):
        return Recommendation(
            symbol=symbol,
            action=action,
            confidence=kwargs.pop("confidence", 80.0),
            reasoning=kwargs.pop("reasoning", "test"),
            suggested_quantity=suggested_quantity,
            **kwargs,
        )

    return _make


@pytest.fixture
def price_source():
    return StaticPriceSource({"RELIANCE": 110.0, "TCS": 240.0})


@pytest.fixture
def analysis_source():
    return StaticAnalysisSource([
        {"positionId": "RELIANCE", "action": "REDUCE", "confidence": 85, "reasoning": "Concentration"},
        {"positionId": "TCS", "action": "HOLD", "confidence": 60, "reasoning": "Stable"},
    ])


@pytest.fixture
def manager(settings, price_source, analysis_source):
    """Risk manager over static sources with an empty book."""
    return RiskManager(settings, price_source=price_source, analysis_source=analysis_source)
