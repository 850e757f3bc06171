"""
Portfolio Module

Position records, the position book with cash, and the price/risk model
that keeps PnL and risk scores in step with observed prices.
"""

from .book import PortfolioSummary, PositionBook
from .position import Position, PositionType
from .risk_model import (
    MarketEvent,
    apply_price_update,
    clamp_risk,
    generate_market_event,
    simulate_next_price,
    simulate_tick,
    volatility_for_risk,
)

__all__ = [
    # Positions
    "Position",
    "PositionType",
    # Book
    "PositionBook",
    "PortfolioSummary",
    # Price/risk model
    "MarketEvent",
    "apply_price_update",
    "clamp_risk",
    "generate_market_event",
    "simulate_next_price",
    "simulate_tick",
    "volatility_for_risk",
]
