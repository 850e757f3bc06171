"""
Price and Risk Model

Pure functions that derive PnL and the heuristic risk score from price
movement, plus the market simulator used when no live price source is
configured. All randomness goes through an injectable numpy Generator.
"""

import logging
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, Optional

import numpy as np

from sentinel.config.settings import RiskSettings

from .position import Position

logger = logging.getLogger(__name__)

DEFAULT_RISK_POLICY = RiskSettings()

# Percent volatility = risk_score / VOLATILITY_DIVISOR + BASE_VOLATILITY
VOLATILITY_DIVISOR = 20.0
BASE_VOLATILITY = 0.5
TREND_BIAS_SCALE = 0.001
MIN_PRICE = 0.01

MOCK_NEWS_HEADLINES = [
    ("Sensex crosses 75,000 mark for the first time led by banking rally.", "BULLISH"),
    ("Nifty 50 slides below 22,000 amid weak global cues and FII selling.", "BEARISH"),
    ("RBI Monetary Policy Committee maintains status quo on repo rate.", "NEUTRAL"),
    ("Major IT companies report steady growth in Q3 earnings.", "BULLISH"),
    ("Rupee hits all-time low against the US dollar impacting importers.", "BEARISH"),
]
EVENT_PROBABILITY = 0.2
HIGH_IMPACT_DRAW = 0.7


@dataclass
class MarketEvent:
    """Simulated news headline."""

    headline: str
    sentiment: str  # BULLISH, BEARISH, NEUTRAL
    impact_level: str  # MEDIUM, HIGH
    timestamp: datetime = field(default_factory=datetime.now)
    event_id: str = field(default_factory=lambda: f"news_{uuid.uuid4().hex[:8]}")
    affected_sector: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.event_id,
            "headline": self.headline,
            "sentiment": self.sentiment,
            "impactLevel": self.impact_level,
            "affectedSector": self.affected_sector,
            "timestamp": self.timestamp.isoformat(),
        }


def clamp_risk(score: float, floor: float = 0.0, ceiling: float = 100.0) -> float:
    """Clamp a risk score into [floor, ceiling]."""
    return min(ceiling, max(floor, score))


def _default_rng(rng: Optional[np.random.Generator]) -> np.random.Generator:
    return rng if rng is not None else np.random.default_rng()


def apply_price_update(
    position: Position,
    new_price: float,
    provenance: Optional[str] = None,
    policy: RiskSettings = DEFAULT_RISK_POLICY,
) -> Position:
    """
    Apply an observed price to a position.

    The risk score moves by +loss_step when the resulting PnL is negative and
    by -gain_step otherwise, then is clamped to [refresh_floor, ceiling].

    Args:
        position: Position to update (not mutated)
        new_price: Observed price, positive and finite
        provenance: Optional URL or label of the price source
        policy: Risk step and clamp settings

    Returns:
        Updated copy of the position
    """
    updated = replace(position, current_price=new_price)
    step = policy.loss_step if updated.unrealized_pnl < 0 else -policy.gain_step
    updated.risk_score = clamp_risk(position.risk_score + step, policy.refresh_floor, policy.ceiling)
    updated.last_updated = datetime.now()
    updated.source_url = provenance
    return updated


def volatility_for_risk(risk_score: float) -> float:
    """Per-position volatility in percent; higher risk means more variance."""
    return risk_score / VOLATILITY_DIVISOR + BASE_VOLATILITY


def simulate_next_price(
    current_price: float,
    risk_score: float,
    global_trend_bias: float = 0.0,
    rng: Optional[np.random.Generator] = None,
    min_price: float = MIN_PRICE,
) -> float:
    """
    Simulate the next tick for one position.

    A symmetric uniform perturbation scaled by the risk-derived volatility
    plus a small drift from the global trend bias, floored at min_price.

    Args:
        current_price: Last price
        risk_score: Position risk score (0-100)
        global_trend_bias: Market-wide drift, positive for up
        rng: Random source; a fresh default_rng when omitted
        min_price: Strictly positive floor

    Returns:
        Simulated price, never below min_price
    """
    draw = _default_rng(rng).random()
    change_pct = (draw - 0.5) * 2 * (volatility_for_risk(risk_score) / 100)
    drift = current_price * global_trend_bias * TREND_BIAS_SCALE
    return max(min_price, current_price * (1 + change_pct) + drift)


def simulate_tick(
    position: Position,
    global_trend_bias: float = 0.0,
    rng: Optional[np.random.Generator] = None,
    policy: RiskSettings = DEFAULT_RISK_POLICY,
) -> Position:
    """
    Advance a position by one simulated tick.

    Large moves away from entry raise the risk score, near-flat positions
    slowly lower it towards refresh_floor. The general clamp applies.
    """
    new_price = simulate_next_price(position.current_price, position.risk_score, global_trend_bias, rng)
    risk = position.risk_score
    move = abs((new_price - position.entry_price) / position.entry_price)
    if move > policy.simulated_move_threshold:
        risk += policy.simulated_move_step
    if move < policy.simulated_calm_threshold:
        risk = max(policy.refresh_floor, risk - policy.simulated_calm_step)

    return replace(
        position,
        current_price=new_price,
        risk_score=clamp_risk(risk, policy.floor, policy.ceiling),
        last_updated=datetime.now(),
    )


def generate_market_event(rng: Optional[np.random.Generator] = None) -> Optional[MarketEvent]:
    """Occasionally produce a mock headline; None on most ticks."""
    rng = _default_rng(rng)
    if rng.random() > EVENT_PROBABILITY:
        return None
    headline, sentiment = MOCK_NEWS_HEADLINES[int(rng.integers(len(MOCK_NEWS_HEADLINES)))]
    impact = "HIGH" if rng.random() > HIGH_IMPACT_DRAW else "MEDIUM"
    return MarketEvent(headline=headline, sentiment=sentiment, impact_level=impact)


__all__ = [
    "MarketEvent",
    "apply_price_update",
    "clamp_risk",
    "generate_market_event",
    "simulate_next_price",
    "simulate_tick",
    "volatility_for_risk",
]
