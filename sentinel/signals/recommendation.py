"""
Recommendation Module

Strategic recommendations produced by an external analysis source, their
lifecycle status, and conversion from raw analysis payloads.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

logger = logging.getLogger(__name__)


def _generate_recommendation_id() -> str:
    """Generate a unique recommendation ID."""
    return f"rec_{datetime.now().strftime('%Y%m%d%H%M%S')}_{uuid.uuid4().hex[:8]}"


class RecommendationAction(Enum):
    """Action proposed for one symbol."""

    HOLD = "HOLD"
    REDUCE = "REDUCE"
    EXIT = "EXIT"
    REALLOCATE = "REALLOCATE"
    BUY_DIP = "BUY_DIP"

    @property
    def is_actionable(self) -> bool:
        return self is not RecommendationAction.HOLD


class RecommendationStatus(Enum):
    """Lifecycle state; everything except PENDING is terminal."""

    PENDING = "PENDING"
    EXECUTED = "EXECUTED"
    DISMISSED = "DISMISSED"
    SUPERSEDED = "SUPERSEDED"

    @property
    def is_terminal(self) -> bool:
        return self is not RecommendationStatus.PENDING

    def can_transition(self, target: "RecommendationStatus") -> bool:
        return self is RecommendationStatus.PENDING and target.is_terminal


@dataclass
class Recommendation:
    """A proposed action on exactly one symbol."""

    symbol: str
    action: RecommendationAction
    confidence: float  # 0 to 100
    reasoning: str = ""
    suggested_quantity: Optional[int] = None
    position_id: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)
    recommendation_id: str = field(default_factory=_generate_recommendation_id)
    status: RecommendationStatus = RecommendationStatus.PENDING

    def __post_init__(self):
        self.symbol = self.symbol.strip().upper()
        self.confidence = min(100.0, max(0.0, float(self.confidence)))
        # Whole shares only; zero means "not given" in analysis payloads
        self.suggested_quantity = _parse_quantity(self.suggested_quantity)
        if self.position_id is None:
            self.position_id = self.symbol

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.recommendation_id,
            "positionId": self.position_id,
            "symbol": self.symbol,
            "action": self.action.value,
            "confidence": round(self.confidence, 2),
            "reasoning": self.reasoning,
            "suggestedQuantity": self.suggested_quantity,
            "timestamp": self.timestamp.isoformat(),
            "status": self.status.value,
        }


def _parse_quantity(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        quantity = int(float(value))
    except (TypeError, ValueError, OverflowError):
        return None
    return quantity if quantity > 0 else None


def recommendations_from_payload(
    items: Iterable[Dict[str, Any]],
    position_ids: Optional[Dict[str, str]] = None,
) -> List[Recommendation]:
    """
    Build recommendations from raw analysis output.

    Each item carries ``positionId`` (the symbol) or ``symbol``, ``action``,
    ``confidence``, ``reasoning`` and optionally ``suggestedQuantity``.
    Items with an unknown action or no symbol are skipped.

    Args:
        items: Decoded JSON objects from the analysis source
        position_ids: Symbol -> position id of the current book

    Returns:
        Recommendations in payload order
    """
    position_ids = position_ids or {}
    recommendations: List[Recommendation] = []
    for item in items:
        symbol = str(item.get("symbol") or item.get("positionId") or "").strip().upper()
        if not symbol:
            logger.debug("Skipping recommendation without symbol: %s", item)
            continue
        try:
            action = RecommendationAction(str(item.get("action", "")).upper())
        except ValueError:
            logger.warning("Skipping recommendation for %s with unknown action %r", symbol, item.get("action"))
            continue
        try:
            confidence = float(item.get("confidence", 0))
        except (TypeError, ValueError):
            confidence = 0.0

        recommendations.append(
            Recommendation(
                symbol=symbol,
                action=action,
                confidence=confidence,
                reasoning=str(item.get("reasoning", "")),
                suggested_quantity=_parse_quantity(item.get("suggestedQuantity")),
                position_id=position_ids.get(symbol, symbol),
            )
        )
    return recommendations


__all__ = [
    "Recommendation",
    "RecommendationAction",
    "RecommendationStatus",
    "recommendations_from_payload",
]
