"""
Position Module

The Position record and its directional type. PnL is derived on read from
type, entry price, current price and quantity and is never stored.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional


def _generate_position_id() -> str:
    """Generate a unique position ID."""
    return f"pos_{datetime.now().strftime('%Y%m%d%H%M%S')}_{uuid.uuid4().hex[:8]}"


class PositionType(Enum):
    """Direction of the bet."""

    LONG = "LONG"
    SHORT = "SHORT"


@dataclass
class Position:
    """A single open holding."""

    symbol: str
    entry_price: float
    current_price: float
    quantity: int
    position_type: PositionType = PositionType.LONG
    name: str = ""
    risk_score: float = 50.0
    allocation_pct: float = 0.0
    last_updated: datetime = field(default_factory=datetime.now)
    source_url: Optional[str] = None
    position_id: str = field(default_factory=_generate_position_id)

    def __post_init__(self):
        if not self.name:
            self.name = self.symbol

    @property
    def market_value(self) -> float:
        """Current market value of the position."""
        return self.current_price * self.quantity

    @property
    def unrealized_pnl(self) -> float:
        """Unrealized profit/loss, sign-flipped for shorts."""
        if self.position_type is PositionType.SHORT:
            return (self.entry_price - self.current_price) * self.quantity
        return (self.current_price - self.entry_price) * self.quantity

    @property
    def unrealized_pnl_percent(self) -> float:
        """Unrealized P&L as percentage of entry price."""
        if self.entry_price == 0:
            return 0.0
        change = (self.current_price - self.entry_price) / self.entry_price * 100
        return -change if self.position_type is PositionType.SHORT else change

    def to_dict(self) -> Dict[str, Any]:
        """Convert position to dictionary."""
        return {
            "id": self.position_id,
            "symbol": self.symbol,
            "name": self.name,
            "type": self.position_type.value,
            "entryPrice": self.entry_price,
            "currentPrice": self.current_price,
            "quantity": self.quantity,
            "marketValue": self.market_value,
            "unrealizedPnL": self.unrealized_pnl,
            "unrealizedPnLPercent": self.unrealized_pnl_percent,
            "riskScore": self.risk_score,
            "allocationPct": self.allocation_pct,
            "lastUpdated": self.last_updated.isoformat(),
            "sourceUrl": self.source_url,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Position":
        """Create a Position from the mapping produced by to_dict."""
        last_updated = data.get("lastUpdated")
        return cls(
            position_id=data["id"],
            symbol=data["symbol"],
            name=data.get("name", ""),
            position_type=PositionType(data.get("type", PositionType.LONG.value)),
            entry_price=float(data["entryPrice"]),
            current_price=float(data.get("currentPrice", data["entryPrice"])),
            quantity=int(data["quantity"]),
            risk_score=float(data.get("riskScore", 50.0)),
            allocation_pct=float(data.get("allocationPct", 0.0)),
            last_updated=datetime.fromisoformat(last_updated) if last_updated else datetime.now(),
            source_url=data.get("sourceUrl"),
        )
