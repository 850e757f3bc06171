"""
Position Book Module

The authoritative collection of open positions plus free cash. Every
mutating operation validates first and then applies position and cash
together, so a failed call leaves the book untouched.
"""

import logging
import math
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime
from numbers import Integral, Real
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd

from sentinel.config.settings import RiskSettings
from sentinel.core.errors import InsufficientCashError, InvalidInputError, NotFoundError

from .position import Position, PositionType
from .risk_model import DEFAULT_RISK_POLICY, apply_price_update

logger = logging.getLogger(__name__)


@dataclass
class PortfolioSummary:
    """Derived portfolio view; never stored."""

    cash: float
    positions_value: float
    total_value: float
    total_pnl: float
    daily_pnl: float
    risk_score: float
    position_count: int

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "cash": round(self.cash, 2),
            "positionsValue": round(self.positions_value, 2),
            "totalValue": round(self.total_value, 2),
            "totalPnL": round(self.total_pnl, 2),
            "dailyPnL": round(self.daily_pnl, 2),
            "riskScore": round(self.risk_score, 2),
            "positionCount": self.position_count,
        }


def _validate_quantity(quantity: Any) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, Real):
        raise InvalidInputError("quantity must be a number", field="quantity", value=quantity)
    if not isinstance(quantity, Integral):
        if not float(quantity).is_integer():
            raise InvalidInputError("quantity must be a whole number of shares", field="quantity", value=quantity)
        quantity = int(quantity)
    if quantity <= 0:
        raise InvalidInputError("quantity must be positive", field="quantity", value=quantity)
    return int(quantity)


def _validate_price(price: Any, field: str = "price") -> float:
    if isinstance(price, bool) or not isinstance(price, Real):
        raise InvalidInputError(f"{field} must be a number", field=field, value=price)
    price = float(price)
    if not math.isfinite(price) or price <= 0:
        raise InvalidInputError(f"{field} must be positive", field=field, value=price)
    return price


class PositionBook:
    """
    Open positions plus free cash.

    Opening a position records an externally funded holding and does not
    debit cash; only executed trades move cash.
    """

    def __init__(self, cash: float = 0.0, risk_policy: RiskSettings = DEFAULT_RISK_POLICY):
        if cash < 0:
            raise InvalidInputError("cash cannot be negative", field="cash", value=cash)
        self._cash = float(cash)
        self._positions: "OrderedDict[str, Position]" = OrderedDict()
        self.risk_policy = risk_policy
        self.updated_at = datetime.now()

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    @property
    def cash(self) -> float:
        return self._cash

    @property
    def positions(self) -> List[Position]:
        """Open positions in insertion order."""
        return list(self._positions.values())

    def __len__(self) -> int:
        return len(self._positions)

    def __contains__(self, position_id: object) -> bool:
        return position_id in self._positions

    def get(self, position_id: str) -> Optional[Position]:
        return self._positions.get(position_id)

    def require(self, position_id: str) -> Position:
        """Get a position or raise NotFoundError."""
        position = self._positions.get(position_id)
        if position is None:
            raise NotFoundError("position", position_id)
        return position

    def find_by_symbol(self, symbol: str) -> Optional[Position]:
        """First open position on a symbol."""
        symbol = symbol.strip().upper()
        for position in self._positions.values():
            if position.symbol == symbol:
                return position
        return None

    def symbols(self) -> List[str]:
        """Distinct symbols held, in first-seen order."""
        return list(dict.fromkeys(p.symbol for p in self._positions.values()))

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def open(
        self,
        symbol: str,
        quantity: int,
        price: float,
        position_type: PositionType = PositionType.LONG,
        name: Optional[str] = None,
    ) -> Position:
        """
        Open a new position at price.

        Raises:
            InvalidInputError: Empty symbol, or non-positive quantity or price
        """
        if not isinstance(symbol, str) or not symbol.strip():
            raise InvalidInputError("symbol is required", field="symbol", value=symbol)
        quantity = _validate_quantity(quantity)
        price = _validate_price(price)

        symbol = symbol.strip().upper()
        position = Position(
            symbol=symbol,
            name=name or symbol,
            entry_price=price,
            current_price=price,
            quantity=quantity,
            position_type=position_type,
            risk_score=self.risk_policy.default_score,
        )
        self._positions[position.position_id] = position
        self._touch()
        logger.info("Opened %s %s x%d @ %.2f", position_type.value, symbol, quantity, price)
        return position

    def close(self, position_id: str, exec_price: float) -> Tuple[float, Position]:
        """
        Fully exit a position, crediting exec_price x quantity.

        Returns:
            (cash_delta, removed_position)
        """
        position = self.require(position_id)
        exec_price = _validate_price(exec_price, "exec_price")

        cash_delta = exec_price * position.quantity
        del self._positions[position_id]
        self._cash += cash_delta
        self._touch()
        logger.info("Closed %s x%d @ %.2f", position.symbol, position.quantity, exec_price)
        return cash_delta, position

    def reduce(self, position_id: str, quantity: int, exec_price: float) -> float:
        """
        Sell up to quantity shares; never more than held.

        The position is removed when nothing remains.

        Returns:
            Cash credited
        """
        position = self.require(position_id)
        quantity = _validate_quantity(quantity)
        exec_price = _validate_price(exec_price, "exec_price")

        sold = min(quantity, position.quantity)
        cash_delta = exec_price * sold
        remaining = position.quantity - sold
        if remaining == 0:
            del self._positions[position_id]
        else:
            position.quantity = remaining
        self._cash += cash_delta
        self._touch()
        logger.info("Reduced %s by %d @ %.2f (%d left)", position.symbol, sold, exec_price, remaining)
        return cash_delta

    def increase(self, position_id: str, quantity: int, exec_price: float) -> float:
        """
        Buy quantity more shares of an open position.

        Raises:
            InsufficientCashError: cash < quantity x exec_price; nothing changes

        Returns:
            Cash debited, as a negative number
        """
        position = self.require(position_id)
        quantity = _validate_quantity(quantity)
        exec_price = _validate_price(exec_price, "exec_price")

        cost = quantity * exec_price
        if self._cash < cost:
            raise InsufficientCashError(required=cost, available=self._cash, symbol=position.symbol)

        position.quantity += quantity
        self._cash -= cost
        self._touch()
        logger.info("Increased %s by %d @ %.2f", position.symbol, quantity, exec_price)
        return -cost

    def apply_price(self, symbol: str, price: float, provenance: Optional[str] = None) -> List[Position]:
        """
        Apply an observed price to every position on symbol.

        Returns:
            The updated positions, empty when the symbol is not held
        """
        symbol = symbol.strip().upper()
        updated: List[Position] = []
        for position_id, position in list(self._positions.items()):
            if position.symbol != symbol:
                continue
            new_position = apply_price_update(position, price, provenance, self.risk_policy)
            self._positions[position_id] = new_position
            updated.append(new_position)
        if updated:
            self._touch()
        return updated

    def replace_position(self, position: Position) -> None:
        """Swap in an updated copy of an open position (simulation path)."""
        self.require(position.position_id)
        self._positions[position.position_id] = position
        self._touch()

    def _touch(self) -> None:
        self.updated_at = datetime.now()
        total = self.total_value
        for position in self._positions.values():
            position.allocation_pct = position.market_value / total * 100 if total > 0 else 0.0

    # -------------------------------------------------------------------------
    # Derived views
    # -------------------------------------------------------------------------

    @property
    def positions_value(self) -> float:
        return sum(p.market_value for p in self._positions.values())

    @property
    def total_value(self) -> float:
        """Cash plus market value of all positions."""
        return self._cash + self.positions_value

    @property
    def total_unrealized_pnl(self) -> float:
        return sum(p.unrealized_pnl for p in self._positions.values())

    @property
    def weighted_risk_score(self) -> float:
        """Market-value weighted mean risk; 0 with no position value."""
        value = self.positions_value
        if not self._positions or value <= 0:
            return 0.0
        return sum(p.risk_score * p.market_value for p in self._positions.values()) / value

    def allocations(self) -> Dict[str, float]:
        """Position id -> percentage of total portfolio value."""
        total = self.total_value
        if total <= 0:
            return {pid: 0.0 for pid in self._positions}
        return {pid: p.market_value / total * 100 for pid, p in self._positions.items()}

    def summary(self) -> PortfolioSummary:
        pnl = self.total_unrealized_pnl
        return PortfolioSummary(
            cash=self._cash,
            positions_value=self.positions_value,
            total_value=self.total_value,
            total_pnl=pnl,
            daily_pnl=pnl,
            risk_score=self.weighted_risk_score,
            position_count=len(self._positions),
        )

    def to_dataframe(self) -> pd.DataFrame:
        """Positions as a DataFrame for display consumers."""
        if not self._positions:
            return pd.DataFrame()
        return pd.DataFrame([p.to_dict() for p in self._positions.values()])

    # -------------------------------------------------------------------------
    # Snapshot / restore
    # -------------------------------------------------------------------------

    def snapshot(self) -> Dict[str, Any]:
        """Serialize to a plain mapping; positions keep their order."""
        return {
            "cash": self._cash,
            "positions": [p.to_dict() for p in self._positions.values()],
            "updatedAt": self.updated_at.isoformat(),
        }

    @classmethod
    def restore(cls, data: Dict[str, Any], risk_policy: RiskSettings = DEFAULT_RISK_POLICY) -> "PositionBook":
        """Rebuild a book from snapshot() output."""
        book = cls(cash=float(data.get("cash", 0.0)), risk_policy=risk_policy)
        for item in data.get("positions", []):
            position = Position.from_dict(item)
            book._positions[position.position_id] = position
        if data.get("updatedAt"):
            book.updated_at = datetime.fromisoformat(data["updatedAt"])
        return book


__all__ = ["PortfolioSummary", "PositionBook"]
