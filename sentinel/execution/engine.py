"""
Execution Engine Module

Turns one pending recommendation plus the current position book into a new
book state, or rejects it. A recommendation leaves the queue only after its
trade has been committed to the book; a rejected one stays pending so the
call can be retried safely.
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from sentinel.activity import ActivityLog
from sentinel.config.logging import trade_logger
from sentinel.config.settings import ExecutionSettings
from sentinel.core.errors import InsufficientCashError, InvalidInputError, SentinelError
from sentinel.portfolio import Position, PositionBook
from sentinel.signals import Recommendation, RecommendationAction, RecommendationQueue

logger = logging.getLogger(__name__)


class ExecutionOutcome(Enum):
    """How an execution request ended."""

    EXECUTED = "EXECUTED"      # book mutated, recommendation consumed
    DISMISSED = "DISMISSED"    # HOLD, nothing to trade
    REJECTED = "REJECTED"      # precondition failed, recommendation still pending
    NOT_FOUND = "NOT_FOUND"    # recommendation id not pending


@dataclass
class ExecutionResult:
    """Outcome of one execution request."""

    outcome: ExecutionOutcome
    recommendation_id: str
    message: str
    action: Optional[RecommendationAction] = None
    symbol: Optional[str] = None
    quantity: int = 0
    price: Optional[float] = None
    cash_delta: float = 0.0
    error: Optional[SentinelError] = None

    @property
    def succeeded(self) -> bool:
        return self.outcome in (ExecutionOutcome.EXECUTED, ExecutionOutcome.DISMISSED)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "outcome": self.outcome.value,
            "recommendationId": self.recommendation_id,
            "action": self.action.value if self.action else None,
            "symbol": self.symbol,
            "quantity": self.quantity,
            "price": self.price,
            "cashDelta": round(self.cash_delta, 2),
            "message": self.message,
            "error": self.error.to_dict() if self.error else None,
        }


class ExecutionEngine:
    """
    Apply recommendations to the position book.

    Action mapping:
        EXIT                 full close at the current price
        REDUCE               sell the suggested quantity, or floor(reduce_fraction
                             of held); never more than held
        REALLOCATE, BUY_DIP  buy the suggested quantity, or default_buy_quantity,
                             only when cash covers the cost
        HOLD                 no trade; the recommendation is dismissed

    Callers serialize access; the engine itself holds no lock.
    """

    def __init__(
        self,
        book: PositionBook,
        queue: RecommendationQueue,
        activity_log: ActivityLog,
        settings: Optional[ExecutionSettings] = None,
    ):
        self.book = book
        self.queue = queue
        self.activity_log = activity_log
        self.settings = settings or ExecutionSettings()

    def execute(self, recommendation_id: str) -> ExecutionResult:
        """
        Execute one pending recommendation.

        Args:
            recommendation_id: Id of a pending recommendation

        Returns:
            ExecutionResult describing the trade or the reason it was skipped
        """
        recommendation = self.queue.get(recommendation_id)
        if recommendation is None:
            message = f"Recommendation {recommendation_id} is no longer pending."
            self.activity_log.warning(message)
            return ExecutionResult(ExecutionOutcome.NOT_FOUND, recommendation_id, message)

        if recommendation.action is RecommendationAction.HOLD:
            return self._hold(recommendation)

        position = self._match_position(recommendation)
        if position is None:
            return self._reject(
                recommendation,
                f"No open position for {recommendation.symbol}; {recommendation.action.value} skipped.",
            )

        if recommendation.action is RecommendationAction.EXIT:
            return self._exit(recommendation, position)
        if recommendation.action is RecommendationAction.REDUCE:
            return self._reduce(recommendation, position)
        return self._buy(recommendation, position)

    # -------------------------------------------------------------------------
    # Quantity resolution
    # -------------------------------------------------------------------------

    def reduce_quantity(self, recommendation: Recommendation, held: int) -> int:
        """Shares a REDUCE will sell: suggestion or default, capped at held."""
        requested = recommendation.suggested_quantity or math.floor(held * self.settings.reduce_fraction)
        return min(requested, held)

    def buy_quantity(self, recommendation: Recommendation) -> int:
        return recommendation.suggested_quantity or self.settings.default_buy_quantity

    # -------------------------------------------------------------------------
    # Branches
    # -------------------------------------------------------------------------

    def _match_position(self, recommendation: Recommendation) -> Optional[Position]:
        if recommendation.position_id:
            position = self.book.get(recommendation.position_id)
            if position is not None:
                return position
        return self.book.find_by_symbol(recommendation.symbol)

    def _hold(self, recommendation: Recommendation) -> ExecutionResult:
        self.queue.dismiss(recommendation.recommendation_id)
        message = f"HOLD acknowledged for {recommendation.symbol}; no trade required."
        self.activity_log.info(message)
        return ExecutionResult(
            ExecutionOutcome.DISMISSED,
            recommendation.recommendation_id,
            message,
            action=recommendation.action,
            symbol=recommendation.symbol,
        )

    def _exit(self, recommendation: Recommendation, position: Position) -> ExecutionResult:
        price = position.current_price
        quantity = position.quantity
        cash_delta, _ = self.book.close(position.position_id, price)
        return self._commit(
            recommendation,
            f"EXECUTED: Exited {position.symbol} ({quantity} shares) at {price:.2f}.",
            quantity,
            price,
            cash_delta,
        )

    def _reduce(self, recommendation: Recommendation, position: Position) -> ExecutionResult:
        quantity = self.reduce_quantity(recommendation, position.quantity)
        if quantity <= 0:
            return self._reject(
                recommendation,
                f"REDUCE on {position.symbol} resolves to 0 of {position.quantity} shares; skipped.",
            )
        price = position.current_price
        try:
            cash_delta = self.book.reduce(position.position_id, quantity, price)
        except InvalidInputError as e:
            return self._reject(
                recommendation,
                f"REDUCE on {position.symbol} rejected: {e.detail}.",
                error=e,
            )
        return self._commit(
            recommendation,
            f"EXECUTED: Reduced {position.symbol} by {quantity} shares at {price:.2f}.",
            quantity,
            price,
            cash_delta,
        )

    def _buy(self, recommendation: Recommendation, position: Position) -> ExecutionResult:
        quantity = self.buy_quantity(recommendation)
        price = position.current_price
        try:
            cash_delta = self.book.increase(position.position_id, quantity, price)
        except InsufficientCashError as e:
            return self._reject(
                recommendation,
                f"{recommendation.action.value} on {position.symbol} needs {e.required:.2f} "
                f"but only {e.available:.2f} cash is available; skipped.",
                error=e,
            )
        except InvalidInputError as e:
            return self._reject(
                recommendation,
                f"{recommendation.action.value} on {position.symbol} rejected: {e.detail}.",
                error=e,
            )
        return self._commit(
            recommendation,
            f"EXECUTED: Added {quantity} shares to {position.symbol} at {price:.2f}.",
            quantity,
            price,
            cash_delta,
        )

    def _commit(
        self,
        recommendation: Recommendation,
        message: str,
        quantity: int,
        price: float,
        cash_delta: float,
    ) -> ExecutionResult:
        self.queue.consume(recommendation.recommendation_id)
        self.activity_log.action(message)
        trade_logger.log_execution(
            recommendation.recommendation_id,
            recommendation.action.value,
            recommendation.symbol,
            quantity,
            price,
            cash_delta,
        )
        return ExecutionResult(
            ExecutionOutcome.EXECUTED,
            recommendation.recommendation_id,
            message,
            action=recommendation.action,
            symbol=recommendation.symbol,
            quantity=quantity,
            price=price,
            cash_delta=cash_delta,
        )

    def _reject(
        self,
        recommendation: Recommendation,
        message: str,
        error: Optional[SentinelError] = None,
    ) -> ExecutionResult:
        self.activity_log.warning(message)
        trade_logger.log_rejection(
            recommendation.recommendation_id,
            recommendation.action.value,
            recommendation.symbol,
            message,
        )
        return ExecutionResult(
            ExecutionOutcome.REJECTED,
            recommendation.recommendation_id,
            message,
            action=recommendation.action,
            symbol=recommendation.symbol,
            error=error,
        )


__all__ = ["ExecutionEngine", "ExecutionOutcome", "ExecutionResult"]
