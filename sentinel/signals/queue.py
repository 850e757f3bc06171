"""
Recommendation Queue Module

Pending recommendations keyed by id. A fresh analysis batch replaces the
whole queue in a single assignment so readers never see old and new
entries side by side.
"""

import logging
from collections import OrderedDict
from typing import Iterable, Iterator, List, Optional

from sentinel.core.errors import NotFoundError

from .recommendation import Recommendation, RecommendationStatus

logger = logging.getLogger(__name__)


class RecommendationQueue:
    """Ordered pending recommendations."""

    def __init__(self, recommendations: Optional[Iterable[Recommendation]] = None):
        self._pending: "OrderedDict[str, Recommendation]" = OrderedDict()
        if recommendations is not None:
            self.replace_all(recommendations)

    def __len__(self) -> int:
        return len(self._pending)

    def __contains__(self, recommendation_id: object) -> bool:
        return recommendation_id in self._pending

    def __iter__(self) -> Iterator[Recommendation]:
        return iter(list(self._pending.values()))

    def get(self, recommendation_id: str) -> Optional[Recommendation]:
        return self._pending.get(recommendation_id)

    def pending(self) -> List[Recommendation]:
        """Pending recommendations in batch order."""
        return list(self._pending.values())

    def for_symbol(self, symbol: str) -> Optional[Recommendation]:
        symbol = symbol.strip().upper()
        for recommendation in self._pending.values():
            if recommendation.symbol == symbol:
                return recommendation
        return None

    def replace_all(self, recommendations: Iterable[Recommendation]) -> List[Recommendation]:
        """
        Supersede the current queue with a new batch.

        Within the batch a later recommendation for a symbol replaces an
        earlier one, keeping one live entry per symbol. Recommendations that
        already reached a terminal status are never queued again.

        Returns:
            The recommendations that were superseded
        """
        fresh: "OrderedDict[str, Recommendation]" = OrderedDict()
        by_symbol = {}
        superseded: List[Recommendation] = []
        for recommendation in recommendations:
            if recommendation.status.is_terminal:
                logger.warning(
                    "Skipping %s recommendation %s for %s",
                    recommendation.status.value,
                    recommendation.recommendation_id,
                    recommendation.symbol,
                )
                continue
            stale_id = by_symbol.get(recommendation.symbol)
            if stale_id is not None:
                superseded.append(fresh.pop(stale_id))
                logger.debug(
                    "Batch recommendation %s replaces %s for %s",
                    recommendation.recommendation_id,
                    stale_id,
                    recommendation.symbol,
                )
            fresh[recommendation.recommendation_id] = recommendation
            by_symbol[recommendation.symbol] = recommendation.recommendation_id

        previous = self._pending
        self._pending = fresh

        superseded.extend(r for r in previous.values() if r.recommendation_id not in fresh)
        for recommendation in superseded:
            self._transition(recommendation, RecommendationStatus.SUPERSEDED)
        if previous:
            logger.info("Replaced %d pending recommendations with %d new", len(previous), len(fresh))
        return superseded

    def dismiss(self, recommendation_id: str) -> Optional[Recommendation]:
        """Remove one entry; no-op when absent."""
        recommendation = self._pending.pop(recommendation_id, None)
        if recommendation is None:
            logger.debug("Dismiss of unknown recommendation %s ignored", recommendation_id)
            return None
        self._transition(recommendation, RecommendationStatus.DISMISSED)
        return recommendation

    def consume(self, recommendation_id: str) -> Recommendation:
        """
        Remove an entry after its trade committed.

        Raises:
            NotFoundError: The id is not pending
        """
        recommendation = self._pending.pop(recommendation_id, None)
        if recommendation is None:
            raise NotFoundError("recommendation", recommendation_id)
        self._transition(recommendation, RecommendationStatus.EXECUTED)
        return recommendation

    def clear(self) -> None:
        self.replace_all([])

    @staticmethod
    def _transition(recommendation: Recommendation, target: RecommendationStatus) -> None:
        if not recommendation.status.can_transition(target):
            logger.warning(
                "Recommendation %s is %s; not moving it to %s",
                recommendation.recommendation_id,
                recommendation.status.value,
                target.value,
            )
            return
        recommendation.status = target


__all__ = ["RecommendationQueue"]
