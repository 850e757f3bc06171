"""
Data Source Interface Module

Abstract contracts for the two external collaborators: a price source and
an analysis source. Implementations may call out to any service; the core
only sees the typed results.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from sentinel.signals import Recommendation


class DataProviderError(Exception):
    """Base exception for source adapter failures."""

    pass


@dataclass(frozen=True)
class PriceQuote:
    """One observed price."""

    price: float
    provenance: Optional[str] = None


class PriceSource(ABC):
    """
    Returns current prices for a set of symbols.

    An empty mapping means no update is available. Failures should raise
    DataProviderError or SourceUnavailableError; both are treated as
    transient.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the source name."""
        pass

    @abstractmethod
    async def get_quotes(self, symbols: Sequence[str]) -> Dict[str, PriceQuote]:
        """
        Fetch quotes for symbols.

        Args:
            symbols: Uppercase symbols currently held

        Returns:
            Symbol -> PriceQuote; symbols without a price are omitted
        """
        pass


class AnalysisSource(ABC):
    """Produces recommendations for a portfolio snapshot."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the source name."""
        pass

    @abstractmethod
    async def analyze(self, snapshot: Dict[str, Any]) -> List[Recommendation]:
        """
        Analyze a portfolio snapshot.

        Args:
            snapshot: PositionBook.snapshot() plus a ``summary`` mapping

        Returns:
            Ordered recommendations, possibly empty
        """
        pass


from .simulated import SimulatedPriceSource  # noqa: E402
from .static import StaticAnalysisSource, StaticPriceSource, parse_quote_lines  # noqa: E402

__all__ = [
    "DataProviderError",
    "PriceQuote",
    "PriceSource",
    "AnalysisSource",
    "SimulatedPriceSource",
    "StaticPriceSource",
    "StaticAnalysisSource",
    "parse_quote_lines",
]
