"""
Simulated price source used when no live market feed is configured.
"""

import logging
from typing import Dict, Optional, Sequence

import numpy as np

from sentinel.portfolio import PositionBook, simulate_next_price
from sentinel.portfolio.risk_model import MIN_PRICE

from . import PriceQuote, PriceSource

logger = logging.getLogger(__name__)


class SimulatedPriceSource(PriceSource):
    """
    Random-walk quotes derived from the book's own prices and risk scores.

    Reads the book but never writes to it.
    """

    def __init__(
        self,
        book: PositionBook,
        rng: Optional[np.random.Generator] = None,
        global_trend_bias: float = 0.0,
        seed: Optional[int] = None,
        min_price: float = MIN_PRICE,
    ):
        self.book = book
        self.min_price = min_price
        self.rng = rng if rng is not None else np.random.default_rng(seed)
        self.global_trend_bias = global_trend_bias

    @property
    def name(self) -> str:
        return "simulation"

    async def get_quotes(self, symbols: Sequence[str]) -> Dict[str, PriceQuote]:
        quotes: Dict[str, PriceQuote] = {}
        for symbol in symbols:
            position = self.book.find_by_symbol(symbol)
            if position is None:
                continue
            price = simulate_next_price(
                position.current_price,
                position.risk_score,
                self.global_trend_bias,
                rng=self.rng,
                min_price=self.min_price,
            )
            quotes[position.symbol] = PriceQuote(price=price, provenance=self.name)
        logger.debug("Simulated %d quotes", len(quotes))
        return quotes
