"""
In-memory sources and the text quote parser.

Useful for tests, demos, and adapters whose upstream returns free text.
"""

import logging
import re
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from sentinel.signals import Recommendation, recommendations_from_payload

from . import AnalysisSource, PriceQuote, PriceSource

logger = logging.getLogger(__name__)

_NON_NUMERIC = re.compile(r"[^0-9.]")


def parse_quote_lines(text: str, provenance: Optional[str] = None) -> Dict[str, PriceQuote]:
    """
    Parse ``SYMBOL|PRICE`` lines.

    Currency signs, thousands separators and other non-numeric characters
    are stripped from the price. Lines without a separator, an unparsable
    price or a non-positive price are skipped.

    Example:
        >>> parse_quote_lines("RELIANCE|2450.50\\nTCS|₹3,500.00")
        {'RELIANCE': PriceQuote(price=2450.5, ...), 'TCS': PriceQuote(price=3500.0, ...)}
    """
    quotes: Dict[str, PriceQuote] = {}
    for line in text.splitlines():
        if "|" not in line:
            continue
        symbol, _, raw_price = line.partition("|")
        symbol = symbol.strip().upper()
        cleaned = _NON_NUMERIC.sub("", raw_price)
        try:
            price = float(cleaned)
        except ValueError:
            logger.debug("Unparsable price in quote line %r", line)
            continue
        if not symbol or price <= 0:
            continue
        quotes[symbol] = PriceQuote(price=price, provenance=provenance)
    return quotes


class StaticPriceSource(PriceSource):
    """Serves fixed quotes; set ``error`` to simulate an outage."""

    def __init__(
        self,
        quotes: Optional[Mapping[str, Union[float, PriceQuote]]] = None,
        error: Optional[Exception] = None,
        name: str = "static",
    ):
        self.quotes: Dict[str, PriceQuote] = {}
        for symbol, quote in (quotes or {}).items():
            if not isinstance(quote, PriceQuote):
                quote = PriceQuote(price=float(quote))
            self.quotes[symbol.upper()] = quote
        self.error = error
        self._name = name
        self.calls = 0

    @property
    def name(self) -> str:
        return self._name

    async def get_quotes(self, symbols: Sequence[str]) -> Dict[str, PriceQuote]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return {s: self.quotes[s] for s in symbols if s in self.quotes}


class StaticAnalysisSource(AnalysisSource):
    """
    Serves a fixed batch of recommendations.

    Accepts Recommendation objects or raw payload mappings. Objects are
    served as they are, so once closed they are not queued again; payloads
    are rebuilt on every call so each analysis run yields fresh ids, with
    position ids resolved against the snapshot.
    """

    def __init__(
        self,
        recommendations: Optional[Iterable[Union[Recommendation, Dict[str, Any]]]] = None,
        error: Optional[Exception] = None,
        name: str = "static-analysis",
    ):
        self.items = list(recommendations or [])
        self.error = error
        self._name = name
        self.calls = 0

    @property
    def name(self) -> str:
        return self._name

    async def analyze(self, snapshot: Dict[str, Any]) -> List[Recommendation]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        position_ids = {p["symbol"]: p["id"] for p in snapshot.get("positions", [])}
        result: List[Recommendation] = []
        for item in self.items:
            if isinstance(item, Recommendation):
                result.append(item)
            else:
                result.extend(recommendations_from_payload([item], position_ids))
        return result
