"""
Data Module

External price and analysis source contracts and the bundled adapters.
"""

from .providers import (
    AnalysisSource,
    DataProviderError,
    PriceQuote,
    PriceSource,
    SimulatedPriceSource,
    StaticAnalysisSource,
    StaticPriceSource,
    parse_quote_lines,
)

__all__ = [
    "AnalysisSource",
    "DataProviderError",
    "PriceQuote",
    "PriceSource",
    "SimulatedPriceSource",
    "StaticAnalysisSource",
    "StaticPriceSource",
    "parse_quote_lines",
]
