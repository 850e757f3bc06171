"""
Sentinel Core Module

The RiskManager class owns the position book, recommendation queue and
activity log, and is the only mutation path into them. Mutations run one
at a time under an asyncio lock; external fetches run outside the lock and
their results are applied against the book as it is when they land.
"""

import asyncio
import logging
import math
import time
from typing import Any, Dict, List, Optional

from sentinel.activity import ActivityLog, LogEntry
from sentinel.config.logging import (
    clear_operation_context,
    log_performance,
    set_operation_context,
    trade_logger,
)
from sentinel.config.settings import SentinelSettings
from sentinel.core.errors import InvalidInputError, SourceBusyError, SourceUnavailableError
from sentinel.data.providers import (
    AnalysisSource,
    DataProviderError,
    PriceQuote,
    PriceSource,
    SimulatedPriceSource,
)
from sentinel.execution import ExecutionEngine, ExecutionResult
from sentinel.portfolio import (
    MarketEvent,
    PortfolioSummary,
    Position,
    PositionBook,
    PositionType,
    generate_market_event,
    simulate_tick,
)
from sentinel.signals import Recommendation, RecommendationQueue

logger = logging.getLogger(__name__)

_TRANSIENT_ERRORS = (SourceUnavailableError, DataProviderError, asyncio.TimeoutError, ConnectionError)


class RiskManager:
    """
    Risk manager state owner.

    Commands: open_position, request_price_refresh, request_analysis,
    execute_recommendation, dismiss_recommendation. Everything else is a
    read-only view.
    """

    def __init__(
        self,
        settings: Optional[SentinelSettings] = None,
        price_source: Optional[PriceSource] = None,
        analysis_source: Optional[AnalysisSource] = None,
        book: Optional[PositionBook] = None,
    ):
        """
        Initialize the risk manager.

        Args:
            settings: Loaded settings; defaults when omitted
            price_source: Live quotes; a seeded simulator when omitted
            analysis_source: Recommendation producer; analysis is unavailable when omitted
            book: Existing book, e.g. from PositionBook.restore
        """
        self.settings = settings or SentinelSettings()
        self.book = book or PositionBook(
            cash=self.settings.execution.initial_cash,
            risk_policy=self.settings.risk,
        )
        self.queue = RecommendationQueue()
        self.activity_log = ActivityLog(self.settings.activity_log.capacity)
        self.engine = ExecutionEngine(self.book, self.queue, self.activity_log, self.settings.execution)
        self.price_source = price_source or SimulatedPriceSource(
            self.book,
            global_trend_bias=self.settings.sources.global_trend_bias,
            seed=self.settings.sources.simulation_seed,
            min_price=self.settings.sources.min_simulated_price,
        )
        self.analysis_source = analysis_source
        self._write_lock = asyncio.Lock()
        self._refresh_in_flight = False
        self._analysis_in_flight = False
        logger.info(
            "RiskManager initialized (price source=%s, analysis source=%s)",
            self.price_source.name,
            self.analysis_source.name if self.analysis_source else None,
        )

    # =========================================================================
    # Read-only views
    # =========================================================================

    @property
    def is_refreshing(self) -> bool:
        return self._refresh_in_flight

    @property
    def is_analyzing(self) -> bool:
        return self._analysis_in_flight

    def portfolio(self) -> PortfolioSummary:
        return self.book.summary()

    def positions(self) -> List[Position]:
        return self.book.positions

    def recommendations(self) -> List[Recommendation]:
        return self.queue.pending()

    def activity(self) -> List[LogEntry]:
        return self.activity_log.entries()

    def snapshot(self) -> Dict[str, Any]:
        """Book snapshot plus the derived summary, as handed to analysis."""
        data = self.book.snapshot()
        data["summary"] = self.book.summary().to_dict()
        return data

    def health_check(self) -> Dict[str, Any]:
        return {
            "core": True,
            "priceSource": self.price_source.name,
            "analysisSource": self.analysis_source.name if self.analysis_source else None,
            "refreshing": self._refresh_in_flight,
            "analyzing": self._analysis_in_flight,
            "status": "operational",
        }

    # =========================================================================
    # Commands
    # =========================================================================

    async def open_position(
        self,
        symbol: str,
        quantity: int,
        price: float,
        position_type: PositionType = PositionType.LONG,
        name: Optional[str] = None,
    ) -> Position:
        """
        Open a position at price.

        Raises:
            InvalidInputError: Non-positive quantity or price, or empty symbol
        """
        async with self._write_lock:
            try:
                position = self.book.open(symbol, quantity, price, position_type, name)
            except InvalidInputError as e:
                self.activity_log.warning(f"Position not added: {e.detail}.")
                raise
            self.activity_log.action(
                f"Added position: {position.symbol}, Qty: {position.quantity} @ {position.entry_price:.2f}"
            )
            return position

    async def execute_recommendation(self, recommendation_id: str) -> ExecutionResult:
        """Execute one pending recommendation against the current book."""
        set_operation_context()
        try:
            async with self._write_lock:
                return self.engine.execute(recommendation_id)
        finally:
            clear_operation_context()

    async def dismiss_recommendation(self, recommendation_id: str) -> Optional[Recommendation]:
        """Dismiss a pending recommendation; None when it was not pending."""
        async with self._write_lock:
            recommendation = self.queue.dismiss(recommendation_id)
            if recommendation is not None:
                self.activity_log.info(
                    f"Dismissed {recommendation.action.value} recommendation for {recommendation.symbol}."
                )
            return recommendation

    @log_performance(threshold_ms=5000)
    async def request_price_refresh(self) -> int:
        """
        Fetch quotes for every held symbol and apply them.

        A failed, timed out or empty fetch leaves prices as they were and
        logs a warning.

        Returns:
            Number of positions updated

        Raises:
            SourceBusyError: A refresh is already running
        """
        symbols = self.book.symbols()
        if not symbols:
            return 0
        if self._refresh_in_flight:
            self.activity_log.warning("Price refresh already in progress; request ignored.")
            raise SourceBusyError("price refresh")

        self._refresh_in_flight = True
        set_operation_context()
        start = time.perf_counter()
        try:
            self.activity_log.thought(f"Connecting to market data ({self.price_source.name})...")
            try:
                quotes = await asyncio.wait_for(
                    self.price_source.get_quotes(symbols),
                    timeout=self.settings.sources.fetch_timeout_seconds,
                )
            except _TRANSIENT_ERRORS as e:
                logger.warning("Price source %s failed: %s", self.price_source.name, e)
                self.activity_log.warning("Could not fetch new prices; previous prices retained.")
                return 0
            except Exception as e:
                error = SourceUnavailableError(self.price_source.name, str(e), original_error=e)
                error.log()
                self.activity_log.warning("Could not fetch new prices; previous prices retained.")
                return 0

            async with self._write_lock:
                updated = self._apply_quotes(quotes or {})

            trade_logger.log_price_refresh(
                self.price_source.name,
                len(symbols),
                updated,
                (time.perf_counter() - start) * 1000,
            )
            if updated:
                self.activity_log.info(f"Prices updated for {updated} position(s) from {self.price_source.name}.")
            else:
                self.activity_log.warning("Could not fetch new prices; previous prices retained.")
            return updated
        finally:
            self._refresh_in_flight = False
            clear_operation_context()

    def _apply_quotes(self, quotes: Dict[str, PriceQuote]) -> int:
        updated = 0
        for symbol, quote in quotes.items():
            price = quote.price
            if price is None or not math.isfinite(price) or price <= 0:
                logger.warning("Dropping invalid quote %s=%r", symbol, price)
                continue
            updated += len(self.book.apply_price(symbol, price, quote.provenance))
        return updated

    @log_performance(threshold_ms=10000)
    async def request_analysis(self) -> List[Recommendation]:
        """
        Ask the analysis source for a fresh batch and replace the queue.

        Failures and empty batches leave the queue untouched.

        Returns:
            The new pending recommendations, empty when nothing changed

        Raises:
            SourceBusyError: An analysis is already running
            SourceUnavailableError: No analysis source is configured
        """
        if self.analysis_source is None:
            self.activity_log.warning("No analysis source configured.")
            raise SourceUnavailableError("analysis", "no analysis source configured")
        if not len(self.book):
            return []
        if self._analysis_in_flight:
            self.activity_log.warning("Analysis already in progress; request ignored.")
            raise SourceBusyError("analysis")

        self._analysis_in_flight = True
        set_operation_context()
        start = time.perf_counter()
        try:
            self.activity_log.thought("Agent evaluating portfolio performance...")
            try:
                recommendations = await asyncio.wait_for(
                    self.analysis_source.analyze(self.snapshot()),
                    timeout=self.settings.sources.fetch_timeout_seconds,
                )
            except _TRANSIENT_ERRORS as e:
                logger.warning("Analysis source %s failed: %s", self.analysis_source.name, e)
                self.activity_log.warning("Analysis unavailable; existing recommendations kept.")
                return []
            except Exception as e:
                error = SourceUnavailableError(self.analysis_source.name, str(e), original_error=e)
                error.log()
                self.activity_log.warning("Analysis unavailable; existing recommendations kept.")
                return []

            recommendations = list(recommendations or [])
            stale = [r for r in recommendations if r.status.is_terminal]
            if stale:
                logger.warning(
                    "Analysis source %s returned %d closed recommendation(s)",
                    self.analysis_source.name,
                    len(stale),
                )
                recommendations = [r for r in recommendations if not r.status.is_terminal]

            trade_logger.log_analysis(
                self.analysis_source.name,
                len(recommendations),
                (time.perf_counter() - start) * 1000,
            )
            if not recommendations:
                self.activity_log.thought("Analysis complete. Strategy remains effective.")
                return []

            async with self._write_lock:
                for recommendation in recommendations:
                    if recommendation.position_id not in self.book:
                        position = self.book.find_by_symbol(recommendation.symbol)
                        if position is not None:
                            recommendation.position_id = position.position_id
                self.queue.replace_all(recommendations)
                self.activity_log.action(f"Agent generated {len(self.queue)} recommendations.")
                return self.queue.pending()
        finally:
            self._analysis_in_flight = False
            clear_operation_context()

    async def simulate_market_tick(self) -> Optional[MarketEvent]:
        """
        Advance every position by one simulated tick.

        Returns:
            A mock market headline on some ticks, else None
        """
        async with self._write_lock:
            rng = getattr(self.price_source, "rng", None)
            for position in self.book.positions:
                self.book.replace_position(
                    simulate_tick(position, self.settings.sources.global_trend_bias, rng, self.settings.risk)
                )
            event = generate_market_event(rng)
            if event is not None:
                self.activity_log.info(f"[{event.sentiment}/{event.impact_level}] {event.headline}")
            return event
