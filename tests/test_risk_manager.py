"""Tests for the RiskManager command surface.

Tests cover:
- Opening positions through the manager
- Price refresh success, empty results, failures, timeouts and overlap
- Analysis requests and queue replacement
- Execution and dismissal through the writer lock
- Simulation ticks
"""

import asyncio
from unittest.mock import AsyncMock, Mock

import pytest

from sentinel.activity import LogSeverity
from sentinel.config.settings import SentinelSettings
from sentinel.core.core import RiskManager
from sentinel.core.errors import InvalidInputError, SourceBusyError, SourceUnavailableError
from sentinel.data.providers import (
    DataProviderError,
    PriceQuote,
    PriceSource,
    StaticAnalysisSource,
    StaticPriceSource,
)
from sentinel.execution import ExecutionOutcome
from sentinel.portfolio import MarketEvent
from sentinel.signals import Recommendation, RecommendationAction, RecommendationStatus


class GatedPriceSource(PriceSource):
    """Blocks inside get_quotes until released."""

    def __init__(self, quotes):
        self.quotes = quotes
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    @property
    def name(self):
        return "gated"

    async def get_quotes(self, symbols):
        self.started.set()
        await self.release.wait()
        return {s: PriceQuote(self.quotes[s]) for s in symbols if s in self.quotes}


class SlowPriceSource(PriceSource):
    @property
    def name(self):
        return "slow"

    async def get_quotes(self, symbols):
        await asyncio.sleep(10)
        return {}


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def loaded_manager(settings, price_source, analysis_source, funded_book):
    """Manager holding RELIANCE 100 @ 100 and TCS 20 @ 250 with 5000 cash."""
    return RiskManager(settings, price_source, analysis_source, book=funded_book)


def severities(manager):
    return [e.severity for e in manager.activity()]


# =============================================================================
# Open position
# =============================================================================


class TestOpenPosition:
    """Tests for RiskManager.open_position."""

    @pytest.mark.asyncio
    async def test_logs_action(self, manager):
        position = await manager.open_position("hdfc", 10, 1650.0)
        assert position.symbol == "HDFC"
        assert manager.positions() == [position]
        entry = manager.activity_log.latest()
        assert entry.severity is LogSeverity.ACTION
        assert entry.message == "Added position: HDFC, Qty: 10 @ 1650.00"

    @pytest.mark.asyncio
    async def test_invalid_input_raises_and_warns(self, manager):
        with pytest.raises(InvalidInputError):
            await manager.open_position("HDFC", 0, 1650.0)
        assert manager.positions() == []
        assert severities(manager) == [LogSeverity.WARNING]

    def test_initial_cash_from_settings(self):
        manager = RiskManager(SentinelSettings(execution={"initial_cash": 750}))
        assert manager.portfolio().cash == 750.0


# =============================================================================
# Price refresh
# =============================================================================


class TestPriceRefresh:
    """Tests for RiskManager.request_price_refresh."""

    @pytest.mark.asyncio
    async def test_no_positions_is_noop(self, manager, price_source):
        assert await manager.request_price_refresh() == 0
        assert price_source.calls == 0
        assert manager.activity() == []

    @pytest.mark.asyncio
    async def test_applies_quotes(self, loaded_manager):
        assert await loaded_manager.request_price_refresh() == 2
        reliance = loaded_manager.book.find_by_symbol("RELIANCE")
        tcs = loaded_manager.book.find_by_symbol("TCS")
        assert reliance.current_price == 110.0
        assert reliance.risk_score == 48.0
        assert tcs.current_price == 240.0
        assert tcs.risk_score == 55.0
        assert loaded_manager.portfolio().cash == 5000.0
        assert severities(loaded_manager) == [LogSeverity.THOUGHT, LogSeverity.INFO]

    @pytest.mark.asyncio
    async def test_empty_result_warns_once(self, loaded_manager):
        loaded_manager.price_source = StaticPriceSource({})
        before = loaded_manager.snapshot()

        assert await loaded_manager.request_price_refresh() == 0

        assert loaded_manager.snapshot()["positions"] == before["positions"]
        assert severities(loaded_manager).count(LogSeverity.WARNING) == 1

    @pytest.mark.asyncio
    async def test_failure_retains_prices(self, loaded_manager):
        loaded_manager.price_source = StaticPriceSource(error=DataProviderError("quota exceeded"))

        assert await loaded_manager.request_price_refresh() == 0

        assert loaded_manager.book.find_by_symbol("RELIANCE").current_price == 100.0
        assert loaded_manager.activity_log.latest().severity is LogSeverity.WARNING
        assert not loaded_manager.is_refreshing

    @pytest.mark.asyncio
    async def test_unexpected_source_error_retains_prices(self, loaded_manager):
        loaded_manager.price_source = StaticPriceSource(error=RuntimeError("upstream returned HTML"))

        assert await loaded_manager.request_price_refresh() == 0

        assert loaded_manager.book.find_by_symbol("RELIANCE").current_price == 100.0
        assert severities(loaded_manager).count(LogSeverity.WARNING) == 1
        assert "previous prices retained" in loaded_manager.activity_log.latest().message
        assert not loaded_manager.is_refreshing

    @pytest.mark.asyncio
    async def test_timeout_retains_prices(self, loaded_manager):
        loaded_manager.settings = SentinelSettings(sources={"fetch_timeout_seconds": 0.05})
        loaded_manager.price_source = SlowPriceSource()

        assert await loaded_manager.request_price_refresh() == 0

        assert loaded_manager.book.find_by_symbol("TCS").current_price == 250.0
        assert loaded_manager.activity_log.latest().severity is LogSeverity.WARNING

    @pytest.mark.asyncio
    async def test_invalid_quotes_dropped(self, loaded_manager):
        loaded_manager.price_source = Mock()
        loaded_manager.price_source.name = "mock"
        loaded_manager.price_source.get_quotes = AsyncMock(
            return_value={"RELIANCE": PriceQuote(-1.0), "TCS": PriceQuote(float("nan"))}
        )

        assert await loaded_manager.request_price_refresh() == 0

        loaded_manager.price_source.get_quotes.assert_awaited_once_with(["RELIANCE", "TCS"])
        assert loaded_manager.book.find_by_symbol("RELIANCE").current_price == 100.0

    @pytest.mark.asyncio
    async def test_overlapping_refresh_rejected(self, loaded_manager):
        source = GatedPriceSource({"RELIANCE": 105.0, "TCS": 255.0})
        loaded_manager.price_source = source

        task = asyncio.create_task(loaded_manager.request_price_refresh())
        await source.started.wait()
        assert loaded_manager.is_refreshing
        with pytest.raises(SourceBusyError):
            await loaded_manager.request_price_refresh()
        source.release.set()

        assert await task == 2
        assert not loaded_manager.is_refreshing

    @pytest.mark.asyncio
    async def test_result_applied_against_current_book(self, loaded_manager, make_recommendation):
        source = GatedPriceSource({"RELIANCE": 105.0, "TCS": 255.0})
        loaded_manager.price_source = source
        rec = make_recommendation("RELIANCE", RecommendationAction.EXIT)
        loaded_manager.queue.replace_all([rec])

        task = asyncio.create_task(loaded_manager.request_price_refresh())
        await source.started.wait()
        result = await loaded_manager.execute_recommendation(rec.recommendation_id)
        assert result.outcome is ExecutionOutcome.EXECUTED
        source.release.set()

        assert await task == 1
        assert loaded_manager.book.find_by_symbol("RELIANCE") is None
        assert loaded_manager.book.find_by_symbol("TCS").current_price == 255.0
        assert loaded_manager.portfolio().cash == pytest.approx(15000.0)


# =============================================================================
# Analysis
# =============================================================================


class TestAnalysis:
    """Tests for RiskManager.request_analysis."""

    @pytest.mark.asyncio
    async def test_populates_queue(self, loaded_manager):
        recs = await loaded_manager.request_analysis()
        assert [r.symbol for r in recs] == ["RELIANCE", "TCS"]
        assert recs[0].position_id == loaded_manager.book.find_by_symbol("RELIANCE").position_id
        assert loaded_manager.recommendations() == recs
        latest = loaded_manager.activity_log.latest()
        assert latest.severity is LogSeverity.ACTION
        assert "2 recommendations" in latest.message

    @pytest.mark.asyncio
    async def test_new_batch_supersedes_old(self, loaded_manager):
        first = await loaded_manager.request_analysis()
        second = await loaded_manager.request_analysis()
        assert all(r.status is RecommendationStatus.SUPERSEDED for r in first)
        assert loaded_manager.recommendations() == second

    @pytest.mark.asyncio
    async def test_failure_keeps_queue(self, loaded_manager, analysis_source):
        existing = await loaded_manager.request_analysis()
        analysis_source.error = SourceUnavailableError("analysis", "rate limited")

        assert await loaded_manager.request_analysis() == []

        assert loaded_manager.recommendations() == existing
        assert loaded_manager.activity_log.latest().severity is LogSeverity.WARNING

    @pytest.mark.asyncio
    async def test_unexpected_source_error_keeps_queue(self, loaded_manager, analysis_source):
        existing = await loaded_manager.request_analysis()
        analysis_source.error = RuntimeError("upstream returned HTML")

        assert await loaded_manager.request_analysis() == []

        assert loaded_manager.recommendations() == existing
        assert severities(loaded_manager).count(LogSeverity.WARNING) == 1
        assert "existing recommendations kept" in loaded_manager.activity_log.latest().message
        assert not loaded_manager.is_analyzing

    @pytest.mark.asyncio
    async def test_empty_batch_keeps_queue(self, loaded_manager, analysis_source):
        existing = await loaded_manager.request_analysis()
        analysis_source.items = []

        assert await loaded_manager.request_analysis() == []

        assert loaded_manager.recommendations() == existing
        latest = loaded_manager.activity_log.latest()
        assert latest.severity is LogSeverity.THOUGHT
        assert "Strategy remains effective" in latest.message

    @pytest.mark.asyncio
    async def test_empty_book_skips_analysis(self, manager, analysis_source):
        assert await manager.request_analysis() == []
        assert analysis_source.calls == 0

    @pytest.mark.asyncio
    async def test_no_analysis_source(self, settings):
        manager = RiskManager(settings, price_source=StaticPriceSource())
        manager.book.open("TCS", 1, 100.0)
        with pytest.raises(SourceUnavailableError):
            await manager.request_analysis()

    @pytest.mark.asyncio
    async def test_snapshot_passed_to_source(self, loaded_manager):
        loaded_manager.analysis_source = Mock()
        loaded_manager.analysis_source.name = "mock"
        loaded_manager.analysis_source.analyze = AsyncMock(return_value=[])

        await loaded_manager.request_analysis()

        snapshot = loaded_manager.analysis_source.analyze.await_args.args[0]
        assert snapshot["cash"] == 5000.0
        assert snapshot["summary"]["positionCount"] == 2
        assert [p["symbol"] for p in snapshot["positions"]] == ["RELIANCE", "TCS"]


# =============================================================================
# Execute / dismiss
# =============================================================================


class TestExecuteAndDismiss:
    """Tests for execution and dismissal through the manager."""

    @pytest.mark.asyncio
    async def test_execute_reduce_from_analysis(self, loaded_manager):
        recs = await loaded_manager.request_analysis()
        result = await loaded_manager.execute_recommendation(recs[0].recommendation_id)
        assert result.outcome is ExecutionOutcome.EXECUTED
        assert loaded_manager.book.find_by_symbol("RELIANCE").quantity == 50
        assert loaded_manager.portfolio().cash == pytest.approx(10000.0)

    @pytest.mark.asyncio
    async def test_dismiss(self, loaded_manager):
        recs = await loaded_manager.request_analysis()
        dismissed = await loaded_manager.dismiss_recommendation(recs[1].recommendation_id)
        assert dismissed is recs[1]
        assert loaded_manager.recommendations() == [recs[0]]
        assert loaded_manager.activity_log.latest().severity is LogSeverity.INFO

    @pytest.mark.asyncio
    async def test_dismiss_unknown_is_noop(self, loaded_manager):
        before = len(loaded_manager.activity_log)
        assert await loaded_manager.dismiss_recommendation("rec_missing") is None
        assert len(loaded_manager.activity_log) == before

    @pytest.mark.asyncio
    async def test_executed_recommendation_not_requeued(self, settings, price_source, funded_book):
        rec = Recommendation(
            symbol="RELIANCE",
            action=RecommendationAction.REDUCE,
            confidence=90,
            suggested_quantity=10,
        )
        manager = RiskManager(settings, price_source, StaticAnalysisSource([rec]), book=funded_book)

        await manager.request_analysis()
        first = await manager.execute_recommendation(rec.recommendation_id)
        await manager.request_analysis()
        second = await manager.execute_recommendation(rec.recommendation_id)

        assert first.outcome is ExecutionOutcome.EXECUTED
        assert second.outcome is ExecutionOutcome.NOT_FOUND
        assert rec.status is RecommendationStatus.EXECUTED
        assert manager.recommendations() == []
        assert manager.book.find_by_symbol("RELIANCE").quantity == 90


# =============================================================================
# Simulation
# =============================================================================


class TestSimulation:
    """Tests for simulated ticks."""

    @pytest.mark.asyncio
    async def test_tick_moves_prices(self):
        manager = RiskManager(SentinelSettings(sources={"simulation_seed": 5}))
        manager.book.open("RELIANCE", 10, 100.0)
        events = [await manager.simulate_market_tick() for _ in range(20)]
        position = manager.book.find_by_symbol("RELIANCE")
        assert position.current_price != 100.0
        assert 0 <= position.risk_score <= 100
        assert all(e is None or isinstance(e, MarketEvent) for e in events)

    @pytest.mark.asyncio
    async def test_default_price_source_is_simulated(self, settings):
        manager = RiskManager(settings)
        manager.book.open("TCS", 10, 100.0)
        assert manager.price_source.name == "simulation"
        assert await manager.request_price_refresh() == 1

    def test_health_check(self, manager):
        health = manager.health_check()
        assert health["status"] == "operational"
        assert health["priceSource"] == "static"
