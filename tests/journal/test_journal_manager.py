# tests/journal/test_journal_manager.py
"""Tests for JournalManager class."""
from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from src.config.trading_config import TradingConfig
from src.execution.errors import InsufficientFundsError, InsufficientPositionError
from src.journal.journal_manager import JournalManager, classify_failure
from src.market_data.errors import PriceUnavailableError
from src.models.approval import ApprovalRequest
from src.models.execution_log import FailureKind, TriggerType
from src.models.portfolio import Trade, TradeSide
from src.models.recommendation import Reasoning, Recommendation, RecommendationAction
from src.risk.models import RiskCheckResult
from src.storage.state_store import TradingStateStore


NOW = datetime(2026, 3, 2, 12, 0, 0)


def make_recommendation(symbol: str = "ETH") -> Recommendation:
    return Recommendation(
        symbol=symbol,
        action=RecommendationAction.BUY,
        confidence=80,
        entry_price=Decimal("100"),
        reasoning=Reasoning(summary="test"),
        created_at=NOW - timedelta(hours=1),
        expires_at=NOW + timedelta(hours=1),
    )


@pytest.fixture
def store(tmp_path):
    return TradingStateStore(tmp_path / "state", Decimal("10000"))


@pytest.fixture
def journal(store):
    return JournalManager(store)


class TestClassifyFailure:
    """Tests for classify_failure."""

    def test_cash_and_quantity_failures_are_resource(self):
        assert classify_failure(InsufficientFundsError("ETH", Decimal("2"), Decimal("1"))) == FailureKind.RESOURCE
        assert classify_failure(InsufficientPositionError("ETH", Decimal("2"), Decimal("1"))) == FailureKind.RESOURCE

    def test_everything_else_is_infrastructure(self):
        assert classify_failure(PriceUnavailableError("ETH")) == FailureKind.INFRASTRUCTURE
        assert classify_failure(OSError("disk full")) == FailureKind.INFRASTRUCTURE


class TestRecord:
    """Tests for JournalManager.record."""

    @pytest.mark.asyncio
    async def test_records_success_with_context(self, journal, store):
        config = TradingConfig(auto_execute=True, human_approval=False)
        risk_check = RiskCheckResult(allowed=True, reason="All risk checks passed")

        entry = await journal.record(
            symbol="ETH",
            action="BUY",
            trigger_type=TriggerType.AUTO,
            success=True,
            config=config,
            risk_check=risk_check,
            recommendation_id=3,
            trade_id=7,
            latency_ms=12,
            details={"quantity": Decimal("5"), "price": Decimal("100.5")},
            now=NOW,
        )

        assert entry.id == 1
        assert entry.config_snapshot["auto_execute"] is True
        assert entry.config_snapshot["max_position_size"] == "0.05"
        assert entry.risk_check["reason"] == "All risk checks passed"
        assert entry.details == {"quantity": "5", "price": "100.5"}
        assert entry.created_at == NOW
        assert await store.list_execution_log() == [entry]

    @pytest.mark.asyncio
    async def test_records_failure_kind(self, journal):
        entry = await journal.record(
            symbol="ETH",
            action="SELL",
            trigger_type=TriggerType.STOP_LOSS,
            success=False,
            error="Price unavailable for ETH",
            failure_kind=FailureKind.INFRASTRUCTURE,
        )

        assert entry.success is False
        assert entry.failure_kind == FailureKind.INFRASTRUCTURE
        assert entry.config_snapshot is None
        assert entry.risk_check is None

    @pytest.mark.asyncio
    async def test_ids_increase(self, journal):
        first = await journal.record("ETH", "BUY", TriggerType.MANUAL, True)
        second = await journal.record("BTC", "BUY", TriggerType.MANUAL, True)

        assert (first.id, second.id) == (1, 2)


class TestGetStats:
    """Tests for JournalManager.get_stats."""

    @pytest.mark.asyncio
    async def test_counts_pending_work(self, journal, store):
        await store.insert_recommendation(make_recommendation("ETH"))
        queued = await store.insert_recommendation(make_recommendation("BTC"))
        await store.queue_for_approval(
            ApprovalRequest(
                recommendation_id=queued.id,
                symbol="BTC",
                action=RecommendationAction.BUY,
                quantity=Decimal("0.01"),
                entry_price=Decimal("50000"),
                reasoning=Reasoning(summary="test"),
                expires_at=NOW + timedelta(hours=1),
            )
        )

        stats = await journal.get_stats(now=NOW)

        assert stats.pending_recommendations == 1
        assert stats.pending_approvals == 1

    @pytest.mark.asyncio
    async def test_activity_counters(self, journal):
        await journal.record("ETH", "BUY", TriggerType.AUTO, True, now=NOW - timedelta(hours=1))
        await journal.record("ETH", "BUY", TriggerType.AUTO, False, now=NOW - timedelta(hours=2))
        await journal.record("SOL", "SELL", TriggerType.STOP_LOSS, True, now=NOW - timedelta(hours=3))
        await journal.record("AVAX", "SELL", TriggerType.TAKE_PROFIT_1, True, now=NOW - timedelta(hours=4))
        await journal.record("AVAX", "SELL", TriggerType.TAKE_PROFIT_2, True, now=NOW - timedelta(days=2))
        await journal.record("BTC", "SELL", TriggerType.STOP_LOSS, True, now=NOW - timedelta(days=10))

        stats = await journal.get_stats(now=NOW)

        assert stats.executed_today == 3
        assert stats.stop_losses_24h == 1
        assert stats.take_profits_24h == 1
        assert stats.success_rate_7d == pytest.approx(80.0)

    @pytest.mark.asyncio
    async def test_empty_log(self, journal):
        stats = await journal.get_stats(now=NOW)

        assert stats.executed_today == 0
        assert stats.success_rate_7d == 0.0


class TestGetMetrics:
    """Tests for JournalManager.get_metrics."""

    @pytest.mark.asyncio
    async def test_metrics_from_ledger(self, journal, store):
        async with store.transaction() as state:
            state.trades.append(
                Trade(
                    id=1,
                    symbol="ETH",
                    side=TradeSide.SELL,
                    quantity=Decimal("1"),
                    price=Decimal("110"),
                    market_price=Decimal("110"),
                    fee=Decimal("0"),
                    slippage=Decimal("0"),
                    total_cost=Decimal("110"),
                    realized_pnl=Decimal("10"),
                    executed_at=NOW - timedelta(days=1),
                )
            )

        metrics = await journal.get_metrics(period_days=30, now=NOW)

        assert metrics.total_trades == 1
        assert metrics.total_pnl_dollars == pytest.approx(10.0)
