# tests/approvals/test_approval_processor.py
"""Tests for ApprovalQueueProcessor class."""
from datetime import datetime, timedelta
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from src.approvals.approval_processor import ApprovalQueueProcessor
from src.approvals.models import ApprovalStats
from src.config.settings import LifecycleSettings
from src.config.trading_config import TradingConfig
from src.execution.errors import InsufficientFundsError
from src.execution.trade_executor import TradeExecutor
from src.journal.journal_manager import JournalManager
from src.market_data.static_feed import StaticPriceFeed
from src.models.approval import ApprovalStatus
from src.models.execution_log import FailureKind, TriggerType
from src.models.portfolio import TradeSide
from src.models.recommendation import (
    Reasoning,
    Recommendation,
    RecommendationAction,
    RecommendationStatus,
)
from src.storage.errors import InvalidStatusTransition, RecordNotFoundError
from src.storage.state_store import TradingStateStore


NOW = datetime(2026, 3, 2, 12, 0, 0)


def make_recommendation(
    symbol: str = "ETH",
    action: RecommendationAction = RecommendationAction.BUY,
    stop_loss: str | None = "95",
) -> Recommendation:
    return Recommendation(
        symbol=symbol,
        action=action,
        confidence=85,
        entry_price=Decimal("100"),
        stop_loss=Decimal(stop_loss) if stop_loss else None,
        take_profit_1=Decimal("110"),
        take_profit_2=Decimal("120"),
        reasoning=Reasoning(summary="Breakout above resistance"),
        created_at=NOW - timedelta(minutes=10),
        expires_at=NOW + timedelta(hours=12),
    )


@pytest.fixture
def store(tmp_path):
    return TradingStateStore(tmp_path / "state", Decimal("10000"))


@pytest.fixture
def price_feed():
    return StaticPriceFeed({"ETH": "100"})


@pytest.fixture
def executor(store, price_feed):
    return TradeExecutor(store, price_feed)


@pytest.fixture
def processor(store, executor):
    return ApprovalQueueProcessor(
        store, executor, JournalManager(store), LifecycleSettings(approval_ttl_minutes=60)
    )


async def queue(store, processor, quantity="2", **kwargs):
    """Insert a recommendation and stage it for approval."""
    rec = await store.insert_recommendation(make_recommendation(**kwargs))
    approval = await processor.create_request(rec, Decimal(quantity), now=NOW)
    return rec, approval


class TestCreateRequest:
    """Tests for staging approvals."""

    @pytest.mark.asyncio
    async def test_freezes_trade_parameters(self, store, processor):
        rec, approval = await queue(store, processor)

        assert approval.id == 1
        assert approval.status == ApprovalStatus.PENDING
        assert approval.quantity == Decimal("2")
        assert approval.stop_loss == Decimal("95")
        assert approval.take_profit_1 == Decimal("110")
        assert approval.expires_at == NOW + timedelta(minutes=60)
        assert (await store.get_recommendation(rec.id)).execution_status == RecommendationStatus.QUEUED

    @pytest.mark.asyncio
    async def test_explicit_stop_overrides_recommendation(self, store, processor):
        rec = await store.insert_recommendation(make_recommendation(stop_loss=None))

        approval = await processor.create_request(rec, Decimal("1"), Decimal("97"), now=NOW)

        assert approval.stop_loss == Decimal("97")

    @pytest.mark.asyncio
    async def test_list_pending_excludes_expired(self, store, processor):
        _, approval = await queue(store, processor)

        assert [a.id for a in await processor.list_pending(now=NOW)] == [approval.id]
        assert await processor.list_pending(now=NOW + timedelta(minutes=61)) == []


class TestDecisions:
    """Tests for approve and reject."""

    @pytest.mark.asyncio
    async def test_approve_pending(self, store, processor):
        _, approval = await queue(store, processor)

        approved = await processor.approve(approval.id, note="looks good", now=NOW)

        assert approved.status == ApprovalStatus.APPROVED
        assert approved.decided_at == NOW
        assert approved.decision_note == "looks good"

    @pytest.mark.asyncio
    async def test_reject_also_rejects_recommendation(self, store, processor):
        rec, approval = await queue(store, processor)

        rejected = await processor.reject(approval.id, now=NOW)

        assert rejected.status == ApprovalStatus.REJECTED
        assert (await store.get_recommendation(rec.id)).execution_status == RecommendationStatus.REJECTED

    @pytest.mark.asyncio
    async def test_cannot_decide_twice(self, store, processor):
        _, approval = await queue(store, processor)
        await processor.approve(approval.id, now=NOW)

        with pytest.raises(InvalidStatusTransition):
            await processor.reject(approval.id, now=NOW)

    @pytest.mark.asyncio
    async def test_cannot_approve_after_expiry(self, store, processor):
        _, approval = await queue(store, processor)

        with pytest.raises(InvalidStatusTransition):
            await processor.approve(approval.id, now=NOW + timedelta(minutes=61))

        assert (await store.get_approval(approval.id)).status == ApprovalStatus.PENDING

    @pytest.mark.asyncio
    async def test_unknown_id_raises(self, processor):
        with pytest.raises(RecordNotFoundError):
            await processor.approve(999, now=NOW)


class TestProcess:
    """Tests for the approval sweep."""

    @pytest.mark.asyncio
    async def test_expires_stale_requests(self, store, processor):
        rec, approval = await queue(store, processor)

        stats = await processor.process(now=NOW + timedelta(minutes=61))

        assert stats.expired == 1
        assert (await store.get_approval(approval.id)).status == ApprovalStatus.EXPIRED
        assert await store.get_trades() == []
        assert (await store.get_recommendation(rec.id)).execution_status == RecommendationStatus.QUEUED

    @pytest.mark.asyncio
    async def test_pending_requests_are_not_executed(self, store, processor):
        await queue(store, processor)

        stats = await processor.process(now=NOW)

        assert stats.executed == 0
        assert await store.get_trades() == []

    @pytest.mark.asyncio
    async def test_executes_approved_with_frozen_parameters(self, store, processor):
        rec, approval = await queue(store, processor, quantity="3")
        await processor.approve(approval.id, now=NOW)

        stats = await processor.process(now=NOW, config=TradingConfig())

        assert stats.executed == 1
        executed = await store.get_approval(approval.id)
        assert executed.status == ApprovalStatus.EXECUTED
        assert executed.executed_at == NOW
        assert (await store.get_recommendation(rec.id)).execution_status == RecommendationStatus.EXECUTED

        [trade] = await store.get_trades()
        assert trade.quantity == Decimal("3")
        assert trade.triggered_by == f"approval_{approval.id}"
        holding = await store.get_holding("ETH")
        assert holding.stop_loss == Decimal("95")
        assert holding.take_profit_2 == Decimal("120")

        [entry] = await store.list_execution_log()
        assert entry.success is True
        assert entry.trigger_type == TriggerType.APPROVAL
        assert entry.approval_id == approval.id
        assert entry.trade_id == trade.id

    @pytest.mark.asyncio
    async def test_executed_request_not_executed_again(self, store, processor):
        _, approval = await queue(store, processor)
        await processor.approve(approval.id, now=NOW)

        await processor.process(now=NOW)
        stats = await processor.process(now=NOW + timedelta(minutes=1))

        assert stats.executed == 0
        assert len(await store.get_trades()) == 1

    @pytest.mark.asyncio
    async def test_resource_failure_rejects_request(self, store, processor, executor):
        rec, approval = await queue(store, processor)
        await processor.approve(approval.id, now=NOW)
        executor.execute = AsyncMock(
            side_effect=InsufficientFundsError("ETH", Decimal("200"), Decimal("50"))
        )

        stats = await processor.process(now=NOW)

        assert stats.failed == 1
        failed = await store.get_approval(approval.id)
        assert failed.status == ApprovalStatus.REJECTED
        assert "Insufficient" in failed.decision_note
        assert (await store.get_recommendation(rec.id)).execution_status == RecommendationStatus.REJECTED
        [entry] = await store.list_execution_log()
        assert entry.failure_kind == FailureKind.RESOURCE

    @pytest.mark.asyncio
    async def test_price_failure_keeps_request_for_retry(self, store, processor, price_feed):
        _, approval = await queue(store, processor)
        await processor.approve(approval.id, now=NOW)
        price_feed.remove_price("ETH")

        stats = await processor.process(now=NOW)

        assert stats.failed == 1
        assert (await store.get_approval(approval.id)).status == ApprovalStatus.APPROVED
        [entry] = await store.list_execution_log()
        assert entry.failure_kind == FailureKind.INFRASTRUCTURE

        price_feed.set_price("ETH", "100")
        retry = await processor.process(now=NOW + timedelta(minutes=5))

        assert retry.executed == 1
        assert (await store.get_approval(approval.id)).status == ApprovalStatus.EXECUTED

    @pytest.mark.asyncio
    async def test_price_failure_past_retry_window_rejects(self, store, processor, price_feed):
        """Test retries stop once the retry window after expiry has passed."""
        rec, approval = await queue(store, processor)
        await processor.approve(approval.id, now=NOW)
        price_feed.remove_price("ETH")

        await processor.process(now=NOW + timedelta(minutes=90))
        assert (await store.get_approval(approval.id)).status == ApprovalStatus.APPROVED

        stats = await processor.process(now=NOW + timedelta(minutes=120))

        assert stats.failed == 1
        assert (await store.get_approval(approval.id)).status == ApprovalStatus.REJECTED
        assert (await store.get_recommendation(rec.id)).execution_status == RecommendationStatus.REJECTED
        assert [e.failure_kind for e in await store.list_execution_log()] == [
            FailureKind.INFRASTRUCTURE,
            FailureKind.INFRASTRUCTURE,
        ]
        assert await processor.process(now=NOW + timedelta(minutes=150)) == ApprovalStats()

    @pytest.mark.asyncio
    async def test_fill_and_status_committed_together(self, store, processor):
        """Test a failing status write after the fill cannot cause a second fill."""
        rec, approval = await queue(store, processor)
        await processor.approve(approval.id, now=NOW)
        store.update_approval_status = AsyncMock(side_effect=OSError("disk full"))

        first = await processor.process(now=NOW)
        second = await processor.process(now=NOW + timedelta(minutes=1))

        assert first.executed == 1
        assert second.executed == 0
        assert len(await store.get_trades()) == 1
        assert (await store.get_approval(approval.id)).status == ApprovalStatus.EXECUTED
        assert (await store.get_recommendation(rec.id)).execution_status == RecommendationStatus.EXECUTED

    @pytest.mark.asyncio
    async def test_approved_sell_executes_without_protection(self, store, processor, executor):
        await executor.execute("ETH", TradeSide.BUY, Decimal("2"), "seed", stop_loss=Decimal("90"))
        _, approval = await queue(store, processor, action=RecommendationAction.SELL)
        await processor.approve(approval.id, now=NOW)

        stats = await processor.process(now=NOW)

        assert stats.executed == 1
        assert await store.get_holding("ETH") is None
