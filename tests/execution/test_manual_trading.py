# tests/execution/test_manual_trading.py
"""Tests for ManualTradeDesk class."""
from decimal import Decimal

import pytest

from src.config.settings import RiskSettings
from src.execution.manual_trading import ManualTradeDesk
from src.execution.trade_executor import TradeExecutor
from src.journal.journal_manager import JournalManager
from src.market_data.static_feed import StaticPriceFeed
from src.models.execution_log import FailureKind, TriggerType
from src.models.portfolio import TradeSide, TradeType
from src.portfolio.portfolio_reader import PortfolioReader
from src.risk.risk_manager import RiskValidator
from src.storage.state_store import TradingStateStore


STARTING_CASH = Decimal("10000")


@pytest.fixture
def store(tmp_path):
    return TradingStateStore(tmp_path / "state", STARTING_CASH)


@pytest.fixture
def price_feed():
    return StaticPriceFeed({"BTC": "50000", "ETH": "100"})


@pytest.fixture
def desk(store, price_feed):
    reader = PortfolioReader(store, price_feed, STARTING_CASH)
    return ManualTradeDesk(
        executor=TradeExecutor(store, price_feed),
        risk_validator=RiskValidator(reader, store, RiskSettings()),
        journal=JournalManager(store),
        price_feed=price_feed,
    )


class TestSubmit:
    """Tests for ManualTradeDesk.submit."""

    @pytest.mark.asyncio
    async def test_clean_trade_executes(self, desk, store):
        result = await desk.submit("eth", TradeSide.BUY, Decimal("2"), stop_loss=Decimal("95"))

        assert result.success
        assert result.trade.symbol == "ETH"
        assert result.trade.trade_type == TradeType.MANUAL
        assert result.trade.triggered_by == "user"
        assert result.risk_check.warnings == []

        [entry] = await store.list_execution_log()
        assert entry.trigger_type == TriggerType.MANUAL
        assert entry.success is True
        assert entry.trade_id == result.trade.id

    @pytest.mark.asyncio
    async def test_risky_trade_executes_with_warnings(self, desk, store):
        """Test a 15% position with a wide stop is filled and warned about."""
        result = await desk.submit("ETH", TradeSide.BUY, Decimal("15"), stop_loss=Decimal("80"))

        assert result.success
        assert result.risk_check.allowed is True
        assert any("Position size" in w for w in result.risk_check.warnings)
        assert any("Wide stop-loss" in w for w in result.risk_check.warnings)
        assert (await store.get_holding("ETH")).stop_loss == Decimal("80")

    @pytest.mark.asyncio
    async def test_missing_stop_allowed_for_manual(self, desk, store):
        result = await desk.submit("ETH", TradeSide.BUY, Decimal("1"))

        assert result.success
        assert any("No stop-loss set" in w for w in result.risk_check.warnings)
        assert (await store.get_holding("ETH")).stop_loss is None

    @pytest.mark.asyncio
    async def test_insufficient_funds_reported(self, desk, store):
        result = await desk.submit("BTC", TradeSide.BUY, Decimal("1"))

        assert not result.success
        assert "Insufficient funds" in result.error
        assert await store.get_cash() == STARTING_CASH
        [entry] = await store.list_execution_log()
        assert entry.failure_kind == FailureKind.RESOURCE

    @pytest.mark.asyncio
    async def test_price_unavailable_blocks_trade(self, desk, store):
        result = await desk.submit("DOGE", TradeSide.BUY, Decimal("100"))

        assert not result.success
        assert result.risk_check.allowed is False
        assert result.risk_check.reason == "Price unavailable"
        [entry] = await store.list_execution_log()
        assert entry.failure_kind == FailureKind.INFRASTRUCTURE
        assert await store.get_trades() == []

    @pytest.mark.asyncio
    async def test_sell_realizes_pnl(self, desk, store, price_feed):
        await desk.submit("ETH", TradeSide.BUY, Decimal("2"))
        price_feed.set_price("ETH", "110")

        result = await desk.submit("ETH", TradeSide.SELL, Decimal("2"), reasoning="taking profit")

        assert result.success
        assert result.trade.reasoning == "taking profit"
        assert result.trade.realized_pnl > 0
        assert await store.get_holding("ETH") is None

    @pytest.mark.asyncio
    async def test_non_positive_quantity_raises(self, desk):
        with pytest.raises(ValueError):
            await desk.submit("ETH", TradeSide.BUY, Decimal("-1"))

    @pytest.mark.asyncio
    async def test_recent_trade_warns_about_cooldown(self, desk, store):
        await desk.submit("ETH", TradeSide.BUY, Decimal("1"))

        result = await desk.submit("ETH", TradeSide.BUY, Decimal("1"))

        assert result.success
        assert any("Traded ETH" in w for w in result.risk_check.warnings)
