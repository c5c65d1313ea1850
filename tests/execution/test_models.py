# tests/execution/test_models.py
"""Tests for execution data models."""
from datetime import datetime
from decimal import Decimal

from src.execution.models import ManualTradeResult, ProtectionUpdate
from src.models.portfolio import Holding, Trade, TradeSide
from src.risk.models import RiskCheckResult


NOW = datetime(2026, 3, 2, 12, 0, 0)


def make_holding(**overrides) -> Holding:
    values = {
        "symbol": "AVAX",
        "quantity": Decimal("100"),
        "average_price": Decimal("20"),
        "stop_loss": Decimal("18"),
        "take_profit": Decimal("25"),
        "take_profit_2": Decimal("30"),
    }
    values.update(overrides)
    return Holding(**values)


class TestProtectionUpdate:
    """Tests for ProtectionUpdate dataclass."""

    def test_empty_update(self):
        assert ProtectionUpdate().is_empty()
        assert not ProtectionUpdate(partial_exit_taken=False).is_empty()

    def test_apply_replaces_only_given_levels(self):
        holding = make_holding()

        updated = ProtectionUpdate(stop_loss=Decimal("20"), partial_exit_taken=True).apply(holding, NOW)

        assert updated.stop_loss == Decimal("20")
        assert updated.take_profit == Decimal("25")
        assert updated.take_profit_2 == Decimal("30")
        assert updated.partial_exit_taken is True
        assert updated.protection_updated_at == NOW
        assert holding.stop_loss == Decimal("18")

    def test_apply_empty_returns_same_holding(self):
        holding = make_holding()

        assert ProtectionUpdate().apply(holding, NOW) is holding


class TestManualTradeResult:
    """Tests for ManualTradeResult dataclass."""

    def test_success_when_trade_present(self):
        trade = Trade(
            id=1,
            symbol="ETH",
            side=TradeSide.BUY,
            quantity=Decimal("1"),
            price=Decimal("100"),
            market_price=Decimal("100"),
            fee=Decimal("0.1"),
            slippage=Decimal("0"),
            total_cost=Decimal("100.1"),
        )
        result = ManualTradeResult(risk_check=RiskCheckResult(allowed=True, reason="ok"), trade=trade)

        assert result.success is True

    def test_failure_without_trade(self):
        result = ManualTradeResult(
            risk_check=RiskCheckResult(allowed=True, reason="ok"),
            error="Insufficient funds",
        )

        assert result.success is False
        assert result.error == "Insufficient funds"
