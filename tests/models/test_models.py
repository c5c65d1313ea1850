# tests/models/test_models.py
"""Tests for domain records."""
from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from pydantic import ValidationError

from src.models import (
    ApprovalRequest,
    ApprovalStatus,
    Holding,
    Portfolio,
    Position,
    Reasoning,
    Recommendation,
    RecommendationAction,
    RecommendationStatus,
)


NOW = datetime(2026, 3, 2, 12, 0, 0)


def make_recommendation(**overrides) -> Recommendation:
    values = {
        "symbol": "ETH",
        "action": RecommendationAction.BUY,
        "confidence": 80,
        "entry_price": Decimal("100"),
        "reasoning": Reasoning(summary="test"),
        "created_at": NOW,
        "expires_at": NOW + timedelta(hours=1),
    }
    values.update(overrides)
    return Recommendation(**values)


class TestRecommendation:
    """Tests for Recommendation model."""

    def test_confidence_bounds(self):
        with pytest.raises(ValidationError):
            make_recommendation(confidence=101)

    def test_entry_price_must_be_positive(self):
        with pytest.raises(ValidationError):
            make_recommendation(entry_price=Decimal("0"))

    def test_expired_at_expiry_time(self):
        rec = make_recommendation()

        assert not rec.is_expired(NOW)
        assert rec.is_expired(NOW + timedelta(hours=1))

    def test_transitions(self):
        rec = make_recommendation()

        assert rec.can_transition_to(RecommendationStatus.QUEUED)
        executed = rec.model_copy(update={"execution_status": RecommendationStatus.EXECUTED})
        assert not executed.can_transition_to(RecommendationStatus.REJECTED)

    def test_is_frozen(self):
        with pytest.raises(ValidationError):
            make_recommendation().confidence = 10


class TestApprovalRequest:
    """Tests for ApprovalRequest model."""

    def test_expiry_is_strict(self):
        approval = ApprovalRequest(
            recommendation_id=1,
            symbol="ETH",
            action=RecommendationAction.BUY,
            quantity=Decimal("1"),
            entry_price=Decimal("100"),
            reasoning=Reasoning(summary="test"),
            expires_at=NOW,
        )

        assert not approval.is_expired(NOW)
        assert approval.is_expired(NOW + timedelta(seconds=1))

    def test_approved_can_only_execute_or_reject(self):
        approval = ApprovalRequest(
            recommendation_id=1,
            symbol="ETH",
            action=RecommendationAction.BUY,
            quantity=Decimal("1"),
            entry_price=Decimal("100"),
            reasoning=Reasoning(summary="test"),
            status=ApprovalStatus.APPROVED,
            expires_at=NOW,
        )

        assert approval.can_transition_to(ApprovalStatus.EXECUTED)
        assert approval.can_transition_to(ApprovalStatus.REJECTED)
        assert not approval.can_transition_to(ApprovalStatus.EXPIRED)


class TestPortfolio:
    """Tests for Holding, Position and Portfolio."""

    def test_holding_requires_positive_quantity(self):
        with pytest.raises(ValidationError):
            Holding(symbol="ETH", quantity=Decimal("0"), average_price=Decimal("100"))

    def test_cost_basis(self):
        holding = Holding(symbol="ETH", quantity=Decimal("2"), average_price=Decimal("150"))

        assert holding.cost_basis == Decimal("300")

    def test_total_value_and_return(self):
        portfolio = Portfolio(
            cash=Decimal("500"),
            starting_capital=Decimal("1000"),
            positions=[
                Position(
                    symbol="ETH",
                    quantity=Decimal("5"),
                    average_price=Decimal("100"),
                    current_price=Decimal("110"),
                )
            ],
        )

        assert portfolio.total_value == Decimal("1050")
        assert portfolio.total_return_percent == Decimal("5")
        assert portfolio.get_position("ETH").unrealized_pnl == Decimal("50")
        assert portfolio.get_position("BTC") is None
