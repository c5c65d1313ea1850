# src/models/recommendation.py
"""Recommendation records produced by the external recommendation generator."""
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class RecommendationAction(str, Enum):
    BUY = "BUY"
    SELL = "SELL"
    HOLD = "HOLD"


class RecommendationStatus(str, Enum):
    PENDING = "pending"
    QUEUED = "queued"
    EXECUTED = "executed"
    REJECTED = "rejected"
    EXPIRED = "expired"


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# Terminal states are never left once entered.
RECOMMENDATION_TRANSITIONS: dict[RecommendationStatus, set[RecommendationStatus]] = {
    RecommendationStatus.PENDING: {
        RecommendationStatus.QUEUED,
        RecommendationStatus.EXECUTED,
        RecommendationStatus.REJECTED,
        RecommendationStatus.EXPIRED,
    },
    RecommendationStatus.QUEUED: {
        RecommendationStatus.EXECUTED,
        RecommendationStatus.REJECTED,
        RecommendationStatus.EXPIRED,
    },
    RecommendationStatus.EXECUTED: set(),
    RecommendationStatus.REJECTED: set(),
    RecommendationStatus.EXPIRED: set(),
}


class Reasoning(BaseModel):
    """Structured reasoning attached to a recommendation.

    The summary is always present; everything else the generator wants to
    carry (indicator readings, sentiment, news references) goes in metadata.
    """

    summary: str
    metadata: dict[str, Any] = Field(default_factory=dict)


class Recommendation(BaseModel):
    """A proposed BUY/SELL/HOLD action with confidence and exit levels."""

    id: int = 0
    symbol: str
    action: RecommendationAction
    confidence: int = Field(ge=0, le=100)
    entry_price: Decimal = Field(gt=0)
    stop_loss: Optional[Decimal] = None
    take_profit_1: Optional[Decimal] = None
    take_profit_2: Optional[Decimal] = None
    position_size: Decimal = Field(default=Decimal("0"), ge=0, le=1)
    risk_level: RiskLevel = RiskLevel.MEDIUM
    reasoning: Reasoning
    execution_status: RecommendationStatus = RecommendationStatus.PENDING
    created_at: datetime = Field(default_factory=datetime.now)
    expires_at: datetime
    executed_at: Optional[datetime] = None

    model_config = {"frozen": True}

    def is_expired(self, now: datetime) -> bool:
        """Return True once the recommendation is past its expiry time."""
        return self.expires_at <= now

    def can_transition_to(self, status: RecommendationStatus) -> bool:
        return status in RECOMMENDATION_TRANSITIONS[self.execution_status]
