# src/models/approval.py
"""Approval requests staged for human sign-off."""
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from src.models.recommendation import Reasoning, RecommendationAction


class ApprovalStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    EXPIRED = "expired"
    EXECUTED = "executed"


APPROVAL_TRANSITIONS: dict[ApprovalStatus, set[ApprovalStatus]] = {
    ApprovalStatus.PENDING: {
        ApprovalStatus.APPROVED,
        ApprovalStatus.REJECTED,
        ApprovalStatus.EXPIRED,
    },
    ApprovalStatus.APPROVED: {ApprovalStatus.EXECUTED, ApprovalStatus.REJECTED},
    ApprovalStatus.REJECTED: set(),
    ApprovalStatus.EXPIRED: set(),
    ApprovalStatus.EXECUTED: set(),
}


class ApprovalRequest(BaseModel):
    """A recommendation's trade parameters frozen at queue time.

    Approval authorizes execution of exactly these parameters; nothing is
    re-sized or re-validated when the request is executed.
    """

    id: int = 0
    recommendation_id: int
    symbol: str
    action: RecommendationAction
    quantity: Decimal = Field(gt=0)
    entry_price: Decimal
    stop_loss: Optional[Decimal] = None
    take_profit_1: Optional[Decimal] = None
    take_profit_2: Optional[Decimal] = None
    reasoning: Reasoning
    status: ApprovalStatus = ApprovalStatus.PENDING
    created_at: datetime = Field(default_factory=datetime.now)
    expires_at: datetime
    decided_at: Optional[datetime] = None
    decision_note: Optional[str] = None
    executed_at: Optional[datetime] = None

    model_config = {"frozen": True}

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at < now

    def can_transition_to(self, status: ApprovalStatus) -> bool:
        return status in APPROVAL_TRANSITIONS[self.status]
