# src/storage/models.py
"""In-memory image of everything the store persists."""
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Optional

from src.models.approval import ApprovalRequest, ApprovalStatus
from src.models.execution_log import ExecutionLogEntry
from src.models.portfolio import Holding, Trade
from src.models.recommendation import Recommendation, RecommendationStatus
from src.storage.errors import InvalidStatusTransition, RecordNotFoundError


@dataclass
class TradingState:
    """All durable tables.

    Records are frozen pydantic models: changes replace the record rather than
    mutating it, so ``copy()`` only needs to copy the containers.
    """

    cash: Decimal
    holdings: dict[str, Holding] = field(default_factory=dict)
    trades: list[Trade] = field(default_factory=list)
    recommendations: dict[int, Recommendation] = field(default_factory=dict)
    approvals: dict[int, ApprovalRequest] = field(default_factory=dict)
    execution_log: list[ExecutionLogEntry] = field(default_factory=list)

    def copy(self) -> "TradingState":
        return TradingState(
            cash=self.cash,
            holdings=dict(self.holdings),
            trades=list(self.trades),
            recommendations=dict(self.recommendations),
            approvals=dict(self.approvals),
            execution_log=list(self.execution_log),
        )

    def next_trade_id(self) -> int:
        return self.trades[-1].id + 1 if self.trades else 1

    def next_recommendation_id(self) -> int:
        return max(self.recommendations, default=0) + 1

    def next_approval_id(self) -> int:
        return max(self.approvals, default=0) + 1

    def next_log_id(self) -> int:
        return self.execution_log[-1].id + 1 if self.execution_log else 1

    def get_recommendation(self, recommendation_id: int) -> Recommendation:
        try:
            return self.recommendations[recommendation_id]
        except KeyError:
            raise RecordNotFoundError(f"Recommendation {recommendation_id} not found") from None

    def get_approval(self, approval_id: int) -> ApprovalRequest:
        try:
            return self.approvals[approval_id]
        except KeyError:
            raise RecordNotFoundError(f"Approval request {approval_id} not found") from None

    def set_recommendation_status(
        self,
        recommendation_id: int,
        status: RecommendationStatus,
        now: Optional[datetime] = None,
    ) -> Recommendation:
        """Move a recommendation to a new status.

        Raises:
            RecordNotFoundError: Unknown id.
            InvalidStatusTransition: Transition not allowed from current status.
        """
        current = self.get_recommendation(recommendation_id)
        if not current.can_transition_to(status):
            raise InvalidStatusTransition(
                f"Recommendation {recommendation_id}: "
                f"{current.execution_status.value} -> {status.value} not allowed"
            )

        update: dict = {"execution_status": status}
        if status == RecommendationStatus.EXECUTED:
            update["executed_at"] = now or datetime.now()

        updated = current.model_copy(update=update)
        self.recommendations[recommendation_id] = updated
        return updated

    def set_approval_status(
        self,
        approval_id: int,
        status: ApprovalStatus,
        now: Optional[datetime] = None,
        note: Optional[str] = None,
    ) -> ApprovalRequest:
        """Move an approval request to a new status.

        Raises:
            RecordNotFoundError: Unknown id.
            InvalidStatusTransition: Transition not allowed from current status.
        """
        current = self.get_approval(approval_id)
        if not current.can_transition_to(status):
            raise InvalidStatusTransition(
                f"Approval {approval_id}: {current.status.value} -> {status.value} not allowed"
            )

        now = now or datetime.now()
        update: dict = {"status": status}
        if status in (ApprovalStatus.APPROVED, ApprovalStatus.REJECTED):
            update["decided_at"] = now
        if status == ApprovalStatus.EXECUTED:
            update["executed_at"] = now
        if note is not None:
            update["decision_note"] = note

        updated = current.model_copy(update=update)
        self.approvals[approval_id] = updated
        return updated
