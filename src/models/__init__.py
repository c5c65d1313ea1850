"""Domain records for the paper-trading autopilot."""

from src.models.approval import APPROVAL_TRANSITIONS, ApprovalRequest, ApprovalStatus
from src.models.execution_log import ExecutionLogEntry, FailureKind, TriggerType
from src.models.portfolio import Holding, Portfolio, Position, Trade, TradeSide, TradeType
from src.models.recommendation import (
    RECOMMENDATION_TRANSITIONS,
    Reasoning,
    Recommendation,
    RecommendationAction,
    RecommendationStatus,
    RiskLevel,
)

__all__ = [
    "APPROVAL_TRANSITIONS",
    "ApprovalRequest",
    "ApprovalStatus",
    "ExecutionLogEntry",
    "FailureKind",
    "Holding",
    "Portfolio",
    "Position",
    "RECOMMENDATION_TRANSITIONS",
    "Reasoning",
    "Recommendation",
    "RecommendationAction",
    "RecommendationStatus",
    "RiskLevel",
    "Trade",
    "TradeSide",
    "TradeType",
]
