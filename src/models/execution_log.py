# src/models/execution_log.py
"""Append-only audit records for every execution attempt."""
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class TriggerType(str, Enum):
    AUTO = "auto"
    APPROVAL = "approval"
    MANUAL = "manual"
    STOP_LOSS = "stop_loss"
    TAKE_PROFIT_1 = "take_profit_1"
    TAKE_PROFIT_2 = "take_profit_2"
    TRAILING_STOP = "trailing_stop"


class FailureKind(str, Enum):
    """Why an attempt did not go through.

    POLICY: risk rules said no. RESOURCE: not enough cash or quantity.
    INFRASTRUCTURE: price feed or storage failure.
    """

    POLICY = "policy"
    RESOURCE = "resource"
    INFRASTRUCTURE = "infrastructure"


class ExecutionLogEntry(BaseModel):
    """One execution attempt, successful or not.

    Attributes:
        config_snapshot: Trading configuration in effect for the attempt.
        risk_check: Outcome of the risk check, when one ran.
        details: Trigger data such as threshold, trigger price and P&L.
    """

    id: int = 0
    recommendation_id: Optional[int] = None
    trade_id: Optional[int] = None
    approval_id: Optional[int] = None
    symbol: str
    action: str
    trigger_type: TriggerType
    config_snapshot: Optional[dict[str, Any]] = None
    risk_check: Optional[dict[str, Any]] = None
    latency_ms: int = 0
    success: bool
    error: Optional[str] = None
    failure_kind: Optional[FailureKind] = None
    details: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=datetime.now)

    model_config = {"frozen": True}
