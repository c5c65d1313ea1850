# src/journal/journal_manager.py
"""Execution log writer and activity queries."""
import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Optional

from src.config.trading_config import TradingConfig
from src.execution.errors import ExecutionError
from src.journal.metrics_calculator import MetricsCalculator
from src.journal.models import ExecutionStats, TradingMetrics
from src.models.approval import ApprovalStatus
from src.models.execution_log import ExecutionLogEntry, FailureKind, TriggerType
from src.models.recommendation import RecommendationStatus
from src.risk.models import RiskCheckResult
from src.storage.state_store import TradingStateStore


logger = logging.getLogger(__name__)

_TAKE_PROFIT_TRIGGERS = {TriggerType.TAKE_PROFIT_1, TriggerType.TAKE_PROFIT_2}


def classify_failure(error: Exception) -> FailureKind:
    """Map an execution exception to the kind of failure it represents."""
    if isinstance(error, ExecutionError):
        return FailureKind.RESOURCE
    return FailureKind.INFRASTRUCTURE


def _json_ready(details: dict[str, Any]) -> dict[str, Any]:
    return {k: str(v) if isinstance(v, Decimal) else v for k, v in details.items()}


class JournalManager:
    """Writes execution log entries and answers activity queries.

    Every execution attempt, successful or not, is recorded exactly once
    through ``record``.
    """

    def __init__(self, store: TradingStateStore) -> None:
        """Initialize the journal.

        Args:
            store: State store holding the execution log.
        """
        self._store = store
        self._metrics_calculator = MetricsCalculator()

    async def record(
        self,
        symbol: str,
        action: str,
        trigger_type: TriggerType,
        success: bool,
        config: Optional[TradingConfig] = None,
        risk_check: Optional[RiskCheckResult] = None,
        recommendation_id: Optional[int] = None,
        trade_id: Optional[int] = None,
        approval_id: Optional[int] = None,
        latency_ms: int = 0,
        error: Optional[str] = None,
        failure_kind: Optional[FailureKind] = None,
        details: Optional[dict[str, Any]] = None,
        now: Optional[datetime] = None,
    ) -> ExecutionLogEntry:
        """Append one execution attempt to the log.

        Args:
            symbol: Coin symbol.
            action: BUY or SELL.
            trigger_type: What started the attempt.
            success: Whether a trade was executed.
            config: Trading configuration in effect.
            risk_check: Risk result, when a check ran.
            latency_ms: Wall time of the attempt.
            error: Failure description.
            failure_kind: Failure category, for unsuccessful attempts.
            details: Trigger data (threshold, trigger price, P&L, quantity).

        Returns:
            The stored entry with its id.
        """
        entry = ExecutionLogEntry(
            recommendation_id=recommendation_id,
            trade_id=trade_id,
            approval_id=approval_id,
            symbol=symbol,
            action=action,
            trigger_type=trigger_type,
            config_snapshot=config.snapshot() if config is not None else None,
            risk_check=risk_check.to_dict() if risk_check is not None else None,
            latency_ms=latency_ms,
            success=success,
            error=error,
            failure_kind=failure_kind,
            details=_json_ready(details or {}),
            created_at=now or datetime.now(),
        )
        stored = await self._store.append_execution_log(entry)

        if not success:
            kind = failure_kind.value if failure_kind else "unknown"
            logger.info(f"Logged failed {trigger_type.value} {action} {symbol} ({kind}): {error}")
        return stored

    async def get_stats(self, now: Optional[datetime] = None) -> ExecutionStats:
        """Return counters for pending work and recent execution activity."""
        now = now or datetime.now()
        state = await self._store.snapshot()

        midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
        week_ago = now - timedelta(days=7)
        day_ago = now - timedelta(hours=24)

        week = [e for e in state.execution_log if e.created_at >= week_ago]
        last_day = [e for e in state.execution_log if e.created_at >= day_ago and e.success]
        succeeded = sum(1 for e in week if e.success)

        return ExecutionStats(
            pending_recommendations=sum(
                1 for r in state.recommendations.values()
                if r.execution_status == RecommendationStatus.PENDING
            ),
            pending_approvals=sum(
                1 for a in state.approvals.values() if a.status == ApprovalStatus.PENDING
            ),
            executed_today=sum(
                1 for e in state.execution_log if e.success and e.created_at >= midnight
            ),
            success_rate_7d=succeeded / len(week) * 100 if week else 0.0,
            stop_losses_24h=sum(1 for e in last_day if e.trigger_type == TriggerType.STOP_LOSS),
            take_profits_24h=sum(1 for e in last_day if e.trigger_type in _TAKE_PROFIT_TRIGGERS),
        )

    async def get_metrics(self, period_days: int = 30, now: Optional[datetime] = None) -> TradingMetrics:
        """Calculate performance metrics over the trade ledger."""
        trades = await self._store.get_trades()
        return self._metrics_calculator.calculate(trades, period_days=period_days, now=now)
