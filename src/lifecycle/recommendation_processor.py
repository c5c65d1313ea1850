# src/lifecycle/recommendation_processor.py
"""Turns pending recommendations into trades or approval requests."""
import logging
import time
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Optional

from src.approvals.approval_processor import ApprovalQueueProcessor
from src.config.settings import LifecycleSettings
from src.config.trading_config import TradingConfig
from src.execution.trade_executor import TradeExecutor
from src.journal.journal_manager import JournalManager, classify_failure
from src.lifecycle.models import CycleStats
from src.lifecycle.sizing import PositionSizer
from src.models.execution_log import FailureKind, TriggerType
from src.models.portfolio import TradeSide, TradeType
from src.models.recommendation import Recommendation, RecommendationAction, RecommendationStatus
from src.risk.models import HaltStatus, RiskCheckResult
from src.risk.risk_manager import RiskValidator
from src.storage.state_store import TradingStateStore


logger = logging.getLogger(__name__)


class RecommendationProcessor:
    """Runs the recommendation lifecycle.

    Each cycle sweeps the approval queue, expires stale recommendations and,
    when automation is on, either queues eligible recommendations for
    approval or validates and executes them directly.
    """

    def __init__(
        self,
        store: TradingStateStore,
        risk_validator: RiskValidator,
        executor: TradeExecutor,
        approvals: ApprovalQueueProcessor,
        journal: JournalManager,
        settings: Optional[LifecycleSettings] = None,
    ):
        """Initialize RecommendationProcessor.

        Args:
            store: State store for recommendations.
            risk_validator: Validates automated BUYs and sizes positions.
            executor: Executes validated trades.
            approvals: Approval queue, swept at the start of each cycle.
            journal: Execution log writer.
            settings: Freshness window, approval TTL and default stop.
        """
        self._store = store
        self._risk_validator = risk_validator
        self._executor = executor
        self._approvals = approvals
        self._journal = journal
        self._settings = settings or LifecycleSettings()
        self._sizer = PositionSizer(risk_validator, store)

    async def get_eligible(self, config: TradingConfig, now: datetime) -> list[Recommendation]:
        """Pending, fresh, unexpired recommendations at or above the threshold.

        Ordered by confidence (highest first), then newest first.
        """
        fresh_since = now - timedelta(hours=self._settings.freshness_hours)
        pending = await self._store.list_recommendations(RecommendationStatus.PENDING)
        eligible = [
            r for r in pending
            if r.confidence >= config.confidence_threshold
            and r.created_at >= fresh_since
            and not r.is_expired(now)
        ]
        return sorted(eligible, key=lambda r: (r.confidence, r.created_at), reverse=True)

    async def run_cycle(self, config: TradingConfig, now: Optional[datetime] = None) -> CycleStats:
        """Run one lifecycle pass.

        Args:
            config: Trading configuration for this cycle.
            now: Cycle time. Defaults to datetime.now().

        Returns:
            CycleStats with per-outcome counts.
        """
        now = now or datetime.now()
        stats = CycleStats()

        await self._approvals.process(now=now, config=config)

        expired = await self._store.expire_recommendations(now)
        stats.expired = len(expired)

        if not config.auto_execute:
            logger.debug("Auto-execute disabled, skipping recommendation processing")
            return stats

        recommendations = await self.get_eligible(config, now)
        if not recommendations:
            return stats

        halt = await self._risk_validator.should_halt_all_automated_buying(now)
        stats.halted = halt.halted
        if halt.halted:
            logger.warning(f"Circuit breaker on, automated BUYs paused: {halt.reason}")

        for recommendation in recommendations:
            stats.processed += 1
            try:
                await self._process(recommendation, config, halt, now, stats)
            except Exception as e:
                logger.error(f"Error processing recommendation {recommendation.id}: {e}")
                stats.errors += 1

        logger.info(
            f"Recommendation cycle: {stats.processed} processed, {stats.executed} executed, "
            f"{stats.queued} queued, {stats.rejected} rejected, {stats.skipped} skipped, "
            f"{stats.expired} expired"
        )
        return stats

    async def _process(
        self,
        recommendation: Recommendation,
        config: TradingConfig,
        halt: HaltStatus,
        now: datetime,
        stats: CycleStats,
    ) -> None:
        if recommendation.action == RecommendationAction.HOLD:
            await self._store.update_recommendation_status(
                recommendation.id, RecommendationStatus.REJECTED, now
            )
            stats.rejected += 1
            return

        side = TradeSide(recommendation.action.value)
        stop_loss = recommendation.stop_loss
        if side == TradeSide.BUY and stop_loss is None and config.auto_stop_loss:
            stop_loss = recommendation.entry_price * (1 - self._settings.default_stop_loss_fraction)
            logger.info(f"Derived stop-loss ${stop_loss:,.2f} for recommendation {recommendation.id}")

        if side == TradeSide.SELL:
            stop_loss = None

        if config.human_approval:
            await self._queue(recommendation, side, stop_loss, config, now, stats)
            return

        if halt.halted and side == TradeSide.BUY:
            logger.info(f"Skipping BUY {recommendation.symbol} (recommendation {recommendation.id}): halted")
            stats.skipped += 1
            return

        await self._execute(recommendation, side, stop_loss, config, now, stats)

    async def _queue(
        self,
        recommendation: Recommendation,
        side: TradeSide,
        stop_loss: Optional[Decimal],
        config: TradingConfig,
        now: datetime,
        stats: CycleStats,
    ) -> None:
        quantity = await self._sizer.quantity_for(recommendation, stop_loss, config)
        if quantity <= 0:
            await self._reject(
                recommendation, side, config, now, stats,
                error="Position size is zero",
                failure_kind=FailureKind.POLICY,
            )
            return

        await self._approvals.create_request(recommendation, quantity, stop_loss, now)
        stats.queued += 1

    async def _execute(
        self,
        recommendation: Recommendation,
        side: TradeSide,
        stop_loss: Optional[Decimal],
        config: TradingConfig,
        now: datetime,
        stats: CycleStats,
    ) -> None:
        started = time.monotonic()
        quantity = await self._sizer.quantity_for(recommendation, stop_loss, config)
        if quantity <= 0:
            await self._reject(
                recommendation, side, config, now, stats,
                error="Position size is zero" if side == TradeSide.BUY else "No position to sell",
                failure_kind=FailureKind.POLICY,
            )
            return

        risk_check = await self._risk_validator.validate(
            recommendation.symbol,
            side,
            quantity,
            recommendation.entry_price,
            stop_loss=stop_loss,
            is_manual_override=False,
            now=now,
        )
        details = {"quantity": quantity, "entry_price": recommendation.entry_price, "stop_loss": stop_loss}

        if not risk_check.allowed:
            await self._reject(
                recommendation, side, config, now, stats,
                error=risk_check.reason,
                failure_kind=FailureKind.POLICY,
                risk_check=risk_check,
                details=details,
            )
            return

        try:
            trade = await self._executor.execute(
                symbol=recommendation.symbol,
                side=side,
                quantity=quantity,
                reasoning=recommendation.reasoning.summary,
                recommendation_id=recommendation.id,
                stop_loss=stop_loss,
                take_profit=recommendation.take_profit_1 if side == TradeSide.BUY else None,
                take_profit_2=recommendation.take_profit_2 if side == TradeSide.BUY else None,
                trade_type=TradeType.AUTOMATIC,
                triggered_by=f"recommendation_{recommendation.id}",
                now=now,
            )
        except Exception as e:
            logger.error(f"Execution failed for recommendation {recommendation.id}: {e}")
            await self._reject(
                recommendation, side, config, now, stats,
                error=str(e),
                failure_kind=classify_failure(e),
                risk_check=risk_check,
                details=details,
                latency_ms=int((time.monotonic() - started) * 1000),
            )
            return

        await self._journal.record(
            symbol=recommendation.symbol,
            action=side.value,
            trigger_type=TriggerType.AUTO,
            success=True,
            config=config,
            risk_check=risk_check,
            recommendation_id=recommendation.id,
            trade_id=trade.id,
            latency_ms=int((time.monotonic() - started) * 1000),
            details={**details, "price": trade.price},
            now=now,
        )
        stats.executed += 1

    async def _reject(
        self,
        recommendation: Recommendation,
        side: TradeSide,
        config: TradingConfig,
        now: datetime,
        stats: CycleStats,
        error: str,
        failure_kind: FailureKind,
        risk_check: Optional[RiskCheckResult] = None,
        details: Optional[dict[str, Any]] = None,
        latency_ms: int = 0,
    ) -> None:
        """Mark a recommendation rejected and log the failed attempt."""
        await self._store.update_recommendation_status(
            recommendation.id, RecommendationStatus.REJECTED, now
        )
        await self._journal.record(
            symbol=recommendation.symbol,
            action=side.value,
            trigger_type=TriggerType.AUTO,
            success=False,
            config=config,
            risk_check=risk_check,
            recommendation_id=recommendation.id,
            latency_ms=latency_ms,
            error=error,
            failure_kind=failure_kind,
            details=details,
            now=now,
        )
        stats.rejected += 1
        logger.info(f"Rejected recommendation {recommendation.id} ({recommendation.symbol}): {error}")
