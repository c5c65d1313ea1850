# src/approvals/approval_processor.py
"""Approval queue: staging, human decisions, expiry and execution."""
import logging
import time
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional

from src.approvals.models import ApprovalStats
from src.config.settings import LifecycleSettings
from src.config.trading_config import TradingConfig
from src.execution.errors import ExecutionError
from src.execution.trade_executor import TradeExecutor
from src.journal.journal_manager import JournalManager, classify_failure
from src.models.approval import ApprovalRequest, ApprovalStatus
from src.models.execution_log import TriggerType
from src.models.portfolio import TradeSide, TradeType
from src.models.recommendation import Recommendation, RecommendationStatus
from src.storage.errors import InvalidStatusTransition
from src.storage.state_store import TradingStateStore


logger = logging.getLogger(__name__)


class ApprovalQueueProcessor:
    """Manages approval requests from creation to execution.

    Approved requests are executed with the parameters frozen at queue time:
    no re-sizing and no new risk check. A request that fails for lack of cash
    or quantity is rejected; one that fails on market data stays approved and
    is retried on the next sweep, until approval_retry_minutes past its
    expiry, after which it is rejected.
    """

    def __init__(
        self,
        store: TradingStateStore,
        executor: TradeExecutor,
        journal: JournalManager,
        settings: Optional[LifecycleSettings] = None,
    ):
        """Initialize the processor.

        Args:
            store: State store for approvals and recommendations.
            executor: Executes approved trades.
            journal: Execution log writer.
            settings: Lifecycle settings (approval TTL and retry window).
        """
        self._store = store
        self._executor = executor
        self._journal = journal
        self._settings = settings or LifecycleSettings()

    async def create_request(
        self,
        recommendation: Recommendation,
        quantity: Decimal,
        stop_loss: Optional[Decimal] = None,
        now: Optional[datetime] = None,
    ) -> ApprovalRequest:
        """Stage a recommendation for approval and mark it queued.

        Args:
            recommendation: Pending recommendation to stage.
            quantity: Sized quantity that approval will authorize.
            stop_loss: Stop-loss to apply (may differ from the recommendation's
                when one was derived automatically).
            now: Creation time. Defaults to datetime.now().
        """
        now = now or datetime.now()
        request = ApprovalRequest(
            recommendation_id=recommendation.id,
            symbol=recommendation.symbol,
            action=recommendation.action,
            quantity=quantity,
            entry_price=recommendation.entry_price,
            stop_loss=stop_loss if stop_loss is not None else recommendation.stop_loss,
            take_profit_1=recommendation.take_profit_1,
            take_profit_2=recommendation.take_profit_2,
            reasoning=recommendation.reasoning,
            created_at=now,
            expires_at=now + timedelta(minutes=self._settings.approval_ttl_minutes),
        )
        stored = await self._store.queue_for_approval(request)
        logger.info(
            f"Queued approval {stored.id}: {stored.action.value} {stored.quantity} "
            f"{stored.symbol} (recommendation {recommendation.id})"
        )
        return stored

    async def _decide(
        self,
        approval_id: int,
        status: ApprovalStatus,
        note: Optional[str],
        now: Optional[datetime],
        recommendation_status: Optional[RecommendationStatus] = None,
    ) -> ApprovalRequest:
        now = now or datetime.now()
        current = await self._store.get_approval(approval_id)
        if current.status != ApprovalStatus.PENDING:
            raise InvalidStatusTransition(
                f"Approval {approval_id} is {current.status.value}, not pending"
            )
        if current.is_expired(now):
            raise InvalidStatusTransition(
                f"Approval {approval_id} expired at {current.expires_at.isoformat()}"
            )
        return await self._store.update_approval_status(
            approval_id, status, now, note, recommendation_status
        )

    async def approve(
        self,
        approval_id: int,
        note: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> ApprovalRequest:
        """Approve a pending request. It executes on the next sweep.

        Raises:
            RecordNotFoundError: Unknown approval id.
            InvalidStatusTransition: Request is not pending or has expired.
        """
        approved = await self._decide(approval_id, ApprovalStatus.APPROVED, note, now)
        logger.info(f"Approval {approval_id} approved ({approved.symbol})")
        return approved

    async def reject(
        self,
        approval_id: int,
        note: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> ApprovalRequest:
        """Reject a pending request along with its recommendation.

        Raises:
            RecordNotFoundError: Unknown approval id.
            InvalidStatusTransition: Request is not pending or has expired.
        """
        rejected = await self._decide(
            approval_id, ApprovalStatus.REJECTED, note, now, RecommendationStatus.REJECTED
        )
        logger.info(f"Approval {approval_id} rejected ({rejected.symbol})")
        return rejected

    async def list_pending(self, now: Optional[datetime] = None) -> list[ApprovalRequest]:
        """Return pending, unexpired requests, oldest first."""
        now = now or datetime.now()
        pending = await self._store.list_approvals(ApprovalStatus.PENDING)
        return sorted(
            (a for a in pending if not a.is_expired(now)),
            key=lambda a: a.created_at,
        )

    async def process(
        self,
        now: Optional[datetime] = None,
        config: Optional[TradingConfig] = None,
    ) -> ApprovalStats:
        """Expire stale requests and execute approved ones.

        Args:
            now: Sweep time. Defaults to datetime.now().
            config: Configuration recorded in the execution log.
        """
        now = now or datetime.now()
        stats = ApprovalStats()

        expired = await self._store.expire_approvals(now)
        stats.expired = len(expired)
        for approval in expired:
            logger.info(f"Approval {approval.id} for {approval.symbol} expired")

        approved = await self._store.list_approvals(ApprovalStatus.APPROVED)
        for approval in sorted(approved, key=lambda a: a.id):
            try:
                if await self._execute(approval, now, config):
                    stats.executed += 1
                else:
                    stats.failed += 1
            except Exception as e:
                logger.error(f"Unexpected error processing approval {approval.id}: {e}")
                stats.failed += 1

        if stats.expired or stats.executed or stats.failed:
            logger.info(
                f"Approval sweep: {stats.expired} expired, {stats.executed} executed, "
                f"{stats.failed} failed"
            )
        return stats

    async def _execute(
        self,
        approval: ApprovalRequest,
        now: datetime,
        config: Optional[TradingConfig],
    ) -> bool:
        """Execute one approved request. Returns True on success."""
        started = time.monotonic()
        side = TradeSide(approval.action.value)
        details = {"quantity": approval.quantity, "entry_price": approval.entry_price}

        try:
            trade = await self._executor.execute(
                symbol=approval.symbol,
                side=side,
                quantity=approval.quantity,
                reasoning=approval.reasoning.summary,
                approval_id=approval.id,
                stop_loss=approval.stop_loss if side == TradeSide.BUY else None,
                take_profit=approval.take_profit_1 if side == TradeSide.BUY else None,
                take_profit_2=approval.take_profit_2 if side == TradeSide.BUY else None,
                trade_type=TradeType.AUTOMATIC,
                triggered_by=f"approval_{approval.id}",
                now=now,
            )
        except Exception as e:
            kind = classify_failure(e)
            retry_until = approval.expires_at + timedelta(
                minutes=self._settings.approval_retry_minutes
            )
            if isinstance(e, ExecutionError) or now >= retry_until:
                logger.warning(f"Approval {approval.id} cannot be filled, rejecting: {e}")
                await self._store.update_approval_status(
                    approval.id,
                    ApprovalStatus.REJECTED,
                    now,
                    note=str(e),
                    recommendation_status=RecommendationStatus.REJECTED,
                )
            else:
                logger.error(f"Approval {approval.id} execution failed, will retry: {e}")

            await self._journal.record(
                symbol=approval.symbol,
                action=side.value,
                trigger_type=TriggerType.APPROVAL,
                success=False,
                config=config,
                recommendation_id=approval.recommendation_id,
                approval_id=approval.id,
                latency_ms=int((time.monotonic() - started) * 1000),
                error=str(e),
                failure_kind=kind,
                details=details,
                now=now,
            )
            return False

        await self._journal.record(
            symbol=approval.symbol,
            action=side.value,
            trigger_type=TriggerType.APPROVAL,
            success=True,
            config=config,
            recommendation_id=approval.recommendation_id,
            trade_id=trade.id,
            approval_id=approval.id,
            latency_ms=int((time.monotonic() - started) * 1000),
            details={**details, "price": trade.price},
            now=now,
        )
        return True
