# src/storage/state_store.py
"""Durable JSON state store with serialized, all-or-nothing transactions."""
import asyncio
import json
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import AsyncIterator, Optional

import aiofiles
import aiofiles.os

from src.models.approval import ApprovalRequest, ApprovalStatus
from src.models.execution_log import ExecutionLogEntry
from src.models.portfolio import Holding, Trade
from src.models.recommendation import Recommendation, RecommendationStatus
from src.storage.models import TradingState


logger = logging.getLogger(__name__)


class TradingStateStore:
    """Persists cash, holdings, trades, recommendations, approvals and the
    execution log as JSON files under ``data_dir``.

    Files:
        portfolio.json: cash, holdings and the trade ledger (written together so
            cash and holdings can never be persisted out of step).
        recommendations.json, approvals.json, execution_log.json.

    Every write goes through ``transaction()``, which holds a single lock,
    works on a copy of the state and only swaps the copy in after the files
    were written. An exception inside the block discards the copy.
    """

    PORTFOLIO_FILE = "portfolio.json"
    RECOMMENDATIONS_FILE = "recommendations.json"
    APPROVALS_FILE = "approvals.json"
    EXECUTION_LOG_FILE = "execution_log.json"

    def __init__(self, data_dir: str | Path, starting_capital: Decimal) -> None:
        """Initialize the store.

        Args:
            data_dir: Directory holding the JSON files.
            starting_capital: Cash balance used when no portfolio file exists.
        """
        self._data_dir = Path(data_dir)
        self._data_dir.mkdir(parents=True, exist_ok=True)
        self._starting_capital = Decimal(starting_capital)
        self._lock = asyncio.Lock()
        self._state: Optional[TradingState] = None

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    # ------------------------------------------------------------------
    # File I/O
    # ------------------------------------------------------------------

    def _path(self, name: str) -> Path:
        return self._data_dir / name

    async def _read_json(self, name: str, default):
        path = self._path(name)
        if not path.exists():
            return default

        async with aiofiles.open(path, "r") as f:
            content = await f.read()
            return json.loads(content) if content.strip() else default

    async def _write_json(self, name: str, payload) -> None:
        """Write via a temp file and rename so readers never see a torn file."""
        path = self._path(name)
        tmp_path = path.with_suffix(path.suffix + ".tmp")
        async with aiofiles.open(tmp_path, "w") as f:
            await f.write(json.dumps(payload, indent=2))
        await aiofiles.os.replace(tmp_path, path)

    async def _load_state(self) -> TradingState:
        portfolio = await self._read_json(self.PORTFOLIO_FILE, None)
        recommendations = await self._read_json(self.RECOMMENDATIONS_FILE, [])
        approvals = await self._read_json(self.APPROVALS_FILE, [])
        execution_log = await self._read_json(self.EXECUTION_LOG_FILE, [])

        if portfolio is None:
            logger.info(f"No portfolio file found, starting with ${self._starting_capital:,.2f} cash")
            portfolio = {"cash": str(self._starting_capital), "holdings": [], "trades": []}

        return TradingState(
            cash=Decimal(portfolio["cash"]),
            holdings={
                h["symbol"]: Holding.model_validate(h) for h in portfolio.get("holdings", [])
            },
            trades=[Trade.model_validate(t) for t in portfolio.get("trades", [])],
            recommendations={
                r["id"]: Recommendation.model_validate(r) for r in recommendations
            },
            approvals={a["id"]: ApprovalRequest.model_validate(a) for a in approvals},
            execution_log=[ExecutionLogEntry.model_validate(e) for e in execution_log],
        )

    async def _persist(self, before: TradingState, after: TradingState) -> None:
        """Write the tables that changed between two states."""
        if (
            after.cash != before.cash
            or after.holdings != before.holdings
            or len(after.trades) != len(before.trades)
        ):
            await self._write_json(
                self.PORTFOLIO_FILE,
                {
                    "cash": str(after.cash),
                    "holdings": [h.model_dump(mode="json") for h in after.holdings.values()],
                    "trades": [t.model_dump(mode="json") for t in after.trades],
                },
            )

        if after.recommendations != before.recommendations:
            await self._write_json(
                self.RECOMMENDATIONS_FILE,
                [r.model_dump(mode="json") for r in after.recommendations.values()],
            )

        if after.approvals != before.approvals:
            await self._write_json(
                self.APPROVALS_FILE,
                [a.model_dump(mode="json") for a in after.approvals.values()],
            )

        if len(after.execution_log) != len(before.execution_log):
            await self._write_json(
                self.EXECUTION_LOG_FILE,
                [e.model_dump(mode="json") for e in after.execution_log],
            )

    async def _ensure_loaded(self) -> TradingState:
        if self._state is None:
            self._state = await self._load_state()
        return self._state

    # ------------------------------------------------------------------
    # Transactions and snapshots
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[TradingState]:
        """Serialized unit of work over the whole state.

        Yields:
            A working copy. Changes become visible (and durable) only if the
            block exits without an exception.
        """
        async with self._lock:
            current = await self._ensure_loaded()
            working = current.copy()
            yield working
            await self._persist(current, working)
            self._state = working

    async def snapshot(self) -> TradingState:
        """Return a consistent copy of the full state for read-only use."""
        async with self._lock:
            current = await self._ensure_loaded()
            return current.copy()

    async def load(self) -> None:
        """Load state from disk eagerly (otherwise loaded on first use)."""
        async with self._lock:
            await self._ensure_loaded()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_cash(self) -> Decimal:
        return (await self.snapshot()).cash

    async def get_holdings(self) -> list[Holding]:
        return list((await self.snapshot()).holdings.values())

    async def get_holding(self, symbol: str) -> Optional[Holding]:
        return (await self.snapshot()).holdings.get(symbol)

    async def get_trades(
        self,
        since: Optional[datetime] = None,
        symbol: Optional[str] = None,
    ) -> list[Trade]:
        """Return ledger entries, oldest first, optionally filtered."""
        trades = (await self.snapshot()).trades
        if since is not None:
            trades = [t for t in trades if t.executed_at >= since]
        if symbol is not None:
            trades = [t for t in trades if t.symbol == symbol]
        return trades

    async def get_recommendation(self, recommendation_id: int) -> Recommendation:
        return (await self.snapshot()).get_recommendation(recommendation_id)

    async def list_recommendations(
        self, status: Optional[RecommendationStatus] = None
    ) -> list[Recommendation]:
        recommendations = (await self.snapshot()).recommendations.values()
        return [r for r in recommendations if status is None or r.execution_status == status]

    async def get_approval(self, approval_id: int) -> ApprovalRequest:
        return (await self.snapshot()).get_approval(approval_id)

    async def list_approvals(self, status: Optional[ApprovalStatus] = None) -> list[ApprovalRequest]:
        approvals = (await self.snapshot()).approvals.values()
        return [a for a in approvals if status is None or a.status == status]

    async def list_execution_log(self, since: Optional[datetime] = None) -> list[ExecutionLogEntry]:
        entries = (await self.snapshot()).execution_log
        if since is not None:
            entries = [e for e in entries if e.created_at >= since]
        return entries

    # ------------------------------------------------------------------
    # Non-portfolio writes
    # ------------------------------------------------------------------

    async def insert_recommendation(self, recommendation: Recommendation) -> Recommendation:
        """Insert a recommendation from the generator, assigning its id."""
        async with self.transaction() as state:
            stored = recommendation.model_copy(update={"id": state.next_recommendation_id()})
            state.recommendations[stored.id] = stored
        return stored

    async def update_recommendation_status(
        self,
        recommendation_id: int,
        status: RecommendationStatus,
        now: Optional[datetime] = None,
    ) -> Recommendation:
        async with self.transaction() as state:
            return state.set_recommendation_status(recommendation_id, status, now)

    async def expire_recommendations(self, now: datetime) -> list[Recommendation]:
        """Mark every pending recommendation past its expiry as expired."""
        async with self.transaction() as state:
            stale = [
                r for r in state.recommendations.values()
                if r.execution_status == RecommendationStatus.PENDING and r.is_expired(now)
            ]
            return [
                state.set_recommendation_status(r.id, RecommendationStatus.EXPIRED, now)
                for r in stale
            ]

    async def queue_for_approval(self, approval: ApprovalRequest) -> ApprovalRequest:
        """Insert an approval request and mark its recommendation queued."""
        async with self.transaction() as state:
            stored = approval.model_copy(update={"id": state.next_approval_id()})
            state.set_recommendation_status(approval.recommendation_id, RecommendationStatus.QUEUED)
            state.approvals[stored.id] = stored
        return stored

    async def update_approval_status(
        self,
        approval_id: int,
        status: ApprovalStatus,
        now: Optional[datetime] = None,
        note: Optional[str] = None,
        recommendation_status: Optional[RecommendationStatus] = None,
    ) -> ApprovalRequest:
        """Change an approval's status, optionally moving its recommendation too."""
        async with self.transaction() as state:
            updated = state.set_approval_status(approval_id, status, now, note)
            if recommendation_status is not None:
                state.set_recommendation_status(updated.recommendation_id, recommendation_status, now)
            return updated

    async def expire_approvals(self, now: datetime) -> list[ApprovalRequest]:
        """Mark every pending approval past its expiry as expired."""
        async with self.transaction() as state:
            stale = [
                a for a in state.approvals.values()
                if a.status == ApprovalStatus.PENDING and a.is_expired(now)
            ]
            return [state.set_approval_status(a.id, ApprovalStatus.EXPIRED, now) for a in stale]

    async def append_execution_log(self, entry: ExecutionLogEntry) -> ExecutionLogEntry:
        async with self.transaction() as state:
            stored = entry.model_copy(update={"id": state.next_log_id()})
            state.execution_log.append(stored)
        return stored
