# src/execution/models.py
"""Data models for the execution system."""
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from src.models.portfolio import Holding, Trade
from src.risk.models import RiskCheckResult


@dataclass
class ProtectionUpdate:
    """Changes to a holding's protective levels.

    Fields left as None are not touched, so a level can be moved but never
    cleared through an update.

    Attributes:
        stop_loss: New stop-loss price.
        take_profit: New first take-profit target.
        take_profit_2: New second take-profit target.
        partial_exit_taken: Mark the first partial exit as done.
        raise_stop_only: Only write stop_loss if it is above the stored stop.
    """

    stop_loss: Optional[Decimal] = None
    take_profit: Optional[Decimal] = None
    take_profit_2: Optional[Decimal] = None
    partial_exit_taken: Optional[bool] = None
    raise_stop_only: bool = False

    def is_empty(self) -> bool:
        return all(
            value is None
            for value in (self.stop_loss, self.take_profit, self.take_profit_2, self.partial_exit_taken)
        )

    def _lowers_stop(self, holding: Holding) -> bool:
        return (
            self.raise_stop_only
            and holding.stop_loss is not None
            and self.stop_loss <= holding.stop_loss
        )

    def apply(self, holding: Holding, now: datetime) -> Holding:
        """Return ``holding`` with the non-None levels replaced."""
        update: dict = {}
        if self.stop_loss is not None and not self._lowers_stop(holding):
            update["stop_loss"] = self.stop_loss
        if self.take_profit is not None:
            update["take_profit"] = self.take_profit
        if self.take_profit_2 is not None:
            update["take_profit_2"] = self.take_profit_2
        if self.partial_exit_taken is not None:
            update["partial_exit_taken"] = self.partial_exit_taken
        if not update:
            return holding
        update["protection_updated_at"] = now
        update["updated_at"] = now
        return holding.model_copy(update=update)


@dataclass
class ManualTradeResult:
    """Outcome of a trade submitted through the manual desk.

    Attributes:
        trade: The executed trade, or None if it was not filled.
        risk_check: Advisory risk result (warnings only).
        error: Why the trade was not filled.
    """

    risk_check: RiskCheckResult
    trade: Optional[Trade] = None
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.trade is not None
