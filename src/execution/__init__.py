"""Execution module for paper trading."""

from .errors import ExecutionError, InsufficientFundsError, InsufficientPositionError
from .models import ManualTradeResult, ProtectionUpdate
from .trade_executor import TradeExecutor

__all__ = [
    "ExecutionError",
    "InsufficientFundsError",
    "InsufficientPositionError",
    "ManualTradeResult",
    "ProtectionUpdate",
    "TradeExecutor",
]
