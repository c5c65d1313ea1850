# src/journal/models.py
"""Data models for the execution journal."""
from dataclasses import dataclass

from src.models.portfolio import Trade


@dataclass
class ExecutionStats:
    """Activity counters for status displays."""

    pending_recommendations: int
    pending_approvals: int
    executed_today: int
    success_rate_7d: float
    stop_losses_24h: int
    take_profits_24h: int


@dataclass
class TradingMetrics:
    """Performance metrics calculated from closed (SELL) trades."""

    period_days: int
    total_trades: int
    winning_trades: int
    losing_trades: int

    win_rate: float
    profit_factor: float
    expectancy: float

    avg_win_dollars: float
    avg_loss_dollars: float

    total_pnl_dollars: float
    total_pnl_percent: float
    max_drawdown_percent: float
    sharpe_ratio: float

    best_trade: Trade | None
    worst_trade: Trade | None
