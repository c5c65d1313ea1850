# src/journal/metrics_calculator.py
"""Calculator for trading performance metrics."""
import math
from datetime import datetime, timedelta

from src.journal.models import TradingMetrics
from src.models.portfolio import Trade, TradeSide


def closing_trades(trades: list[Trade]) -> list[Trade]:
    """Return SELL trades that carry a realized P&L, oldest first."""
    closed = [t for t in trades if t.side == TradeSide.SELL and t.realized_pnl is not None]
    return sorted(closed, key=lambda t: t.executed_at)


def pnl_percent(trade: Trade) -> float:
    """Return a SELL trade's realized P&L as a percent of its cost basis."""
    cost_basis = trade.price * trade.quantity - trade.fee - trade.realized_pnl
    if cost_basis <= 0:
        return 0.0
    return float(trade.realized_pnl / cost_basis * 100)


class MetricsCalculator:
    """Calculates trading performance metrics from the trade ledger."""

    def calculate(
        self,
        trades: list[Trade],
        period_days: int = 30,
        now: datetime | None = None,
    ) -> TradingMetrics:
        """Calculate trading metrics from ledger entries.

        Args:
            trades: Trade ledger (BUYs are ignored).
            period_days: Only trades from the last ``period_days`` count.
            now: End of the period. Defaults to datetime.now().

        Returns:
            TradingMetrics with all calculated values.
        """
        since = (now or datetime.now()) - timedelta(days=period_days)
        closed = [t for t in closing_trades(trades) if t.executed_at >= since]

        if not closed:
            return self._empty_metrics(period_days)

        pnls = [float(t.realized_pnl) for t in closed]
        wins = [p for p in pnls if p > 0]
        losses = [p for p in pnls if p < 0]

        total_trades = len(closed)
        win_rate = len(wins) / total_trades

        gross_profit = sum(wins)
        gross_loss = abs(sum(losses))
        profit_factor = gross_profit / gross_loss if gross_loss > 0 else 0.0

        avg_win_dollars = gross_profit / len(wins) if wins else 0.0
        avg_loss_dollars = gross_loss / len(losses) if losses else 0.0
        expectancy = win_rate * avg_win_dollars - (1.0 - win_rate) * avg_loss_dollars

        percents = [pnl_percent(t) for t in closed]

        return TradingMetrics(
            period_days=period_days,
            total_trades=total_trades,
            winning_trades=len(wins),
            losing_trades=len(losses),
            win_rate=win_rate,
            profit_factor=profit_factor,
            expectancy=expectancy,
            avg_win_dollars=avg_win_dollars,
            avg_loss_dollars=avg_loss_dollars,
            total_pnl_dollars=sum(pnls),
            total_pnl_percent=sum(percents),
            max_drawdown_percent=self._calculate_max_drawdown(percents),
            sharpe_ratio=self._calculate_sharpe_ratio(percents),
            best_trade=max(closed, key=lambda t: t.realized_pnl),
            worst_trade=min(closed, key=lambda t: t.realized_pnl),
        )

    def _empty_metrics(self, period_days: int) -> TradingMetrics:
        """Return metrics with zero values when nothing was closed."""
        return TradingMetrics(
            period_days=period_days,
            total_trades=0,
            winning_trades=0,
            losing_trades=0,
            win_rate=0.0,
            profit_factor=0.0,
            expectancy=0.0,
            avg_win_dollars=0.0,
            avg_loss_dollars=0.0,
            total_pnl_dollars=0.0,
            total_pnl_percent=0.0,
            max_drawdown_percent=0.0,
            sharpe_ratio=0.0,
            best_trade=None,
            worst_trade=None,
        )

    def _calculate_max_drawdown(self, percents: list[float]) -> float:
        """Calculate maximum drawdown from cumulative percent returns.

        Args:
            percents: Per-trade returns in chronological order.

        Returns:
            Maximum drawdown as a percentage.
        """
        cumulative = 0.0
        peak = 0.0
        max_drawdown = 0.0

        for value in percents:
            cumulative += value
            if cumulative > peak:
                peak = cumulative
            drawdown = peak - cumulative
            if drawdown > max_drawdown:
                max_drawdown = drawdown

        return max_drawdown

    def _calculate_sharpe_ratio(self, percents: list[float]) -> float:
        """Calculate an annualized Sharpe ratio from per-trade returns.

        Crypto trades every day, so returns are annualized over 365 days.
        """
        if len(percents) < 2:
            return 0.0

        avg_return = sum(percents) / len(percents)
        variance = sum((r - avg_return) ** 2 for r in percents) / (len(percents) - 1)
        std_dev = math.sqrt(variance)

        if std_dev == 0:
            return 0.0

        return (avg_return / std_dev) * math.sqrt(365)
