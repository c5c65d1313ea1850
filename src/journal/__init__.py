"""Journal module for the execution log and performance metrics."""

from .journal_manager import JournalManager, classify_failure
from .metrics_calculator import MetricsCalculator
from .models import ExecutionStats, TradingMetrics

__all__ = [
    "ExecutionStats",
    "JournalManager",
    "MetricsCalculator",
    "TradingMetrics",
    "classify_failure",
]
