"""Data models for position monitoring."""
from dataclasses import dataclass


@dataclass
class MonitorStats:
    """Counters for one monitoring cycle."""

    checked: int = 0
    stop_loss_triggered: int = 0
    take_profit_triggered: int = 0
    trailing_stops_adjusted: int = 0
    errors: int = 0
