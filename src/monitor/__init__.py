"""Position monitoring for protective exits."""

from .models import MonitorStats
from .position_monitor import PositionMonitor

__all__ = ["MonitorStats", "PositionMonitor"]
