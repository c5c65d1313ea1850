"""Risk validation for paper trades."""

from .correlation import max_correlation, pair_correlation
from .models import HaltStatus, PositionRisk, RiskCheckResult, RiskExposure, RiskSnapshot, RiskViolation
from .risk_manager import RiskValidator

__all__ = [
    "HaltStatus",
    "PositionRisk",
    "RiskCheckResult",
    "RiskExposure",
    "RiskSnapshot",
    "RiskValidator",
    "RiskViolation",
    "max_correlation",
    "pair_correlation",
]
