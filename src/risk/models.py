"""Data models for risk management."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from src.models.portfolio import Holding, Portfolio, Trade


@dataclass
class RiskCheckResult:
    """Result of a risk check for a proposed trade.

    Attributes:
        allowed: Whether the trade may proceed.
        reason: Human-readable explanation of the verdict.
        warnings: Advisory findings; only populated under manual override.
        current_risk: Measured value of the check that denied, if numeric.
        max_risk: Configured limit of the check that denied, if numeric.
    """

    allowed: bool
    reason: str
    warnings: list[str] = field(default_factory=list)
    current_risk: Optional[Decimal] = None
    max_risk: Optional[Decimal] = None

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-ready form for the execution log."""
        return {
            "allowed": self.allowed,
            "reason": self.reason,
            "warnings": list(self.warnings),
            "current_risk": str(self.current_risk) if self.current_risk is not None else None,
            "max_risk": str(self.max_risk) if self.max_risk is not None else None,
        }


@dataclass
class RiskViolation:
    """A single failed check.

    Attributes:
        reason: Denial text used in automated mode.
        warning: Advisory text used under manual override.
    """

    check: str
    reason: str
    warning: str
    current_risk: Optional[Decimal] = None
    max_risk: Optional[Decimal] = None


@dataclass
class RiskSnapshot:
    """Read-only view the checks run against."""

    portfolio: Portfolio
    holdings: dict[str, Holding]
    trades: list[Trade]
    now: datetime


@dataclass
class HaltStatus:
    """Circuit breaker verdict for automated buying."""

    halted: bool
    reason: str
    current_risk: Optional[Decimal] = None
    max_risk: Optional[Decimal] = None


@dataclass
class PositionRisk:
    """Exposure of a single (proposed or open) position."""

    symbol: str
    position_size: Decimal
    position_size_percent: Decimal
    stop_loss: Optional[Decimal]
    potential_loss: Decimal
    potential_loss_percent: Decimal


@dataclass
class RiskExposure:
    """Portfolio-wide exposure summary, all figures in percent."""

    portfolio_risk_percent: Decimal
    daily_loss_percent: Decimal
    open_positions: int
    utilization_percent: Decimal
