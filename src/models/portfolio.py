# src/models/portfolio.py
"""Portfolio records: open holdings, the trade ledger and the derived view."""
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class TradeSide(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


class TradeType(str, Enum):
    MANUAL = "manual"
    AUTOMATIC = "automatic"
    STOP_LOSS = "stop_loss"
    TAKE_PROFIT = "take_profit"


class Holding(BaseModel):
    """An open position. Exactly one exists per symbol."""

    symbol: str
    quantity: Decimal = Field(gt=0)
    average_price: Decimal = Field(gt=0)
    stop_loss: Optional[Decimal] = None
    take_profit: Optional[Decimal] = None
    take_profit_2: Optional[Decimal] = None
    partial_exit_taken: bool = False
    protection_updated_at: Optional[datetime] = None
    opened_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    model_config = {"frozen": True}

    @property
    def cost_basis(self) -> Decimal:
        return self.quantity * self.average_price


class Trade(BaseModel):
    """Immutable ledger entry for one executed paper trade.

    Attributes:
        price: Realized execution price after slippage.
        market_price: Quoted market price the execution was derived from.
        slippage: Slippage amount per unit (always non-negative).
        total_cost: Cash delta magnitude; paid for BUY, received for SELL.
        realized_pnl: Profit or loss against cost basis, SELL trades only.
    """

    id: int
    symbol: str
    side: TradeSide
    quantity: Decimal
    price: Decimal
    market_price: Decimal
    fee: Decimal
    slippage: Decimal
    total_cost: Decimal
    realized_pnl: Optional[Decimal] = None
    trade_type: TradeType = TradeType.MANUAL
    triggered_by: str = "user"
    reasoning: str = ""
    recommendation_id: Optional[int] = None
    executed_at: datetime = Field(default_factory=datetime.now)

    model_config = {"frozen": True}


@dataclass
class Position:
    """A holding valued at the current market price."""

    symbol: str
    quantity: Decimal
    average_price: Decimal
    current_price: Decimal
    stop_loss: Optional[Decimal] = None
    take_profit: Optional[Decimal] = None

    @property
    def current_value(self) -> Decimal:
        return self.quantity * self.current_price

    @property
    def unrealized_pnl(self) -> Decimal:
        return self.current_value - self.quantity * self.average_price

    @property
    def unrealized_pnl_percent(self) -> Decimal:
        cost = self.quantity * self.average_price
        if cost == 0:
            return Decimal("0")
        return self.unrealized_pnl / cost * 100


@dataclass
class Portfolio:
    """Derived portfolio state: cash plus positions valued at market.

    Attributes:
        cash: Authoritative cash balance.
        positions: Open positions with current prices.
        starting_capital: Baseline used for return and drawdown figures.
    """

    cash: Decimal
    starting_capital: Decimal
    positions: list[Position] = field(default_factory=list)

    @property
    def total_value(self) -> Decimal:
        return self.cash + sum((p.current_value for p in self.positions), Decimal("0"))

    @property
    def total_return(self) -> Decimal:
        return self.total_value - self.starting_capital

    @property
    def total_return_percent(self) -> Decimal:
        if self.starting_capital == 0:
            return Decimal("0")
        return self.total_return / self.starting_capital * 100

    def get_position(self, symbol: str) -> Optional[Position]:
        """Return the position for a symbol, or None if not held."""
        for position in self.positions:
            if position.symbol == symbol:
                return position
        return None

    def has_position(self, symbol: str) -> bool:
        return self.get_position(symbol) is not None
