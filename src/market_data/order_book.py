# src/market_data/order_book.py
"""Order book snapshots and depth-based slippage estimation."""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal

from src.models.portfolio import TradeSide


logger = logging.getLogger(__name__)


@dataclass
class OrderBook:
    """Price levels as (price, size) pairs, best level first.

    Attributes:
        bids: Buy-side levels, highest price first.
        asks: Sell-side levels, lowest price first.
    """

    symbol: str
    bids: list[tuple[Decimal, Decimal]] = field(default_factory=list)
    asks: list[tuple[Decimal, Decimal]] = field(default_factory=list)


class OrderBookSource(ABC):
    """Provider of order book depth for a symbol."""

    @abstractmethod
    async def get_order_book(self, symbol: str, depth: int) -> OrderBook:
        """Return the top ``depth`` levels of the book for a symbol."""
        pass


def estimate_slippage_from_book(
    book: OrderBook,
    side: TradeSide,
    notional_usd: Decimal,
) -> Decimal:
    """Walk the book to fill ``notional_usd`` and measure the price impact.

    A BUY consumes asks, a SELL consumes bids. The result is
    ``|avg_fill_price - best_price| / best_price``.

    Raises:
        ValueError: If the relevant side of the book is empty.
    """
    levels = book.asks if side == TradeSide.BUY else book.bids
    if not levels:
        raise ValueError(f"Empty {'ask' if side == TradeSide.BUY else 'bid'} side for {book.symbol}")

    remaining = notional_usd
    total_cost = Decimal("0")
    total_quantity = Decimal("0")

    for price, size in levels:
        level_value = price * size
        if level_value >= remaining:
            total_cost += remaining
            total_quantity += remaining / price
            remaining = Decimal("0")
            break
        total_cost += level_value
        total_quantity += size
        remaining -= level_value

    if remaining > 0:
        logger.warning(
            f"Order book depth insufficient for {book.symbol}: "
            f"${remaining:,.2f} of ${notional_usd:,.2f} unfilled"
        )

    if total_quantity == 0:
        return Decimal("0")

    best_price = levels[0][0]
    average_price = total_cost / total_quantity
    return abs(average_price - best_price) / best_price
