# src/portfolio/portfolio_reader.py
"""Builds the derived portfolio view from stored state and live prices."""
import logging
from decimal import Decimal
from typing import Optional

from src.market_data.price_feed import PriceFeed
from src.models.portfolio import Portfolio, Position
from src.storage.models import TradingState
from src.storage.state_store import TradingStateStore


logger = logging.getLogger(__name__)


class PortfolioReader:
    """Read-only access to the portfolio valued at current market prices."""

    def __init__(
        self,
        store: TradingStateStore,
        price_feed: PriceFeed,
        starting_capital: Decimal,
    ):
        """Initialize PortfolioReader.

        Args:
            store: State store holding cash and holdings.
            price_feed: Source of current prices.
            starting_capital: Baseline for return and drawdown figures.
        """
        self._store = store
        self._price_feed = price_feed
        self._starting_capital = Decimal(starting_capital)

    @property
    def starting_capital(self) -> Decimal:
        return self._starting_capital

    async def get_portfolio(self, state: Optional[TradingState] = None) -> Portfolio:
        """Return cash plus every holding valued at its current price.

        Args:
            state: Snapshot to value; a fresh snapshot is taken if omitted.

        Raises:
            PriceUnavailableError: If any held symbol cannot be priced.
        """
        if state is None:
            state = await self._store.snapshot()

        positions: list[Position] = []
        for holding in state.holdings.values():
            current_price = await self._price_feed.get_current_price(holding.symbol)
            positions.append(
                Position(
                    symbol=holding.symbol,
                    quantity=holding.quantity,
                    average_price=holding.average_price,
                    current_price=current_price,
                    stop_loss=holding.stop_loss,
                    take_profit=holding.take_profit,
                )
            )

        portfolio = Portfolio(
            cash=state.cash,
            starting_capital=self._starting_capital,
            positions=positions,
        )

        logger.debug(
            f"Portfolio valued: cash=${portfolio.cash:,.2f}, "
            f"positions={len(positions)}, total=${portfolio.total_value:,.2f}"
        )
        return portfolio
