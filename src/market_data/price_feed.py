"""Price feed interface consumed by execution, risk and monitoring."""

from abc import ABC, abstractmethod
from decimal import Decimal

from src.models.portfolio import TradeSide


class PriceFeed(ABC):
    """Abstract source of current prices and slippage estimates."""

    @abstractmethod
    async def get_current_price(self, symbol: str) -> Decimal:
        """Return the current market price for a symbol.

        Raises:
            PriceUnavailableError: If no price can be obtained.
        """
        pass

    @abstractmethod
    async def estimate_slippage(self, symbol: str, side: TradeSide, notional_usd: Decimal) -> Decimal:
        """Return the expected slippage as a fraction of price.

        Implementations fall back to a conservative default rather than
        failing when order book data is unavailable.
        """
        pass
