"""In-memory price feed for simulation runs and tests."""

from decimal import Decimal

from src.market_data.errors import PriceUnavailableError
from src.market_data.price_feed import PriceFeed
from src.models.portfolio import TradeSide


class StaticPriceFeed(PriceFeed):
    """Serves prices set by the caller.

    Slippage is a fixed fraction regardless of side or size.
    """

    def __init__(
        self,
        prices: dict[str, Decimal | float | str] | None = None,
        slippage: Decimal = Decimal("0"),
    ):
        self._prices: dict[str, Decimal] = {}
        for symbol, price in (prices or {}).items():
            self.set_price(symbol, price)
        self._slippage = Decimal(slippage)

    def set_price(self, symbol: str, price: Decimal | float | str) -> None:
        self._prices[symbol] = Decimal(str(price))

    def remove_price(self, symbol: str) -> None:
        self._prices.pop(symbol, None)

    async def get_current_price(self, symbol: str) -> Decimal:
        try:
            return self._prices[symbol]
        except KeyError:
            raise PriceUnavailableError(symbol, "no price set") from None

    async def estimate_slippage(self, symbol: str, side: TradeSide, notional_usd: Decimal) -> Decimal:
        return self._slippage
