# src/market_data/yfinance_feed.py
"""Crypto price feed backed by yfinance."""
import asyncio
import logging
from decimal import Decimal
from typing import Optional

import yfinance as yf

from src.market_data.errors import PriceUnavailableError
from src.market_data.order_book import OrderBookSource, estimate_slippage_from_book
from src.market_data.price_feed import PriceFeed
from src.market_data.rate_limiter import RateLimiter
from src.market_data.retry import retry_with_jitter
from src.models.portfolio import TradeSide


logger = logging.getLogger(__name__)


class YFinancePriceFeed(PriceFeed):
    """Quotes ``<SYMBOL>-<QUOTE>`` pairs (e.g. ``BTC-USD``) through yfinance.

    yfinance is synchronous, so lookups run in a worker thread. Every lookup
    is rate limited and retried with jitter; a price that still cannot be
    obtained raises PriceUnavailableError.

    Slippage is measured against an optional order book source. Without one,
    or when the book cannot be fetched, the conservative default is used.
    """

    def __init__(
        self,
        quote_currency: str = "USD",
        rate_limiter: Optional[RateLimiter] = None,
        order_book_source: Optional[OrderBookSource] = None,
        default_slippage: Decimal = Decimal("0.0075"),
        order_book_depth: int = 50,
        max_retries: int = 3,
        initial_delay: float = 1.0,
        max_delay: float = 10.0,
        backoff_multiplier: float = 2.0,
    ):
        self._quote_currency = quote_currency
        self._rate_limiter = rate_limiter or RateLimiter(requests_per_minute=30)
        self._order_book_source = order_book_source
        self._default_slippage = default_slippage
        self._order_book_depth = order_book_depth
        self._max_retries = max_retries
        self._initial_delay = initial_delay
        self._max_delay = max_delay
        self._backoff_multiplier = backoff_multiplier

    def ticker_symbol(self, symbol: str) -> str:
        """Map a bare coin symbol to its yfinance ticker."""
        return f"{symbol.upper()}-{self._quote_currency}"

    def _fetch_price_sync(self, ticker_symbol: str) -> Optional[float]:
        ticker = yf.Ticker(ticker_symbol)
        price = ticker.fast_info.get("lastPrice")
        if price is None:
            info = ticker.info
            price = info.get("regularMarketPrice") or info.get("previousClose")
        return float(price) if price is not None else None

    async def get_current_price(self, symbol: str) -> Decimal:
        ticker_symbol = self.ticker_symbol(symbol)

        async def fetch() -> Decimal:
            await self._rate_limiter.acquire()
            price = await asyncio.to_thread(self._fetch_price_sync, ticker_symbol)
            if price is None or price <= 0:
                raise PriceUnavailableError(symbol, f"no quote for {ticker_symbol}")
            return Decimal(str(price))

        try:
            return await retry_with_jitter(
                fetch,
                max_retries=self._max_retries,
                initial_delay=self._initial_delay,
                max_delay=self._max_delay,
                backoff_multiplier=self._backoff_multiplier,
            )
        except PriceUnavailableError:
            raise
        except Exception as e:
            raise PriceUnavailableError(symbol, str(e)) from e

    async def estimate_slippage(self, symbol: str, side: TradeSide, notional_usd: Decimal) -> Decimal:
        if self._order_book_source is None:
            return self._default_slippage

        try:
            await self._rate_limiter.acquire()
            book = await self._order_book_source.get_order_book(symbol, self._order_book_depth)
            return estimate_slippage_from_book(book, side, notional_usd)
        except Exception as e:
            logger.warning(
                f"Could not get order book for {symbol}, using default slippage "
                f"{self._default_slippage:.4%}: {e}"
            )
            return self._default_slippage
