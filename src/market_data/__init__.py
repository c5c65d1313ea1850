"""Market data access for the trading core."""

from .errors import PriceUnavailableError
from .order_book import OrderBook, OrderBookSource, estimate_slippage_from_book
from .price_feed import PriceFeed
from .rate_limiter import RateLimiter
from .retry import retry_with_jitter
from .static_feed import StaticPriceFeed
from .yfinance_feed import YFinancePriceFeed

__all__ = [
    "OrderBook",
    "OrderBookSource",
    "PriceFeed",
    "PriceUnavailableError",
    "RateLimiter",
    "StaticPriceFeed",
    "YFinancePriceFeed",
    "estimate_slippage_from_book",
    "retry_with_jitter",
]
