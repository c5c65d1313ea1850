# tests/market_data/test_yfinance_feed.py
"""Tests for YFinancePriceFeed."""
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from src.market_data.errors import PriceUnavailableError
from src.market_data.order_book import OrderBook
from src.market_data.yfinance_feed import YFinancePriceFeed
from src.models.portfolio import TradeSide


def make_ticker(last_price=None, info=None):
    ticker = MagicMock()
    ticker.fast_info = {"lastPrice": last_price}
    ticker.info = info or {}
    return ticker


@pytest.fixture
def rate_limiter():
    limiter = MagicMock()
    limiter.acquire = AsyncMock()
    return limiter


@pytest.fixture
def feed(rate_limiter):
    return YFinancePriceFeed(rate_limiter=rate_limiter, max_retries=2, initial_delay=0.0, max_delay=0.0)


class TestGetCurrentPrice:
    """Tests for YFinancePriceFeed.get_current_price."""

    def test_ticker_symbol(self, feed):
        assert feed.ticker_symbol("btc") == "BTC-USD"
        assert YFinancePriceFeed(quote_currency="EUR").ticker_symbol("ETH") == "ETH-EUR"

    @pytest.mark.asyncio
    async def test_returns_decimal_price(self, feed, rate_limiter):
        with patch("src.market_data.yfinance_feed.yf.Ticker", return_value=make_ticker(65000.5)) as ticker_cls:
            price = await feed.get_current_price("BTC")

        assert price == Decimal("65000.5")
        ticker_cls.assert_called_once_with("BTC-USD")
        rate_limiter.acquire.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_falls_back_to_info(self, feed):
        ticker = make_ticker(None, {"regularMarketPrice": 3100.25})
        with patch("src.market_data.yfinance_feed.yf.Ticker", return_value=ticker):
            price = await feed.get_current_price("ETH")

        assert price == Decimal("3100.25")

    @pytest.mark.asyncio
    async def test_missing_quote_raises_after_retries(self, feed, rate_limiter):
        with patch("src.market_data.yfinance_feed.yf.Ticker", return_value=make_ticker(None)):
            with pytest.raises(PriceUnavailableError) as exc_info:
                await feed.get_current_price("NOPE")

        assert exc_info.value.symbol == "NOPE"
        assert rate_limiter.acquire.await_count == 2

    @pytest.mark.asyncio
    async def test_transient_error_is_retried(self, feed):
        responses = [ConnectionError("reset"), make_ticker(150.0)]
        with patch("src.market_data.yfinance_feed.yf.Ticker", side_effect=responses):
            price = await feed.get_current_price("SOL")

        assert price == Decimal("150.0")

    @pytest.mark.asyncio
    async def test_persistent_error_wrapped(self, feed):
        with patch("src.market_data.yfinance_feed.yf.Ticker", side_effect=ConnectionError("down")):
            with pytest.raises(PriceUnavailableError, match="down"):
                await feed.get_current_price("SOL")


class TestEstimateSlippage:
    """Tests for YFinancePriceFeed.estimate_slippage."""

    @pytest.mark.asyncio
    async def test_default_without_order_book(self, feed):
        slippage = await feed.estimate_slippage("BTC", TradeSide.BUY, Decimal("1000"))

        assert slippage == Decimal("0.0075")

    @pytest.mark.asyncio
    async def test_uses_order_book_when_available(self, rate_limiter):
        source = MagicMock()
        source.get_order_book = AsyncMock(
            return_value=OrderBook(
                symbol="BTC",
                asks=[(Decimal("100"), Decimal("5")), (Decimal("110"), Decimal("100"))],
            )
        )
        feed = YFinancePriceFeed(rate_limiter=rate_limiter, order_book_source=source, order_book_depth=10)

        slippage = await feed.estimate_slippage("BTC", TradeSide.BUY, Decimal("500"))

        assert slippage == Decimal("0")
        source.get_order_book.assert_awaited_once_with("BTC", 10)

    @pytest.mark.asyncio
    async def test_order_book_failure_falls_back(self, rate_limiter):
        source = MagicMock()
        source.get_order_book = AsyncMock(side_effect=TimeoutError("slow"))
        feed = YFinancePriceFeed(
            rate_limiter=rate_limiter, order_book_source=source, default_slippage=Decimal("0.01")
        )

        slippage = await feed.estimate_slippage("BTC", TradeSide.SELL, Decimal("500"))

        assert slippage == Decimal("0.01")
