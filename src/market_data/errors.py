"""Market data errors."""


class PriceUnavailableError(Exception):
    """Raised when a current price cannot be obtained for a symbol."""

    def __init__(self, symbol: str, reason: str = ""):
        self.symbol = symbol
        message = f"Price unavailable for {symbol}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
