"""Execution errors. Raised before any state is changed."""
from decimal import Decimal


class ExecutionError(Exception):
    """Base class for trades that cannot be filled."""


class InsufficientFundsError(ExecutionError):
    """Cash does not cover cost plus fee for a BUY."""

    def __init__(self, symbol: str, required: Decimal, available: Decimal):
        self.symbol = symbol
        self.required = required
        self.available = available
        super().__init__(
            f"Insufficient funds for {symbol}: need ${required:,.2f}, have ${available:,.2f}"
        )


class InsufficientPositionError(ExecutionError):
    """Holding is missing or smaller than the requested SELL quantity."""

    def __init__(self, symbol: str, requested: Decimal, held: Decimal):
        self.symbol = symbol
        self.requested = requested
        self.held = held
        super().__init__(f"Insufficient position in {symbol}: requested {requested}, held {held}")
