"""Durable state storage."""

from .errors import InvalidStatusTransition, RecordNotFoundError, StoreError
from .models import TradingState
from .state_store import TradingStateStore

__all__ = [
    "InvalidStatusTransition",
    "RecordNotFoundError",
    "StoreError",
    "TradingState",
    "TradingStateStore",
]
