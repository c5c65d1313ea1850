"""Errors raised by the state store."""


class StoreError(Exception):
    """Base class for state store failures."""


class RecordNotFoundError(StoreError):
    """Raised when a recommendation or approval id does not exist."""


class InvalidStatusTransition(StoreError):
    """Raised when a status change would leave a terminal state."""
