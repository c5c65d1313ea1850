"""Data models for the approval queue."""
from dataclasses import dataclass


@dataclass
class ApprovalStats:
    """Counters for one approval sweep."""

    expired: int = 0
    executed: int = 0
    failed: int = 0
