"""Data models for the recommendation lifecycle."""
from dataclasses import dataclass


@dataclass
class CycleStats:
    """Counters for one recommendation cycle.

    Attributes:
        processed: Recommendations picked up for processing.
        skipped: Automated BUYs left pending because the circuit breaker is on.
        expired: Pending recommendations marked expired this cycle.
        halted: Whether the circuit breaker was on for this batch.
        errors: Recommendations that failed with an unexpected error.
    """

    processed: int = 0
    executed: int = 0
    queued: int = 0
    rejected: int = 0
    skipped: int = 0
    expired: int = 0
    halted: bool = False
    errors: int = 0
