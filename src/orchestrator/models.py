"""Data models for trading orchestrator."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class OrchestratorState(Enum):
    """State of the trading orchestrator."""

    STOPPED = "stopped"
    RUNNING = "running"
    STOPPING = "stopping"


class JobStatus(Enum):
    """Outcome of one job trigger."""

    COMPLETED = "completed"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class JobRunResult:
    """Result of triggering a job.

    Attributes:
        job: Job name ("recommendations" or "monitor").
        status: COMPLETED, SKIPPED (previous run still active) or FAILED.
        stats: Cycle statistics when the job completed.
        error: Failure description when the job failed.
    """

    job: str
    status: JobStatus
    stats: Any = None
    error: str | None = None
    started_at: datetime = field(default_factory=datetime.now)
    duration_ms: int = 0
