"""Orchestrator module for scheduling trading jobs."""

from .models import JobRunResult, JobStatus, OrchestratorState
from .settings import OrchestratorSettings

__all__ = [
    "JobRunResult",
    "JobStatus",
    "OrchestratorSettings",
    "OrchestratorState",
]
