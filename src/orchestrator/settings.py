"""Configuration for trading orchestrator."""

from pydantic import BaseModel, Field


class OrchestratorSettings(BaseModel):
    """Settings for TradingOrchestrator.

    Attributes:
        enabled: Run the periodic jobs from main.py.
        run_on_start: Run each job once immediately instead of after the first interval.
    """

    enabled: bool = True
    recommendation_interval_seconds: int = Field(default=300, ge=1)
    monitor_interval_seconds: int = Field(default=300, ge=1)
    run_on_start: bool = True
