"""Schedules the recommendation and monitoring jobs."""

import asyncio
import logging
import time
from datetime import datetime
from typing import Awaitable, Callable

from src.config.trading_config import TradingConfig, TradingConfigProvider
from src.lifecycle.recommendation_processor import RecommendationProcessor
from src.monitor.position_monitor import PositionMonitor
from src.orchestrator.models import JobRunResult, JobStatus, OrchestratorState
from src.orchestrator.settings import OrchestratorSettings


logger = logging.getLogger(__name__)

RECOMMENDATION_JOB = "recommendations"
MONITOR_JOB = "monitor"


class TradingOrchestrator:
    """Runs the lifecycle and monitoring jobs on fixed intervals.

    Each job holds a lease while it runs. A trigger (scheduled or "run now")
    that finds its job still running is skipped rather than queued, so cycles
    of the same job never overlap. The configuration is re-read from the
    provider at the start of every run.
    """

    def __init__(
        self,
        recommendation_processor: RecommendationProcessor,
        position_monitor: PositionMonitor,
        config_provider: TradingConfigProvider,
        settings: OrchestratorSettings,
    ):
        self._processor = recommendation_processor
        self._monitor = position_monitor
        self._config_provider = config_provider
        self._settings = settings

        self._state = OrchestratorState.STOPPED
        self._leases: dict[str, asyncio.Lock] = {
            RECOMMENDATION_JOB: asyncio.Lock(),
            MONITOR_JOB: asyncio.Lock(),
        }
        self._last_results: dict[str, JobRunResult] = {}
        self._tasks: list[asyncio.Task] = []

    @property
    def state(self) -> OrchestratorState:
        """Return the current orchestrator state."""
        return self._state

    @property
    def is_running(self) -> bool:
        """Return True if the orchestrator is in RUNNING state."""
        return self._state == OrchestratorState.RUNNING

    @property
    def last_results(self) -> dict[str, JobRunResult]:
        return dict(self._last_results)

    async def start(self) -> None:
        """Start the periodic jobs."""
        if self._state != OrchestratorState.STOPPED:
            raise RuntimeError("Orchestrator already running")

        self._state = OrchestratorState.RUNNING
        logger.info("Starting trading orchestrator")

        self._tasks = [
            asyncio.create_task(
                self._run_periodic(
                    RECOMMENDATION_JOB,
                    self._settings.recommendation_interval_seconds,
                    self._processor.run_cycle,
                )
            ),
            asyncio.create_task(
                self._run_periodic(
                    MONITOR_JOB,
                    self._settings.monitor_interval_seconds,
                    self._monitor.run_cycle,
                )
            ),
        ]

        logger.info("Trading orchestrator started")

    async def stop(self) -> None:
        """Stop the orchestrator gracefully."""
        if self._state == OrchestratorState.STOPPED:
            return

        self._state = OrchestratorState.STOPPING
        logger.info("Stopping trading orchestrator")

        for task in self._tasks:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._tasks = []

        self._state = OrchestratorState.STOPPED
        logger.info("Trading orchestrator stopped")

    async def run_recommendation_cycle_now(self) -> JobRunResult:
        """Trigger the recommendation job immediately."""
        return await self._run_job(RECOMMENDATION_JOB, self._processor.run_cycle)

    async def run_monitoring_cycle_now(self) -> JobRunResult:
        """Trigger the monitoring job immediately."""
        return await self._run_job(MONITOR_JOB, self._monitor.run_cycle)

    async def _run_periodic(
        self,
        job: str,
        interval_seconds: int,
        runner: Callable[[TradingConfig], Awaitable],
    ) -> None:
        """Background loop for one job."""
        try:
            if not self._settings.run_on_start:
                await asyncio.sleep(interval_seconds)
            while self._state == OrchestratorState.RUNNING:
                await self._run_job(job, runner)
                await asyncio.sleep(interval_seconds)
        except asyncio.CancelledError:
            pass

    async def _run_job(
        self,
        job: str,
        runner: Callable[[TradingConfig], Awaitable],
    ) -> JobRunResult:
        """Run one job under its lease.

        Never raises: failures are logged and returned as FAILED results.
        """
        lease = self._leases[job]
        if lease.locked():
            logger.info(f"Job {job} still running, skipping trigger")
            return JobRunResult(job=job, status=JobStatus.SKIPPED)

        async with lease:
            started_at = datetime.now()
            started = time.monotonic()
            try:
                config = await self._config_provider.get_config()
                stats = await runner(config)
                result = JobRunResult(
                    job=job,
                    status=JobStatus.COMPLETED,
                    stats=stats,
                    started_at=started_at,
                    duration_ms=int((time.monotonic() - started) * 1000),
                )
            except Exception as e:
                logger.error(f"Job {job} failed: {e}")
                result = JobRunResult(
                    job=job,
                    status=JobStatus.FAILED,
                    error=str(e),
                    started_at=started_at,
                    duration_ms=int((time.monotonic() - started) * 1000),
                )

        self._last_results[job] = result
        return result
