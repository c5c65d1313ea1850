#!/usr/bin/env python3
"""
Run one recommendation or monitoring cycle immediately.

Uses the same settings and state directory as main.py, so it can be run from
cron or by hand while the service is stopped.

Usage:
    python scripts/run_cycle.py recommendations
    python scripts/run_cycle.py monitor
    python scripts/run_cycle.py stats
"""

import argparse
import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from main import CONFIG_PATH, build_components, initialize_orchestrator, load_and_validate_config  # noqa: E402
from src.orchestrator.models import JobStatus  # noqa: E402


async def run_job(job: str, config_path: Path) -> int:
    """Run a single job and print its result."""
    settings = load_and_validate_config(config_path)
    components = build_components(settings, config_path=config_path)

    if job == "stats":
        stats = await components.journal.get_stats()
        print(f"Pending recommendations: {stats.pending_recommendations}")
        print(f"Pending approvals:       {stats.pending_approvals}")
        print(f"Executed today:          {stats.executed_today}")
        print(f"7-day success rate:      {stats.success_rate_7d:.1f}%")
        print(f"Stop-losses (24h):       {stats.stop_losses_24h}")
        print(f"Take-profits (24h):      {stats.take_profits_24h}")
        return 0

    orchestrator = initialize_orchestrator(settings, components)
    if job == "recommendations":
        result = await orchestrator.run_recommendation_cycle_now()
    else:
        result = await orchestrator.run_monitoring_cycle_now()

    print(f"{result.job}: {result.status.value} in {result.duration_ms} ms")
    if result.stats is not None:
        print(result.stats)
    if result.error:
        print(f"Error: {result.error}")

    return 0 if result.status == JobStatus.COMPLETED else 1


def main():
    parser = argparse.ArgumentParser(description="Run a trading cycle now")
    parser.add_argument("job", choices=["recommendations", "monitor", "stats"])
    parser.add_argument("--config", type=Path, default=CONFIG_PATH, help="Settings YAML file")
    args = parser.parse_args()

    sys.exit(asyncio.run(run_job(args.job, args.config)))


if __name__ == "__main__":
    main()
