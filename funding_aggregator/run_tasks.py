#!/usr/bin/env python3
"""
Background Task Runner

Runs the funding table cycles without the HTTP API.

Usage:
    python -m funding_aggregator.run_tasks                  # Run both cycles on their schedule
    python -m funding_aggregator.run_tasks --run-once       # Run both cycles once and exit
    python -m funding_aggregator.run_tasks --matrix-only    # Only the live funding matrix
    python -m funding_aggregator.run_tasks --combined-only  # Only the combined table
"""

import argparse
import asyncio
import signal
import sys

from funding_aggregator.tasks.scheduler import TaskScheduler
from funding_aggregator.utils.logger import clamp_external_logger_levels, logger


class TaskRunner:
    """
    Standalone task runner

    Handles graceful shutdown on SIGTERM/SIGINT.
    """

    def __init__(self, args):
        self.args = args
        self.scheduler = None
        self.running = False

    def _signal_handler(self, signum, frame):
        signal_name = "SIGTERM" if signum == signal.SIGTERM else "SIGINT"
        logger.info(f"📡 Received {signal_name}, initiating graceful shutdown...")
        self.running = False

    def _build_scheduler(self) -> TaskScheduler:
        return TaskScheduler(
            enable_matrix=not self.args.combined_only,
            enable_combined=not self.args.matrix_only,
        )

    async def start(self):
        """Start the scheduler and block until a shutdown signal arrives"""
        logger.info("🚀 Starting Background Task Runner...")
        signal.signal(signal.SIGTERM, self._signal_handler)
        signal.signal(signal.SIGINT, self._signal_handler)

        try:
            self.scheduler = self._build_scheduler()
            await self.scheduler.start()
            clamp_external_logger_levels()

            self.running = True
            logger.info("🔄 Task runner is now active. Press Ctrl+C to stop.")

            while self.running:
                await asyncio.sleep(1)

            logger.info("🛑 Shutdown signal received, stopping tasks...")

        finally:
            await self._cleanup()

    async def run_once(self) -> bool:
        """
        Run the selected cycles once, one after another

        Returns:
            True if every cycle succeeded
        """
        logger.info("🧪 Running tasks once...")
        self.scheduler = self._build_scheduler()

        all_succeeded = True
        for job_id in self.scheduler.tasks:
            result = await self.scheduler.force_run_job(job_id)
            all_succeeded = all_succeeded and result['status'] == 'success'

        logger.info("✅ All tasks completed" if all_succeeded else "⚠️ Some tasks failed")
        return all_succeeded

    async def _cleanup(self):
        if self.scheduler:
            await self.scheduler.shutdown()
        logger.info("👋 Task Runner stopped")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Background Task Runner for the Funding Rate Aggregator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m funding_aggregator.run_tasks                        # Run both cycles continuously
  python -m funding_aggregator.run_tasks --matrix-only          # Only the live funding matrix
  python -m funding_aggregator.run_tasks --run-once             # Run both cycles once and exit
  python -m funding_aggregator.run_tasks --run-once --combined-only
        """
    )

    only = parser.add_mutually_exclusive_group()
    only.add_argument(
        '--matrix-only',
        action='store_true',
        help='Run only the live funding matrix cycle'
    )
    only.add_argument(
        '--combined-only',
        action='store_true',
        help='Run only the combined history + live cycle'
    )

    parser.add_argument(
        '--run-once',
        action='store_true',
        help='Run the selected cycles once and exit'
    )
    return parser


async def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    runner = TaskRunner(args)

    if args.run_once:
        return 0 if await runner.run_once() else 1

    await runner.start()
    return 0


def cli() -> None:
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        logger.info("👋 Task Runner stopped by user")
    except Exception as e:
        logger.exception(f"❌ Task Runner failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    cli()
