"""
Task Scheduler

Runs the matrix and combined cycles on fixed intervals using APScheduler.
Both jobs fire once at start, then every configured period.
"""

import asyncio
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_EXECUTED, EVENT_JOB_MISSED
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from funding_aggregator.config import settings
from funding_aggregator.tasks.base_task import BaseTask
from funding_aggregator.tasks.combined_task import CombinedFundingTask
from funding_aggregator.tasks.matrix_task import FundingMatrixTask
from funding_aggregator.utils.logger import logger


MATRIX_JOB = 'matrix_job'
COMBINED_JOB = 'combined_job'


class TaskScheduler:
    """
    Central scheduler for the table-building cycles

    Manages:
    - Funding matrix (every ``matrix_interval_minutes``)
    - Combined history + live table (every ``combined_interval_minutes``)

    A cycle still running when its next tick arrives is not started twice:
    APScheduler's ``max_instances=1`` and the task's own running flag both
    guard against overlap.
    """

    def __init__(
        self,
        matrix_task: Optional[FundingMatrixTask] = None,
        combined_task: Optional[CombinedFundingTask] = None,
        enable_matrix: bool = True,
        enable_combined: bool = True,
    ):
        self.scheduler = AsyncIOScheduler(
            timezone='UTC',
            job_defaults={
                'coalesce': True,
                'max_instances': 1,
                'misfire_grace_time': 60
            }
        )

        self.tasks: Dict[str, BaseTask] = {}
        self.intervals: Dict[str, int] = {}
        if enable_matrix:
            self.tasks[MATRIX_JOB] = matrix_task or FundingMatrixTask()
            self.intervals[MATRIX_JOB] = settings.matrix_interval_minutes
        if enable_combined:
            self.tasks[COMBINED_JOB] = combined_task or CombinedFundingTask()
            self.intervals[COMBINED_JOB] = settings.combined_interval_minutes

        self.job_stats = {
            job_id: {'executions': 0, 'errors': 0, 'last_execution': None, 'last_error': None}
            for job_id in self.tasks
        }

        self.scheduler.add_listener(self._job_executed, EVENT_JOB_EXECUTED)
        self.scheduler.add_listener(self._job_error, EVENT_JOB_ERROR)
        self.scheduler.add_listener(self._job_missed, EVENT_JOB_MISSED)

        logger.info(f"TaskScheduler initialized with jobs: {list(self.tasks)}")

    async def start(self) -> None:
        """Add the jobs and start the scheduler (requires a running event loop)"""
        logger.info("Starting background task scheduler...")

        now = datetime.now(timezone.utc)
        for job_id, task in self.tasks.items():
            self.scheduler.add_job(
                func=self._run_job,
                trigger=IntervalTrigger(minutes=self.intervals[job_id]),
                args=[job_id],
                id=job_id,
                name=task.task_name,
                next_run_time=now,
                replace_existing=True
            )
            logger.info(f"  • {task.task_name}: every {self.intervals[job_id]} minutes")

        self.scheduler.start()
        logger.info("✅ Background task scheduler started")

    async def _run_job(self, job_id: str) -> Dict[str, Any]:
        """Execute one task; never lets an exception reach APScheduler"""
        task = self.tasks[job_id]
        try:
            result = await task.run()
        except Exception as e:
            logger.exception(f"❌ Job {job_id} exception: {e}")
            return {"status": "failed", "error": str(e)}

        if result['status'] == 'failed':
            logger.warning(f"⚠️ Job {job_id} failed: {result.get('error', 'Unknown error')}")
        return result

    def _job_executed(self, event) -> None:
        stats = self.job_stats.get(event.job_id)
        if stats is not None:
            stats['executions'] += 1
            stats['last_execution'] = datetime.now(timezone.utc)

    def _job_error(self, event) -> None:
        stats = self.job_stats.get(event.job_id)
        if stats is not None:
            stats['errors'] += 1
            stats['last_error'] = datetime.now(timezone.utc)

        logger.error(f"Job {event.job_id} failed: {event.exception}")

    def _job_missed(self, event) -> None:
        logger.warning(f"Job {event.job_id} missed execution at {event.scheduled_run_time}")

    async def shutdown(self) -> None:
        """Stop the scheduler; running cycles are not awaited"""
        logger.info("Shutting down task scheduler...")

        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            # AsyncIOScheduler stops on the next loop iteration
            await asyncio.sleep(0)

        logger.info("✅ Task scheduler shutdown complete")

    def get_scheduler_status(self) -> Dict[str, Any]:
        jobs = []
        for job in self.scheduler.get_jobs():
            jobs.append({
                'id': job.id,
                'name': job.name,
                'next_run_time': job.next_run_time.isoformat() if job.next_run_time else None,
                'trigger': str(job.trigger)
            })

        return {
            'running': self.scheduler.running,
            'jobs_count': len(jobs),
            'jobs': jobs,
            'job_statistics': {
                job_id: {
                    **stats,
                    'last_execution': stats['last_execution'].isoformat() if stats['last_execution'] else None,
                    'last_error': stats['last_error'].isoformat() if stats['last_error'] else None,
                }
                for job_id, stats in self.job_stats.items()
            }
        }

    def get_task_health(self) -> Dict[str, Any]:
        return {
            job_id: {
                'metrics': task.get_metrics(),
                'is_healthy': task.is_healthy(),
                'is_running': task.is_running()
            }
            for job_id, task in self.tasks.items()
        }

    async def force_run_job(self, job_id: str) -> Dict[str, Any]:
        """
        Run a job immediately, outside its schedule

        Raises:
            ValueError: If ``job_id`` is not a configured job
        """
        if job_id not in self.tasks:
            raise ValueError(f"Unknown job ID: {job_id}")

        logger.info(f"🔄 Force running job: {job_id}")
        return await self._run_job(job_id)

    def pause_job(self, job_id: str) -> None:
        self.scheduler.pause_job(job_id)
        logger.info(f"⏸️ Paused job: {job_id}")

    def resume_job(self, job_id: str) -> None:
        self.scheduler.resume_job(job_id)
        logger.info(f"▶️ Resumed job: {job_id}")
