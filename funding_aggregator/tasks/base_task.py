"""
Base Task Class

Abstract base class for the periodic table-building cycles, with overlap
protection, metrics tracking and a cycle-scoped logger.
"""

import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from funding_aggregator.utils.logger import logger


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass
class TaskMetrics:
    """Metrics for a background task"""
    task_name: str
    total_runs: int = 0
    successful_runs: int = 0
    failed_runs: int = 0
    skipped_runs: int = 0
    last_run_time: Optional[datetime] = None
    last_success_time: Optional[datetime] = None
    last_error_time: Optional[datetime] = None
    last_error_message: Optional[str] = None
    avg_duration_ms: float = 0.0
    total_duration_ms: float = 0.0

    @property
    def success_rate(self) -> float:
        """Calculate success rate as percentage"""
        if self.total_runs == 0:
            return 0.0
        return (self.successful_runs / self.total_runs) * 100

    @property
    def is_healthy(self) -> bool:
        """Healthy when most runs succeed and the last error is old or superseded"""
        if self.total_runs == 0:
            return True  # No runs yet, assume healthy

        if self.success_rate < 80:
            return False

        if self.last_success_time is None:
            return False

        if self.last_error_time is None:
            return True

        if self.last_success_time > self.last_error_time:
            return True

        return _utcnow() - self.last_error_time > timedelta(minutes=30)

    def record(self, succeeded: bool, duration_ms: float, error_message: Optional[str] = None) -> None:
        now = _utcnow()
        self.total_runs += 1
        self.last_run_time = now

        if succeeded:
            self.successful_runs += 1
            self.last_success_time = now
        else:
            self.failed_runs += 1
            self.last_error_time = now
            self.last_error_message = error_message

        self.total_duration_ms += duration_ms
        self.avg_duration_ms = self.total_duration_ms / self.total_runs


class BaseTask(ABC):
    """
    Abstract base class for background tasks

    Provides:
    - Skip-if-running so two runs of the same cycle never overlap
    - Metrics tracking
    - A logger bound to the task and the current cycle id
    """

    def __init__(self, task_name: str):
        self.task_name = task_name
        self.metrics = TaskMetrics(task_name=task_name)
        self._running = False

        logger.info(f"Initialized task: {task_name}")

    @abstractmethod
    async def execute(self, log) -> Dict[str, Any]:
        """
        Execute one cycle

        Args:
            log: Logger scoped to this cycle; implementations log through it only

        Returns:
            Dictionary with execution results
        """

    async def run(self) -> Dict[str, Any]:
        """
        Run one cycle with overlap protection and metrics tracking

        Never raises; failures are reported in the returned status dict.
        """
        if self._running:
            self.metrics.skipped_runs += 1
            logger.warning(f"Task {self.task_name} is already running, skipping")
            return {
                "status": "skipped",
                "reason": "already_running",
                "timestamp": _utcnow().isoformat()
            }

        self._running = True
        cycle_id = uuid.uuid4().hex[:8]
        log = logger.with_context(task=self.task_name, cycle=cycle_id)
        start_time = _utcnow()

        try:
            log.info(f"🚀 Starting task: {self.task_name}")
            result = await self.execute(log)

            duration_ms = (_utcnow() - start_time).total_seconds() * 1000
            self.metrics.record(True, duration_ms)
            log.info(f"✅ Task {self.task_name} completed in {duration_ms:.1f}ms")

            return {
                "status": "success",
                "cycle_id": cycle_id,
                "result": result,
                "duration_ms": duration_ms,
                "timestamp": _utcnow().isoformat()
            }

        except Exception as e:
            duration_ms = (_utcnow() - start_time).total_seconds() * 1000
            self.metrics.record(False, duration_ms, str(e))
            log.exception(f"❌ Task {self.task_name} failed after {duration_ms:.1f}ms: {e}")

            return {
                "status": "failed",
                "cycle_id": cycle_id,
                "error": str(e),
                "duration_ms": duration_ms,
                "timestamp": _utcnow().isoformat()
            }

        finally:
            self._running = False

    def get_metrics(self) -> Dict[str, Any]:
        """Get task metrics as dictionary"""
        return {
            "task_name": self.metrics.task_name,
            "total_runs": self.metrics.total_runs,
            "successful_runs": self.metrics.successful_runs,
            "failed_runs": self.metrics.failed_runs,
            "skipped_runs": self.metrics.skipped_runs,
            "success_rate": round(self.metrics.success_rate, 2),
            "is_healthy": self.metrics.is_healthy,
            "last_run_time": _isoformat(self.metrics.last_run_time),
            "last_success_time": _isoformat(self.metrics.last_success_time),
            "last_error_time": _isoformat(self.metrics.last_error_time),
            "last_error_message": self.metrics.last_error_message,
            "avg_duration_ms": round(self.metrics.avg_duration_ms, 1),
            "is_running": self._running
        }

    def is_running(self) -> bool:
        return self._running

    def is_healthy(self) -> bool:
        return self.metrics.is_healthy
