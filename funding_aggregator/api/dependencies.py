"""
Dependency Injection for FastAPI

Provides table locations and the in-process scheduler to route handlers.
"""

from pathlib import Path
from typing import Optional

from fastapi import HTTPException

from funding_aggregator.config import settings
from funding_aggregator.tasks.scheduler import TaskScheduler


class ServiceContainer:
    """Holds the scheduler when it runs inside the API process"""

    def __init__(self):
        self.scheduler: Optional[TaskScheduler] = None

    def set_scheduler(self, scheduler: Optional[TaskScheduler]):
        self.scheduler = scheduler

    def get_scheduler(self) -> TaskScheduler:
        if self.scheduler is None:
            raise HTTPException(
                status_code=503,
                detail="Task scheduler not running in this process."
            )
        return self.scheduler


# Global container instance
services = ServiceContainer()


def get_scheduler() -> TaskScheduler:
    """FastAPI dependency to get the task scheduler"""
    return services.get_scheduler()


def get_matrix_table_path() -> Path:
    return settings.matrix_table_path


def get_combined_table_path() -> Path:
    return settings.combined_table_path
