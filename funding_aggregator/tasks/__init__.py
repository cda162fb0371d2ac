"""
Background tasks for the periodic funding tables
"""

from funding_aggregator.tasks.base_task import BaseTask, TaskMetrics
from funding_aggregator.tasks.combined_task import CombinedFundingTask
from funding_aggregator.tasks.matrix_task import FundingMatrixTask
from funding_aggregator.tasks.scheduler import COMBINED_JOB, MATRIX_JOB, TaskScheduler

__all__ = [
    "BaseTask",
    "TaskMetrics",
    "FundingMatrixTask",
    "CombinedFundingTask",
    "TaskScheduler",
    "MATRIX_JOB",
    "COMBINED_JOB",
]
