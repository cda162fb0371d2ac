"""
Background Tasks API Routes

Monitoring and manual control of the in-process scheduler.
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException

from funding_aggregator.api.dependencies import get_scheduler
from funding_aggregator.tasks.scheduler import TaskScheduler


router = APIRouter()


@router.get("/tasks/status")
async def get_tasks_status(scheduler: TaskScheduler = Depends(get_scheduler)) -> Dict[str, Any]:
    return scheduler.get_scheduler_status()


@router.get("/tasks/health")
async def get_tasks_health(scheduler: TaskScheduler = Depends(get_scheduler)) -> Dict[str, Any]:
    health = scheduler.get_task_health()
    return {
        "healthy": all(task["is_healthy"] for task in health.values()),
        "tasks": health,
    }


@router.post("/tasks/{job_id}/run")
async def run_task(job_id: str, scheduler: TaskScheduler = Depends(get_scheduler)) -> Dict[str, Any]:
    """Run a cycle now; returns its status dict once finished"""
    try:
        return await scheduler.force_run_job(job_id)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
