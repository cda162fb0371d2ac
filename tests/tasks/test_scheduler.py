"""
Tests for TaskScheduler job wiring and control.
"""

import asyncio

import pytest

from funding_aggregator.tasks import COMBINED_JOB, MATRIX_JOB, TaskScheduler
from conftest import CountingTask


@pytest.fixture
def tasks():
    return CountingTask("funding_matrix"), CountingTask("combined_funding")


@pytest.mark.unit
@pytest.mark.asyncio
async def test_force_run_job_runs_the_task(tasks):
    matrix, combined = tasks
    scheduler = TaskScheduler(matrix_task=matrix, combined_task=combined)

    result = await scheduler.force_run_job(MATRIX_JOB)

    assert result["status"] == "success"
    assert matrix.executions == 1
    assert combined.executions == 0


@pytest.mark.unit
@pytest.mark.asyncio
async def test_failing_task_is_reported_not_raised():
    failing = CountingTask("funding_matrix", fail=True)
    scheduler = TaskScheduler(matrix_task=failing, enable_combined=False)

    result = await scheduler.force_run_job(MATRIX_JOB)

    assert result["status"] == "failed"
    assert scheduler.get_task_health()[MATRIX_JOB]["metrics"]["failed_runs"] == 1


@pytest.mark.unit
@pytest.mark.asyncio
async def test_unknown_job_is_rejected(tasks):
    matrix, _ = tasks
    scheduler = TaskScheduler(matrix_task=matrix, enable_combined=False)

    with pytest.raises(ValueError):
        await scheduler.force_run_job(COMBINED_JOB)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_start_runs_each_job_once_then_waits_for_interval(tasks):
    matrix, combined = tasks
    scheduler = TaskScheduler(matrix_task=matrix, combined_task=combined)

    await scheduler.start()
    try:
        for _ in range(50):
            if matrix.executions and combined.executions:
                break
            await asyncio.sleep(0.02)

        status = scheduler.get_scheduler_status()
        assert status["running"] is True
        assert {job["id"] for job in status["jobs"]} == {MATRIX_JOB, COMBINED_JOB}
        assert matrix.executions == 1
        assert combined.executions == 1

        scheduler.pause_job(COMBINED_JOB)
        paused = {job["id"]: job for job in scheduler.get_scheduler_status()["jobs"]}
        assert paused[COMBINED_JOB]["next_run_time"] is None

        scheduler.resume_job(COMBINED_JOB)
    finally:
        await scheduler.shutdown()

    assert scheduler.get_scheduler_status()["running"] is False


@pytest.mark.unit
@pytest.mark.asyncio
async def test_shutdown_has_stopped_the_scheduler_when_it_returns(tasks):
    matrix, combined = tasks
    scheduler = TaskScheduler(matrix_task=matrix, combined_task=combined)
    await scheduler.start()

    await scheduler.shutdown()

    assert scheduler.scheduler.running is False
    # Already stopped, nothing to do
    await scheduler.shutdown()


@pytest.mark.unit
def test_disabled_cycle_is_not_scheduled(tasks):
    matrix, _ = tasks
    scheduler = TaskScheduler(matrix_task=matrix, enable_combined=False)

    assert list(scheduler.get_task_health()) == [MATRIX_JOB]
