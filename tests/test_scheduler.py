import asyncio

import pytest

from catalog_mirror.services import scheduler


@pytest.mark.asyncio
async def test_wrap_job_swallows_exceptions():
    async def boom():
        raise RuntimeError("boom")

    assert await scheduler._wrap_job(boom, name="boom")() is None


@pytest.mark.asyncio
async def test_scheduler_runs_sync_right_after_start(monkeypatch: pytest.MonkeyPatch):
    ran = asyncio.Event()

    async def fake_run_sync_cycle():
        ran.set()

    monkeypatch.setattr(scheduler, "run_sync_cycle", fake_run_sync_cycle)

    sched = scheduler.start_scheduler(interval_seconds=3600)
    try:
        assert scheduler.start_scheduler() is sched
        job = sched.get_job(scheduler.SYNC_JOB_ID)
        assert job is not None
        assert job.max_instances == 1
        await asyncio.wait_for(ran.wait(), timeout=5)
    finally:
        scheduler.stop_scheduler()

    assert scheduler._scheduler is None
