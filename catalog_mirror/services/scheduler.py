"""Periodic catalog sync (APScheduler, in-process).

One interval job runs run_sync_cycle(); the first run fires right after
startup. max_instances=1 plus coalesce keeps at most one cycle in flight and
folds missed runs into one.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from functools import wraps
from typing import Any

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from catalog_mirror.services.reconciliation import run_sync_cycle
from catalog_mirror.settings import get_settings

logger = logging.getLogger("uvicorn.error")

SYNC_JOB_ID = "catalog_sync"

_scheduler: AsyncIOScheduler | None = None


def _wrap_job(job: Callable[..., Awaitable[Any]], *, name: str) -> Callable[..., Awaitable[Any]]:
    """Log duration and keep a failing job from killing the scheduler."""

    @wraps(job)
    async def _inner(*args: Any, **kwargs: Any) -> Any:
        started = time.perf_counter()
        try:
            result = await job(*args, **kwargs)
        except Exception:
            logger.exception(f"[scheduler] job {name} failed after {time.perf_counter() - started:.2f}s")
            return None
        logger.info(f"[scheduler] job {name} finished in {time.perf_counter() - started:.2f}s")
        return result

    return _inner


def start_scheduler(interval_seconds: int | None = None) -> AsyncIOScheduler:
    """Start the sync scheduler (idempotent)."""
    global _scheduler
    if _scheduler is not None:
        return _scheduler

    interval = interval_seconds or get_settings().sync_interval_seconds
    scheduler = AsyncIOScheduler(
        timezone=timezone.utc,
        job_defaults={
            "coalesce": True,
            "max_instances": 1,
            "misfire_grace_time": 60,
        },
    )
    scheduler.add_job(
        _wrap_job(run_sync_cycle, name=SYNC_JOB_ID),
        trigger=IntervalTrigger(seconds=interval),
        id=SYNC_JOB_ID,
        name=SYNC_JOB_ID,
        next_run_time=datetime.now(timezone.utc),
    )
    scheduler.start()
    _scheduler = scheduler
    logger.info(f"[scheduler] started, {SYNC_JOB_ID} every {interval}s")
    return scheduler


def stop_scheduler() -> None:
    """Shut the scheduler down without waiting for a running cycle."""
    global _scheduler
    if _scheduler is None:
        return
    _scheduler.shutdown(wait=False)
    _scheduler = None
    logger.info("[scheduler] stopped")
