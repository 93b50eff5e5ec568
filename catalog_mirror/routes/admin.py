"""Admin endpoints.

These endpoints are intended for manual operations.
In production, consider adding authentication (API key or admin token).
"""

import logging

from fastapi import APIRouter

from catalog_mirror.services.reconciliation import run_sync_cycle

router = APIRouter()
logger = logging.getLogger("uvicorn.error")


@router.post("/sync")
async def trigger_sync() -> dict:
    """Run one sync cycle now and return its report.

    Failures are reported in the body (`status`), not as HTTP errors. If a
    scheduled cycle is already running, status is `skipped_overlap`.
    """
    report = await run_sync_cycle()
    return report.as_dict()
