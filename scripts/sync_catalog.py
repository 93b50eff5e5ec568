#!/usr/bin/env python3
"""One-off catalog sync (cron or manual run).

Runs exactly one sync cycle against the configured upstream and prints the
report. Exits non-zero when the cycle did not commit.

Run (local / cron):
  python -m scripts.sync_catalog

Optional env vars:
  CATALOG_SOURCE_URL="https://famme.no/products.json"
  SYNC_RETENTION_CAP=50
  SYNC_MIN_GUARD=10
"""

import asyncio
import os
import sys


# Ensure imports work when executed as a script/module
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from catalog_mirror.services.catalog_client import close_catalog_client  # noqa: E402
from catalog_mirror.services.reconciliation import SyncStatus, run_sync_cycle  # noqa: E402
from catalog_mirror.stores.postgres import close_db, init_db, ping_db  # noqa: E402


async def main() -> int:
    # Initialize shared connections (same as API lifespan, but for a one-off run)
    await init_db()
    await ping_db()

    try:
        report = await run_sync_cycle()
        # Final output for cron logs (single JSON-ish blob)
        print(report.as_dict())
        return 0 if report.status in (SyncStatus.OK, SyncStatus.EMPTY_SNAPSHOT) else 1
    finally:
        await close_catalog_client()
        await close_db()


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
