"""Reconciliation service: upstream snapshot -> products/variants.

One sync cycle:
1. Fetch the upstream snapshot (any fetch error aborts the cycle, nothing written)
2. Empty snapshot: warn and abort before any write
3. Keep the newest N products (updated_at, falling back to created_at)
4. Upsert kept products, then their variants
5. Delete variants outside the kept ids, then products outside the kept ids
   (both guarded by min_guard)

Steps 4-5 run in a single transaction: a failure anywhere rolls back the
whole cycle and the previous catalog stays as it was. Cycles hold no state
between runs, so re-running one is always safe.

Notes:
- A variant's own product_id is trusted over the product it is nested under;
  variants whose declared parent is not kept are skipped.
- The cycle never raises; failures are logged and reported in SyncReport.status.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4

from sqlalchemy.ext.asyncio import AsyncSession

from catalog_mirror.services.catalog_client import (
    CatalogClient,
    CatalogFetchError,
    RemoteProduct,
    get_catalog_client,
)
from catalog_mirror.services.merge import ProductUpsert, VariantUpsert, as_utc
from catalog_mirror.services.options import options_schema_from_remote
from catalog_mirror.settings import get_settings
from catalog_mirror.stores import catalog
from catalog_mirror.stores.postgres import get_session

logger = logging.getLogger("uvicorn.error")

RETENTION_CAP = 50
MIN_GUARD = 10

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)

# Set while a cycle runs in this process (scheduled or triggered by hand).
_cycle_running = False


class SyncStatus(Enum):
    """Outcome of one sync cycle."""

    OK = "ok"
    EMPTY_SNAPSHOT = "empty_snapshot"  # Upstream returned zero products, nothing written
    FETCH_FAILED = "fetch_failed"  # Network / HTTP status / decode failure
    STORAGE_FAILED = "storage_failed"  # Transaction rolled back
    SKIPPED_OVERLAP = "skipped_overlap"  # Another cycle was still running


@dataclass
class SyncReport:
    run_id: str
    status: SyncStatus = SyncStatus.OK
    fetched: int = 0
    kept: int = 0
    upserted_products: int = 0
    upserted_variants: int = 0
    deleted_variants: int = 0
    deleted_products: int = 0
    error: str | None = None
    duration_ms: int = 0

    def as_dict(self) -> dict:
        return {
            "run_id": self.run_id,
            "status": self.status.value,
            "fetched": self.fetched,
            "kept": self.kept,
            "upserted_products": self.upserted_products,
            "upserted_variants": self.upserted_variants,
            "deleted_variants": self.deleted_variants,
            "deleted_products": self.deleted_products,
            "error": self.error,
            "duration_ms": self.duration_ms,
        }


def _recency_key(product: RemoteProduct) -> tuple[bool, datetime]:
    ts = as_utc(product.updated_at or product.created_at)
    # Products without any timestamp sort after everything else.
    return (ts is not None, ts or _OLDEST)


def select_retention_set(products: Sequence[RemoteProduct], cap: int = RETENTION_CAP) -> list[RemoteProduct]:
    """Pick the `cap` most recently updated products (stable for ties)."""
    return sorted(products, key=_recency_key, reverse=True)[:cap]


def product_upsert_from_remote(product: RemoteProduct) -> ProductUpsert:
    return ProductUpsert(
        product_id=product.id,
        title=product.title,
        vendor=product.vendor,
        product_type=product.product_type,
        tags=list(product.tags),
        options_json=options_schema_from_remote(product.options),
        created_at=product.created_at,
        updated_at=product.updated_at,
    )


def variant_upserts_from_remote(product: RemoteProduct) -> list[VariantUpsert]:
    """Variant commands for one product; missing timestamps fall back to the product's."""
    return [
        VariantUpsert(
            variant_id=v.id,
            product_id=v.product_id if v.product_id is not None else product.id,
            title=v.title,
            sku=v.sku,
            image_url=v.image_url,
            price=v.price,
            compare_price=v.compare_at_price,
            available=v.available,
            position=v.position,
            option1=v.option1,
            option2=v.option2,
            option3=v.option3,
            created_at=v.created_at or product.created_at,
            updated_at=v.updated_at or product.updated_at,
        )
        for v in product.variants
    ]


async def apply_snapshot(
    *,
    session: AsyncSession,
    products: Sequence[RemoteProduct],
    report: SyncReport,
    retention_cap: int = RETENTION_CAP,
    min_guard: int = MIN_GUARD,
) -> SyncReport:
    """Upsert the retention set and sweep everything else.

    Args:
        session: DB session (caller controls commit/rollback).
        products: Decoded upstream snapshot.
        report: Report to fill in.
        retention_cap: How many products to keep.
        min_guard: Minimum keep-set size for the bulk deletes to run.
    """
    kept = select_retention_set(products, cap=retention_cap)
    report.fetched = len(products)
    report.kept = len(kept)

    keep_ids = [p.id for p in kept]
    kept_set = set(keep_ids)

    for product in kept:
        report.upserted_products += await catalog.upsert_product(session, product_upsert_from_remote(product))
        for cmd in variant_upserts_from_remote(product):
            # Declared parent must be in the kept set.
            if cmd.product_id not in kept_set:
                logger.warning(
                    f"[sync] skip variant {cmd.variant_id}: parent {cmd.product_id} not kept (nested under {product.id})"
                )
                continue
            report.upserted_variants += await catalog.upsert_variant(session, cmd)

    # Variants first: a product may briefly lack variants, never the reverse.
    report.deleted_variants = await catalog.delete_variants_not_in_products(session, keep_ids, min_guard=min_guard)
    report.deleted_products = await catalog.delete_products_not_in(session, keep_ids, min_guard=min_guard)
    return report


async def run_sync_cycle(client: CatalogClient | None = None) -> SyncReport:
    """Run one full sync cycle. Never raises.

    Args:
        client: Optional catalog client (defaults to the shared singleton).

    Returns:
        SyncReport describing what was committed (all zeros unless status is OK).
    """
    global _cycle_running

    report = SyncReport(run_id=str(uuid4()))
    if _cycle_running:
        report.status = SyncStatus.SKIPPED_OVERLAP
        logger.warning(f"[sync] previous cycle still running, skipping run_id={report.run_id}")
        return report

    _cycle_running = True
    try:
        return await _run_cycle(report, client or get_catalog_client())
    finally:
        _cycle_running = False


async def _run_cycle(report: SyncReport, client: CatalogClient) -> SyncReport:
    settings = get_settings()
    started = time.perf_counter()

    logger.info(f"[sync] start run_id={report.run_id} source={client.source_url}")

    try:
        products = await client.fetch_snapshot()
    except CatalogFetchError as e:
        report.status = SyncStatus.FETCH_FAILED
        report.error = f"{type(e).__name__}: {e}"
        report.duration_ms = int((time.perf_counter() - started) * 1000)
        logger.error(f"[sync] fetch failed run_id={report.run_id} error={report.error}")
        return report

    if not products:
        report.status = SyncStatus.EMPTY_SNAPSHOT
        report.duration_ms = int((time.perf_counter() - started) * 1000)
        logger.warning(f"[sync] upstream returned no products run_id={report.run_id}; skipping writes and deletes")
        return report

    try:
        async with get_session() as session:
            await apply_snapshot(
                session=session,
                products=products,
                report=report,
                retention_cap=settings.sync_retention_cap,
                min_guard=settings.sync_min_guard,
            )
    except Exception as e:
        logger.exception(f"[sync] storage failed, rolled back run_id={report.run_id}")
        report.status = SyncStatus.STORAGE_FAILED
        report.error = f"{type(e).__name__}: {e}"
        report.upserted_products = 0
        report.upserted_variants = 0
        report.deleted_variants = 0
        report.deleted_products = 0

    report.duration_ms = int((time.perf_counter() - started) * 1000)
    logger.info(
        "[sync] done run_id=%s status=%s fetched=%s kept=%s upserted_products=%s upserted_variants=%s "
        "deleted_variants=%s deleted_products=%s took=%sms",
        report.run_id,
        report.status.value,
        report.fetched,
        report.kept,
        report.upserted_products,
        report.upserted_variants,
        report.deleted_variants,
        report.deleted_products,
        report.duration_ms,
    )
    return report
