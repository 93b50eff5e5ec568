"""CSV export of the product listing.

Rows are read page by page (same ordering and search filter as the listing)
and streamed out as CSV text chunks, one chunk per page.
"""

from __future__ import annotations

import csv
import io
import logging
from collections.abc import AsyncIterator, Sequence
from decimal import Decimal

from catalog_mirror.schemas import ProductListRow
from catalog_mirror.settings import get_settings
from catalog_mirror.stores import catalog
from catalog_mirror.stores.postgres import get_session

logger = logging.getLogger("uvicorn.error")

EXPORT_HEADER = ("Product ID", "Title", "Vendor", "Product Type", "Tags", "Min Price", "Updated")


def format_decimal(value: Decimal | None) -> str:
    """Plain notation, no trailing zeros (19.90 -> 19.9, 100.00 -> 100)."""
    if value is None:
        return ""
    return format(value.normalize(), "f")


def export_cells(row: ProductListRow) -> list[str]:
    """Project one listing row onto the export columns."""
    return [
        str(row.product_id),
        row.title,
        row.vendor or "",
        row.product_type or "",
        ";".join(row.tags or []),
        format_decimal(row.min_price),
        row.updated_at.isoformat() if row.updated_at else "",
    ]


def _render(rows: Sequence[Sequence[str]]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerows(rows)
    return buffer.getvalue()


async def iter_export_rows(search: str | None = None, page_size: int | None = None) -> AsyncIterator[list[ProductListRow]]:
    """Yield listing rows in pages until a short page is read."""
    page_size = page_size or get_settings().export_page_size
    offset = 0
    while True:
        async with get_session() as session:
            rows = await catalog.list_paged(session, limit=page_size, offset=offset, search=search)
        if rows:
            yield rows
        if len(rows) < page_size:
            return
        offset += page_size


async def iter_export_csv(search: str | None = None, page_size: int | None = None) -> AsyncIterator[str]:
    """Yield the CSV document in chunks: header first, then one chunk per page."""
    yield _render([EXPORT_HEADER])
    exported = 0
    async for rows in iter_export_rows(search=search, page_size=page_size):
        exported += len(rows)
        yield _render([export_cells(r) for r in rows])
    logger.info(f"[export] wrote {exported} rows search={search!r}")
