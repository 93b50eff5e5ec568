"""Product service: browse, create, edit and delete mirrored products.

Each public function is one unit of work (one get_session() block).
Form input has already been validated by the ProductForm schema.
"""

from __future__ import annotations

import logging
import math
import re
from datetime import datetime, timezone

from catalog_mirror.schemas import (
    DeleteResult,
    ProductDetail,
    ProductForm,
    ProductPage,
    ProductVariants,
)
from catalog_mirror.services.merge import ProductUpsert, VariantUpsert
from catalog_mirror.services.options import build_options_schema, option_names_from_schema
from catalog_mirror.stores import catalog
from catalog_mirror.stores.postgres import get_session

logger = logging.getLogger("uvicorn.error")

# ASCII comma, full-width comma, semicolon
_TAG_SEPARATORS = re.compile(r"[,，;]")


class ProductExistsError(RuntimeError):
    """Create was requested for a product id that is already stored."""


class ProductNotFoundError(LookupError):
    """Product id is not stored."""


def parse_tags(tags_text: str | None) -> list[str] | None:
    """Split free-text tags; None when nothing usable remains."""
    if not tags_text:
        return None
    seen: dict[str, None] = {}
    for part in _TAG_SEPARATORS.split(tags_text):
        tag = part.strip()
        if tag:
            seen.setdefault(tag, None)
    return list(seen) or None


def page_bounds(total: int, page: int, size: int) -> tuple[int, int, int]:
    """Clamp a 1-based page into range.

    Returns:
        (page, total_pages, offset)
    """
    total_pages = max(1, math.ceil(total / size))
    page = min(max(page, 1), total_pages)
    return page, total_pages, (page - 1) * size


def _product_command(form: ProductForm, *, created_at: datetime | None, updated_at: datetime) -> ProductUpsert:
    return ProductUpsert(
        product_id=form.product_id,
        title=form.title,
        vendor=form.vendor,
        product_type=form.product_type,
        tags=parse_tags(form.tags_text),
        options_json=build_options_schema(
            form.option_names,
            [(v.option1, v.option2, v.option3) for v in form.variants],
        ),
        created_at=created_at,
        updated_at=updated_at,
    )


def _variant_commands(
    form: ProductForm, *, created_at: datetime | None, updated_at: datetime
) -> list[VariantUpsert]:
    return [
        VariantUpsert(
            variant_id=v.variant_id,
            product_id=form.product_id,
            sku=v.sku,
            image_url=v.image_url,
            price=v.price,
            compare_price=v.compare_price,
            available=v.available,
            position=index,
            option1=v.option1,
            option2=v.option2,
            option3=v.option3,
            created_at=created_at,
            updated_at=updated_at,
        )
        for index, v in enumerate(form.variants, start=1)
    ]


# ============================================================
# Reads
# ============================================================


async def get_product_page(page: int = 1, size: int = 10, search: str | None = None) -> ProductPage:
    """Get one page of the product listing."""
    async with get_session() as session:
        total = await catalog.count_for_view(session, search)
        page, total_pages, offset = page_bounds(total, page, size)
        items = await catalog.list_paged(session, limit=size, offset=offset, search=search)

    return ProductPage(
        items=items,
        page=page,
        size=size,
        total=total,
        total_pages=total_pages,
        search=search,
    )


async def get_product_detail(product_id: int) -> ProductDetail | None:
    """Get a product with its variants, or None."""
    async with get_session() as session:
        product = await catalog.find_by_id(session, product_id)
        if product is None:
            return None
        variants = await catalog.list_by_product_id(session, product_id)

    return ProductDetail(
        product_id=product.product_id,
        title=product.title,
        vendor=product.vendor,
        product_type=product.product_type,
        tags=product.tags,
        options=product.options_json,
        option_names=option_names_from_schema(product.options_json),
        created_at=product.created_at,
        updated_at=product.updated_at,
        variants=variants,
    )


async def get_product_variants(product_id: int) -> ProductVariants:
    """Get the variant rows and option names of a product."""
    async with get_session() as session:
        variants = await catalog.list_by_product_id(session, product_id)
        option_names = await catalog.load_option_names(session, product_id)
    return ProductVariants(product_id=product_id, option_names=option_names, variants=variants)


# ============================================================
# Writes
# ============================================================


async def create_product(form: ProductForm) -> None:
    """Create a product and its variants from the form.

    Raises:
        ProductExistsError: If the product id is already stored.
    """
    now = datetime.now(timezone.utc)
    async with get_session() as session:
        if await catalog.exists_by_product_id(session, form.product_id):
            raise ProductExistsError(f"Product {form.product_id} already exists")

        await catalog.upsert_product(session, _product_command(form, created_at=now, updated_at=now))
        for cmd in _variant_commands(form, created_at=now, updated_at=now):
            await catalog.upsert_variant(session, cmd)

    logger.info(f"[products] created product_id={form.product_id} variants={len(form.variants)}")


async def update_product(form: ProductForm) -> None:
    """Update a product and its variants from the form.

    created_at is left to the sticky merge; updated_at is set to now, so the
    write always goes through.

    Raises:
        ProductNotFoundError: If the product id is not stored.
    """
    now = datetime.now(timezone.utc)
    async with get_session() as session:
        if not await catalog.exists_by_product_id(session, form.product_id):
            raise ProductNotFoundError(f"Product {form.product_id} not found")

        await catalog.upsert_product(session, _product_command(form, created_at=None, updated_at=now))
        for cmd in _variant_commands(form, created_at=None, updated_at=now):
            await catalog.upsert_variant(session, cmd)

    logger.info(f"[products] updated product_id={form.product_id} variants={len(form.variants)}")


async def delete_product(product_id: int) -> DeleteResult:
    """Delete a product and all of its variants (variants first)."""
    async with get_session() as session:
        deleted_variants = await catalog.delete_variants_by_product_id(session, product_id)
        deleted_products = await catalog.delete_product_by_product_id(session, product_id)

    logger.info(
        f"[products] deleted product_id={product_id} products={deleted_products} variants={deleted_variants}"
    )
    return DeleteResult(
        product_id=product_id,
        deleted_products=deleted_products,
        deleted_variants=deleted_variants,
    )
