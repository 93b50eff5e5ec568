"""Catalog store: products and variants.

All functions take the caller's AsyncSession and never commit: the caller
owns the unit of work (see get_session()). Upserts go through the pure merge
policy in services.merge; bulk deletes are guarded against truncated keep sets.
"""

import logging
from collections.abc import Iterable

from sqlalchemy import Select, delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_mirror.models import Product, Variant
from catalog_mirror.schemas import ProductListRow, VariantRow
from catalog_mirror.services.merge import ProductUpsert, VariantUpsert, merge_product, merge_variant
from catalog_mirror.services.options import option_names_from_schema

logger = logging.getLogger("uvicorn.error")

DEFAULT_MIN_GUARD = 10

_PRODUCT_COLUMNS = (
    "product_id",
    "title",
    "vendor",
    "product_type",
    "tags",
    "options_json",
    "created_at",
    "updated_at",
)
_VARIANT_COLUMNS = (
    "variant_id",
    "product_id",
    "title",
    "sku",
    "image_url",
    "price",
    "compare_price",
    "available",
    "position",
    "option1",
    "option2",
    "option3",
    "created_at",
    "updated_at",
)


def _snapshot(row: Product | Variant | None, columns: tuple[str, ...]) -> dict[str, object] | None:
    if row is None:
        return None
    return {c: getattr(row, c) for c in columns}


# ============================================================
# Upserts
# ============================================================


async def upsert_product(session: AsyncSession, cmd: ProductUpsert) -> int:
    """Insert or merge a product.

    Returns:
        Rows written: 1 for an insert or a merged update, 0 when skipped.
    """
    existing = await session.get(Product, cmd.product_id)
    merged = merge_product(cmd, _snapshot(existing, _PRODUCT_COLUMNS))
    if merged is None:
        return 0

    if existing is None:
        session.add(Product(**merged))
    else:
        for column, value in merged.items():
            setattr(existing, column, value)
    await session.flush()
    return 1


async def upsert_variant(session: AsyncSession, cmd: VariantUpsert) -> int:
    """Insert or merge a variant.

    Returns:
        Rows written: 1 for an insert or a merged update, 0 when skipped.
    """
    existing = await session.get(Variant, cmd.variant_id)
    merged = merge_variant(cmd, _snapshot(existing, _VARIANT_COLUMNS))
    if merged is None:
        return 0

    if existing is None:
        session.add(Variant(**merged))
    else:
        for column, value in merged.items():
            setattr(existing, column, value)
    await session.flush()
    return 1


# ============================================================
# Deletes
# ============================================================


def _guard_allows(keep: set[int], min_guard: int, what: str) -> bool:
    if not keep or len(keep) < min_guard:
        logger.warning(
            f"[catalog] skip bulk delete of {what}: keep set size {len(keep)} < min_guard {min_guard}"
        )
        return False
    return True


async def delete_variants_not_in_products(
    session: AsyncSession,
    keep_product_ids: Iterable[int],
    min_guard: int = DEFAULT_MIN_GUARD,
) -> int:
    """Delete variants whose product id is not in the keep set.

    No-op (returns 0) when the keep set is empty or smaller than min_guard.
    Call before delete_products_not_in() so no variant outlives its product.
    """
    keep = set(keep_product_ids)
    if not _guard_allows(keep, min_guard, "variants"):
        return 0

    result = await session.execute(
        delete(Variant)
        .where(Variant.product_id.not_in(keep))
        .execution_options(synchronize_session=False)
    )
    return result.rowcount or 0


async def delete_products_not_in(
    session: AsyncSession,
    keep_ids: Iterable[int],
    min_guard: int = DEFAULT_MIN_GUARD,
) -> int:
    """Delete products whose id is not in the keep set.

    No-op (returns 0) when the keep set is empty or smaller than min_guard.
    """
    keep = set(keep_ids)
    if not _guard_allows(keep, min_guard, "products"):
        return 0

    result = await session.execute(
        delete(Product)
        .where(Product.product_id.not_in(keep))
        .execution_options(synchronize_session=False)
    )
    return result.rowcount or 0


async def delete_variants_by_product_id(session: AsyncSession, product_id: int) -> int:
    """Delete all variants of one product (explicit operator action, no guard)."""
    result = await session.execute(
        delete(Variant)
        .where(Variant.product_id == product_id)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount or 0


async def delete_product_by_product_id(session: AsyncSession, product_id: int) -> int:
    """Delete one product row (explicit operator action, no guard)."""
    result = await session.execute(
        delete(Product)
        .where(Product.product_id == product_id)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount or 0


# ============================================================
# Reads
# ============================================================


def _apply_search(stmt: Select, search: str | None) -> Select:
    if search and search.strip():
        stmt = stmt.where(Product.title.icontains(search.strip(), autoescape=True))
    return stmt


async def list_paged(
    session: AsyncSession,
    limit: int,
    offset: int,
    search: str | None = None,
) -> list[ProductListRow]:
    """List products newest first, annotated with min price and an image."""
    min_price = (
        select(func.min(Variant.price))
        .where(Variant.product_id == Product.product_id)
        .correlate(Product)
        .scalar_subquery()
    )
    # Prefer available variants, then the lowest position
    image_url = (
        select(Variant.image_url)
        .where(Variant.product_id == Product.product_id, Variant.image_url.is_not(None))
        .order_by(
            Variant.available.desc().nulls_last(),
            Variant.position.asc().nulls_last(),
            Variant.variant_id.asc(),
        )
        .limit(1)
        .correlate(Product)
        .scalar_subquery()
    )

    stmt = select(
        Product.product_id,
        Product.title,
        Product.vendor,
        Product.product_type,
        Product.tags,
        Product.updated_at,
        min_price.label("min_price"),
        image_url.label("image_url"),
    )
    stmt = (
        _apply_search(stmt, search)
        .order_by(
            func.coalesce(Product.updated_at, Product.created_at).desc().nulls_last(),
            Product.product_id.desc(),
        )
        .limit(limit)
        .offset(offset)
    )

    result = await session.execute(stmt)
    return [
        ProductListRow(
            product_id=row.product_id,
            title=row.title,
            vendor=row.vendor,
            product_type=row.product_type,
            tags=row.tags,
            min_price=row.min_price,
            image_url=row.image_url,
            updated_at=row.updated_at,
        )
        for row in result
    ]


async def count_for_view(session: AsyncSession, search: str | None = None) -> int:
    """Count products matching the listing filter."""
    stmt = _apply_search(select(func.count()).select_from(Product), search)
    result = await session.execute(stmt)
    return int(result.scalar_one())


async def find_by_id(session: AsyncSession, product_id: int) -> Product | None:
    """Get a product row by id."""
    result = await session.execute(select(Product).where(Product.product_id == product_id))
    return result.scalar_one_or_none()


async def exists_by_product_id(session: AsyncSession, product_id: int) -> bool:
    """Check whether a product with this id is stored."""
    result = await session.execute(
        select(Product.product_id).where(Product.product_id == product_id).limit(1)
    )
    return result.scalar_one_or_none() is not None


async def list_by_product_id(session: AsyncSession, product_id: int) -> list[VariantRow]:
    """List a product's variants: available first, then by position."""
    result = await session.execute(
        select(Variant)
        .where(Variant.product_id == product_id)
        .order_by(
            Variant.available.desc().nulls_last(),
            Variant.position.asc().nulls_last(),
            Variant.variant_id.asc(),
        )
    )
    return [
        VariantRow(
            variant_id=v.variant_id,
            title=v.title,
            sku=v.sku,
            price=v.price,
            compare_price=v.compare_price,
            available=v.available,
            position=v.position,
            image_url=v.image_url,
            option1=v.option1,
            option2=v.option2,
            option3=v.option3,
        )
        for v in result.scalars().all()
    ]


async def load_option_names(session: AsyncSession, product_id: int) -> list[str]:
    """Option column names for a product (at most 3, by position)."""
    result = await session.execute(
        select(Product.options_json).where(Product.product_id == product_id)
    )
    return option_names_from_schema(result.scalar_one_or_none())
