"""Catalog store tests against a throwaway sqlite database."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from catalog_mirror.models import Product, Variant
from catalog_mirror.services.merge import ProductUpsert, VariantUpsert
from catalog_mirror.stores import catalog

T0 = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


async def _seed(session, product_id: int, *, updated_at: datetime = T0, title: str | None = None, variants=()):
    await catalog.upsert_product(
        session,
        ProductUpsert(
            product_id=product_id,
            title=title or f"Product {product_id}",
            vendor="Acme",
            tags=["a", "b"],
            options_json=[
                {"name": "Size", "position": 2, "values": ["S"]},
                {"name": "Color", "position": 1, "values": ["Red"]},
            ],
            created_at=T0 - timedelta(days=1),
            updated_at=updated_at,
        ),
    )
    for v in variants:
        await catalog.upsert_variant(session, VariantUpsert(product_id=product_id, updated_at=updated_at, **v))


async def _count(session, model) -> int:
    return (await session.execute(select(func.count()).select_from(model))).scalar_one()


@pytest.mark.asyncio
async def test_upsert_product_is_idempotent(session):
    cmd = ProductUpsert(product_id=1, title="Dress", vendor="Acme", updated_at=T0)
    assert await catalog.upsert_product(session, cmd) == 1
    await session.commit()
    assert await catalog.upsert_product(session, cmd) == 0

    changed = ProductUpsert(product_id=1, title="Dress", vendor=None, updated_at=T0 + timedelta(minutes=5))
    assert await catalog.upsert_product(session, changed) == 1
    await session.commit()

    product = await catalog.find_by_id(session, 1)
    assert product.vendor == "Acme"
    assert await _count(session, Product) == 1


@pytest.mark.asyncio
async def test_upsert_variant_moves_to_declared_product(session):
    await catalog.upsert_variant(session, VariantUpsert(variant_id=10, product_id=1, price=Decimal("5"), updated_at=T0))
    await catalog.upsert_variant(
        session,
        VariantUpsert(variant_id=10, product_id=2, price=Decimal("5"), updated_at=T0 + timedelta(minutes=1)),
    )
    await session.commit()
    assert [v.variant_id for v in await catalog.list_by_product_id(session, 2)] == [10]
    assert await catalog.list_by_product_id(session, 1) == []


@pytest.mark.asyncio
@pytest.mark.parametrize("keep", [[], list(range(1, 10))])
async def test_bulk_deletes_are_guarded(session, keep):
    for pid in range(1, 13):
        await _seed(session, pid, variants=[{"variant_id": pid * 10, "price": Decimal("1")}])
    await session.commit()

    assert await catalog.delete_variants_not_in_products(session, keep) == 0
    assert await catalog.delete_products_not_in(session, keep) == 0
    await session.commit()

    assert await _count(session, Product) == 12
    assert await _count(session, Variant) == 12


@pytest.mark.asyncio
async def test_bulk_deletes_remove_everything_outside_keep_set(session):
    for pid in range(1, 13):
        await _seed(session, pid, variants=[{"variant_id": pid * 10, "price": Decimal("1")}])
    await session.commit()

    keep = list(range(1, 11))
    assert await catalog.delete_variants_not_in_products(session, keep) == 2
    assert await catalog.delete_products_not_in(session, keep) == 2
    await session.commit()

    ids = (await session.execute(select(Product.product_id).order_by(Product.product_id))).scalars().all()
    assert ids == keep
    orphans = await session.execute(
        select(func.count()).select_from(Variant).where(Variant.product_id.not_in(select(Product.product_id)))
    )
    assert orphans.scalar_one() == 0


@pytest.mark.asyncio
async def test_delete_by_product_id(session):
    await _seed(session, 1, variants=[{"variant_id": 10, "price": Decimal("1")}, {"variant_id": 11, "price": Decimal("2")}])
    await session.commit()

    assert await catalog.delete_variants_by_product_id(session, 1) == 2
    assert await catalog.delete_product_by_product_id(session, 1) == 1
    assert await catalog.delete_product_by_product_id(session, 1) == 0
    await session.commit()
    assert not await catalog.exists_by_product_id(session, 1)


@pytest.mark.asyncio
async def test_list_paged_min_price_image_and_order(session):
    await _seed(
        session,
        1,
        updated_at=T0,
        variants=[
            {"variant_id": 10, "price": Decimal("30.00"), "available": False, "position": 1, "image_url": "https://img/10.jpg"},
            {"variant_id": 11, "price": Decimal("12.50"), "available": True, "position": 2, "image_url": "https://img/11.jpg"},
            {"variant_id": 12, "price": Decimal("20.00"), "available": True, "position": 3, "image_url": None},
        ],
    )
    await _seed(session, 2, updated_at=T0 + timedelta(hours=1))
    await session.commit()

    rows = await catalog.list_paged(session, limit=10, offset=0)
    assert [r.product_id for r in rows] == [2, 1]
    first = rows[1]
    assert first.min_price == Decimal("12.50")
    assert first.image_url == "https://img/11.jpg"
    assert first.tags == ["a", "b"]
    assert rows[0].min_price is None
    assert rows[0].image_url is None


@pytest.mark.asyncio
async def test_search_is_case_insensitive_substring(session):
    await _seed(session, 1, title="Linen Summer Dress")
    await _seed(session, 2, title="Wool coat")
    await _seed(session, 3, title="100% cotton tee")
    await session.commit()

    rows = await catalog.list_paged(session, limit=10, offset=0, search="  summer ")
    assert [r.product_id for r in rows] == [1]
    assert await catalog.count_for_view(session, "summer") == 1
    assert await catalog.count_for_view(session, "%") == 1
    assert await catalog.count_for_view(session, None) == 3


@pytest.mark.asyncio
async def test_variant_listing_order_and_option_names(session):
    await _seed(
        session,
        1,
        variants=[
            {"variant_id": 13, "price": Decimal("1"), "available": None, "position": 1},
            {"variant_id": 12, "price": Decimal("1"), "available": True, "position": None},
            {"variant_id": 11, "price": Decimal("1"), "available": True, "position": 2},
            {"variant_id": 10, "price": Decimal("1"), "available": False, "position": 1},
        ],
    )
    await session.commit()

    rows = await catalog.list_by_product_id(session, 1)
    assert [r.variant_id for r in rows] == [11, 12, 10, 13]
    assert rows[-1].available is False
    assert await catalog.load_option_names(session, 1) == ["Color", "Size"]
    assert await catalog.load_option_names(session, 999) == []
