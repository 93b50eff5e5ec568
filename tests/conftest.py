"""Shared fixtures: throwaway sqlite database and upstream payload builders."""

from datetime import datetime, timedelta, timezone

import aiosqlite  # noqa: F401  (driver for the sqlite test database)
import pytest

from catalog_mirror.stores import postgres

BASE_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
async def db(tmp_path):
    """Initialize the global session factory against a fresh sqlite file."""
    await postgres.init_db(f"sqlite+aiosqlite:///{tmp_path / 'catalog.db'}")
    await postgres.create_tables()
    yield
    await postgres.close_db()


@pytest.fixture
async def session(db):
    """Session on the test database (caller commits)."""
    async with postgres._session_factory() as s:
        yield s


def _iso(dt: datetime | None) -> str | None:
    return dt.isoformat() if dt else None


@pytest.fixture
def make_product():
    """Build one upstream product dict (storefront products.json shape)."""

    def _make(
        product_id: int,
        *,
        title: str | None = None,
        updated_at: datetime | None = None,
        created_at: datetime | None = None,
        variants: int = 2,
        price: str = "19.90",
        vendor: str | None = "Acme",
    ) -> dict:
        updated_at = updated_at or BASE_TIME + timedelta(minutes=product_id)
        created_at = created_at or BASE_TIME - timedelta(days=30)
        return {
            "id": product_id,
            "title": title or f"Product {product_id}",
            "vendor": vendor,
            "product_type": "Dress",
            "tags": ["summer", "sale"],
            "options": [
                {"name": "Size", "position": 1, "values": ["S", "M"]},
            ],
            "created_at": _iso(created_at),
            "updated_at": _iso(updated_at),
            "variants": [
                {
                    "id": product_id * 100 + i,
                    "product_id": product_id,
                    "title": size,
                    "sku": f"SKU-{product_id}-{size}",
                    "price": price,
                    "compare_at_price": None,
                    "available": i == 0,
                    "position": i + 1,
                    "option1": size,
                    "featured_image": {"src": f"https://cdn.example.com/{product_id}-{size}.jpg"},
                }
                for i, size in zip(range(variants), ["S", "M", "L", "XL"])
            ],
        }

    return _make
