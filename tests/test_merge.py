from datetime import datetime, timedelta, timezone
from decimal import Decimal

from catalog_mirror.services.merge import ProductUpsert, VariantUpsert, merge_product, merge_variant

T0 = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
T1 = T0 + timedelta(hours=1)


def _stored_product(**overrides) -> dict:
    row = {
        "product_id": 1,
        "title": "Linen dress",
        "vendor": "Acme",
        "product_type": "Dress",
        "tags": ["summer"],
        "options_json": [{"name": "Size", "position": 1, "values": ["S"]}],
        "created_at": T0 - timedelta(days=10),
        "updated_at": T0,
    }
    row.update(overrides)
    return row


def test_merge_product_insert_returns_incoming_row():
    merged = merge_product(ProductUpsert(product_id=1, title="New", updated_at=T0), None)
    assert merged["product_id"] == 1
    assert merged["title"] == "New"
    assert merged["vendor"] is None


def test_merge_product_null_vendor_keeps_stored_value():
    merged = merge_product(ProductUpsert(product_id=1, title="Linen dress", vendor=None, updated_at=T1), _stored_product())
    assert merged["vendor"] == "Acme"
    assert merged["tags"] == ["summer"]
    assert merged["options_json"] == [{"name": "Size", "position": 1, "values": ["S"]}]
    assert merged["updated_at"] == T1


def test_merge_product_title_is_overwritten():
    merged = merge_product(ProductUpsert(product_id=1, title="Silk dress", updated_at=T0), _stored_product())
    assert merged["title"] == "Silk dress"


def test_merge_product_created_at_is_sticky():
    stored = _stored_product()
    merged = merge_product(
        ProductUpsert(product_id=1, title="Linen dress", created_at=T1, updated_at=T1),
        stored,
    )
    assert merged["created_at"] == stored["created_at"]

    merged = merge_product(
        ProductUpsert(product_id=1, title="Linen dress", created_at=T1, updated_at=T1),
        _stored_product(created_at=None),
    )
    assert merged["created_at"] == T1


def test_merge_product_unchanged_timestamp_and_title_is_skipped():
    incoming = ProductUpsert(product_id=1, title="Linen dress", vendor="Other", updated_at=T0)
    assert merge_product(incoming, _stored_product()) is None


def test_merge_product_compares_naive_stored_timestamp_as_utc():
    stored = _stored_product(updated_at=T0.replace(tzinfo=None))
    incoming = ProductUpsert(
        product_id=1,
        title="Linen dress",
        updated_at=T0.astimezone(timezone(timedelta(hours=2))),
    )
    assert merge_product(incoming, stored) is None


def _stored_variant(**overrides) -> dict:
    row = {
        "variant_id": 10,
        "product_id": 1,
        "title": "S",
        "sku": "SKU-S",
        "image_url": "https://cdn.example.com/s.jpg",
        "price": Decimal("19.90"),
        "compare_price": Decimal("29.90"),
        "available": True,
        "position": 1,
        "option1": "S",
        "option2": None,
        "option3": None,
        "created_at": T0,
        "updated_at": T0,
    }
    row.update(overrides)
    return row


def test_merge_variant_price_change_forces_write():
    incoming = VariantUpsert(variant_id=10, product_id=1, title="S", price=Decimal("17.50"), updated_at=T0)
    merged = merge_variant(incoming, _stored_variant())
    assert merged["price"] == Decimal("17.50")
    # compare_price is authoritative, sku/image_url are coalesced
    assert merged["compare_price"] is None
    assert merged["sku"] == "SKU-S"
    assert merged["image_url"] == "https://cdn.example.com/s.jpg"


def test_merge_variant_declared_parent_wins():
    incoming = VariantUpsert(variant_id=10, product_id=2, price=Decimal("19.90"), updated_at=T1)
    merged = merge_variant(incoming, _stored_variant())
    assert merged["product_id"] == 2


def test_merge_variant_equal_price_with_different_scale_is_skipped():
    incoming = VariantUpsert(variant_id=10, product_id=1, price=Decimal("19.9"), updated_at=T0)
    assert merge_variant(incoming, _stored_variant()) is None


def test_merge_variant_missing_title_keeps_stored_title():
    incoming = VariantUpsert(variant_id=10, product_id=1, title=None, price=Decimal("19.90"), updated_at=T1)
    merged = merge_variant(incoming, _stored_variant())
    assert merged["title"] == "S"
