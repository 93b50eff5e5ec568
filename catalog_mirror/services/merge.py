"""Merge policy for catalog upserts.

Pure functions, no database access: given the incoming command and the
currently stored row (or None), return the row to write, or None when the
write should be skipped.

Field classes:
- authoritative: always take the incoming value, even when it is None
- coalesced: an incoming None keeps the stored value
- sticky (created_at): only filled while the stored value is unset

A row that already exists is only rewritten when updated_at differs, or
title (products) / price (variants) differs. Other changes arriving with an
unchanged updated_at are not applied.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

PRODUCT_AUTHORITATIVE = ("title", "updated_at")
PRODUCT_COALESCED = ("vendor", "product_type", "tags", "options_json")

VARIANT_AUTHORITATIVE = (
    "product_id",
    "price",
    "compare_price",
    "available",
    "position",
    "option1",
    "option2",
    "option3",
    "updated_at",
)
VARIANT_COALESCED = ("title", "sku", "image_url")


@dataclass(frozen=True)
class ProductUpsert:
    """Incoming product row (from sync or from a form)."""

    product_id: int
    title: str
    vendor: str | None = None
    product_type: str | None = None
    tags: list[str] | None = None
    options_json: list[dict[str, Any]] | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class VariantUpsert:
    """Incoming variant row (from sync or from a form)."""

    variant_id: int
    product_id: int
    title: str | None = None
    sku: str | None = None
    image_url: str | None = None
    price: Decimal | None = None
    compare_price: Decimal | None = None
    available: bool | None = None
    position: int | None = None
    option1: str | None = None
    option2: str | None = None
    option3: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


def as_utc(value: datetime | None) -> datetime | None:
    """Normalize a timestamp to aware UTC (naive values are taken as UTC)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _timestamp_differs(stored: datetime | None, incoming: datetime | None) -> bool:
    return as_utc(stored) != as_utc(incoming)


def _as_row(incoming: ProductUpsert | VariantUpsert) -> dict[str, Any]:
    """Command as column values, timestamps stored as UTC."""
    values = asdict(incoming)
    values["created_at"] = as_utc(incoming.created_at)
    values["updated_at"] = as_utc(incoming.updated_at)
    return values


def _apply(
    incoming: Mapping[str, Any],
    existing: Mapping[str, Any],
    authoritative: tuple[str, ...],
    coalesced: tuple[str, ...],
) -> dict[str, Any]:
    merged = dict(existing)
    for field in authoritative:
        merged[field] = incoming[field]
    for field in coalesced:
        if incoming[field] is not None:
            merged[field] = incoming[field]
    if merged.get("created_at") is None:
        merged["created_at"] = incoming["created_at"]
    return merged


def merge_product(incoming: ProductUpsert, existing: Mapping[str, Any] | None) -> dict[str, Any] | None:
    """Merge an incoming product over the stored row.

    Returns:
        Column values to persist, or None if the stored row is left untouched.
    """
    values = _as_row(incoming)
    if existing is None:
        return values

    changed = _timestamp_differs(existing.get("updated_at"), incoming.updated_at) or (
        existing.get("title") != incoming.title
    )
    if not changed:
        return None
    return _apply(values, existing, PRODUCT_AUTHORITATIVE, PRODUCT_COALESCED)


def merge_variant(incoming: VariantUpsert, existing: Mapping[str, Any] | None) -> dict[str, Any] | None:
    """Merge an incoming variant over the stored row.

    Returns:
        Column values to persist, or None if the stored row is left untouched.
    """
    values = _as_row(incoming)
    if existing is None:
        return values

    changed = _timestamp_differs(existing.get("updated_at"), incoming.updated_at) or (
        existing.get("price") != incoming.price
    )
    if not changed:
        return None
    return _apply(values, existing, VARIANT_AUTHORITATIVE, VARIANT_COALESCED)
