"""Variant model.

Variant ids are global (not scoped to a product). `product_id` points at
products.product_id but there is no FK constraint: the catalog store keeps
the pairing consistent by always deleting variants before their products.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import BigInteger, Boolean, DateTime, Integer, Numeric, Text
from sqlalchemy.orm import Mapped, mapped_column

from catalog_mirror.stores.postgres import Base


class Variant(Base):
    """Sellable variant of a product."""

    __tablename__ = "variants"

    variant_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    product_id: Mapped[int] = mapped_column(BigInteger, index=True)

    title: Mapped[str | None] = mapped_column(Text)
    sku: Mapped[str | None] = mapped_column(Text)
    image_url: Mapped[str | None] = mapped_column(Text)

    # Pricing
    price: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    compare_price: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))

    # None and False both mean "not available" to readers
    available: Mapped[bool | None] = mapped_column(Boolean)
    position: Mapped[int | None] = mapped_column(Integer)  # 1-based

    # Positional values for the product's options schema
    option1: Mapped[str | None] = mapped_column(Text)
    option2: Mapped[str | None] = mapped_column(Text)
    option3: Mapped[str | None] = mapped_column(Text)

    created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    def __repr__(self) -> str:
        return f"<Variant {self.variant_id} product={self.product_id} price={self.price}>"
