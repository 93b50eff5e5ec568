"""Product model.

A product mirrored from the upstream storefront (or created manually).
The primary key is the external numeric product id, never generated locally.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, BigInteger, DateTime, Text
from sqlalchemy.dialects import postgresql
from sqlalchemy.orm import Mapped, mapped_column

from catalog_mirror.stores.postgres import Base

# text[] / jsonb on PostgreSQL, plain JSON elsewhere (sqlite in tests).
TagsType = JSON(none_as_null=True).with_variant(postgresql.ARRAY(Text), "postgresql")
OptionsType = JSON(none_as_null=True).with_variant(postgresql.JSONB(none_as_null=True), "postgresql")


class Product(Base):
    """Catalog product."""

    __tablename__ = "products"

    product_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)

    title: Mapped[str] = mapped_column(Text)
    vendor: Mapped[str | None] = mapped_column(Text)
    product_type: Mapped[str | None] = mapped_column(Text)
    tags: Mapped[list[str] | None] = mapped_column(TagsType)

    # Options schema: [{"name": str, "position": 1..3, "values": [str, ...]}, ...]
    options_json: Mapped[list[dict[str, Any]] | None] = mapped_column(OptionsType)

    # Upstream timestamps (created_at is sticky once set)
    created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    def __repr__(self) -> str:
        return f"<Product {self.product_id} {self.title!r}>"
