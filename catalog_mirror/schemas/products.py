"""Schemas for the product endpoints (/v1/products)."""

from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator


class ProductListRow(BaseModel):
    """One row of the product listing (also the CSV export source)."""

    product_id: int = Field(alias="productId")
    title: str
    vendor: str | None = None
    product_type: str | None = Field(alias="productType", default=None)
    tags: list[str] | None = None
    min_price: Decimal | None = Field(alias="minPrice", default=None)
    image_url: str | None = Field(alias="imageUrl", default=None)
    updated_at: datetime | None = Field(alias="updatedAt", default=None)

    model_config = {"populate_by_name": True}


class ProductPage(BaseModel):
    """Paged product listing."""

    items: list[ProductListRow]
    page: int = Field(ge=1)
    size: int = Field(ge=1)
    total: int = Field(ge=0)
    total_pages: int = Field(alias="totalPages", ge=1)
    search: str | None = None

    model_config = {"populate_by_name": True}


class VariantRow(BaseModel):
    """Variant as shown under its product."""

    variant_id: int = Field(alias="variantId")
    title: str | None = None
    sku: str | None = None
    price: Decimal | None = None
    compare_price: Decimal | None = Field(alias="comparePrice", default=None)
    available: bool = False
    position: int | None = None
    image_url: str | None = Field(alias="imageUrl", default=None)
    option1: str | None = None
    option2: str | None = None
    option3: str | None = None

    model_config = {"populate_by_name": True}

    @field_validator("available", mode="before")
    @classmethod
    def _null_is_unavailable(cls, v: object) -> bool:
        return bool(v)


class ProductVariants(BaseModel):
    """Variants of one product plus the option column headers."""

    product_id: int = Field(alias="productId")
    option_names: list[str] = Field(alias="optionNames", default_factory=list)
    variants: list[VariantRow] = Field(default_factory=list)

    model_config = {"populate_by_name": True}


class ProductDetail(BaseModel):
    """Single product with its variants."""

    product_id: int = Field(alias="productId")
    title: str
    vendor: str | None = None
    product_type: str | None = Field(alias="productType", default=None)
    tags: list[str] | None = None
    options: list[dict[str, Any]] | None = None
    option_names: list[str] = Field(alias="optionNames", default_factory=list)
    created_at: datetime | None = Field(alias="createdAt", default=None)
    updated_at: datetime | None = Field(alias="updatedAt", default=None)
    variants: list[VariantRow] = Field(default_factory=list)

    model_config = {"populate_by_name": True}


class VariantForm(BaseModel):
    """Variant fields of the create/update form."""

    variant_id: int = Field(alias="variantId")
    sku: str | None = None
    price: Decimal = Field(gt=0)
    compare_price: Decimal | None = Field(alias="comparePrice", default=None, gt=0)
    available: bool | None = None
    image_url: str | None = Field(alias="imageUrl", default=None)
    option1: str | None = None
    option2: str | None = None
    option3: str | None = None

    model_config = {"populate_by_name": True}


class ProductForm(BaseModel):
    """Create/update form for a product and its variants."""

    product_id: int = Field(alias="productId")
    title: str
    vendor: str | None = None
    product_type: str | None = Field(alias="productType", default=None)
    tags_text: str | None = Field(alias="tagsText", default=None)
    # Up to 3 option names; non-blank names must be distinct
    option_names: list[str] = Field(alias="optionNames", default_factory=list, max_length=3)
    variants: list[VariantForm] = Field(min_length=1)

    model_config = {"populate_by_name": True}

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Title cannot be blank")
        return v.strip()

    @model_validator(mode="after")
    def _distinct_option_names(self) -> "ProductForm":
        names = [n.strip() for n in self.option_names if n and n.strip()]
        if len(names) != len(set(names)):
            raise ValueError("Option names must be distinct")
        return self


class DeleteResult(BaseModel):
    """Outcome of a product delete."""

    product_id: int = Field(alias="productId")
    deleted_products: int = Field(alias="deletedProducts")
    deleted_variants: int = Field(alias="deletedVariants")

    model_config = {"populate_by_name": True}
