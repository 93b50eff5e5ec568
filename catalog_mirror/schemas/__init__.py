"""Pydantic schemas for API request/response validation."""

from catalog_mirror.schemas.common import ErrorDetail, ErrorResponse
from catalog_mirror.schemas.products import (
    DeleteResult,
    ProductDetail,
    ProductForm,
    ProductListRow,
    ProductPage,
    ProductVariants,
    VariantForm,
    VariantRow,
)

__all__ = [
    "ErrorDetail",
    "ErrorResponse",
    "DeleteResult",
    "ProductDetail",
    "ProductForm",
    "ProductListRow",
    "ProductPage",
    "ProductVariants",
    "VariantForm",
    "VariantRow",
]
