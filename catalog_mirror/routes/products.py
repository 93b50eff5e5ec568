"""Product endpoints: listing, detail, CSV export and create/update/delete."""

import logging

from fastapi import APIRouter, HTTPException, Path, Query
from fastapi.responses import StreamingResponse

from catalog_mirror.schemas import (
    DeleteResult,
    ErrorResponse,
    ProductDetail,
    ProductForm,
    ProductPage,
    ProductVariants,
)
from catalog_mirror.services import products as product_service
from catalog_mirror.services.export import iter_export_csv

router = APIRouter()
logger = logging.getLogger("uvicorn.error")


def _error(status_code: int, code: str, message: str, detail: dict | None = None) -> HTTPException:
    return HTTPException(status_code=status_code, detail=ErrorResponse.build(code, message, detail))


@router.get("", response_model=ProductPage)
async def list_products(
    search: str | None = Query(
        default=None,
        description="Case-insensitive title substring",
        max_length=200,
    ),
    page: int = Query(default=1, ge=1, description="1-based page number"),
    size: int = Query(default=10, ge=1, le=100, description="Page size"),
) -> ProductPage:
    """List products, most recently updated first.

    Out-of-range pages are clamped to the last page.
    """
    return await product_service.get_product_page(page=page, size=size, search=search)


@router.get("/export")
async def export_products(
    search: str | None = Query(default=None, max_length=200),
) -> StreamingResponse:
    """Download the (optionally filtered) listing as CSV."""
    return StreamingResponse(
        iter_export_csv(search=search),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": 'attachment; filename="products.csv"'},
    )


@router.get("/{product_id}", response_model=ProductDetail, responses={404: {"model": ErrorResponse}})
async def get_product(product_id: int = Path(description="Upstream product id")) -> ProductDetail:
    detail = await product_service.get_product_detail(product_id)
    if detail is None:
        raise _error(404, "PRODUCT_NOT_FOUND", f"Product {product_id} not found", {"product_id": product_id})
    return detail


@router.get("/{product_id}/variants", response_model=ProductVariants)
async def get_product_variants(product_id: int = Path(description="Upstream product id")) -> ProductVariants:
    """Variants of a product (empty list for unknown ids) plus its option names."""
    return await product_service.get_product_variants(product_id)


@router.post("", status_code=201, response_model=ProductDetail, responses={422: {"model": ErrorResponse}})
async def create_product(form: ProductForm) -> ProductDetail:
    """Create a product with its variants.

    Raises:
        HTTPException 422: If the product id is already taken.
    """
    try:
        await product_service.create_product(form)
    except product_service.ProductExistsError as e:
        raise _error(422, "DUPLICATE_PRODUCT", str(e), {"product_id": form.product_id}) from e
    return await product_service.get_product_detail(form.product_id)


@router.put("/{product_id}", response_model=ProductDetail)
async def update_product(form: ProductForm, product_id: int = Path()) -> ProductDetail:
    """Update a product and upsert its variants.

    Raises:
        HTTPException 400: If the path and body product ids differ.
        HTTPException 404: If the product is not stored.
    """
    if form.product_id != product_id:
        raise _error(
            400,
            "PRODUCT_ID_MISMATCH",
            "Path and body product ids differ",
            {"path": product_id, "body": form.product_id},
        )
    try:
        await product_service.update_product(form)
    except product_service.ProductNotFoundError as e:
        raise _error(404, "PRODUCT_NOT_FOUND", str(e), {"product_id": product_id}) from e
    return await product_service.get_product_detail(product_id)


@router.delete("/{product_id}", response_model=DeleteResult, responses={404: {"model": ErrorResponse}})
async def delete_product(product_id: int = Path()) -> DeleteResult:
    """Delete a product and all of its variants."""
    result = await product_service.delete_product(product_id)
    if result.deleted_products == 0 and result.deleted_variants == 0:
        raise _error(404, "PRODUCT_NOT_FOUND", f"Product {product_id} not found", {"product_id": product_id})
    return result
