"""API routes."""

from fastapi import APIRouter

from catalog_mirror.routes import admin, products

api_router = APIRouter()

# Product browsing, export and editing
api_router.include_router(products.router, prefix="/v1/products", tags=["products"])

# Admin endpoints (manual sync)
api_router.include_router(admin.router, prefix="/v1/admin", tags=["admin"])
