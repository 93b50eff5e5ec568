"""Common schemas used across the API."""

from typing import Any

from pydantic import BaseModel


class ErrorDetail(BaseModel):
    """Structured error detail."""

    code: str  # e.g. PRODUCT_NOT_FOUND, DUPLICATE_PRODUCT, INTERNAL_ERROR
    message: str
    detail: dict[str, Any] | None = None


class ErrorResponse(BaseModel):
    """Standard error response format.

    Format: { "error": { "code": str, "message": str, "detail": object } }
    """

    error: ErrorDetail

    @classmethod
    def build(cls, code: str, message: str, detail: dict[str, Any] | None = None) -> dict[str, Any]:
        """Error body as a plain dict (for HTTPException.detail / JSONResponse)."""
        return cls(error=ErrorDetail(code=code, message=message, detail=detail)).model_dump()
