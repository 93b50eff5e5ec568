"""Upstream catalog client (storefront products.json).

Fetches one snapshot of the remote catalog and decodes it into RemoteProduct
models. The body may be either of:
- {"products": [...]}  (storefront default)
- [...]                (bare array)

Unknown fields are ignored and missing optional fields default to empty, so
payload additions upstream never break decoding.

Failures are raised as CatalogFetchError subclasses; there is no retry here,
the next scheduled sync is the retry.
"""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal

import httpx
from pydantic import BaseModel, Field, TypeAdapter, ValidationError, field_validator, model_validator

from catalog_mirror.settings import get_settings

logger = logging.getLogger("uvicorn.error")


class CatalogFetchError(RuntimeError):
    """Base class for snapshot fetch failures."""


class CatalogNetworkError(CatalogFetchError):
    """Connection failure or timeout while talking to the upstream."""


class CatalogHttpStatusError(CatalogFetchError):
    """Upstream answered with a non-200 status."""

    def __init__(self, status_code: int, url: str):
        super().__init__(f"HTTP {status_code} from {url}")
        self.status_code = status_code
        self.url = url


class CatalogDecodeError(CatalogFetchError):
    """Body matched neither accepted JSON shape."""


# ============================================================
# Payload models
# ============================================================


class RemoteImage(BaseModel):
    id: int | None = None
    src: str | None = None
    position: int | None = None


class RemoteOption(BaseModel):
    name: str | None = None
    position: int | None = None
    values: list[str] = Field(default_factory=list)

    @field_validator("values", mode="before")
    @classmethod
    def _coerce_values(cls, v: object) -> list[str]:
        if v is None:
            return []
        if isinstance(v, list):
            return [str(x) for x in v if x is not None]
        return [str(v)]


class RemoteVariant(BaseModel):
    id: int
    product_id: int | None = None
    title: str | None = None
    sku: str | None = None
    price: Decimal | None = None
    compare_at_price: Decimal | None = None
    available: bool | None = None
    position: int | None = None
    option1: str | None = None
    option2: str | None = None
    option3: str | None = None
    featured_image: RemoteImage | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator("price", "compare_at_price", mode="before")
    @classmethod
    def _blank_price_is_none(cls, v: object) -> object:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @property
    def image_url(self) -> str | None:
        return self.featured_image.src if self.featured_image else None


class RemoteProduct(BaseModel):
    id: int
    title: str
    vendor: str | None = None
    product_type: str | None = None
    tags: list[str] = Field(default_factory=list)
    options: list[RemoteOption] = Field(default_factory=list)
    variants: list[RemoteVariant] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator("tags", mode="before")
    @classmethod
    def _parse_tags(cls, v: object) -> list[str]:
        """Accept a list or a comma-separated string; trim and deduplicate."""
        if v is None:
            return []
        items = v.split(",") if isinstance(v, str) else v
        if not isinstance(items, list):
            return []
        seen: dict[str, None] = {}
        for item in items:
            tag = str(item).strip()
            if tag:
                seen.setdefault(tag, None)
        return list(seen)

    @model_validator(mode="after")
    def _default_variant_parent(self) -> "RemoteProduct":
        # A declared product_id wins; only fill it in when missing.
        for variant in self.variants:
            if variant.product_id is None:
                variant.product_id = self.id
        return self


class RemoteCatalogPayload(BaseModel):
    products: list[RemoteProduct]


_PRODUCT_LIST = TypeAdapter(list[RemoteProduct])


def decode_snapshot(body: bytes | str) -> list[RemoteProduct]:
    """Decode a snapshot body, trying the wrapped shape then the bare array.

    Raises:
        CatalogDecodeError: If neither shape matches.
    """
    try:
        return RemoteCatalogPayload.model_validate_json(body).products
    except ValidationError as e:
        logger.info(f"[catalog] body is not {{products: [...]}} ({e.error_count()} errors), trying bare array")

    try:
        return _PRODUCT_LIST.validate_json(body)
    except ValidationError as e:
        raise CatalogDecodeError(f"Snapshot matches neither accepted shape: {e.errors()[:3]}") from e


# ============================================================
# Client
# ============================================================


class CatalogClient:
    """Client for the upstream products.json endpoint."""

    def __init__(
        self,
        source_url: str | None = None,
        *,
        timeout: httpx.Timeout | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize client; defaults come from settings."""
        settings = get_settings()
        self.source_url = source_url or settings.catalog_source_url
        self.timeout = timeout or httpx.Timeout(
            settings.catalog_fetch_timeout,
            connect=settings.catalog_connect_timeout,
        )
        self._transport = transport
        self._http_client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=self.timeout,
                transport=self._transport,
                follow_redirects=True,
                headers={"Accept": "application/json"},
            )
        return self._http_client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    async def fetch_snapshot(self) -> list[RemoteProduct]:
        """Fetch and decode the full upstream catalog.

        Returns:
            Decoded products (possibly empty).

        Raises:
            CatalogNetworkError: Connection failure or timeout.
            CatalogHttpStatusError: Any status other than 200.
            CatalogDecodeError: Body matches neither accepted shape.
        """
        client = await self._get_client()
        try:
            response = await client.get(self.source_url)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise CatalogNetworkError(f"Request to {self.source_url} failed: {e!r}") from e

        if response.status_code != 200:
            raise CatalogHttpStatusError(response.status_code, self.source_url)

        products = decode_snapshot(response.content)
        logger.info(f"[catalog] fetched {len(products)} products from {self.source_url}")
        return products


# Singleton client instance
_client: CatalogClient | None = None


def get_catalog_client() -> CatalogClient:
    """Get catalog client singleton."""
    global _client
    if _client is None:
        _client = CatalogClient()
    return _client


async def close_catalog_client() -> None:
    """Close the singleton client (application shutdown)."""
    global _client
    if _client is not None:
        await _client.close()
        _client = None
