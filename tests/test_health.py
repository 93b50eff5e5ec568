"""Tests for health endpoint."""

import pytest
from httpx import ASGITransport, AsyncClient

from catalog_mirror.main import app


@pytest.fixture
async def client():
    """Create test client."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.mark.asyncio
async def test_health_check(client: AsyncClient):
    """Test health endpoint returns ok."""
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"ok": True}


@pytest.mark.asyncio
async def test_admin_sync_returns_report(client: AsyncClient, monkeypatch: pytest.MonkeyPatch):
    """Manual sync endpoint returns the cycle report as JSON."""
    from catalog_mirror.routes import admin as admin_routes
    from catalog_mirror.services.reconciliation import SyncReport, SyncStatus

    async def fake_run_sync_cycle() -> SyncReport:
        return SyncReport(run_id="run-1", status=SyncStatus.FETCH_FAILED, error="CatalogNetworkError: boom")

    monkeypatch.setattr(admin_routes, "run_sync_cycle", fake_run_sync_cycle)

    response = await client.post("/v1/admin/sync")
    assert response.status_code == 200
    data = response.json()
    assert data["run_id"] == "run-1"
    assert data["status"] == "fetch_failed"
    assert data["upserted_products"] == 0
