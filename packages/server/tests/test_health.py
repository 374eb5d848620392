"""
Liveness, readiness and API root.
"""

import pytest
from sqlalchemy.ext.asyncio import create_async_engine
from httpx import AsyncClient, ASGITransport

from app import main as main_module
from app.core.database import database_available
from app.main import app


@pytest.fixture
async def client():
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.mark.asyncio
async def test_health_check(client: AsyncClient):
    """Health endpoint should return status ok."""
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
    assert response.headers["X-Request-ID"]
    assert response.headers["X-Content-Type-Options"] == "nosniff"


@pytest.mark.asyncio
async def test_request_id_is_echoed(client: AsyncClient):
    response = await client.get("/health", headers={"X-Request-ID": "abc-123"})
    assert response.headers["X-Request-ID"] == "abc-123"


@pytest.mark.asyncio
async def test_ready_when_dependencies_answer(client: AsyncClient, engine, monkeypatch):
    async def up():
        return True

    monkeypatch.setattr(main_module, "database_available", lambda: database_available(engine))
    monkeypatch.setattr(main_module, "redis_available", up)
    response = await client.get("/ready")
    assert response.status_code == 200
    assert response.json() == {"status": "ready", "checks": {"database": True, "redis": True}}


@pytest.mark.asyncio
async def test_not_ready_without_redis(client: AsyncClient, engine, monkeypatch):
    async def down():
        return False

    monkeypatch.setattr(main_module, "database_available", lambda: database_available(engine))
    monkeypatch.setattr(main_module, "redis_available", down)
    response = await client.get("/ready")
    assert response.status_code == 503
    body = response.json()
    assert body["status"] == "unavailable"
    assert body["checks"]["redis"] is False
    assert body["checks"]["database"] is True


@pytest.mark.asyncio
async def test_api_root(client: AsyncClient):
    """API v1 root should return version and endpoint list."""
    response = await client.get("/api/v1/")
    assert response.status_code == 200
    data = response.json()
    assert data["api"] == "v1"
    assert "/assignments" in data["endpoints"]



@pytest.mark.asyncio
async def test_database_probe(engine):
    assert await database_available(engine) is True

    missing = create_async_engine("sqlite+aiosqlite:////nonexistent-dir/evaluations.db")
    assert await database_available(missing) is False
    await missing.dispose()
