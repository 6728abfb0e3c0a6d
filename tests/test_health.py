"""Health endpoint tests."""

import httpx
import pytest
from httpx import AsyncClient


@pytest.fixture
def platform(fake, monkeypatch):
    """The in-memory platform installed as the shared client /ready checks."""
    monkeypatch.setattr("vibestack.supabase_client._client", fake)
    return fake


@pytest.mark.asyncio
async def test_health(client: AsyncClient) -> None:
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


@pytest.mark.asyncio
async def test_readiness(client: AsyncClient, platform, redis) -> None:
    """GET /ready reports the platform and Redis checks."""
    response = await client.get("/ready")
    assert response.status_code == 200
    assert response.json() == {"status": "ready", "checks": {"platform": "ok", "redis": "ok"}}


@pytest.mark.asyncio
async def test_readiness_without_redis_skips_check(client: AsyncClient, platform) -> None:
    data = (await client.get("/ready")).json()
    assert data == {"status": "ready", "checks": {"platform": "ok"}}


@pytest.mark.asyncio
async def test_readiness_degraded_when_redis_down(client: AsyncClient, platform, redis) -> None:
    redis.ping_error = ConnectionError("Connection refused")
    data = (await client.get("/ready")).json()
    assert data["status"] == "degraded"
    assert data["checks"]["platform"] == "ok"
    assert data["checks"]["redis"] == "error: Connection refused"


@pytest.mark.asyncio
async def test_readiness_degraded_when_platform_unreachable(client: AsyncClient, platform) -> None:
    platform.fail_on("profiles", "select", httpx.ConnectError("All connection attempts failed"))
    data = (await client.get("/ready")).json()
    assert data["status"] == "degraded"
    assert data["checks"]["platform"] == "error: All connection attempts failed"


@pytest.mark.asyncio
async def test_readiness_before_startup_is_degraded(client: AsyncClient) -> None:
    data = (await client.get("/ready")).json()
    assert data["status"] == "degraded"
    assert data["checks"]["platform"].startswith("error: Supabase client not initialized")


@pytest.mark.asyncio
async def test_version(client: AsyncClient) -> None:
    response = await client.get("/version")
    assert response.status_code == 200
    assert response.json() == {"version": "1.0.0", "environment": "development"}
