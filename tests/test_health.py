"""Health endpoint tests."""

import pytest
from fastapi import FastAPI
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_health(client: AsyncClient) -> None:
    """GET /health returns 200 with healthy status."""
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


@pytest.mark.asyncio
async def test_readiness(client: AsyncClient) -> None:
    """GET /ready checks the database; Redis is reported disabled when not configured."""
    response = await client.get("/ready")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ready"
    assert data["checks"]["database"] == "ok"
    assert data["checks"]["redis"] == "disabled"


@pytest.mark.asyncio
async def test_readiness_degraded_when_redis_down(app: FastAPI, client: AsyncClient) -> None:
    """Readiness degrades, but stays 200, when Redis is configured and unreachable."""

    class DownRedis:
        async def ping(self) -> None:
            raise ConnectionError("redis down")

    app.state.redis = DownRedis()
    response = await client.get("/ready")
    data = response.json()
    assert data["status"] == "degraded"
    assert data["checks"]["redis"].startswith("error:")


@pytest.mark.asyncio
async def test_version(client: AsyncClient) -> None:
    """GET /version returns version and environment."""
    response = await client.get("/version")
    assert response.status_code == 200
    data = response.json()
    assert data["version"] == "0.1.0"
    assert "environment" in data
