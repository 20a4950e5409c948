"""
Unit tests for health and metrics endpoints.
"""

from unittest.mock import MagicMock

import pytest
from httpx import AsyncClient, ASGITransport

from stock_aggregator.app.main import app


@pytest.fixture
def wired_state():
    """Wire mock orchestrator and token manager onto app.state."""
    token_manager = MagicMock()
    token_manager.has_token = False
    app.state.token_manager = token_manager
    app.state.orchestrator = MagicMock()
    yield token_manager
    app.state.token_manager = None
    app.state.orchestrator = None


async def _get(path: str):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        return await client.get(path)


@pytest.mark.asyncio
async def test_health_endpoint(wired_state):
    """Test that health endpoint returns expected structure."""
    response = await _get("/health")

    assert response.status_code == 200
    data = response.json()

    assert "status" in data
    assert "timestamp" in data
    assert set(data["components"]) == {"orchestrator", "upstream_auth"}
    assert data["service"] == "stock-price-aggregator"


@pytest.mark.asyncio
async def test_health_degraded_without_token(wired_state):
    """Test a missing token degrades health without failing it."""
    data = (await _get("/health")).json()

    assert data["status"] == "degraded"
    assert data["components"]["upstream_auth"]["status"] == "degraded"
    assert data["components"]["orchestrator"]["status"] == "healthy"


@pytest.mark.asyncio
async def test_health_healthy_with_token(wired_state):
    wired_state.has_token = True

    data = (await _get("/health")).json()

    assert data["status"] == "healthy"
    assert data["components"]["upstream_auth"]["status"] == "healthy"


@pytest.mark.asyncio
async def test_health_unhealthy_before_startup():
    app.state.orchestrator = None
    app.state.token_manager = None

    data = (await _get("/health")).json()

    assert data["status"] == "unhealthy"


@pytest.mark.asyncio
async def test_liveness_endpoint():
    """Test that liveness check returns ok."""
    response = await _get("/health/live")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_readiness_reports_token_cache(wired_state):
    """Test readiness exposes whether a token is cached."""
    assert (await _get("/health/ready")).json() == {"status": "ready", "token_cached": False}

    wired_state.has_token = True

    assert (await _get("/health/ready")).json() == {"status": "ready", "token_cached": True}


@pytest.mark.asyncio
async def test_readiness_before_startup():
    """Test readiness reports starting until the orchestrator is wired."""
    app.state.orchestrator = None
    app.state.token_manager = None

    response = await _get("/health/ready")

    assert response.status_code == 200
    assert response.json() == {"status": "starting", "token_cached": None}


@pytest.mark.asyncio
async def test_unknown_route_uses_error_body():
    response = await _get("/no-such-route")

    assert response.status_code == 404
    assert "error" in response.json()


@pytest.mark.asyncio
async def test_root_endpoint():
    """Test that root endpoint returns service info."""
    response = await _get("/")

    assert response.status_code == 200
    data = response.json()

    assert data["service"] == "stock-price-aggregator"
    assert "version" in data
    assert "docs" in data


@pytest.mark.asyncio
async def test_metrics_endpoint():
    """Test Prometheus exposition includes service metrics."""
    response = await _get("/metrics")

    assert response.status_code == 200
    assert "stock_aggregator_service_info" in response.text
