"""
Health Check Endpoint

Reports whether the query path is wired and whether an upstream token is
cached. A missing token degrades health but never blocks traffic: the first
query authenticates.
"""

from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Request
from pydantic import BaseModel

from ..config import settings


router = APIRouter()


class ComponentHealth(BaseModel):
    """Health status of a component."""
    status: str  # "healthy", "degraded", "unhealthy"
    message: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    service: str
    version: str
    environment: str
    timestamp: str
    components: dict[str, ComponentHealth]


def _token_cached(request: Request) -> Optional[bool]:
    """True/False once a token manager is wired, None before startup."""
    token_manager = getattr(request.app.state, "token_manager", None)
    if token_manager is None:
        return None
    return bool(token_manager.has_token)


def _orchestrator_health(request: Request) -> ComponentHealth:
    if getattr(request.app.state, "orchestrator", None) is None:
        return ComponentHealth(status="unhealthy", message="Orchestrator not initialized")
    return ComponentHealth(status="healthy")


def _auth_health(request: Request) -> ComponentHealth:
    cached = _token_cached(request)
    if cached is None:
        return ComponentHealth(status="unhealthy", message="Token manager not initialized")
    if not cached:
        return ComponentHealth(status="degraded", message="No upstream token yet")
    return ComponentHealth(status="healthy", message="Upstream token cached")


def _overall(components: dict[str, ComponentHealth]) -> str:
    statuses = {c.status for c in components.values()}
    if "unhealthy" in statuses:
        return "unhealthy"
    if "degraded" in statuses:
        return "degraded"
    return "healthy"


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """Overall health with a per-component breakdown."""
    components = {
        "orchestrator": _orchestrator_health(request),
        "upstream_auth": _auth_health(request),
    }

    return HealthResponse(
        status=_overall(components),
        service=settings.service_name,
        version=settings.service_version,
        environment=settings.environment,
        timestamp=datetime.now(timezone.utc).isoformat(),
        components=components,
    )


@router.get("/health/live")
async def liveness_check() -> dict:
    """Liveness check."""
    return {"status": "ok"}


@router.get("/health/ready")
async def readiness_check(request: Request) -> dict:
    """
    Readiness check.

    Ready once the orchestrator is wired; token_cached reports whether the
    next query can skip authentication.
    """
    if getattr(request.app.state, "orchestrator", None) is None:
        return {"status": "starting", "token_cached": _token_cached(request)}
    return {"status": "ready", "token_cached": _token_cached(request)}
