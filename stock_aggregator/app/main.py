"""
Stock Price Aggregator Service

Serves average prices and pairwise correlation computed from per-minute
price history fetched from the upstream evaluation service.

API Endpoints:
- GET /stocks-list - Display name -> ticker mapping
- GET /stocks/{ticker} - Average price and price history
- GET /stockcorrelation - Pearson correlation between two tickers
- GET /health - Service health check
- GET /metrics - Prometheus metrics endpoint
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import httpx
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import settings
from .routes import health, metrics, stocks
from ..aggregator import StockQueryOrchestrator
from ..core.errors import StockServiceError, ValidationError
from ..upstream import TokenManager, UpstreamClient

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def _status_for(error: StockServiceError) -> int:
    """HTTP status for a service failure: 400 for caller input, 500 otherwise."""
    if isinstance(error, ValidationError):
        return 400
    return 500


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    Handles startup and shutdown of:
    - Shared upstream HTTP client
    - Token manager (best-effort warm-up)
    - Query orchestrator
    """
    logger.info(f"Starting {settings.service_name} v{settings.service_version}")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Upstream: {settings.upstream_base_url} (timeout {settings.upstream_timeout_seconds}s)")

    http_client = httpx.AsyncClient(timeout=settings.upstream_timeout_seconds)
    token_manager = TokenManager(
        http_client=http_client,
        base_url=settings.upstream_base_url,
        credentials=settings.credentials,
    )
    upstream_client = UpstreamClient(http_client=http_client, base_url=settings.upstream_base_url)
    orchestrator = StockQueryOrchestrator(token_manager=token_manager, client=upstream_client)

    if settings.warm_token_on_startup:
        await token_manager.warm_up()

    # Store references on app.state for route access
    app.state.http_client = http_client
    app.state.token_manager = token_manager
    app.state.orchestrator = orchestrator

    logger.info("Service startup complete")

    yield

    # Shutdown
    logger.info("Shutting down service...")
    app.state.orchestrator = None
    app.state.token_manager = None
    await http_client.aclose()
    logger.info("Service shutdown complete")


# Create FastAPI app
app = FastAPI(
    title="Stock Price Aggregator",
    description="Average price and pairwise correlation over upstream price history",
    version=settings.service_version,
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StockServiceError)
async def stock_service_error_handler(request: Request, exc: StockServiceError) -> JSONResponse:
    """Map typed service failures to a JSON error body."""
    status_code = _status_for(exc)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {type(exc).__name__}: {exc}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected: {exc}")
    return JSONResponse(status_code=status_code, content={"error": str(exc)})


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed query parameters are caller errors (400, not 422)."""
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid request parameters", "details": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Keep framework-raised errors (404 route, 503 not ready) in the same body shape."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


# Include routers
app.include_router(health.router, tags=["health"])
app.include_router(stocks.router)
app.include_router(metrics.router, tags=["metrics"])


@app.get("/")
async def root() -> dict:
    """Root endpoint - service info."""
    return {
        "service": settings.service_name,
        "version": settings.service_version,
        "environment": settings.environment,
        "docs": "/docs",
        "health": "/health",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "stock_aggregator.app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.environment == "local",
    )
