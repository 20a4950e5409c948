"""
Prometheus Metrics for the Stock Aggregator

Exposes operational metrics for monitoring and alerting.

Metrics:
- Upstream request counters and latency histogram
- Token exchange and auth retry counters
- Query counters per operation
"""

from prometheus_client import Counter, Gauge, Histogram, CollectorRegistry

# Create a custom registry to avoid conflicts with default registry
REGISTRY = CollectorRegistry()


# =============================================================================
# Upstream Metrics
# =============================================================================

UPSTREAM_REQUESTS_TOTAL = Counter(
    "stock_aggregator_upstream_requests_total",
    "Total upstream HTTP requests",
    ["endpoint", "outcome"],  # outcome: success, unauthorized, error, timeout
    registry=REGISTRY,
)

UPSTREAM_LATENCY = Histogram(
    "stock_aggregator_upstream_latency_seconds",
    "Upstream request latency in seconds",
    ["endpoint"],
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
    registry=REGISTRY,
)


# =============================================================================
# Auth Metrics
# =============================================================================

TOKEN_EXCHANGES_TOTAL = Counter(
    "stock_aggregator_token_exchanges_total",
    "Total bearer token exchanges with the upstream auth endpoint",
    ["result"],  # result: success, error
    registry=REGISTRY,
)

AUTH_RETRIES_TOTAL = Counter(
    "stock_aggregator_auth_retries_total",
    "Queries retried after an unauthorized upstream response",
    ["operation"],
    registry=REGISTRY,
)


# =============================================================================
# Query Metrics
# =============================================================================

QUERIES_TOTAL = Counter(
    "stock_aggregator_queries_total",
    "Total queries handled by the orchestrator",
    ["operation", "outcome"],  # outcome: success or the error class name
    registry=REGISTRY,
)


# =============================================================================
# Service Info Metrics
# =============================================================================

SERVICE_INFO = Gauge(
    "stock_aggregator_service_info",
    "Service information",
    ["version", "environment"],
    registry=REGISTRY,
)


# =============================================================================
# Helper Functions
# =============================================================================

def record_upstream_request(endpoint: str, outcome: str, latency_seconds: float) -> None:
    """Record an upstream round-trip."""
    UPSTREAM_REQUESTS_TOTAL.labels(endpoint=endpoint, outcome=outcome).inc()
    UPSTREAM_LATENCY.labels(endpoint=endpoint).observe(latency_seconds)


def record_token_exchange(success: bool) -> None:
    """Record a token exchange attempt."""
    TOKEN_EXCHANGES_TOTAL.labels(result="success" if success else "error").inc()


def record_auth_retry(operation: str) -> None:
    """Record a query retried after re-authentication."""
    AUTH_RETRIES_TOTAL.labels(operation=operation).inc()


def record_query(operation: str, outcome: str) -> None:
    """Record a completed query."""
    QUERIES_TOTAL.labels(operation=operation, outcome=outcome).inc()


def set_service_info(version: str, environment: str) -> None:
    """Set service info gauge."""
    SERVICE_INFO.labels(version=version, environment=environment).set(1)
