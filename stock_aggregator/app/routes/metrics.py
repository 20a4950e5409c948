"""
Prometheus Metrics Endpoint

Exposes /metrics endpoint in Prometheus text format.
"""

import logging
from fastapi import APIRouter, Response
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from ...core.metrics import REGISTRY, set_service_info
from ..config import settings


logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/metrics")
async def prometheus_metrics() -> Response:
    """
    Prometheus metrics endpoint.

    Metrics exposed:
    - stock_aggregator_upstream_requests_total{endpoint, outcome}
    - stock_aggregator_upstream_latency_seconds{endpoint}
    - stock_aggregator_token_exchanges_total{result}
    - stock_aggregator_auth_retries_total{operation}
    - stock_aggregator_queries_total{operation, outcome}
    - stock_aggregator_service_info{version, environment}
    """
    # Set service info on each scrape (idempotent)
    set_service_info(settings.service_version, settings.environment)

    return Response(
        content=generate_latest(REGISTRY),
        media_type=CONTENT_TYPE_LATEST,
    )
