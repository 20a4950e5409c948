"""
Upstream Price-History Client

Fetches the ticker list and per-ticker price history from the upstream
evaluation service.

Endpoints:
- GET {base}/stocks                      -> {displayName: ticker}
- GET {base}/stocks/{ticker}?minutes={n} -> [{price, lastUpdatedAt}, ...]

Every request carries `Authorization: Bearer <token>`. Responses are
validated here so malformed samples never reach the statistics:
- 401/403           -> UnauthorizedError (caller re-authenticates once)
- other non-2xx     -> UpstreamError(status, body)
- timeout           -> UpstreamError(timeout=True)
- bad JSON/entries  -> UpstreamError
- empty history     -> EmptySeriesError
"""

import logging
import time
from typing import Any, Optional
from urllib.parse import quote

import httpx
from pydantic import ValidationError as PydanticValidationError

from ..core.constants import (
    ENDPOINT_HISTORY,
    ENDPOINT_STOCKS,
    MAX_ERROR_BODY_CHARS,
    UNAUTHORIZED_STATUS_CODES,
)
from ..core.errors import EmptySeriesError, UnauthorizedError, UpstreamError
from ..core.metrics import record_upstream_request
from ..core.types import PriceSample, PriceSeries

logger = logging.getLogger(__name__)


def _excerpt(text: Optional[str]) -> str:
    return text[:MAX_ERROR_BODY_CHARS] if text else ""


class UpstreamClient:
    """Thin typed wrapper over the upstream REST API."""

    def __init__(self, http_client: httpx.AsyncClient, base_url: str):
        self._client = http_client
        self._base_url = base_url.rstrip("/")

    # =========================================================================
    # Public API
    # =========================================================================

    async def list_tickers(self, token: str) -> dict[str, str]:
        """
        Fetch the display-name -> ticker mapping.

        Accepts a bare mapping or one wrapped as {"stocks": {...}}.
        """
        response = await self._get(ENDPOINT_STOCKS, "/stocks", token)
        data = self._decode(response, ENDPOINT_STOCKS)

        if isinstance(data, dict) and isinstance(data.get("stocks"), dict):
            data = data["stocks"]

        if not isinstance(data, dict) or not all(
            isinstance(k, str) and isinstance(v, str) for k, v in data.items()
        ):
            raise UpstreamError(
                "Upstream ticker list is not a name -> symbol mapping",
                status=response.status_code,
                body=_excerpt(response.text),
            )

        logger.debug(f"Fetched {len(data)} tickers")
        return dict(data)

    async def fetch_history(self, token: str, ticker: str, minutes: int) -> PriceSeries:
        """
        Fetch price samples for `ticker` over the last `minutes` minutes.

        Raises:
            UnauthorizedError: token rejected
            UpstreamError: non-2xx (404 included), timeout or malformed body
            EmptySeriesError: upstream returned zero samples
        """
        path = f"/stocks/{quote(ticker, safe='')}"
        response = await self._get(ENDPOINT_HISTORY, path, token, params={"minutes": minutes})
        data = self._decode(response, ENDPOINT_HISTORY)

        if not isinstance(data, list):
            raise UpstreamError(
                f"Upstream history for {ticker} is not a list",
                status=response.status_code,
                body=_excerpt(response.text),
            )

        try:
            samples = tuple(PriceSample.model_validate(item) for item in data)
        except PydanticValidationError as e:
            logger.error(f"Malformed price sample for {ticker}: {e.error_count()} error(s)")
            raise UpstreamError(
                f"Upstream history for {ticker} has malformed samples",
                status=response.status_code,
                body=_excerpt(response.text),
            ) from e

        if not samples:
            raise EmptySeriesError(ticker)

        logger.debug(f"Fetched {len(samples)} samples for {ticker} ({minutes}m)")
        return PriceSeries(ticker=ticker, samples=samples)

    # =========================================================================
    # Internal Methods
    # =========================================================================

    async def _get(
        self,
        endpoint: str,
        path: str,
        token: str,
        params: Optional[dict[str, Any]] = None,
    ) -> httpx.Response:
        """Issue an authorized GET and translate failures to typed errors."""
        url = f"{self._base_url}{path}"
        headers = {"Authorization": f"Bearer {token}"}
        start_time = time.time()

        try:
            response = await self._client.get(url, headers=headers, params=params)
        except httpx.TimeoutException as e:
            record_upstream_request(endpoint, "timeout", time.time() - start_time)
            logger.error(f"[upstream/{endpoint}] Timed out: {url}")
            raise UpstreamError(f"Upstream request timed out: {path}", timeout=True) from e
        except httpx.HTTPError as e:
            record_upstream_request(endpoint, "error", time.time() - start_time)
            logger.error(f"[upstream/{endpoint}] Request failed: {type(e).__name__}: {e}")
            raise UpstreamError(f"Upstream request failed: {path}: {e}") from e

        latency = time.time() - start_time
        status = response.status_code

        if status in UNAUTHORIZED_STATUS_CODES:
            record_upstream_request(endpoint, "unauthorized", latency)
            logger.warning(f"[upstream/{endpoint}] Token rejected with HTTP {status}")
            raise UnauthorizedError(
                f"Upstream rejected token for {path}",
                status=status,
                body=_excerpt(response.text),
            )

        if not 200 <= status < 300:
            record_upstream_request(endpoint, "error", latency)
            logger.error(
                f"[upstream/{endpoint}] HTTP error {status} for {path}: "
                f"{_excerpt(response.text) or 'no body'}"
            )
            raise UpstreamError(
                f"Upstream returned HTTP {status} for {path}",
                status=status,
                body=_excerpt(response.text),
            )

        record_upstream_request(endpoint, "success", latency)
        return response

    def _decode(self, response: httpx.Response, endpoint: str) -> Any:
        try:
            return response.json()
        except ValueError as e:
            logger.error(f"[upstream/{endpoint}] Invalid JSON: {e}")
            raise UpstreamError(
                "Upstream returned invalid JSON",
                status=response.status_code,
                body=_excerpt(response.text),
            ) from e
