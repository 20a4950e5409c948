"""
Stock Aggregator Errors

Typed failures raised by the upstream client, the aggregation engine and the
query orchestrator. The API layer maps them to HTTP status codes.

Hierarchy:
    StockServiceError
    ├── ValidationError          bad caller input, never retried
    ├── AuthError                token exchange failed or still unauthorized after retry
    ├── UpstreamError            non-2xx, transport failure or timeout
    │   ├── UnauthorizedError    401/403, triggers the single auth retry
    │   └── NotFoundError        ticker unknown upstream (404)
    └── AggregationError         data-shape problems
        ├── EmptyInputError
        ├── InsufficientDataError
        └── EmptySeriesError
"""

from typing import Optional


class StockServiceError(Exception):
    """Base class for all service failures."""


class ValidationError(StockServiceError):
    """Caller supplied invalid input."""


class AuthError(StockServiceError):
    """Upstream credential exchange failed, or a retried request stayed unauthorized."""


class UpstreamError(StockServiceError):
    """Upstream request failed."""

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        body: Optional[str] = None,
        timeout: bool = False,
    ):
        super().__init__(message)
        self.status = status
        self.body = body
        self.timeout = timeout


class UnauthorizedError(UpstreamError):
    """Upstream rejected the bearer token."""


class NotFoundError(UpstreamError):
    """Ticker is unknown upstream."""


class AggregationError(StockServiceError):
    """Price data has the wrong shape for the requested statistic."""


class EmptyInputError(AggregationError):
    """Statistic requested over an empty series."""


class InsufficientDataError(AggregationError):
    """Fewer samples than the statistic needs."""


class EmptySeriesError(AggregationError):
    """Upstream returned no samples for a ticker."""

    def __init__(self, ticker: str):
        super().__init__(f"No price history returned for {ticker}")
        self.ticker = ticker
