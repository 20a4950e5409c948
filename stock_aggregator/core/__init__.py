# Stock Aggregator Core Modules
"""
Core types and statistics for price aggregation.

Modules:
- types: Value types (PriceSample, PriceSeries, quotes, correlation results)
- errors: Typed failure taxonomy
- constants: Defaults and fixed values
- price_stats: Mean, standard deviation, covariance, Pearson correlation
- metrics: Prometheus collectors
"""

from .types import (
    CorrelationReport,
    CorrelationResult,
    Credentials,
    PriceSample,
    PriceSeries,
    StockQuote,
)

from .errors import (
    AggregationError,
    AuthError,
    EmptyInputError,
    EmptySeriesError,
    InsufficientDataError,
    NotFoundError,
    StockServiceError,
    UnauthorizedError,
    UpstreamError,
    ValidationError,
)

from .price_stats import (
    covariance,
    mean,
    pearson_correlation,
    sample_std_dev,
)

__all__ = [
    # Types
    "CorrelationReport",
    "CorrelationResult",
    "Credentials",
    "PriceSample",
    "PriceSeries",
    "StockQuote",
    # Errors
    "AggregationError",
    "AuthError",
    "EmptyInputError",
    "EmptySeriesError",
    "InsufficientDataError",
    "NotFoundError",
    "StockServiceError",
    "UnauthorizedError",
    "UpstreamError",
    "ValidationError",
    # Statistics
    "covariance",
    "mean",
    "pearson_correlation",
    "sample_std_dev",
]
