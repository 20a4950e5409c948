"""
Stock Aggregator Price Statistics

Pure functions over price series: mean, sample standard deviation,
covariance and Pearson correlation.

Alignment policy:
- Two series are paired by position, not by timestamp
- Covariance uses the first min(len_a, len_b) pairs
- Each side's mean and standard deviation use its full series

Undefined correlation (fewer than 2 samples or a constant series on either
side) is returned as NaN. The lower-level statistics raise
InsufficientDataError when given too few samples.
"""

import math
import statistics
from typing import Iterable, Sequence, Union

from .errors import EmptyInputError, InsufficientDataError
from .types import PriceSample, PriceSeries

SeriesLike = Union[PriceSeries, Sequence[PriceSample]]


def _prices(series: SeriesLike) -> list[float]:
    """Extract price values in series order."""
    if isinstance(series, PriceSeries):
        return list(series.prices)
    return [sample.price for sample in series]


def _require_samples(prices: Sequence[float], minimum: int, what: str) -> None:
    if len(prices) < minimum:
        raise InsufficientDataError(
            f"{what} needs at least {minimum} samples, got {len(prices)}"
        )


def _is_constant(prices: Iterable[float]) -> bool:
    values = list(prices)
    return min(values) == max(values)


def mean(series: SeriesLike) -> float:
    """
    Arithmetic mean of sample prices.

    Raises:
        EmptyInputError: if the series is empty
    """
    prices = _prices(series)
    if not prices:
        raise EmptyInputError("Cannot average an empty price series")
    return statistics.fmean(prices)


def sample_std_dev(series: SeriesLike, series_mean: float) -> float:
    """
    Sample standard deviation: sqrt(sum((p - mean)^2) / (n - 1)).

    A constant series returns exactly 0.0.

    Raises:
        InsufficientDataError: if the series has fewer than 2 samples
    """
    prices = _prices(series)
    _require_samples(prices, 2, "Standard deviation")

    if _is_constant(prices):
        return 0.0

    squared = math.fsum((p - series_mean) ** 2 for p in prices)
    return math.sqrt(squared / (len(prices) - 1))


def covariance(
    series_a: SeriesLike,
    series_b: SeriesLike,
    mean_a: float,
    mean_b: float,
) -> float:
    """
    Sample covariance over the first min(len_a, len_b) positional pairs.

    Divisor is (aligned length - 1).

    Raises:
        InsufficientDataError: if the aligned length is below 2
    """
    prices_a = _prices(series_a)
    prices_b = _prices(series_b)
    aligned = min(len(prices_a), len(prices_b))
    if aligned < 2:
        raise InsufficientDataError(
            f"Covariance needs at least 2 aligned samples, got {aligned}"
        )

    total = math.fsum(
        (a - mean_a) * (b - mean_b)
        for a, b in zip(prices_a[:aligned], prices_b[:aligned])
    )
    return total / (aligned - 1)


def pearson_correlation(series_a: SeriesLike, series_b: SeriesLike) -> float:
    """
    Pearson correlation coefficient of two price series.

    Returns:
        Coefficient in [-1, 1], or NaN if either series has fewer than 2
        samples or zero variance

    Raises:
        EmptyInputError: if either series is empty
    """
    mean_a = mean(series_a)
    mean_b = mean(series_b)

    if len(series_a) < 2 or len(series_b) < 2:
        return math.nan

    std_a = sample_std_dev(series_a, mean_a)
    std_b = sample_std_dev(series_b, mean_b)

    cov = covariance(series_a, series_b, mean_a, mean_b)

    if std_a == 0.0 or std_b == 0.0:
        return math.nan

    coefficient = cov / (std_a * std_b)
    # Rounding can push a perfect correlation just past 1
    return max(-1.0, min(1.0, coefficient))
