"""
Stock Aggregator Core Types

Value types shared by the upstream client, the aggregation engine and the
API layer.

SERIALIZATION CONTRACT:
    Internal Python code uses snake_case.
    Upstream payloads and API responses use camelCase.
    This is achieved via Pydantic's `alias_generator` and `populate_by_name`.

    Example:
        Internal: sample.last_updated_at
        API JSON: {"lastUpdatedAt": "2025-05-08T04:11:42.465706Z"}
"""

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Iterator, Union, overload

from pydantic import BaseModel, ConfigDict, Field, field_validator


def to_camel(string: str) -> str:
    """Convert snake_case to camelCase for API serialization."""
    components = string.split("_")
    return components[0] + "".join(x.title() for x in components[1:])


# Upstream emits nanosecond fractions; datetime holds microseconds
_FRACTION_RE = re.compile(r"(\.\d{6})\d+")


# =============================================================================
# Price Types
# =============================================================================

class PriceSample(BaseModel):
    """One observed price at a point in time, as reported upstream."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    price: float = Field(..., description="Observed price")
    last_updated_at: datetime = Field(..., description="Upstream observation time")

    @field_validator("last_updated_at", mode="before")
    @classmethod
    def _truncate_fraction(cls, value):
        if isinstance(value, str):
            return _FRACTION_RE.sub(r"\1", value)
        return value


@dataclass(frozen=True)
class PriceSeries:
    """
    Ordered price samples for one ticker over one request window.

    Order is the upstream's (chronological, ascending) and is never changed.
    Slicing returns a new PriceSeries for the same ticker.
    """

    ticker: str
    samples: tuple[PriceSample, ...] = ()

    def __len__(self) -> int:
        return len(self.samples)

    def __iter__(self) -> Iterator[PriceSample]:
        return iter(self.samples)

    @overload
    def __getitem__(self, index: int) -> PriceSample: ...

    @overload
    def __getitem__(self, index: slice) -> "PriceSeries": ...

    def __getitem__(self, index: Union[int, slice]):
        if isinstance(index, slice):
            return PriceSeries(ticker=self.ticker, samples=self.samples[index])
        return self.samples[index]

    @property
    def prices(self) -> tuple[float, ...]:
        return tuple(s.price for s in self.samples)


# =============================================================================
# Query Results
# =============================================================================

@dataclass(frozen=True)
class StockQuote:
    """Average price and the history it was computed from."""

    ticker: str
    average_price: float
    history: PriceSeries


@dataclass(frozen=True)
class CorrelationResult:
    """Pearson coefficient of two series (NaN when undefined)."""

    coefficient: float
    series_a: PriceSeries
    series_b: PriceSeries


@dataclass(frozen=True)
class CorrelationReport:
    """Correlation plus a quote for each side, in request order."""

    result: CorrelationResult
    quotes: tuple[StockQuote, StockQuote]

    @property
    def coefficient(self) -> float:
        return self.result.coefficient


# =============================================================================
# Upstream Identity
# =============================================================================

class Credentials(BaseModel):
    """Static identity fields exchanged for an upstream bearer token."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    email: str = ""
    name: str = ""
    roll_no: str = ""
    access_code: str = ""
    # Upstream spells these with a capital ID
    client_id: str = Field(default="", alias="clientID")
    client_secret: str = ""

    def to_payload(self) -> dict[str, str]:
        """Body for POST /auth."""
        return self.model_dump(by_alias=True)
