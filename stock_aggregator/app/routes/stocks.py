"""
Stock Query Endpoints

Thin HTTP shell over StockQueryOrchestrator.

Endpoints:
- GET /stocks-list - Display name -> ticker mapping
- GET /stocks/{ticker} - Average price and price history for one ticker
- GET /stockcorrelation - Pearson correlation between two tickers
"""

import logging
import math
from typing import Annotated, Optional

from fastapi import APIRouter, HTTPException, Query, Request
from pydantic import BaseModel, ConfigDict, Field

from ...aggregator import StockQueryOrchestrator
from ...core.types import PriceSample, StockQuote, to_camel
from ..config import settings


logger = logging.getLogger(__name__)
router = APIRouter(tags=["stocks"])


# =============================================================================
# Response Models
# =============================================================================

class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class StocksListResponse(_CamelModel):
    """Response for /stocks-list."""

    stocks: dict[str, str] = Field(..., description="Display name -> ticker")


class AveragePriceResponse(_CamelModel):
    """Response for /stocks/{ticker}."""

    average_stock_price: float
    price_history: list[PriceSample]


class StockSummary(_CamelModel):
    """One side of a correlation response."""

    average_price: float
    price_history: list[PriceSample]


class CorrelationResponse(_CamelModel):
    """Response for /stockcorrelation."""

    correlation: Optional[float] = Field(
        None, description="Pearson coefficient; null when undefined (constant series)"
    )
    stocks: dict[str, StockSummary]


def _summary(quote: StockQuote) -> StockSummary:
    return StockSummary(
        average_price=quote.average_price,
        price_history=list(quote.history),
    )


# =============================================================================
# Dependencies
# =============================================================================

def get_orchestrator(request: Request) -> StockQueryOrchestrator:
    """Get orchestrator from app state."""
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if not orchestrator:
        raise HTTPException(status_code=503, detail="Orchestrator not initialized")
    return orchestrator


# =============================================================================
# Endpoints
# =============================================================================

@router.get("/stocks-list", response_model=StocksListResponse)
async def list_stocks(request: Request):
    """List available tickers keyed by display name."""
    orchestrator = get_orchestrator(request)
    stocks = await orchestrator.list_tickers()
    return StocksListResponse(stocks=stocks)


@router.get("/stocks/{ticker}", response_model=AveragePriceResponse)
async def get_stock_average(
    request: Request,
    ticker: str,
    minutes: Annotated[
        Optional[int],
        Query(description="History window in minutes"),
    ] = None,
):
    """Average price and price history for one ticker over the last N minutes."""
    orchestrator = get_orchestrator(request)
    window = settings.default_minutes if minutes is None else minutes

    quote = await orchestrator.get_quote(ticker, window)

    return AveragePriceResponse(
        average_stock_price=quote.average_price,
        price_history=list(quote.history),
    )


@router.get("/stockcorrelation", response_model=CorrelationResponse)
async def get_stock_correlation(
    request: Request,
    ticker: Annotated[
        Optional[list[str]],
        Query(description="Exactly two tickers, e.g. ?ticker=NVDA&ticker=PYPL"),
    ] = None,
    minutes: Annotated[
        Optional[int],
        Query(description="History window in minutes"),
    ] = None,
):
    """
    Pearson correlation between two tickers' price histories.

    The histories are paired by position over the shorter of the two.
    A constant history on either side yields correlation null.
    """
    orchestrator = get_orchestrator(request)
    window = settings.default_minutes if minutes is None else minutes

    report = await orchestrator.get_correlation(ticker or [], window)

    coefficient = report.coefficient
    return CorrelationResponse(
        correlation=None if math.isnan(coefficient) else coefficient,
        stocks={quote.ticker: _summary(quote) for quote in report.quotes},
    )
