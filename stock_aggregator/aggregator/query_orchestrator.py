"""
Stock Query Orchestrator

Runs the three public queries against the upstream provider:
- list_tickers: display name -> ticker mapping
- get_quote: average price and history for one ticker
- get_correlation: Pearson correlation of two tickers plus a quote for each

Each query obtains a token, fetches, then computes. If the upstream rejects
the token, the token is invalidated and the whole query runs once more. A
second rejection is raised as AuthError. No other failure is retried.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Sequence, TypeVar

from ..core.constants import CORRELATION_TICKER_COUNT, NOT_FOUND_STATUS_CODE
from ..core.errors import (
    AuthError,
    NotFoundError,
    StockServiceError,
    UnauthorizedError,
    UpstreamError,
    ValidationError,
)
from ..core.metrics import record_auth_retry, record_query
from ..core.price_stats import mean, pearson_correlation
from ..core.types import (
    CorrelationReport,
    CorrelationResult,
    PriceSeries,
    StockQuote,
)
from ..upstream import TokenManager, UpstreamClient

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _validate_minutes(minutes: int) -> None:
    if isinstance(minutes, bool) or not isinstance(minutes, int):
        raise ValidationError(f"minutes must be an integer, got {minutes!r}")
    if minutes <= 0:
        raise ValidationError(f"minutes must be positive, got {minutes}")


def _validate_ticker(ticker: Optional[str]) -> str:
    if not isinstance(ticker, str) or not ticker.strip():
        raise ValidationError("ticker must be a non-empty string")
    return ticker.strip()


class StockQueryOrchestrator:
    """
    Sequences TokenManager -> UpstreamClient -> price statistics.

    Holds no per-request state; the only shared state is the token owned by
    the TokenManager.
    """

    def __init__(self, token_manager: TokenManager, client: UpstreamClient):
        self.token_manager = token_manager
        self.client = client

    # =========================================================================
    # Public API
    # =========================================================================

    async def list_tickers(self) -> dict[str, str]:
        """Fetch the display-name -> ticker mapping."""
        return await self._run("list_tickers", self.client.list_tickers)

    async def get_quote(self, ticker: str, minutes: int) -> StockQuote:
        """
        Average price and history for one ticker.

        Raises:
            ValidationError: empty ticker or minutes <= 0
            NotFoundError: ticker unknown upstream
            EmptySeriesError: upstream returned no samples
        """
        ticker = _validate_ticker(ticker)
        _validate_minutes(minutes)

        async def operation(token: str) -> StockQuote:
            series = await self._fetch(token, ticker, minutes)
            return self._quote(series)

        return await self._run("get_quote", operation)

    async def get_correlation(self, tickers: Sequence[str], minutes: int) -> CorrelationReport:
        """
        Pearson correlation between exactly two distinct tickers.

        Both histories are fetched concurrently and both must succeed before
        anything is computed.

        Raises:
            ValidationError: not exactly two distinct tickers, or minutes <= 0
            NotFoundError: either ticker unknown upstream
            EmptySeriesError: either history is empty
        """
        tickers = list(tickers or [])
        if len(tickers) != CORRELATION_TICKER_COUNT:
            raise ValidationError(
                f"Exactly {CORRELATION_TICKER_COUNT} tickers are required, got {len(tickers)}"
            )
        ticker_a, ticker_b = (_validate_ticker(t) for t in tickers)
        if ticker_a == ticker_b:
            raise ValidationError("Tickers must be distinct")
        _validate_minutes(minutes)

        async def operation(token: str) -> CorrelationReport:
            results = await asyncio.gather(
                self._fetch(token, ticker_a, minutes),
                self._fetch(token, ticker_b, minutes),
                return_exceptions=True,
            )
            errors = [r for r in results if isinstance(r, BaseException)]
            if errors:
                # An auth failure on either side must reach the retry path
                for error in errors:
                    if isinstance(error, UnauthorizedError):
                        raise error
                raise errors[0]

            series_a, series_b = results
            coefficient = pearson_correlation(series_a, series_b)
            return CorrelationReport(
                result=CorrelationResult(
                    coefficient=coefficient,
                    series_a=series_a,
                    series_b=series_b,
                ),
                quotes=(self._quote(series_a), self._quote(series_b)),
            )

        return await self._run("get_correlation", operation)

    # =========================================================================
    # Internal Methods
    # =========================================================================

    async def _run(self, name: str, operation: Callable[[str], Awaitable[T]]) -> T:
        """Run `operation` with a token, re-authenticating and retrying once."""
        try:
            result = await self._with_auth_retry(name, operation)
        except StockServiceError as e:
            record_query(name, type(e).__name__)
            raise
        record_query(name, "success")
        return result

    async def _with_auth_retry(self, name: str, operation: Callable[[str], Awaitable[T]]) -> T:
        token = await self.token_manager.ensure_token()
        try:
            return await operation(token)
        except UnauthorizedError:
            logger.warning(f"[{name}] Upstream rejected token, re-authenticating and retrying once")
            record_auth_retry(name)
            self.token_manager.invalidate(token)

        token = await self.token_manager.ensure_token()
        try:
            return await operation(token)
        except UnauthorizedError as e:
            logger.error(f"[{name}] Upstream rejected a freshly issued token")
            raise AuthError("Upstream still unauthorized after re-authentication") from e

    async def _fetch(self, token: str, ticker: str, minutes: int) -> PriceSeries:
        try:
            return await self.client.fetch_history(token, ticker, minutes)
        except UnauthorizedError:
            raise
        except UpstreamError as e:
            if e.status == NOT_FOUND_STATUS_CODE:
                raise NotFoundError(
                    f"Unknown ticker: {ticker}", status=e.status, body=e.body
                ) from e
            raise

    @staticmethod
    def _quote(series: PriceSeries) -> StockQuote:
        return StockQuote(
            ticker=series.ticker,
            average_price=mean(series),
            history=series,
        )
