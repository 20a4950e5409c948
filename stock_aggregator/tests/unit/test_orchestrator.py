"""
Unit tests for StockQueryOrchestrator.

Tests cover:
- Input validation (minutes, ticker count, distinct tickers)
- Quote and correlation shaping
- Single re-authentication retry on UnauthorizedError
- 404 -> NotFoundError translation
- No partial correlation results
"""

import asyncio
import math
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from stock_aggregator.aggregator.query_orchestrator import StockQueryOrchestrator
from stock_aggregator.core.errors import (
    AuthError,
    EmptySeriesError,
    NotFoundError,
    UnauthorizedError,
    UpstreamError,
    ValidationError,
)
from stock_aggregator.core.types import PriceSample, PriceSeries


BASE_TIME = datetime(2025, 5, 8, 4, 0, 0, tzinfo=timezone.utc)


def make_series(ticker: str, prices: list[float]) -> PriceSeries:
    return PriceSeries(
        ticker=ticker,
        samples=tuple(
            PriceSample(price=p, last_updated_at=BASE_TIME + timedelta(minutes=i))
            for i, p in enumerate(prices)
        ),
    )


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def mock_token_manager():
    """Token manager issuing token-1, then token-2, ..."""
    manager = MagicMock()
    manager.ensure_token = AsyncMock(side_effect=[f"token-{i}" for i in range(1, 10)])
    manager.invalidate = MagicMock()
    return manager


@pytest.fixture
def mock_client():
    client = MagicMock()
    client.list_tickers = AsyncMock(return_value={"Nvidia Corporation": "NVDA"})
    client.fetch_history = AsyncMock()
    return client


@pytest.fixture
def orchestrator(mock_token_manager, mock_client):
    return StockQueryOrchestrator(mock_token_manager, mock_client)


def histories(mapping: dict[str, list[float]]):
    """fetch_history side effect serving fixed prices per ticker."""

    async def fetch(token, ticker, minutes):
        if ticker not in mapping:
            raise UpstreamError("not found", status=404)
        return make_series(ticker, mapping[ticker])

    return fetch


# =============================================================================
# list_tickers
# =============================================================================


class TestListTickers:

    @pytest.mark.asyncio
    async def test_delegates_with_token(self, orchestrator, mock_client):
        result = await orchestrator.list_tickers()

        assert result == {"Nvidia Corporation": "NVDA"}
        mock_client.list_tickers.assert_awaited_once_with("token-1")

    @pytest.mark.asyncio
    async def test_non_auth_errors_not_retried(self, orchestrator, mock_client, mock_token_manager):
        mock_client.list_tickers = AsyncMock(side_effect=UpstreamError("boom", status=500))

        with pytest.raises(UpstreamError):
            await orchestrator.list_tickers()

        assert mock_client.list_tickers.await_count == 1
        mock_token_manager.invalidate.assert_not_called()


# =============================================================================
# get_quote
# =============================================================================


class TestGetQuote:

    @pytest.mark.asyncio
    async def test_average_and_history(self, orchestrator, mock_client):
        mock_client.fetch_history.side_effect = histories({"X": [100.0, 110.0, 105.0]})

        quote = await orchestrator.get_quote("X", 50)

        assert quote.ticker == "X"
        assert quote.average_price == 105.0
        assert quote.history.prices == (100.0, 110.0, 105.0)
        mock_client.fetch_history.assert_awaited_once_with("token-1", "X", 50)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("minutes", [0, -5])
    async def test_non_positive_minutes(self, orchestrator, mock_client, minutes):
        with pytest.raises(ValidationError):
            await orchestrator.get_quote("X", minutes)
        mock_client.fetch_history.assert_not_called()

    @pytest.mark.asyncio
    async def test_blank_ticker(self, orchestrator):
        with pytest.raises(ValidationError):
            await orchestrator.get_quote("  ", 50)

    @pytest.mark.asyncio
    async def test_unknown_ticker(self, orchestrator, mock_client):
        mock_client.fetch_history.side_effect = histories({})

        with pytest.raises(NotFoundError) as exc_info:
            await orchestrator.get_quote("NOPE", 50)

        assert exc_info.value.status == 404

    @pytest.mark.asyncio
    async def test_empty_history_is_error_not_nan(self, orchestrator, mock_client):
        mock_client.fetch_history = AsyncMock(side_effect=EmptySeriesError("X"))

        with pytest.raises(EmptySeriesError):
            await orchestrator.get_quote("X", 50)

    @pytest.mark.asyncio
    async def test_unauthorized_retried_once(self, orchestrator, mock_client, mock_token_manager):
        """Test one invalidation and one retry with a fresh token."""
        mock_client.fetch_history = AsyncMock(
            side_effect=[UnauthorizedError("expired", status=401), make_series("X", [1.0, 2.0])]
        )

        quote = await orchestrator.get_quote("X", 50)

        assert quote.average_price == 1.5
        mock_token_manager.invalidate.assert_called_once_with("token-1")
        assert mock_client.fetch_history.await_args_list[1].args == ("token-2", "X", 50)

    @pytest.mark.asyncio
    async def test_second_unauthorized_is_auth_error(self, orchestrator, mock_client, mock_token_manager):
        """Test a second rejection surfaces AuthError without a third attempt."""
        mock_client.fetch_history = AsyncMock(side_effect=UnauthorizedError("denied", status=403))

        with pytest.raises(AuthError):
            await orchestrator.get_quote("X", 50)

        assert mock_client.fetch_history.await_count == 2
        assert mock_token_manager.invalidate.call_count == 1

    @pytest.mark.asyncio
    async def test_auth_exchange_failure_propagates(self, orchestrator, mock_client, mock_token_manager):
        mock_token_manager.ensure_token = AsyncMock(side_effect=AuthError("bad credentials"))

        with pytest.raises(AuthError):
            await orchestrator.get_quote("X", 50)

        mock_client.fetch_history.assert_not_called()


# =============================================================================
# get_correlation
# =============================================================================


class TestGetCorrelation:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("tickers", [[], ["NVDA"], ["NVDA", "PYPL", "AAPL"]])
    async def test_requires_exactly_two(self, orchestrator, mock_client, tickers):
        with pytest.raises(ValidationError):
            await orchestrator.get_correlation(tickers, 50)
        mock_client.fetch_history.assert_not_called()

    @pytest.mark.asyncio
    async def test_requires_distinct(self, orchestrator):
        with pytest.raises(ValidationError):
            await orchestrator.get_correlation(["NVDA", "NVDA"], 50)

    @pytest.mark.asyncio
    async def test_non_positive_minutes(self, orchestrator):
        with pytest.raises(ValidationError):
            await orchestrator.get_correlation(["NVDA", "PYPL"], 0)

    @pytest.mark.asyncio
    async def test_correlation_and_quotes(self, orchestrator, mock_client):
        mock_client.fetch_history.side_effect = histories({
            "NVDA": [1.0, 2.0, 3.0, 4.0],
            "PYPL": [10.0, 20.0, 30.0, 40.0],
        })

        report = await orchestrator.get_correlation(["NVDA", "PYPL"], 50)

        assert report.coefficient == pytest.approx(1.0)
        assert report.result.series_a.ticker == "NVDA"
        assert report.result.series_b.ticker == "PYPL"
        assert [q.ticker for q in report.quotes] == ["NVDA", "PYPL"]
        assert report.quotes[0].average_price == 2.5
        assert report.quotes[1].average_price == 25.0

    @pytest.mark.asyncio
    async def test_constant_series_gives_nan(self, orchestrator, mock_client):
        mock_client.fetch_history.side_effect = histories({
            "NVDA": [5.0, 5.0, 5.0],
            "PYPL": [1.0, 3.0, 2.0],
        })

        report = await orchestrator.get_correlation(["NVDA", "PYPL"], 50)

        assert math.isnan(report.coefficient)

    @pytest.mark.asyncio
    async def test_fetches_run_concurrently(self, orchestrator, mock_client):
        """Test both fetches are in flight at the same time."""
        in_flight = 0
        peak = 0

        async def fetch(token, ticker, minutes):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1
            return make_series(ticker, [1.0, 2.0, 3.0])

        mock_client.fetch_history.side_effect = fetch

        await orchestrator.get_correlation(["NVDA", "PYPL"], 50)

        assert peak == 2

    @pytest.mark.asyncio
    async def test_one_side_failure_fails_whole_query(self, orchestrator, mock_client):
        """Test no partial result when one fetch fails."""
        mock_client.fetch_history.side_effect = histories({"NVDA": [1.0, 2.0, 3.0]})

        with pytest.raises(NotFoundError):
            await orchestrator.get_correlation(["NVDA", "PYPL"], 50)

    @pytest.mark.asyncio
    async def test_unauthorized_on_either_side_retries_whole_query(
        self, orchestrator, mock_client, mock_token_manager
    ):
        calls = []

        async def fetch(token, ticker, minutes):
            calls.append((token, ticker))
            if token == "token-1" and ticker == "PYPL":
                raise UnauthorizedError("expired", status=401)
            return make_series(ticker, [1.0, 2.0, 4.0])

        mock_client.fetch_history.side_effect = fetch

        report = await orchestrator.get_correlation(["NVDA", "PYPL"], 50)

        assert report.coefficient == pytest.approx(1.0)
        mock_token_manager.invalidate.assert_called_once_with("token-1")
        assert sorted(calls) == [
            ("token-1", "NVDA"),
            ("token-1", "PYPL"),
            ("token-2", "NVDA"),
            ("token-2", "PYPL"),
        ]

    @pytest.mark.asyncio
    async def test_unauthorized_takes_precedence_over_other_errors(
        self, orchestrator, mock_client, mock_token_manager
    ):
        async def fetch(token, ticker, minutes):
            if token == "token-1":
                if ticker == "NVDA":
                    raise UpstreamError("boom", status=500)
                raise UnauthorizedError("expired", status=401)
            return make_series(ticker, [1.0, 2.0, 3.0])

        mock_client.fetch_history.side_effect = fetch

        report = await orchestrator.get_correlation(["NVDA", "PYPL"], 50)

        assert report.coefficient == pytest.approx(1.0)
        assert mock_token_manager.invalidate.call_count == 1

    @pytest.mark.asyncio
    async def test_repeated_unauthorized_is_auth_error(self, orchestrator, mock_client):
        mock_client.fetch_history = AsyncMock(side_effect=UnauthorizedError("denied", status=401))

        with pytest.raises(AuthError):
            await orchestrator.get_correlation(["NVDA", "PYPL"], 50)

        # Two attempts, two fetches each
        assert mock_client.fetch_history.await_count == 4
