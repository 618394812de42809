"""Tests for currency conversion with mocked rate fetching."""

from unittest.mock import AsyncMock, Mock

import pytest

from smart_launcher.config import Settings
from smart_launcher.core.cache import MemoryCache
from smart_launcher.core.currency import format_currency, parse_currency_conversion
from smart_launcher.core.plugins import PluginContext
from smart_launcher.models.schemas import CommandHandler


def _response(payload):
    return Mock(json=Mock(return_value=payload), raise_for_status=Mock())


def _rates_fetch(tables):
    """Fetch stub serving one rate table per ticker found in the URL."""

    async def fetch(url, **kwargs):
        ticker = url.rsplit("/", 1)[-1].split(".")[0]
        return _response({ticker: tables.get(ticker, {})})

    return AsyncMock(side_effect=fetch)


@pytest.fixture
def settings():
    return Settings(
        base_currency="usd",
        currency_api_url="https://rates.test/{ticker}.json",
        currency_cache_ttl=60,
    )


def _context(settings, fetch, fail=None):
    return PluginContext(query="", settings=settings, fetch=fetch, fail=fail or Mock())


class TestCurrencyConversion:
    """Test parsing, rate lookup and failure reporting."""

    @pytest.mark.asyncio
    async def test_explicit_pair(self, settings):
        fetch = _rates_fetch({"usd": {"eur": 0.9}})

        results = await parse_currency_conversion("10 usd to eur", _context(settings, fetch))

        assert len(results) == 1
        assert results[0].value == "€9.00"
        assert results[0].handler == CommandHandler.FORMULA_RESULT.value
        fetch.assert_awaited_once_with("https://rates.test/usd.json")

    @pytest.mark.asyncio
    async def test_symbol_and_single_currency_use_base(self, settings):
        fetch = _rates_fetch({"eur": {"usd": 1.1}})

        results = await parse_currency_conversion("€100", _context(settings, fetch))

        assert results[0].value == "$110.00"

    @pytest.mark.asyncio
    async def test_base_currency_converts_away_from_base(self, settings):
        fetch = _rates_fetch({"usd": {"eur": 0.5}})

        results = await parse_currency_conversion("4 usd", _context(settings, fetch))

        assert results[0].value == "€2.00"

    @pytest.mark.asyncio
    async def test_flat_payload_is_accepted(self, settings):
        fetch = AsyncMock(return_value=_response({"date": "2026-10-19", "eur": 0.9}))

        results = await parse_currency_conversion("10 usd in eur", _context(settings, fetch))

        assert results[0].value == "€9.00"

    @pytest.mark.asyncio
    async def test_inverse_rate_when_source_table_lacks_target(self, settings):
        fetch = _rates_fetch({"usd": {"eur": 0.9}, "chf": {"usd": 1.25}})

        results = await parse_currency_conversion("10 usd to chf", _context(settings, fetch))

        assert results[0].value == "8.00 CHF"
        assert fetch.await_count == 2

    @pytest.mark.asyncio
    async def test_zero_decimal_target(self, settings):
        fetch = _rates_fetch({"usd": {"jpy": 150}})

        results = await parse_currency_conversion("1,000 usd to jpy", _context(settings, fetch))

        assert results[0].value == "¥150,000"

    @pytest.mark.asyncio
    async def test_rates_are_cached(self, settings):
        fetch = _rates_fetch({"usd": {"eur": 0.9}})
        cache = MemoryCache()
        context = _context(settings, fetch)

        await parse_currency_conversion("10 usd to eur", context, cache)
        results = await parse_currency_conversion("20 usd to eur", context, cache)

        assert results[0].value == "€18.00"
        assert fetch.await_count == 1

    @pytest.mark.asyncio
    async def test_fetch_failure_is_reported(self, settings):
        fetch = AsyncMock(side_effect=ConnectionError("offline"))
        fail = Mock()

        results = await parse_currency_conversion(
            "10 usd to eur", _context(settings, fetch, fail)
        )

        assert results == []
        fail.assert_called_once_with("Failed to fetch exchange rates for USD")

    @pytest.mark.asyncio
    async def test_http_error_is_reported(self, settings):
        response = _response({})
        response.raise_for_status.side_effect = RuntimeError("503")
        fail = Mock()

        results = await parse_currency_conversion(
            "10 usd to eur", _context(settings, AsyncMock(return_value=response), fail)
        )

        assert results == []
        fail.assert_called_once()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "query", ["10 kph", "mph to kph", "5 usd to usd", "hello", "10 usd to xyz"]
    )
    async def test_non_currency_queries_never_fetch(self, settings, query):
        fetch = AsyncMock()

        assert await parse_currency_conversion(query, _context(settings, fetch)) == []
        fetch.assert_not_awaited()


class TestFormatCurrency:
    @pytest.mark.parametrize(
        "amount,code,expected",
        [
            (1234.5, "usd", "$1,234.50"),
            (10, "chf", "10.00 CHF"),
            (0.5, "btc", "₿0.50000000"),
            (1500.4, "krw", "₩1,500"),
        ],
    )
    def test_format(self, amount, code, expected):
        assert format_currency(amount, code) == expected
