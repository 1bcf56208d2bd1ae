"""Provider adapters — payload mapping and failure signalling."""
import asyncio

import aiohttp
import pytest

from src.core.data.providers import base
from src.core.data.providers.alphavantage import AlphaVantageProvider
from src.core.data.providers.finnhub import FinnhubProvider
from src.core.data.providers.polygon import PolygonProvider
from src.core.data.providers.yahoo import YahooProvider
from src.core.quotes.errors import ProviderError


def stub_json(monkeypatch, provider, payload):
    """Replace the HTTP call with a canned payload and record the request."""
    seen = {}

    async def fake_get_json(symbol, url, params=None, headers=None):
        seen.update(symbol=symbol, url=url, params=params)
        return payload

    monkeypatch.setattr(provider, "_get_json", fake_get_json)
    return seen


# ── Yahoo ────────────────────────────────────────────────────────────────


class TestYahooProvider:

    @pytest.mark.asyncio
    async def test_maps_chart_meta(self, monkeypatch):
        p = YahooProvider()
        stub_json(monkeypatch, p, {"chart": {"result": [{"meta": {
            "regularMarketPrice": 187.456,
            "chartPreviousClose": 185.0,
            "regularMarketDayHigh": 188.0,
            "regularMarketDayLow": 184.5,
            "regularMarketVolume": 51234567,
        }}]}})

        q = await p.fetch_quote("AAPL")
        assert q.symbol == "AAPL"
        assert q.price == 187.46
        assert q.previous_close == 185.0
        assert q.change == pytest.approx(2.46)
        assert q.change_percent == pytest.approx(1.33)
        assert q.volume == 51234567
        assert q.source == "yahoo"

    @pytest.mark.asyncio
    async def test_translates_share_class_symbol(self, monkeypatch):
        p = YahooProvider()
        seen = stub_json(monkeypatch, p, {"chart": {"result": [{"meta": {"regularMarketPrice": 412.0}}]}})

        q = await p.fetch_quote("BRK.B")
        assert seen["url"].endswith("/BRK-B")
        assert q.symbol == "BRK.B"

    @pytest.mark.asyncio
    async def test_empty_result_is_failure(self, monkeypatch):
        p = YahooProvider()
        stub_json(monkeypatch, p, {"chart": {"result": None, "error": {"code": "Not Found"}}})
        with pytest.raises(ProviderError, match="no chart result"):
            await p.fetch_quote("ZZZZINVALID")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", [
        {"chart": {"result": [None]}},
        {"chart": {"result": ["AAPL"]}},
        {"chart": {"result": [{"meta": ["AAPL"]}]}},
        {"chart": "unavailable"},
        ["not", "a", "dict"],
    ])
    async def test_malformed_shape_is_failure(self, monkeypatch, payload):
        p = YahooProvider()
        stub_json(monkeypatch, p, payload)
        with pytest.raises(ProviderError, match="unexpected payload"):
            await p.fetch_quote("AAPL")

    @pytest.mark.asyncio
    async def test_zero_price_is_failure(self, monkeypatch):
        p = YahooProvider()
        stub_json(monkeypatch, p, {"chart": {"result": [{"meta": {"regularMarketPrice": 0, "previousClose": 0}}]}})
        with pytest.raises(ProviderError, match="no usable price|non-positive"):
            await p.fetch_quote("AAPL")


# ── Finnhub ──────────────────────────────────────────────────────────────


class TestFinnhubProvider:

    @pytest.mark.asyncio
    async def test_maps_quote(self, monkeypatch):
        p = FinnhubProvider("key")
        seen = stub_json(monkeypatch, p, {"c": 410.123, "d": 3.2, "dp": 0.7861, "h": 412, "l": 405, "o": 406, "pc": 406.9})

        q = await p.fetch_quote("MSFT")
        assert seen["params"] == {"symbol": "MSFT", "token": "key"}
        assert q.price == 410.12
        assert q.change == 3.2
        assert q.change_percent == 0.79
        assert q.previous_close == 406.9

    @pytest.mark.asyncio
    async def test_unknown_symbol_zero_price(self, monkeypatch):
        # Finnhub answers unknown tickers with all-zero fields
        p = FinnhubProvider("key")
        stub_json(monkeypatch, p, {"c": 0, "d": None, "dp": None, "h": 0, "l": 0, "o": 0, "pc": 0})
        with pytest.raises(ProviderError, match="non-positive"):
            await p.fetch_quote("ZZZZINVALID")

    @pytest.mark.asyncio
    async def test_missing_key(self):
        with pytest.raises(ProviderError, match="API key not configured"):
            await FinnhubProvider("").fetch_quote("AAPL")


# ── Alpha Vantage ────────────────────────────────────────────────────────


class TestAlphaVantageProvider:

    @pytest.mark.asyncio
    async def test_maps_global_quote(self, monkeypatch):
        p = AlphaVantageProvider("key")
        stub_json(monkeypatch, p, {"Global Quote": {
            "01. symbol": "IBM",
            "02. open": "170.00",
            "05. price": "171.2500",
            "06. volume": "3456789",
            "08. previous close": "169.50",
            "09. change": "1.7500",
            "10. change percent": "1.0324%",
        }})

        q = await p.fetch_quote("IBM")
        assert q.price == 171.25
        assert q.change_percent == pytest.approx(1.0324)
        assert q.volume == 3456789
        assert q.open == 170.0

    @pytest.mark.asyncio
    async def test_throttle_note_is_failure(self, monkeypatch):
        p = AlphaVantageProvider("key")
        stub_json(monkeypatch, p, {"Note": "Thank you for using Alpha Vantage! Our standard API call frequency is 5 calls per minute"})
        with pytest.raises(ProviderError, match="call frequency"):
            await p.fetch_quote("IBM")

    @pytest.mark.asyncio
    async def test_non_dict_global_quote_is_failure(self, monkeypatch):
        p = AlphaVantageProvider("key")
        stub_json(monkeypatch, p, {"Global Quote": ["171.25"]})
        with pytest.raises(ProviderError, match="unexpected payload"):
            await p.fetch_quote("IBM")


# ── Polygon ──────────────────────────────────────────────────────────────


class TestPolygonProvider:

    @pytest.mark.asyncio
    async def test_maps_previous_aggregate(self, monkeypatch):
        p = PolygonProvider("key")
        stub_json(monkeypatch, p, {"results": [{"c": 120.5, "o": 118, "h": 121, "l": 117.5, "v": 1.2e6}]})

        q = await p.fetch_quote("NVDA")
        assert q.price == 120.5
        assert q.previous_close == 120.5
        assert q.volume == 1200000

    @pytest.mark.asyncio
    async def test_no_results_is_failure(self, monkeypatch):
        p = PolygonProvider("key")
        stub_json(monkeypatch, p, {"resultsCount": 0, "results": []})
        with pytest.raises(ProviderError):
            await p.fetch_quote("NVDA")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("results", [[None], [120.5], {"c": 120.5}])
    async def test_malformed_aggregate_is_failure(self, monkeypatch, results):
        p = PolygonProvider("key")
        stub_json(monkeypatch, p, {"resultsCount": 1, "results": results})
        with pytest.raises(ProviderError, match="unexpected payload"):
            await p.fetch_quote("NVDA")


# ── Transport failures ───────────────────────────────────────────────────


class FakeSession:
    """Stands in for aiohttp.ClientSession; get() raises or yields a canned response."""

    def __init__(self, error=None, status=200, payload=None):
        self.error = error
        self.status = status
        self.payload = payload

    def __call__(self, *args, **kwargs):
        return self

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    def get(self, url, params=None):
        if self.error is not None:
            raise self.error
        return self

    async def json(self, content_type=None):
        if isinstance(self.payload, Exception):
            raise self.payload
        return self.payload


class TestTransportErrors:

    @pytest.mark.asyncio
    async def test_timeout_becomes_provider_error(self, monkeypatch):
        monkeypatch.setattr(base.aiohttp, "ClientSession", FakeSession(error=asyncio.TimeoutError()))
        with pytest.raises(ProviderError, match="timed out"):
            await YahooProvider().fetch_quote("AAPL")

    @pytest.mark.asyncio
    async def test_connection_error_becomes_provider_error(self, monkeypatch):
        monkeypatch.setattr(base.aiohttp, "ClientSession", FakeSession(error=aiohttp.ClientConnectionError("refused")))
        with pytest.raises(ProviderError, match="request failed"):
            await YahooProvider().fetch_quote("AAPL")

    @pytest.mark.asyncio
    async def test_non_200_status(self, monkeypatch):
        monkeypatch.setattr(base.aiohttp, "ClientSession", FakeSession(status=429))
        with pytest.raises(ProviderError, match="HTTP 429"):
            await FinnhubProvider("key").fetch_quote("AAPL")

    @pytest.mark.asyncio
    async def test_malformed_json(self, monkeypatch):
        monkeypatch.setattr(base.aiohttp, "ClientSession", FakeSession(payload=ValueError("Expecting value")))
        with pytest.raises(ProviderError, match="malformed JSON"):
            await FinnhubProvider("key").fetch_quote("AAPL")

    @pytest.mark.asyncio
    async def test_error_names_provider_and_symbol(self, monkeypatch):
        monkeypatch.setattr(base.aiohttp, "ClientSession", FakeSession(status=500))
        with pytest.raises(ProviderError) as info:
            await PolygonProvider("key").fetch_quote("TSLA")
        assert info.value.provider == "polygon"
        assert info.value.symbol == "TSLA"


# ── Batch fan-out ────────────────────────────────────────────────────────


class TestFetchQuotes:

    @pytest.mark.asyncio
    async def test_failed_symbols_are_dropped(self, make_provider):
        p = make_provider("mock", prices={"AAPL": 190.0, "MSFT": 410.0})
        quotes = await p.fetch_quotes(["AAPL", "ZZZZINVALID", "MSFT"])
        assert set(quotes) == {"AAPL", "MSFT"}
        assert quotes["MSFT"].price == 410.0
