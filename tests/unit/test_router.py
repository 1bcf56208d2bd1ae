"""PriceResolver — failover, rate limits, batch resolution."""
import pytest

from src.core.config import RateLimitBudget
from src.core.data.cache.memory_cache import MemoryQuoteCache
from src.core.data.cache.quote_cache import QuoteCache
from src.core.data.providers.health import ProviderHealthTracker
from src.core.data.providers.rate_limit import RateLimiter
from src.core.data.providers.router import PriceResolver
from src.core.data.providers.yahoo import YahooProvider
from src.core.quotes.models import MEMORY_CACHE_SOURCE


def make_resolver(providers, clock, budgets=None, batch_concurrency=5) -> PriceResolver:
    names = [p.name for p in providers]
    return PriceResolver(
        providers,
        QuoteCache(MemoryQuoteCache(ttl_seconds=30, clock=clock)),
        ProviderHealthTracker(names, cooldown_seconds=300, clock=clock),
        RateLimiter(budgets or {}, clock=clock),
        batch_concurrency=batch_concurrency,
        batch_pause_seconds=0,
    )


# ── Single symbol ────────────────────────────────────────────────────────


class TestResolve:

    @pytest.mark.asyncio
    async def test_first_provider_wins(self, clock, make_provider):
        a, b = make_provider("a"), make_provider("b")
        r = make_resolver([a, b], clock)
        q = await r.resolve("aapl")
        assert q.symbol == "AAPL"
        assert q.source == "a"
        assert b.calls == []

    @pytest.mark.asyncio
    async def test_failover_records_health(self, clock, make_provider):
        a = make_provider("a", failing=True)
        b = make_provider("b", failing=True)
        c = make_provider("c", prices={"AAPL": 190.0})
        r = make_resolver([a, b, c], clock)

        q = await r.resolve("AAPL")
        assert q.price == 190.0
        assert q.source == "c"
        assert r.health.get("a").consecutive_failures == 1
        assert r.health.get("b").consecutive_failures == 1
        assert r.health.get("c").consecutive_failures == 0
        assert r.health.ordered_providers() == ["c", "a", "b"]

    @pytest.mark.asyncio
    async def test_all_fail_returns_none(self, clock, make_provider):
        r = make_resolver([make_provider("a", failing=True), make_provider("b", prices={})], clock)
        assert await r.resolve("ZZZZINVALID") is None
        assert len(r.cache.memory) == 0

    @pytest.mark.asyncio
    async def test_cache_hit_skips_providers(self, clock, make_provider):
        a = make_provider("a")
        r = make_resolver([a], clock)
        await r.resolve("AAPL")
        q = await r.resolve("AAPL")
        assert q.source == MEMORY_CACHE_SOURCE
        assert a.calls == ["AAPL"]

    @pytest.mark.asyncio
    async def test_use_cache_false_goes_live(self, clock, make_provider):
        a = make_provider("a")
        r = make_resolver([a], clock)
        await r.resolve("AAPL")
        q = await r.resolve("AAPL", use_cache=False)
        assert q.source == "a"
        assert a.calls == ["AAPL", "AAPL"]

    @pytest.mark.asyncio
    async def test_expired_entry_refetched(self, clock, make_provider):
        a = make_provider("a")
        r = make_resolver([a], clock)
        await r.resolve("AAPL")
        clock.advance(30)
        assert (await r.resolve("AAPL")).source == "a"
        assert len(a.calls) == 2

    @pytest.mark.asyncio
    async def test_rate_limited_provider_is_skipped(self, clock, make_provider):
        a, b = make_provider("a"), make_provider("b")
        r = make_resolver([a, b], clock, budgets={"a": RateLimitBudget(max_requests=1)})

        assert (await r.resolve("AAPL")).source == "a"
        assert (await r.resolve("MSFT")).source == "b"
        assert a.calls == ["AAPL"]
        # skipping is not a failure
        assert r.health.get("a").consecutive_failures == 0

    @pytest.mark.asyncio
    async def test_every_provider_rate_limited(self, clock, make_provider):
        a = make_provider("a")
        r = make_resolver([a], clock, budgets={"a": RateLimitBudget(max_requests=1)})
        await r.resolve("AAPL")
        assert await r.resolve("MSFT") is None
        clock.advance(60)
        assert await r.resolve("MSFT") is not None

    @pytest.mark.asyncio
    async def test_malformed_payload_fails_over(self, clock, make_provider, monkeypatch):
        yahoo = YahooProvider()

        async def null_chart_entry(symbol, url, params=None, headers=None):
            return {"chart": {"result": [None]}}

        monkeypatch.setattr(yahoo, "_get_json", null_chart_entry)
        backup = make_provider("backup", prices={"AAPL": 190.0})
        r = make_resolver([yahoo, backup], clock)

        q = await r.resolve("AAPL")
        assert q.source == "backup"
        assert backup.calls == ["AAPL"]
        rec = r.health.get("yahoo")
        assert rec.consecutive_failures == 1
        assert "unexpected payload" in rec.last_error

    @pytest.mark.asyncio
    async def test_unexpected_adapter_error_fails_over(self, clock, make_provider):
        class BrokenProvider(make_provider):
            async def fetch_quote(self, symbol):
                raise KeyError("regularMarketPrice")

        backup = make_provider("backup")
        r = make_resolver([BrokenProvider("broken"), backup], clock)

        assert (await r.resolve("AAPL")).source == "backup"
        assert r.health.get("broken").consecutive_failures == 1
        assert r.health.ordered_providers() == ["backup", "broken"]

    @pytest.mark.asyncio
    async def test_unhealthy_provider_tried_last(self, clock, make_provider):
        a = make_provider("a", prices={"MSFT": 410.0})
        b = make_provider("b")
        r = make_resolver([a, b], clock)
        await r.resolve("AAPL")        # a fails, b succeeds
        a.calls.clear()

        q = await r.resolve("NVDA")
        assert q.source == "b"
        assert a.calls == []


# ── Batch ────────────────────────────────────────────────────────────────


class TestResolveBatch:

    @pytest.mark.asyncio
    async def test_partial_results(self, clock, make_provider):
        a = make_provider("a", prices={"AAPL": 190.0, "MSFT": 410.0, "NVDA": 120.0})
        b = make_provider("b", failing=True)
        r = make_resolver([a, b], clock)

        got = await r.resolve_batch(["AAPL", "MSFT", "ZZZZ1", "NVDA", "ZZZZ2"])
        assert set(got) == {"AAPL", "MSFT", "NVDA"}

    @pytest.mark.asyncio
    async def test_dedupes_and_normalises(self, clock, make_provider):
        a = make_provider("a")
        r = make_resolver([a], clock)
        got = await r.resolve_batch(["aapl", "AAPL", " aapl ", ""])
        assert list(got) == ["AAPL"]
        assert a.calls == ["AAPL"]

    @pytest.mark.asyncio
    async def test_mixes_cached_and_live(self, clock, make_provider):
        a = make_provider("a")
        r = make_resolver([a], clock)
        await r.resolve("AAPL")
        got = await r.resolve_batch(["AAPL", "MSFT"])
        assert got["AAPL"].source == MEMORY_CACHE_SOURCE
        assert got["MSFT"].source == "a"

    @pytest.mark.asyncio
    async def test_concurrency_is_bounded(self, clock, make_provider):
        a = make_provider("a", delay=0.01)
        r = make_resolver([a], clock, batch_concurrency=3)
        symbols = [f"S{i}" for i in range(10)]

        got = await r.resolve_batch(symbols)
        assert len(got) == 10
        assert a.max_in_flight == 3

    @pytest.mark.asyncio
    async def test_refresh_bypasses_cache(self, clock, make_provider):
        a = make_provider("a")
        r = make_resolver([a], clock)
        await r.resolve_batch(["AAPL", "MSFT"])
        got = await r.resolve_batch(["AAPL", "MSFT"], use_cache=False)
        assert {q.source for q in got.values()} == {"a"}
        assert len(a.calls) == 4

    @pytest.mark.asyncio
    async def test_empty_input(self, clock, make_provider):
        r = make_resolver([make_provider("a")], clock)
        assert await r.resolve_batch([]) == {}
