"""MarketDataCacheService — the market data subsystem's public face."""
from __future__ import annotations

from datetime import datetime

import structlog
from sqlalchemy.ext.asyncio import AsyncEngine

from src.core.data.cache.quote_cache import QuoteCache
from src.core.data.providers.router import PriceResolver
from src.core.data.universe.manager import UniverseManager
from src.core.quotes.errors import SharedCacheUnavailable
from src.core.quotes.models import Quote
from src.core.scheduler.fetch_loop import FetchScheduler

logger = structlog.get_logger()


class MarketDataCacheService:
    """
    Owns the cache, resolver, universe and background scheduler.

    get_price/get_prices go straight to cache -> resolver and never wait on
    the background loop. Build one per process with build_service() and
    pass it to whatever needs it.
    """

    def __init__(
        self,
        cache: QuoteCache,
        resolver: PriceResolver,
        universe: UniverseManager,
        scheduler: FetchScheduler,
        engine: AsyncEngine | None = None,
    ):
        self.cache = cache
        self.resolver = resolver
        self.universe = universe
        self.scheduler = scheduler
        self.engine = engine
        self._initialized = False

    async def initialize(self) -> None:
        await self.cache.verify_shared()
        await self.universe.refresh()
        self._initialized = True
        logger.info(
            "market_data.initialized",
            watched=self.universe.size,
            shared_cache=self.cache.shared_enabled,
            providers=self.resolver.provider_names,
        )

    def start(self) -> None:
        self.scheduler.start()

    async def stop(self) -> None:
        await self.scheduler.stop()

    async def shutdown(self) -> None:
        await self.stop()
        self.cache.clear()
        await self.cache.close()
        if self.engine is not None:
            # only set when build_service created the pool from database_url
            await self.engine.dispose()
        logger.info("market_data.shutdown")

    # ── read path ────────────────────────────────────────────────────────

    async def get_price(self, symbol: str) -> Quote | None:
        return await self.resolver.resolve(symbol)

    async def get_prices(self, symbols: list[str]) -> dict[str, Quote]:
        return await self.resolver.resolve_batch(symbols)

    async def refresh_prices(self, symbols: list[str]) -> dict[str, Quote]:
        """Bypass the cache and fetch live, repopulating both tiers."""
        return await self.resolver.resolve_batch(symbols, use_cache=False)

    # ── watch list ───────────────────────────────────────────────────────

    def watch(self, symbols: list[str]) -> int:
        self.universe.add_symbols(symbols)
        return self.universe.size

    def unwatch(self, symbols: list[str]) -> int:
        self.universe.remove_symbols(symbols)
        return self.universe.size

    # ── status ───────────────────────────────────────────────────────────

    def current_interval(self) -> float:
        return self.scheduler.current_interval()

    def get_status(self) -> dict:
        health = self.resolver.health.snapshot()
        limits = self.resolver.limiter.snapshot()
        providers = {
            name: {**health.get(name, {}), "rate_limit": limits.get(name)}
            for name in self.resolver.provider_names
        }
        next_tick = self.scheduler.next_tick_at
        return {
            "service": "market-data-cache",
            "is_running": self.scheduler.is_running,
            "market": self.scheduler.market.code.value,
            "market_state": self.scheduler.session_state().value,
            "watched_symbols": self.universe.size,
            "priority_symbols": len(self.universe.priority),
            "caching": self.cache.sizes(),
            "scheduling": {
                "current_interval_seconds": self.current_interval(),
                "next_fetch_at": next_tick.isoformat() if next_tick else None,
            },
            "stats": self.scheduler.stats.to_dict(),
            "providers": providers,
        }

    async def health_check(self) -> dict:
        stats = self.scheduler.stats
        last = stats.last_fetch_at
        ago = (datetime.now(last.tzinfo) - last).total_seconds() if last else None
        shared = "disabled"
        if self.cache.shared_enabled:
            try:
                await self.cache.shared.ping()
                shared = "ok"
            except SharedCacheUnavailable:
                shared = "unreachable"
        return {
            "status": "ok" if self._initialized else "starting",
            "is_running": self.scheduler.is_running,
            "market_state": self.scheduler.session_state().value,
            "watched_symbols": self.universe.size,
            "memory_cache_size": len(self.cache.memory),
            "shared_cache": shared,
            "last_fetch_seconds_ago": round(ago) if ago is not None else None,
        }
