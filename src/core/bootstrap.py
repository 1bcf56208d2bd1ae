"""Composition root — builds the market data service from Settings."""
from typing import Callable

import structlog

from src.core.config import Settings
from src.core.data.cache.memory_cache import MemoryQuoteCache
from src.core.data.cache.quote_cache import QuoteCache
from src.core.data.cache.shared_cache import NullSharedCache, RedisSharedCache, SharedCacheBackend
from src.core.data.providers.alphavantage import AlphaVantageProvider
from src.core.data.providers.base import QuoteProvider
from src.core.data.providers.finnhub import FinnhubProvider
from src.core.data.providers.health import ProviderHealthTracker
from src.core.data.providers.polygon import PolygonProvider
from src.core.data.providers.rate_limit import RateLimiter
from src.core.data.providers.router import PriceResolver
from src.core.data.providers.yahoo import YahooProvider
from src.core.data.universe.manager import UniverseManager
from src.core.data.universe.stores import (
    EmptySymbolStore,
    PortfolioStore,
    RecommendationStore,
    SqlPortfolioStore,
    SqlRecommendationStore,
    make_engine,
)
from src.core.data.universe.symbols import priority_symbols
from src.core.markets.registry import get_market
from src.core.markets.session import SessionState
from src.core.scheduler.fetch_loop import FetchScheduler
from src.core.service import MarketDataCacheService

logger = structlog.get_logger()

# name -> factory(settings); None when the provider cannot be used as configured
PROVIDER_FACTORIES: dict[str, Callable[[Settings], QuoteProvider | None]] = {
    "yahoo": lambda s: YahooProvider(s.provider_timeout_seconds),
    "finnhub": lambda s: FinnhubProvider(s.finnhub_api_key, s.provider_timeout_seconds)
    if s.finnhub_api_key else None,
    "alphavantage": lambda s: AlphaVantageProvider(s.alphavantage_api_key, s.provider_timeout_seconds)
    if s.alphavantage_api_key else None,
    "polygon": lambda s: PolygonProvider(s.polygon_api_key, s.provider_timeout_seconds)
    if s.polygon_api_key else None,
}


def build_providers(settings: Settings) -> list[QuoteProvider]:
    providers = []
    for name in settings.provider_order:
        factory = PROVIDER_FACTORIES.get(name)
        if factory is None:
            raise ValueError(f"Unknown provider {name!r}. Valid: {sorted(PROVIDER_FACTORIES)}")
        provider = factory(settings)
        if provider is None:
            logger.info("provider.skipped", provider=name, reason="no API key")
            continue
        providers.append(provider)
    if not providers:
        raise ValueError("No usable quote providers configured")
    return providers


def build_service(
    settings: Settings,
    providers: list[QuoteProvider] | None = None,
    shared: SharedCacheBackend | None = None,
    portfolios: PortfolioStore | None = None,
    recommendations: RecommendationStore | None = None,
) -> MarketDataCacheService:
    """Wire the whole subsystem. Explicit arguments override what settings would build."""
    market = get_market(settings.market)
    providers = providers if providers is not None else build_providers(settings)
    names = [p.name for p in providers]

    if shared is None:
        shared = RedisSharedCache(settings.redis_url) if settings.redis_url else NullSharedCache()
    cache = QuoteCache(
        MemoryQuoteCache(settings.memory_ttl_seconds, settings.max_memory_entries),
        shared,
        settings.shared_ttl_seconds,
    )

    resolver = PriceResolver(
        providers,
        cache,
        ProviderHealthTracker(names, settings.health_cooldown_seconds),
        RateLimiter({n: b for n, b in settings.provider_rate_limits.items() if n in names}),
        batch_concurrency=settings.batch_concurrency,
        batch_pause_seconds=settings.batch_pause_seconds,
    )

    engine = None
    if portfolios is None or recommendations is None:
        if settings.database_url:
            engine = make_engine(settings.database_url)
            portfolios = portfolios or SqlPortfolioStore(engine)
            recommendations = recommendations or SqlRecommendationStore(engine)
        else:
            portfolios = portfolios or EmptySymbolStore()
            recommendations = recommendations or EmptySymbolStore()

    universe = UniverseManager(
        priority_symbols(market.code.value, settings.priority_symbols),
        portfolios,
        recommendations,
        lookback_days=settings.recommendation_lookback_days,
    )

    scheduler = FetchScheduler(
        resolver,
        universe,
        market,
        intervals={
            SessionState.OPEN: settings.fetch_interval_open_seconds,
            SessionState.PREMARKET: settings.fetch_interval_extended_seconds,
            SessionState.AFTERHOURS: settings.fetch_interval_extended_seconds,
            SessionState.CLOSED: settings.fetch_interval_closed_seconds,
        },
        max_symbols=settings.max_symbols_per_fetch,
        refresh_every=settings.universe_refresh_every,
    )

    return MarketDataCacheService(cache, resolver, universe, scheduler, engine=engine)
