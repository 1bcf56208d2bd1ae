"""PriceResolver — cache-first quote lookup that fails over between providers."""
import asyncio

import structlog

from src.core.data.cache.quote_cache import QuoteCache
from src.core.data.providers.base import QuoteProvider
from src.core.data.providers.health import ProviderHealthTracker
from src.core.data.providers.rate_limit import RateLimiter
from src.core.quotes.errors import AllProvidersExhausted, ProviderError
from src.core.quotes.models import Quote, normalize_symbol

logger = structlog.get_logger()


class PriceResolver:

    def __init__(
        self,
        providers: list[QuoteProvider],
        cache: QuoteCache,
        health: ProviderHealthTracker,
        limiter: RateLimiter,
        batch_concurrency: int = 5,
        batch_pause_seconds: float = 0.2,
    ):
        self._providers: dict[str, QuoteProvider] = {p.name: p for p in providers}
        self.cache = cache
        self.health = health
        self.limiter = limiter
        self.batch_concurrency = batch_concurrency
        self.batch_pause_seconds = batch_pause_seconds

    @property
    def provider_names(self) -> list[str]:
        return list(self._providers)

    async def resolve(self, symbol: str, use_cache: bool = True) -> Quote | None:
        """
        Returns a quote for `symbol`, or None when every provider failed or
        was rate-limited. Provider errors never escape.
        """
        symbol = normalize_symbol(symbol)
        if use_cache:
            cached = await self.cache.get(symbol)
            if cached is not None:
                return cached
        return await self._fetch_live(symbol)

    async def _fetch_live(self, symbol: str) -> Quote | None:
        attempted, skipped = [], []
        for pname in self.health.ordered_providers():
            provider = self._providers.get(pname)
            if provider is None:
                continue
            if not self.limiter.check_and_reserve(pname):
                logger.debug("provider.rate_limited", provider=pname, symbol=symbol)
                skipped.append(pname)
                continue

            attempted.append(pname)
            try:
                quote = await provider.fetch_quote(symbol)
            except ProviderError as e:
                self.health.record_failure(pname, e)
                logger.warning("provider.failed", provider=pname, symbol=symbol, error=e.cause)
                continue
            except Exception as e:
                # adapter bug or an upstream shape it does not handle
                self.health.record_failure(pname, repr(e))
                logger.error("provider.unexpected_error", provider=pname, symbol=symbol,
                             error=repr(e), exc_info=True)
                continue

            self.health.record_success(pname)
            await self.cache.put(symbol, quote)
            logger.info("provider.ok", provider=pname, symbol=symbol, price=quote.price)
            return quote

        logger.warning("resolve.exhausted", error=str(AllProvidersExhausted(symbol, attempted, skipped)))
        return None

    async def resolve_batch(self, symbols: list[str], use_cache: bool = True) -> dict[str, Quote]:
        """
        Resolve many symbols. Cached ones are served directly; the rest are
        fetched `batch_concurrency` at a time with a short pause between
        chunks. Symbols that cannot be priced are absent from the result.
        """
        results: dict[str, Quote] = {}
        uncached: list[str] = []
        for symbol in dict.fromkeys(normalize_symbol(s) for s in symbols if s and s.strip()):
            cached = await self.cache.get(symbol) if use_cache else None
            if cached is not None:
                results[symbol] = cached
            else:
                uncached.append(symbol)

        step = self.batch_concurrency
        for i in range(0, len(uncached), step):
            chunk = uncached[i:i + step]
            outcomes = await asyncio.gather(
                *(self._fetch_live(s) for s in chunk), return_exceptions=True
            )
            for symbol, outcome in zip(chunk, outcomes):
                if isinstance(outcome, Quote):
                    results[symbol] = outcome
                elif isinstance(outcome, Exception):
                    logger.error("resolve.unexpected_error", symbol=symbol, error=repr(outcome))

            if i + step < len(uncached) and self.batch_pause_seconds > 0:
                await asyncio.sleep(self.batch_pause_seconds)

        return results
