"""Two-tier quote cache: in-process memory tier in front of an optional shared tier."""
import msgpack
import structlog
from pydantic import ValidationError

from src.core.data.cache.memory_cache import MemoryQuoteCache
from src.core.data.cache.shared_cache import NullSharedCache, SharedCacheBackend
from src.core.quotes.errors import SharedCacheUnavailable
from src.core.quotes.models import MEMORY_CACHE_SOURCE, SHARED_CACHE_SOURCE, Quote, normalize_symbol

logger = structlog.get_logger()


class QuoteCache:
    """
    Reads check memory, then the shared tier (backfilling memory on a hit).
    Writes always land in memory; shared-tier writes are best effort.
    Without a shared backend the cache behaves identically, just unshared.
    """

    KEY_PREFIX = "price"

    def __init__(
        self,
        memory: MemoryQuoteCache,
        shared: SharedCacheBackend | None = None,
        shared_ttl_seconds: int = 60,
    ):
        self.memory = memory
        self.shared = shared or NullSharedCache()
        self.shared_ttl = shared_ttl_seconds

    @property
    def shared_enabled(self) -> bool:
        return self.shared.enabled

    def _key(self, symbol: str) -> str:
        return f"{self.KEY_PREFIX}:{symbol}"

    async def verify_shared(self) -> bool:
        """Ping the shared tier once; fall back to memory-only if it is unreachable."""
        if not self.shared.enabled:
            return False
        try:
            await self.shared.ping()
        except SharedCacheUnavailable as e:
            logger.warning("cache.shared_disabled", error=str(e))
            await self.disable_shared()
            return False
        logger.info("cache.shared_enabled")
        return True

    async def disable_shared(self) -> None:
        old, self.shared = self.shared, NullSharedCache()
        try:
            await old.close()
        except Exception as e:
            logger.debug("cache.shared_close_failed", error=str(e))

    async def get(self, symbol: str) -> Quote | None:
        symbol = normalize_symbol(symbol)
        quote = self.memory.get(symbol)
        if quote is not None:
            return quote.served_from(MEMORY_CACHE_SOURCE)

        try:
            raw = await self.shared.get(self._key(symbol))
        except SharedCacheUnavailable as e:
            logger.warning("cache.shared_read_failed", symbol=symbol, error=str(e))
            return None
        if not raw:
            return None

        try:
            quote = Quote.model_validate(msgpack.unpackb(raw, raw=False))
        except (ValueError, ValidationError, msgpack.UnpackException) as e:
            logger.warning("cache.shared_decode_failed", symbol=symbol, error=str(e))
            return None

        self.memory.put(symbol, quote)
        return quote.served_from(SHARED_CACHE_SOURCE)

    async def get_many(self, symbols: list[str]) -> dict[str, Quote]:
        out: dict[str, Quote] = {}
        for symbol in symbols:
            quote = await self.get(symbol)
            if quote is not None:
                out[quote.symbol] = quote
        return out

    async def put(self, symbol: str, quote: Quote) -> None:
        if quote.price <= 0:
            # only positive prices are ever cached
            logger.error("cache.rejected_price", symbol=symbol, price=quote.price)
            return
        symbol = normalize_symbol(symbol)
        self.memory.put(symbol, quote)

        if not self.shared.enabled:
            return
        payload = msgpack.packb(quote.model_dump(mode="json"), use_bin_type=True)
        try:
            await self.shared.set_with_ttl(self._key(symbol), payload, self.shared_ttl)
        except SharedCacheUnavailable as e:
            logger.warning("cache.shared_write_failed", symbol=symbol, error=str(e))

    def clear(self) -> None:
        self.memory.clear()

    def sizes(self) -> dict:
        return {
            "memory_entries": len(self.memory),
            "memory_max_entries": self.memory.max_entries,
            "memory_ttl_seconds": self.memory.ttl,
            "shared_enabled": self.shared.enabled,
            "shared_ttl_seconds": self.shared_ttl,
        }

    async def close(self) -> None:
        await self.shared.close()
