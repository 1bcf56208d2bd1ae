"""In-process quote tier: TTL checked on read, oldest-inserted entry evicted at capacity."""
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable

from src.core.quotes.models import Quote


@dataclass(frozen=True)
class CacheEntry:
    quote: Quote
    cached_at: float
    ttl: float

    def is_fresh(self, now: float) -> bool:
        return now < self.cached_at + self.ttl


class MemoryQuoteCache:

    def __init__(
        self,
        ttl_seconds: float = 30,
        max_entries: int = 500,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()

    def get(self, symbol: str) -> Quote | None:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(symbol)
            if entry is None:
                return None
            if not entry.is_fresh(now):
                del self._entries[symbol]
                return None
            return entry.quote

    def put(self, symbol: str, quote: Quote) -> None:
        entry = CacheEntry(quote=quote, cached_at=self._clock(), ttl=self.ttl)
        with self._lock:
            if symbol in self._entries:
                # a rewrite counts as a fresh insertion
                del self._entries[symbol]
            elif len(self._entries) >= self.max_entries:
                self._entries.popitem(last=False)
            self._entries[symbol] = entry

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
