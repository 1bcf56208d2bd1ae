"""Shared fakes for the market data tests."""
import asyncio

import pytest

from src.core.data.providers.base import QuoteProvider
from src.core.quotes.errors import ProviderError
from src.core.quotes.models import Quote


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class MockQuoteProvider(QuoteProvider):
    """
    prices=None  -> every symbol prices at 100.0
    prices={...} -> only listed symbols succeed
    failing=True -> every call raises ProviderError
    """

    def __init__(self, provider_name: str, prices: dict[str, float] | None = None,
                 failing: bool = False, delay: float = 0.0):
        super().__init__()
        self._name = provider_name
        self.prices = prices
        self.failing = failing
        self.delay = delay
        self.calls: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    @property
    def name(self) -> str:
        return self._name

    async def fetch_quote(self, symbol: str) -> Quote:
        self.calls.append(symbol)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if self.failing:
                raise ProviderError(self._name, symbol, "HTTP 503")
            if self.prices is None:
                price = 100.0
            elif symbol in self.prices:
                price = self.prices[symbol]
            else:
                raise ProviderError(self._name, symbol, "no chart result in response")
            return Quote(symbol=symbol, price=price, source=self._name)
        finally:
            self.in_flight -= 1


class FakeRedisClient:
    """Just enough of redis.asyncio.Redis for RedisSharedCache."""

    def __init__(self, broken: bool = False):
        self.store: dict[str, bytes] = {}
        self.expirations: dict[str, int] = {}
        self.broken = broken
        self.closed = False

    def _check(self):
        if self.broken:
            raise ConnectionError("Connection refused")

    async def get(self, key: str):
        self._check()
        return self.store.get(key)

    async def setex(self, key: str, ttl: int, value: bytes) -> None:
        self._check()
        self.store[key] = value
        self.expirations[key] = ttl

    async def ping(self) -> bool:
        self._check()
        return True

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_provider():
    return MockQuoteProvider


@pytest.fixture
def fake_redis() -> FakeRedisClient:
    return FakeRedisClient()
