"""Abstract QuoteProvider — all real-time quote sources implement this."""
import asyncio
from abc import ABC, abstractmethod

import aiohttp
import structlog

from src.core.quotes.errors import ProviderError
from src.core.quotes.models import Quote

logger = structlog.get_logger()

DEFAULT_TIMEOUT_SECONDS = 10.0
USER_AGENT = "StockPortfolioDashboard/1.0"


class QuoteProvider(ABC):

    def __init__(self, timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS):
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique key: 'yahoo', 'finnhub', 'alphavantage', 'polygon'"""
        ...

    @abstractmethod
    async def fetch_quote(self, symbol: str) -> Quote:
        """
        Returns a Quote for an already-normalised symbol.
        Raises ProviderError on any upstream failure, including a missing
        or non-positive price.
        """
        ...

    async def fetch_quotes(self, symbols: list[str]) -> dict[str, Quote]:
        """Fan out fetch_quote; failed symbols are left out of the result."""
        results = await asyncio.gather(
            *(self.fetch_quote(s) for s in symbols), return_exceptions=True
        )
        quotes: dict[str, Quote] = {}
        for symbol, result in zip(symbols, results):
            if isinstance(result, Quote):
                quotes[symbol] = result
            elif isinstance(result, ProviderError):
                logger.debug("provider.batch_miss", provider=self.name, symbol=symbol, error=result.cause)
            else:
                raise result
        return quotes

    def _fail(self, symbol: str, cause: str) -> ProviderError:
        return ProviderError(self.name, symbol, cause)

    async def _get_json(
        self,
        symbol: str,
        url: str,
        params: dict | None = None,
        headers: dict[str, str] | None = None,
    ):
        """GET `url` and decode JSON, mapping every transport failure to ProviderError."""
        all_headers = {"User-Agent": USER_AGENT, "Accept": "application/json", **(headers or {})}
        try:
            async with aiohttp.ClientSession(timeout=self._timeout, headers=all_headers) as session:
                async with session.get(url, params=params) as resp:
                    if resp.status != 200:
                        raise self._fail(symbol, f"HTTP {resp.status}")
                    return await resp.json(content_type=None)
        except asyncio.TimeoutError:
            raise self._fail(symbol, "timed out")
        except aiohttp.ClientError as e:
            raise self._fail(symbol, f"request failed: {e}")
        except ValueError as e:
            raise self._fail(symbol, f"malformed JSON: {e}")

    def _require_price(self, symbol: str, value) -> float:
        try:
            price = float(value)
        except (TypeError, ValueError):
            raise self._fail(symbol, f"no usable price ({value!r})")
        if price <= 0:
            raise self._fail(symbol, f"non-positive price {price}")
        return round(price, 2)


def as_float(value, default: float | None = None) -> float | None:
    try:
        return float(value) if value is not None else default
    except (TypeError, ValueError):
        return default


def as_int(value) -> int | None:
    try:
        return int(float(value)) if value is not None else None
    except (TypeError, ValueError):
        return None
