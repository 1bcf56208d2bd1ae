"""Polygon.io provider — last resort, previous-day aggregate (delayed)."""
from src.core.data.providers.base import DEFAULT_TIMEOUT_SECONDS, QuoteProvider, as_float, as_int
from src.core.quotes.models import Quote

POLYGON_BASE = "https://api.polygon.io/v2"


class PolygonProvider(QuoteProvider):

    def __init__(self, api_key: str, timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS):
        super().__init__(timeout_seconds)
        self._api_key = api_key

    @property
    def name(self) -> str:
        return "polygon"

    async def fetch_quote(self, symbol: str) -> Quote:
        if not self._api_key:
            raise self._fail(symbol, "API key not configured")

        data = await self._get_json(
            symbol,
            f"{POLYGON_BASE}/aggs/ticker/{symbol}/prev",
            params={"adjusted": "true", "apiKey": self._api_key},
        )
        if not isinstance(data, dict):
            raise self._fail(symbol, "unexpected payload")
        results = data.get("results")
        if not results:
            raise self._fail(symbol, "no aggregate in response")
        if not isinstance(results, list) or not isinstance(results[0], dict):
            raise self._fail(symbol, "unexpected payload")
        bar = results[0]

        price = self._require_price(symbol, bar.get("c"))
        return Quote(
            symbol=symbol,
            price=price,
            open=as_float(bar.get("o")),
            high=as_float(bar.get("h")),
            low=as_float(bar.get("l")),
            volume=as_int(bar.get("v")),
            previous_close=price,
            source=self.name,
        )
