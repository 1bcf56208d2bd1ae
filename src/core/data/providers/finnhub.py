"""Finnhub provider — secondary quote source (free tier: 60 req/min)."""
from src.core.data.providers.base import DEFAULT_TIMEOUT_SECONDS, QuoteProvider, as_float
from src.core.quotes.models import Quote

FINNHUB_BASE = "https://finnhub.io/api/v1"


class FinnhubProvider(QuoteProvider):

    def __init__(self, api_key: str, timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS):
        super().__init__(timeout_seconds)
        self._api_key = api_key

    @property
    def name(self) -> str:
        return "finnhub"

    async def fetch_quote(self, symbol: str) -> Quote:
        if not self._api_key:
            raise self._fail(symbol, "API key not configured")

        data = await self._get_json(
            symbol,
            f"{FINNHUB_BASE}/quote",
            params={"symbol": symbol, "token": self._api_key},
        )
        if not isinstance(data, dict):
            raise self._fail(symbol, "unexpected payload")

        # c=current, d=change, dp=change %, h/l/o=day range, pc=previous close
        price = self._require_price(symbol, data.get("c"))
        return Quote(
            symbol=symbol,
            price=price,
            change=round(as_float(data.get("d"), 0.0), 2),
            change_percent=round(as_float(data.get("dp"), 0.0), 2),
            high=as_float(data.get("h")),
            low=as_float(data.get("l")),
            open=as_float(data.get("o")),
            previous_close=as_float(data.get("pc")),
            source=self.name,
        )
