"""Alpha Vantage provider — tertiary quote source (free tier: 5 req/min)."""
from src.core.data.providers.base import DEFAULT_TIMEOUT_SECONDS, QuoteProvider, as_float, as_int
from src.core.quotes.models import Quote

ALPHAVANTAGE_QUERY = "https://www.alphavantage.co/query"


class AlphaVantageProvider(QuoteProvider):

    def __init__(self, api_key: str, timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS):
        super().__init__(timeout_seconds)
        self._api_key = api_key

    @property
    def name(self) -> str:
        return "alphavantage"

    async def fetch_quote(self, symbol: str) -> Quote:
        if not self._api_key:
            raise self._fail(symbol, "API key not configured")

        data = await self._get_json(
            symbol,
            ALPHAVANTAGE_QUERY,
            params={"function": "GLOBAL_QUOTE", "symbol": symbol, "apikey": self._api_key},
        )
        if not isinstance(data, dict):
            raise self._fail(symbol, "unexpected payload")
        quote = data.get("Global Quote")
        if quote is not None and not isinstance(quote, dict):
            raise self._fail(symbol, "unexpected payload")
        if not quote or not quote.get("05. price"):
            # Throttled responses come back 200 with a "Note" or "Information" field
            raise self._fail(symbol, data.get("Note") or data.get("Information") or "empty Global Quote")

        price = self._require_price(symbol, quote.get("05. price"))
        pct = str(quote.get("10. change percent") or "0").rstrip("%")
        return Quote(
            symbol=symbol,
            price=price,
            change=as_float(quote.get("09. change"), 0.0),
            change_percent=as_float(pct, 0.0),
            open=as_float(quote.get("02. open")),
            high=as_float(quote.get("03. high")),
            low=as_float(quote.get("04. low")),
            volume=as_int(quote.get("06. volume")),
            previous_close=as_float(quote.get("08. previous close"), price),
            source=self.name,
        )
