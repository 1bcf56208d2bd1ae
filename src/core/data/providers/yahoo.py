"""Yahoo Finance provider — primary quote source, no API key required."""
from src.core.data.providers.base import QuoteProvider, as_float, as_int
from src.core.quotes.models import Quote

YAHOO_CHART_BASE = "https://query1.finance.yahoo.com/v8/finance/chart"


class YahooProvider(QuoteProvider):

    @property
    def name(self) -> str:
        return "yahoo"

    @staticmethod
    def _upstream_symbol(symbol: str) -> str:
        # Yahoo spells share classes with a hyphen: BRK.B -> BRK-B
        return symbol.replace(".", "-")

    async def fetch_quote(self, symbol: str) -> Quote:
        url = f"{YAHOO_CHART_BASE}/{self._upstream_symbol(symbol)}"
        data = await self._get_json(
            symbol,
            url,
            params={"interval": "1d", "range": "1d"},
            headers={"Origin": "https://finance.yahoo.com"},
        )

        chart = data.get("chart") if isinstance(data, dict) else None
        if not isinstance(chart, dict):
            raise self._fail(symbol, "unexpected payload")
        results = chart.get("result") or []
        if not results:
            raise self._fail(symbol, "no chart result in response")
        if not isinstance(results, list) or not isinstance(results[0], dict):
            raise self._fail(symbol, "unexpected payload")
        meta = results[0].get("meta") or {}
        if not isinstance(meta, dict):
            raise self._fail(symbol, "unexpected payload")

        price = self._require_price(symbol, meta.get("regularMarketPrice") or meta.get("previousClose"))
        previous_close = as_float(meta.get("chartPreviousClose") or meta.get("previousClose"))
        change = as_float(meta.get("regularMarketChange"))
        change_percent = as_float(meta.get("regularMarketChangePercent"))
        if change is None and previous_close:
            change = round(price - previous_close, 2)
            change_percent = round(change / previous_close * 100, 2)

        return Quote(
            symbol=symbol,
            price=price,
            change=change or 0.0,
            change_percent=change_percent or 0.0,
            previous_close=previous_close,
            open=as_float(meta.get("regularMarketOpen")),
            high=as_float(meta.get("regularMarketDayHigh")),
            low=as_float(meta.get("regularMarketDayLow")),
            volume=as_int(meta.get("regularMarketVolume")),
            source=self.name,
        )
