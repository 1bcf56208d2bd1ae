"""Quote endpoints — cache-first, live fetch on miss."""
from fastapi import APIRouter, Depends, Query, Request

from src.api.v2.errors import no_data_response
from src.api.v2.models import QuotesResponse, SymbolsRequest
from src.core.quotes.models import Quote, normalize_symbol
from src.core.service import MarketDataCacheService

router = APIRouter(tags=["Quotes"])

MAX_SYMBOLS_PER_REQUEST = 200


def get_service(request: Request) -> MarketDataCacheService:
    return request.app.state.market_data


def _parse_symbols(raw: str) -> list[str]:
    symbols = list(dict.fromkeys(s for s in (normalize_symbol(p) for p in raw.split(",")) if s))
    if not symbols:
        raise ValueError("symbols must name at least one ticker")
    if len(symbols) > MAX_SYMBOLS_PER_REQUEST:
        raise ValueError(f"Too many symbols: {len(symbols)} > {MAX_SYMBOLS_PER_REQUEST}")
    return symbols


def _response(symbols: list[str], quotes: dict[str, Quote]) -> QuotesResponse:
    return QuotesResponse(quotes=quotes, missing=[s for s in symbols if s not in quotes])


@router.get("/quotes", response_model=QuotesResponse)
async def get_quotes(
    symbols: str = Query(..., description="Comma-separated tickers, e.g. AAPL,MSFT"),
    service: MarketDataCacheService = Depends(get_service),
):
    """Quotes for several symbols; unpriceable symbols are listed under `missing`."""
    wanted = _parse_symbols(symbols)
    return _response(wanted, await service.get_prices(wanted))


@router.get("/quotes/{symbol}", response_model=Quote)
async def get_quote(symbol: str, service: MarketDataCacheService = Depends(get_service)):
    quote = await service.get_price(symbol)
    if quote is None:
        return no_data_response(normalize_symbol(symbol))
    return quote


@router.post("/quotes/refresh", response_model=QuotesResponse)
async def refresh_quotes(body: SymbolsRequest, service: MarketDataCacheService = Depends(get_service)):
    """Force a live fetch, bypassing both cache tiers."""
    wanted = _parse_symbols(",".join(body.symbols))
    return _response(wanted, await service.refresh_prices(wanted))
