"""Service status and watch-list endpoints."""
from fastapi import APIRouter, Depends

from src.api.v2.models import SymbolsRequest, WatchResponse
from src.api.v2.quotes import get_service
from src.core.service import MarketDataCacheService

router = APIRouter(tags=["Market Data"])


@router.get("/market-data/status")
async def status(service: MarketDataCacheService = Depends(get_service)):
    """Session state, cache sizes, provider health and fetch statistics."""
    return service.get_status()


@router.get("/market-data/health")
async def health(service: MarketDataCacheService = Depends(get_service)):
    return await service.health_check()


@router.post("/market-data/watch", response_model=WatchResponse)
async def watch(body: SymbolsRequest, service: MarketDataCacheService = Depends(get_service)):
    return WatchResponse(watched_symbols=service.watch(body.symbols))


@router.delete("/market-data/watch", response_model=WatchResponse)
async def unwatch(body: SymbolsRequest, service: MarketDataCacheService = Depends(get_service)):
    """Stop pre-fetching symbols. Priority symbols are always kept."""
    return WatchResponse(watched_symbols=service.unwatch(body.symbols))
