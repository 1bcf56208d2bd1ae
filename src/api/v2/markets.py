"""Markets endpoint."""
from fastapi import APIRouter

from src.core.config import settings
from src.core.markets.registry import get_market, list_markets
from src.core.markets.session import session_state

router = APIRouter(tags=["Markets"])


@router.get("/markets")
async def get_markets():
    """List all supported markets."""
    return list_markets(default=settings.market)


@router.get("/markets/{code}/session")
async def get_session(code: str):
    """Current trading session of a market."""
    market = get_market(code)  # raises ValueError if invalid
    return {"market": market.code.value, "state": session_state(market).value}
