"""FastAPI application — market data cache service v2."""
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.api.v2 import market_data, markets, quotes
from src.api.v2.errors import value_error_handler
from src.core.bootstrap import build_service
from src.core.config import settings
from src.core.logging import configure_logging

logger = structlog.get_logger()

VERSION = "2.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.log_level)
    service = build_service(settings)
    await service.initialize()
    if settings.autostart:
        service.start()
    app.state.market_data = service
    logger.info("startup", version=VERSION, market=settings.market)
    try:
        yield
    finally:
        await service.shutdown()
        logger.info("shutdown")


app = FastAPI(
    title="Market Data Cache API",
    version=VERSION,
    description="Cached real-time stock quotes with multi-provider failover",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(markets.router, prefix="/api/v2")
app.include_router(quotes.router, prefix="/api/v2")
app.include_router(market_data.router, prefix="/api/v2")

app.add_exception_handler(ValueError, value_error_handler)


@app.get("/health")
async def health():
    return {"status": "ok", "version": VERSION}
