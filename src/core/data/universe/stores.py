"""Symbol sources for the watch universe — portfolios and recent recommendations."""
from typing import Protocol

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from src.core.quotes.errors import CollaboratorUnavailable


class PortfolioStore(Protocol):
    async def distinct_symbols(self) -> list[str]: ...


class RecommendationStore(Protocol):
    async def distinct_symbols_since(self, days: int) -> list[str]: ...


class EmptySymbolStore:
    """Stands in for both stores when no database is configured."""

    async def distinct_symbols(self) -> list[str]:
        return []

    async def distinct_symbols_since(self, days: int) -> list[str]:
        return []


PORTFOLIO_SYMBOLS_SQL = text("""
    SELECT DISTINCT unnest(symbols) AS symbol
    FROM portfolios
    WHERE symbols IS NOT NULL AND array_length(symbols, 1) > 0
""")

RECOMMENDATION_SYMBOLS_SQL = text("""
    SELECT DISTINCT symbol
    FROM recommendations
    WHERE created_at > NOW() - make_interval(days => :days)
    ORDER BY symbol
    LIMIT :limit
""")


async def _fetch_symbols(engine: AsyncEngine, stmt, source: str, **params) -> list[str]:
    try:
        async with engine.connect() as conn:
            result = await conn.execute(stmt, params)
            rows = result.scalars().all()
    except (SQLAlchemyError, OSError) as e:
        raise CollaboratorUnavailable(f"{source}: {e}") from e
    return [r for r in rows if r]


class SqlPortfolioStore:

    def __init__(self, engine: AsyncEngine):
        self.engine = engine

    async def distinct_symbols(self) -> list[str]:
        return await _fetch_symbols(self.engine, PORTFOLIO_SYMBOLS_SQL, "portfolios")


class SqlRecommendationStore:

    def __init__(self, engine: AsyncEngine, limit: int = 100):
        self.engine = engine
        self.limit = limit

    async def distinct_symbols_since(self, days: int) -> list[str]:
        return await _fetch_symbols(
            self.engine, RECOMMENDATION_SYMBOLS_SQL, "recommendations", days=days, limit=self.limit
        )


def make_engine(database_url: str) -> AsyncEngine:
    return create_async_engine(database_url, pool_size=2, max_overflow=0, pool_pre_ping=True)
