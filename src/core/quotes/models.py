"""Canonical quote shape shared by providers, caches and callers."""
from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, field_validator

MEMORY_CACHE_SOURCE = "memory-cache"
SHARED_CACHE_SOURCE = "shared-cache"


def normalize_symbol(symbol: str) -> str:
    return symbol.strip().upper()


class Quote(BaseModel):
    """
    One price snapshot for one symbol from one source.

    `price` must be strictly positive; a zero or negative price cannot be
    constructed, so it can never be cached or returned.
    """

    model_config = ConfigDict(frozen=True)

    symbol: str
    price: float = Field(gt=0)
    change: float = 0.0
    change_percent: float = 0.0
    previous_close: float | None = None
    open: float | None = None
    high: float | None = None
    low: float | None = None
    volume: int | None = None
    source: str
    fetched_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("symbol")
    @classmethod
    def _normalize(cls, v: str) -> str:
        v = normalize_symbol(v)
        if not v:
            raise ValueError("symbol must be non-empty")
        return v

    def age_seconds(self, now: datetime | None = None) -> float:
        now = now or datetime.now(timezone.utc)
        return (now - self.fetched_at).total_seconds()

    def served_from(self, source: str) -> Quote:
        return self.model_copy(update={"source": source})
