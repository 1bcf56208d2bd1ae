"""Pydantic request/response models."""
from __future__ import annotations

from pydantic import BaseModel, Field

from src.core.quotes.models import Quote


class SymbolsRequest(BaseModel):
    symbols: list[str] = Field(min_length=1, max_length=200)


class QuotesResponse(BaseModel):
    quotes: dict[str, Quote]
    missing: list[str] = Field(default_factory=list)


class WatchResponse(BaseModel):
    watched_symbols: int
