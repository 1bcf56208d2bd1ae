"""
Market Registry — single source of truth for exchange sessions and holidays.
Adding a new market = add one MarketConfig entry here. Zero other changes.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from datetime import date, time
from enum import Enum
from zoneinfo import ZoneInfo


class MarketCode(str, Enum):
    US = "US"   # NYSE / NASDAQ
    IN = "IN"   # NSE / BSE


@dataclass(frozen=True)
class MarketConfig:
    code:               MarketCode
    name:               str
    exchange:           str
    currency:           str              # ISO 4217: "USD", "INR"
    timezone:           ZoneInfo
    premarket_start:    time             # local time
    session_open:       time
    session_close:      time
    afterhours_end:     time
    holidays:           frozenset[date] = field(default_factory=frozenset)

    def is_holiday(self, day: date) -> bool:
        return day in self.holidays


def _dates(*iso: str) -> frozenset[date]:
    return frozenset(date.fromisoformat(d) for d in iso)


US_HOLIDAYS = _dates(
    # 2024
    "2024-01-01", "2024-01-15", "2024-02-19", "2024-03-29", "2024-05-27",
    "2024-06-19", "2024-07-04", "2024-09-02", "2024-11-28", "2024-12-25",
    # 2025
    "2025-01-01", "2025-01-20", "2025-02-17", "2025-04-18", "2025-05-26",
    "2025-06-19", "2025-07-04", "2025-09-01", "2025-11-27", "2025-12-25",
    # 2026
    "2026-01-01", "2026-01-19", "2026-02-16", "2026-04-03", "2026-05-25",
    "2026-06-19", "2026-07-03", "2026-09-07", "2026-11-26", "2026-12-25",
    # 2027
    "2027-01-01", "2027-01-18", "2027-02-15", "2027-03-26", "2027-05-31",
    "2027-06-18", "2027-07-05", "2027-09-06", "2027-11-25", "2027-12-24",
)

IN_HOLIDAYS = _dates(
    "2025-02-26", "2025-03-14", "2025-03-31", "2025-04-18", "2025-05-01",
    "2025-08-15", "2025-08-27", "2025-10-02", "2025-10-21", "2025-12-25",
    "2026-01-26", "2026-03-03", "2026-04-03", "2026-05-01", "2026-10-02",
    "2026-11-10", "2026-12-25",
)


MARKET_REGISTRY: dict[MarketCode, MarketConfig] = {

    MarketCode.US: MarketConfig(
        code=MarketCode.US,
        name="United States",
        exchange="NYSE/NASDAQ",
        currency="USD",
        timezone=ZoneInfo("America/New_York"),
        premarket_start=time(4, 0),
        session_open=time(9, 30),
        session_close=time(16, 0),
        afterhours_end=time(20, 0),
        holidays=US_HOLIDAYS,
    ),

    MarketCode.IN: MarketConfig(
        code=MarketCode.IN,
        name="India",
        exchange="NSE/BSE",
        currency="INR",
        timezone=ZoneInfo("Asia/Kolkata"),
        premarket_start=time(9, 0),     # pre-open call auction
        session_open=time(9, 15),
        session_close=time(15, 30),
        afterhours_end=time(16, 0),     # post-close session
        holidays=IN_HOLIDAYS,
    ),
}


def get_market(code: str) -> MarketConfig:
    try:
        return MARKET_REGISTRY[MarketCode(code.upper())]
    except (ValueError, KeyError):
        valid = [m.value for m in MARKET_REGISTRY]
        raise ValueError(f"Unknown market '{code}'. Valid: {valid}")


def list_markets(default: str = "US") -> list[dict]:
    """Serialisable list for /api/v2/markets endpoint."""
    return [
        {
            "code":            m.code.value,
            "name":            m.name,
            "exchange":        m.exchange,
            "currency":        m.currency,
            "timezone":        m.timezone.key,
            "session_open":    m.session_open.strftime("%H:%M"),
            "session_close":   m.session_close.strftime("%H:%M"),
            "is_default":      m.code.value == default.upper(),
        }
        for m in MARKET_REGISTRY.values()
    ]
