"""Market session state — a pure function of wall-clock time and the exchange calendar."""
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from src.core.markets.registry import MarketConfig


class SessionState(str, Enum):
    OPEN = "OPEN"
    PREMARKET = "PREMARKET"
    AFTERHOURS = "AFTERHOURS"
    CLOSED = "CLOSED"


def session_state(market: MarketConfig, now: datetime | None = None) -> SessionState:
    """
    Session state of `market` at `now` (defaults to the current time).

    Naive datetimes are taken as UTC. Boundaries are half-open:
    premarket_start <= PREMARKET < session_open <= OPEN < session_close
    <= AFTERHOURS < afterhours_end.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    local = now.astimezone(market.timezone)
    if local.weekday() >= 5 or market.is_holiday(local.date()):
        return SessionState.CLOSED

    t = local.time()
    if market.session_open <= t < market.session_close:
        return SessionState.OPEN
    if market.premarket_start <= t < market.session_open:
        return SessionState.PREMARKET
    if market.session_close <= t < market.afterhours_end:
        return SessionState.AFTERHOURS
    return SessionState.CLOSED
