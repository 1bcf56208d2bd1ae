"""Background fetch loop whose cadence follows the market session."""
from __future__ import annotations

import asyncio
import time
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable

import structlog

from src.core.data.providers.router import PriceResolver
from src.core.data.universe.manager import UniverseManager
from src.core.markets.registry import MarketConfig
from src.core.markets.session import SessionState, session_state

logger = structlog.get_logger()


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class FetchStats:
    total_fetches: int = 0
    successful_fetches: int = 0
    failed_fetches: int = 0
    symbols_fetched: int = 0
    last_fetch_duration_ms: float = 0.0
    average_fetch_duration_ms: float = 0.0
    last_fetch_at: datetime | None = None

    def record_success(self, duration_ms: float, symbols: int, at: datetime) -> None:
        self.total_fetches += 1
        self.successful_fetches += 1
        self.symbols_fetched += symbols
        self.last_fetch_duration_ms = round(duration_ms, 1)
        n = self.successful_fetches
        self.average_fetch_duration_ms = round(
            (self.average_fetch_duration_ms * (n - 1) + duration_ms) / n, 1
        )
        self.last_fetch_at = at

    def record_failure(self) -> None:
        self.total_fetches += 1
        self.failed_fetches += 1

    def to_dict(self) -> dict:
        d = asdict(self)
        d["last_fetch_at"] = self.last_fetch_at.isoformat() if self.last_fetch_at else None
        return d


class FetchScheduler:
    """
    Single self-rescheduling task: each iteration fetches, then sleeps for
    the interval of the current session state. A slow cycle delays the next
    one instead of overlapping it.
    """

    def __init__(
        self,
        resolver: PriceResolver,
        universe: UniverseManager,
        market: MarketConfig,
        intervals: dict[SessionState, float],
        max_symbols: int = 50,
        refresh_every: int = 10,
        now: Callable[[], datetime] = utc_now,
    ):
        missing = set(SessionState) - set(intervals)
        if missing:
            raise ValueError(f"No fetch interval for session states: {sorted(s.value for s in missing)}")
        self.resolver = resolver
        self.universe = universe
        self.market = market
        self.intervals = dict(intervals)
        self.max_symbols = max_symbols
        self.refresh_every = refresh_every
        self._now = now
        self.stats = FetchStats()
        self.next_tick_at: datetime | None = None
        self._ticks = 0
        self._task: asyncio.Task | None = None
        self._stop_event = asyncio.Event()

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def session_state(self) -> SessionState:
        return session_state(self.market, self._now())

    def current_interval(self) -> float:
        return self.intervals[self.session_state()]

    async def tick(self) -> None:
        """One fetch cycle. Never raises: failures are logged and counted."""
        self._ticks += 1
        started = time.perf_counter()
        try:
            if self._ticks % self.refresh_every == 0:
                await self.universe.refresh()

            symbols = self.universe.symbols_to_fetch(self.max_symbols)
            if not symbols:
                logger.debug("scheduler.no_symbols")
            quotes = await self.resolver.resolve_batch(symbols) if symbols else {}

            duration_ms = (time.perf_counter() - started) * 1000
            self.stats.record_success(duration_ms, len(quotes), self._now())
            logger.info(
                "scheduler.tick_ok",
                requested=len(symbols),
                fetched=len(quotes),
                duration_ms=round(duration_ms, 1),
                session=self.session_state().value,
            )
        except Exception as e:
            self.stats.record_failure()
            logger.error("scheduler.tick_failed", tick=self._ticks, error=str(e), exc_info=True)

    async def _run(self, stop_event: asyncio.Event) -> None:
        # each run owns its stop event; a restart does not reuse it
        while not stop_event.is_set():
            await self.tick()
            if stop_event.is_set():
                break
            state = self.session_state()
            delay = self.intervals[state]
            self.next_tick_at = self._now() + timedelta(seconds=delay)
            logger.debug("scheduler.next_tick", session=state.value, interval_s=delay)
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=delay)
            except asyncio.TimeoutError:
                pass
        if stop_event is self._stop_event:
            self.next_tick_at = None

    def start(self) -> None:
        """Arm the loop; the first fetch runs immediately. Must be called inside a running event loop."""
        if self.is_running and not self._stop_event.is_set():
            logger.warning("scheduler.already_running")
            return
        self._stop_event = asyncio.Event()
        self._task = asyncio.get_running_loop().create_task(
            self._run(self._stop_event), name="market-data-fetch-loop"
        )
        logger.info("scheduler.started", market=self.market.code.value)

    async def stop(self) -> None:
        """Let an in-flight cycle finish, then exit without arming another. Safe to call repeatedly."""
        task, stop_event = self._task, self._stop_event
        if task is None:
            return
        stop_event.set()
        await task
        if self._task is task:
            # start() may have armed a new loop while we were waiting
            self._task = None
        logger.info("scheduler.stopped", ticks=self._ticks)
