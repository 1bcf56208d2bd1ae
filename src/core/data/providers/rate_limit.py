"""Fixed-window request budget per provider."""
import threading
import time
from dataclasses import dataclass
from typing import Callable

from src.core.config import RateLimitBudget


@dataclass
class RateLimitWindow:
    count: int = 0
    window_reset_at: float = 0.0


class RateLimiter:
    """
    A fixed-window counter, not a token bucket: a burst straddling a window
    boundary can briefly admit up to twice the budget. Providers without a
    budget are unlimited.
    """

    def __init__(
        self,
        budgets: dict[str, RateLimitBudget],
        clock: Callable[[], float] = time.monotonic,
    ):
        self._budgets = dict(budgets)
        self._clock = clock
        self._lock = threading.Lock()
        self._windows: dict[str, RateLimitWindow] = {}

    def check_and_reserve(self, provider: str) -> bool:
        budget = self._budgets.get(provider)
        if budget is None:
            return True

        now = self._clock()
        with self._lock:
            window = self._windows.get(provider)
            if window is None or now >= window.window_reset_at:
                window = RateLimitWindow(count=0, window_reset_at=now + budget.window_seconds)
                self._windows[provider] = window
            if window.count >= budget.max_requests:
                return False
            window.count += 1
            return True

    def snapshot(self) -> dict[str, dict]:
        now = self._clock()
        with self._lock:
            out = {}
            for provider, budget in self._budgets.items():
                window = self._windows.get(provider)
                live = window is not None and now < window.window_reset_at
                out[provider] = {
                    "requests_in_window": window.count if live else 0,
                    "max_requests": budget.max_requests,
                    "window_seconds": budget.window_seconds,
                    "resets_in": round(window.window_reset_at - now, 1) if live else None,
                }
            return out
