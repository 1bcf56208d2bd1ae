"""ProviderHealthTracker — soft circuit breaker over the configured provider order."""
import threading
import time
from dataclasses import dataclass
from typing import Callable

DEFAULT_COOLDOWN_SECONDS = 300.0


@dataclass
class ProviderHealth:
    consecutive_failures: int = 0
    last_failure_at: float | None = None
    last_error: str | None = None


class ProviderHealthTracker:
    """
    Recently-failing providers sort behind healthy ones but are never
    dropped. A provider re-enters the front of the order only once the
    cool-down since its last failure has passed; a success inside that
    window resets its failure count but does not move it forward.
    """

    def __init__(
        self,
        providers: list[str],
        cooldown_seconds: float = DEFAULT_COOLDOWN_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._order = list(providers)
        self._cooldown = cooldown_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._records: dict[str, ProviderHealth] = {p: ProviderHealth() for p in providers}

    def record_success(self, provider: str) -> None:
        with self._lock:
            self._records.setdefault(provider, ProviderHealth()).consecutive_failures = 0

    def record_failure(self, provider: str, error: Exception | str) -> None:
        with self._lock:
            rec = self._records.setdefault(provider, ProviderHealth())
            rec.consecutive_failures += 1
            rec.last_failure_at = self._clock()
            rec.last_error = str(error)

    def _recently_failed(self, rec: ProviderHealth, now: float) -> bool:
        return rec.last_failure_at is not None and now - rec.last_failure_at < self._cooldown

    def ordered_providers(self) -> list[str]:
        now = self._clock()
        with self._lock:
            # sorted() is stable: equal keys keep configured order
            return sorted(
                self._order,
                key=lambda p: (
                    self._recently_failed(self._records[p], now),
                    self._records[p].consecutive_failures,
                ),
            )

    def get(self, provider: str) -> ProviderHealth:
        with self._lock:
            rec = self._records[provider]
            return ProviderHealth(rec.consecutive_failures, rec.last_failure_at, rec.last_error)

    def snapshot(self) -> dict[str, dict]:
        now = self._clock()
        out = {}
        with self._lock:
            for p in self._order:
                rec = self._records[p]
                since = now - rec.last_failure_at if rec.last_failure_at is not None else None
                out[p] = {
                    "healthy": not self._recently_failed(rec, now),
                    "consecutive_failures": rec.consecutive_failures,
                    "seconds_since_failure": round(since, 1) if since is not None else None,
                    "last_error": rec.last_error,
                }
        return out
