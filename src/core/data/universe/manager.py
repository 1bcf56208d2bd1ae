"""Universe manager — the working set of symbols the scheduler keeps fresh."""
import structlog

from src.core.data.universe.stores import PortfolioStore, RecommendationStore
from src.core.quotes.errors import CollaboratorUnavailable
from src.core.quotes.models import normalize_symbol

logger = structlog.get_logger()


class UniverseManager:
    """
    Priority symbols are never evicted and always come first. Discovered
    symbols are replaced wholesale on each successful refresh and kept
    as-is when a symbol source is unreachable.
    """

    def __init__(
        self,
        priority: list[str],
        portfolios: PortfolioStore,
        recommendations: RecommendationStore,
        lookback_days: int = 7,
    ):
        self.priority: list[str] = list(dict.fromkeys(normalize_symbol(s) for s in priority))
        self.portfolios = portfolios
        self.recommendations = recommendations
        self.lookback_days = lookback_days
        self._discovered: list[str] = []
        self._manual: set[str] = set()

    @property
    def size(self) -> int:
        return len(self.symbols())

    def symbols(self) -> list[str]:
        return list(dict.fromkeys([*self.priority, *self._discovered, *sorted(self._manual)]))

    async def refresh(self) -> bool:
        """Re-read both symbol sources. Returns False (and keeps the old set) on failure."""
        try:
            held = await self.portfolios.distinct_symbols()
            recent = await self.recommendations.distinct_symbols_since(self.lookback_days)
        except CollaboratorUnavailable as e:
            logger.warning("universe.refresh_failed", error=str(e), kept=self.size)
            return False

        priority = set(self.priority)
        discovered = dict.fromkeys(
            sym for sym in (normalize_symbol(s) for s in [*held, *recent]) if sym and sym not in priority
        )
        self._discovered = list(discovered)
        logger.info("universe.refreshed", portfolios=len(held), recommendations=len(recent), total=self.size)
        return True

    def symbols_to_fetch(self, max_batch: int) -> list[str]:
        return self.symbols()[:max_batch]

    def add_symbols(self, symbols: list[str]) -> None:
        for s in symbols:
            sym = normalize_symbol(s)
            if sym:
                self._manual.add(sym)
        logger.debug("universe.added", added=len(symbols), total=self.size)

    def remove_symbols(self, symbols: list[str]) -> None:
        priority = set(self.priority)
        for s in symbols:
            sym = normalize_symbol(s)
            if sym in priority:
                continue
            self._manual.discard(sym)
            if sym in self._discovered:
                self._discovered.remove(sym)
