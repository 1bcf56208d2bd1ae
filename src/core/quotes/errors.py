"""Market data error taxonomy.

None of these cross the service boundary: the resolver turns provider
failures into a missing result, and cache/collaborator failures degrade
to the last known good state.
"""


class MarketDataError(Exception):
    """Base class for market data errors."""


class ProviderError(MarketDataError):
    """A single upstream quote call failed (bad status, bad payload, bad price, timeout)."""

    def __init__(self, provider: str, symbol: str, cause: str):
        self.provider = provider
        self.symbol = symbol
        self.cause = cause
        super().__init__(f"{provider} failed for {symbol}: {cause}")


class AllProvidersExhausted(MarketDataError):
    """Every provider failed or was rate-limited for a symbol."""

    def __init__(self, symbol: str, attempted: list[str], skipped: list[str]):
        self.symbol = symbol
        self.attempted = attempted
        self.skipped = skipped
        super().__init__(
            f"No provider could price {symbol} (failed: {attempted}, rate-limited: {skipped})"
        )


class SharedCacheUnavailable(MarketDataError):
    """The shared (out-of-process) cache tier could not be reached."""


class CollaboratorUnavailable(MarketDataError):
    """A symbol source (portfolios, recommendations) could not be queried."""
