"""Default priority symbols — always watched, always fetched first."""

PRIORITY_SYMBOLS: dict[str, list[str]] = {
    "US": [
        "SPY", "QQQ", "DIA", "IWM",                                # major ETFs
        "AAPL", "MSFT", "GOOGL", "AMZN", "NVDA", "META", "TSLA",   # top stocks
    ],
    "IN": [
        "RELIANCE.NS", "TCS.NS", "HDFCBANK.NS", "INFY.NS", "ICICIBANK.NS",
    ],
}


def priority_symbols(market: str, configured: list[str] | None = None) -> list[str]:
    """Configured list wins; otherwise the market default (US when unknown)."""
    if configured:
        return configured
    return PRIORITY_SYMBOLS.get(market.upper(), PRIORITY_SYMBOLS["US"])
