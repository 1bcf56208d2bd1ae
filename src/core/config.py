from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.core.markets.registry import get_market


class RateLimitBudget(BaseModel):
    max_requests: int = Field(gt=0)
    window_seconds: float = Field(default=60.0, gt=0)


def _default_rate_limits() -> dict[str, RateLimitBudget]:
    return {
        "yahoo": RateLimitBudget(max_requests=100),
        "finnhub": RateLimitBudget(max_requests=60),
        "alphavantage": RateLimitBudget(max_requests=5),  # free tier
        "polygon": RateLimitBudget(max_requests=5),
    }


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    market: str = "US"
    redis_url: str = "redis://localhost:6379"
    database_url: str = ""

    finnhub_api_key: str = ""
    alphavantage_api_key: str = ""
    polygon_api_key: str = ""

    # Cache tiers
    memory_ttl_seconds: float = Field(default=30, gt=0)
    shared_ttl_seconds: int = Field(default=60, gt=0)
    max_memory_entries: int = Field(default=500, gt=0)

    # Scheduling, by session state
    fetch_interval_open_seconds: float = Field(default=30, gt=0)
    fetch_interval_extended_seconds: float = Field(default=60, gt=0)
    fetch_interval_closed_seconds: float = Field(default=300, gt=0)
    universe_refresh_every: int = Field(default=10, gt=0)
    max_symbols_per_fetch: int = Field(default=50, gt=0)
    priority_symbols: list[str] = Field(default_factory=list)   # empty = market default
    recommendation_lookback_days: int = Field(default=7, gt=0)

    # Providers
    provider_order: list[str] = Field(default_factory=lambda: ["yahoo", "finnhub", "alphavantage", "polygon"])
    provider_rate_limits: dict[str, RateLimitBudget] = Field(default_factory=_default_rate_limits)
    provider_timeout_seconds: float = Field(default=10, gt=0)
    health_cooldown_seconds: float = Field(default=300, ge=0)
    batch_concurrency: int = Field(default=5, gt=0)
    batch_pause_seconds: float = Field(default=0.2, ge=0)

    log_level: str = "INFO"
    autostart: bool = True

    @model_validator(mode="after")
    def _check_consistency(self) -> "Settings":
        self.market = get_market(self.market).code.value  # raises ValueError on an unknown market
        self.priority_symbols = [s.strip().upper() for s in self.priority_symbols if s.strip()]
        self.provider_order = [p.strip().lower() for p in self.provider_order if p.strip()]
        if not self.provider_order:
            raise ValueError("provider_order must name at least one provider")
        if len(set(self.provider_order)) != len(self.provider_order):
            raise ValueError(f"provider_order has duplicates: {self.provider_order}")
        if self.fetch_interval_open_seconds > self.fetch_interval_closed_seconds:
            raise ValueError("fetch_interval_open_seconds must not exceed fetch_interval_closed_seconds")
        return self


settings = Settings()
