"""
PnL engine configuration & tunables

- Settings: environment-driven configuration (Pydantic)
- Upstream endpoints, pagination limits, cache TTLs and request deadlines
"""

from __future__ import annotations
from pydantic_settings import BaseSettings
from pydantic import model_validator


# =========================
# Environment-driven settings
# =========================
class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # --- API URLs ---
    POLYMARKET_DATA_URL: str = "https://data-api.polymarket.com"
    POLYMARKET_GAMMA_URL: str = "https://gamma-api.polymarket.com"
    PNL_SUBGRAPH_URL: str = (
        "https://api.goldsky.com/api/public/project_cl6mb8i9h0003e201j6li0diw"
        "/subgraphs/pnl-subgraph/0.0.14/gn"
    )
    HTTP_TIMEOUT_SECONDS: float = 15.0

    # --- UPSTREAM RATE LIMITS (requests per second) ---
    TRADES_REQUESTS_PER_SECOND: float = 7.5   # 75 req/10s
    DEFAULT_REQUESTS_PER_SECOND: float = 20.0  # 200 req/10s

    # --- PAGINATION ---
    TRADES_PAGE_SIZE: int = 500
    ACTIVITY_PAGE_SIZE: int = 500
    POSITIONS_PAGE_SIZE: int = 500
    CLOSED_POSITIONS_PAGE_SIZE: int = 50
    SUBGRAPH_PAGE_SIZE: int = 1000
    MAX_PAGES: int = 1000
    CLOSED_POSITIONS_MAX_PAGES: int = 100
    SUBGRAPH_MAX_PAGES: int = 10
    MAX_OFFSET: int = 10000

    # --- ADAPTIVE BATCHING ---
    FETCH_INITIAL_BATCH_SIZE: int = 15
    FETCH_MIN_BATCH_SIZE: int = 5
    FETCH_MAX_BATCH_SIZE: int = 15
    FETCH_BATCH_SHRINK_FACTOR: float = 0.7
    FETCH_BACKOFF_INITIAL_SECONDS: float = 0.1
    FETCH_BACKOFF_MAX_SECONDS: float = 5.0
    FETCH_GROWTH_AFTER_CLEAN_BATCHES: int = 3
    FETCH_PAGE_RETRIES: int = 2

    # --- CACHE ---
    CACHE_MAX_ENTRIES: int = 2048
    RAW_DATA_CACHE_TTL_SECONDS: float = 300.0   # positions, trades, activity
    PNL_CACHE_TTL_SECONDS: float = 300.0        # authoritative pnl aggregate
    SEARCH_CACHE_TTL_SECONDS: float = 30.0
    STALE_DASHBOARD_TTL_SECONDS: float = 600.0

    # --- DEADLINES ---
    DATA_FETCH_TIMEOUT_SECONDS: float = 10.0
    REQUEST_TIMEOUT_SECONDS: float = 60.0

    # --- ENGINE ---
    LEDGER_EVENT_WINDOW: int = 1500
    PNL_HISTORY_MAX_POINTS: int = 1000
    RECENT_TRADES_LIMIT: int = 20
    SEARCH_RESULTS_LIMIT: int = 10

    # --- ENV / LOGGING ---
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # --- API SERVER ---
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "allow"  # allow unknown keys in .env for forward compatibility

    @model_validator(mode="after")
    def _check_batch_bounds(self) -> "Settings":
        if not 1 <= self.FETCH_MIN_BATCH_SIZE <= self.FETCH_MAX_BATCH_SIZE:
            raise ValueError("FETCH_MIN_BATCH_SIZE must be between 1 and FETCH_MAX_BATCH_SIZE")
        self.FETCH_INITIAL_BATCH_SIZE = min(
            max(self.FETCH_INITIAL_BATCH_SIZE, self.FETCH_MIN_BATCH_SIZE),
            self.FETCH_MAX_BATCH_SIZE,
        )
        return self


settings = Settings()
