from functools import lru_cache
from pathlib import Path
from typing import Optional
from pydantic import AnyHttpUrl
from pydantic_settings import BaseSettings, SettingsConfigDict

ALLOWED_RATE_PROVIDERS = {"forexrateapi", "static"}
ALLOWED_KV_BACKENDS = {"sqlite", "redis"}


class Settings(BaseSettings):
    """Application settings loaded from environment with defaults.

    Environment variable mapping follows pydantic's rules (e.g. FOREXRATE_API_KEY,
    KV_BACKEND, REDIS_URL, MARKET_CLOSE_HOUR_UTC, ANALYTICS_URL).
    """

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Basic app metadata
    app_name: str = "Tool Router"
    debug: bool = False
    version: str = "0.1.0"

    # Rate store persistence
    kv_backend: str = "sqlite"
    data_dir: Path = Path("data")
    db_filename: str = "toolrouter.sqlite3"
    db_path: Optional[Path] = None  # derived if not provided
    redis_url: str = "redis://127.0.0.1:6379/0"
    rates_store_ttl_seconds: int = 7 * 24 * 60 * 60

    # Upstream provider
    exchange_rate_provider: str = "forexrateapi"
    forexrate_api_key: Optional[str] = None
    forexrate_api_url: AnyHttpUrl = "https://api.forexrateapi.com/v1/latest"
    http_timeout_seconds: float = 10.0
    http_retries: int = 2

    # Freshness policy (fixed UTC offset, 22:00 UTC ~ 5 PM US Eastern)
    market_close_hour_utc: int = 22
    next_update_offset_minutes: int = 5

    # Collaborators
    analytics_url: Optional[AnyHttpUrl] = None
    analytics_max_pending: int = 100
    admin_token: Optional[str] = None
    enable_scheduler: bool = False

    def init_post_load(self) -> None:
        """Finalize derived fields and validate enumerations."""
        if self.kv_backend not in ALLOWED_KV_BACKENDS:
            raise ValueError(
                f"Unsupported kv_backend '{self.kv_backend}'. Allowed: {ALLOWED_KV_BACKENDS}"
            )
        if self.exchange_rate_provider not in ALLOWED_RATE_PROVIDERS:
            raise ValueError(
                f"Unsupported exchange_rate_provider '{self.exchange_rate_provider}'. Allowed: {ALLOWED_RATE_PROVIDERS}"
            )
        if not 0 <= self.market_close_hour_utc <= 23:
            raise ValueError("market_close_hour_utc must be within 0..23")
        if self.kv_backend == "sqlite":
            if self.db_path is None:
                self.db_path = self.data_dir / self.db_filename
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)


@lru_cache
def get_settings() -> Settings:
    settings = Settings()
    settings.init_post_load()
    return settings
