"""Application configuration using Pydantic Settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = "sqlite:///./scoreleague.db"

    # API Security
    API_KEY: str = ""  # Required for admin triggers (empty = open in dev)
    API_KEY_HEADER: str = "X-API-Key"
    # Caller identity is resolved upstream (gateway/session layer) and forwarded here
    USER_ID_HEADER: str = "X-User-Id"
    RATE_LIMIT_PER_MINUTE: str = "60/minute"

    # ═══════════════════════════════════════════════════════════════
    # Bot betting loop
    # ═══════════════════════════════════════════════════════════════
    BOT_BETTING_ENABLED: bool = True
    BOT_BETTING_INITIAL_DELAY_SECONDS: int = 120  # Let the app warm up first
    BOT_BETTING_INTERVAL_MINUTES: int = 60
    # Faster cadence while matches are typically played (UTC hours, inclusive)
    BOT_BETTING_MATCH_HOURS_START: int = 8
    BOT_BETTING_MATCH_HOURS_END: int = 23
    BOT_BETTING_MATCH_HOURS_INTERVAL_MINUTES: int = 30
    BOT_LOOKAHEAD_HOURS: int = 24  # Only matches kicking off within this window

    # Bet results sweep (finished matches with unscored bets)
    BET_RESULTS_INTERVAL_MINUTES: int = 15

    # Team form cache
    FORM_CACHE_TTL_HOURS: int = 6

    # ML model serving (empty URL = ML strategy always falls back)
    ML_SERVICE_URL: str = ""
    ML_SERVICE_TIMEOUT_SECONDS: float = 10.0
    ML_REQUESTS_PER_MINUTE: int = 120
    ML_MODEL_TYPE: str = "score_regressor"

    # Job queue
    JOB_QUEUE_MAX_SIZE: int = 1000

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
