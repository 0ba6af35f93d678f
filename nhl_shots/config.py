"""
Runtime configuration for the NHL shot prediction service
"""
import os
import logging
from dataclasses import dataclass
from functools import lru_cache

logger = logging.getLogger(__name__)

NHL_API_BASE = "https://api-web.nhle.com/v1"
NHL_STATS_API_BASE = "https://api.nhle.com/stats/rest/en"
DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./nhl_shots.db"


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value in (None, ""):
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning(f"Invalid integer for {name}={value!r}, using {default}")
        return default


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value in (None, ""):
        return default
    try:
        return float(value)
    except ValueError:
        logger.warning(f"Invalid number for {name}={value!r}, using {default}")
        return default


def normalize_database_url(db_url: str) -> str:
    """Map sync driver URLs onto the async drivers used by the store"""
    # Heroku-style postgres:// URLs
    if db_url.startswith("postgres://"):
        db_url = db_url.replace("postgres://", "postgresql://", 1)
    if db_url.startswith("postgresql://"):
        db_url = db_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    elif db_url.startswith("sqlite:///"):
        db_url = db_url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
    return db_url


@dataclass(frozen=True)
class Settings:
    """Service settings, read once from the environment"""
    database_url: str = DEFAULT_DATABASE_URL
    nhl_api_base: str = NHL_API_BASE
    nhl_stats_api_base: str = NHL_STATS_API_BASE
    http_timeout: float = 10.0
    max_concurrent_requests: int = 16
    player_queue_size: int = 50
    player_fetch_policy: str = "fail_fast"
    active_model_version: int = 1
    league_timezone: str = "America/New_York"
    daily_prediction_hour: int = 5
    validation_interval_hours: int = 6
    validation_lookback_days: int = 14
    job_max_attempts: int = 5
    job_backoff_base_seconds: float = 60.0
    scheduler_shutdown_timeout: float = 300.0
    log_level: str = "INFO"
    environment: str = "development"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            database_url=normalize_database_url(os.getenv("DATABASE_URL") or DEFAULT_DATABASE_URL),
            nhl_api_base=os.getenv("NHL_API_BASE", NHL_API_BASE).rstrip("/"),
            nhl_stats_api_base=os.getenv("NHL_STATS_API_BASE", NHL_STATS_API_BASE).rstrip("/"),
            http_timeout=_env_float("NHL_HTTP_TIMEOUT", 10.0),
            max_concurrent_requests=_env_int("NHL_MAX_CONCURRENT_REQUESTS", 16),
            player_queue_size=_env_int("PLAYER_QUEUE_SIZE", 50),
            player_fetch_policy=os.getenv("PLAYER_FETCH_POLICY", "fail_fast").lower(),
            active_model_version=_env_int("ACTIVE_MODEL_VERSION", 1),
            league_timezone=os.getenv("LEAGUE_TIMEZONE", "America/New_York"),
            daily_prediction_hour=_env_int("DAILY_PREDICTION_HOUR", 5),
            validation_interval_hours=_env_int("VALIDATION_INTERVAL_HOURS", 6),
            validation_lookback_days=_env_int("VALIDATION_LOOKBACK_DAYS", 14),
            job_max_attempts=_env_int("JOB_MAX_ATTEMPTS", 5),
            job_backoff_base_seconds=_env_float("JOB_BACKOFF_BASE_SECONDS", 60.0),
            scheduler_shutdown_timeout=_env_float("SCHEDULER_SHUTDOWN_TIMEOUT", 300.0),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            environment=os.getenv("ENVIRONMENT", "development").lower(),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Process-wide settings instance"""
    return Settings.from_env()
