"""
Configuration helpers for the marketplace backend.

Settings are read once from environment variables so that routers/services
never fetch os.environ directly.
"""

from dataclasses import dataclass
from functools import lru_cache
import os


@dataclass(frozen=True)
class Settings:
    """Typed view of environment variables."""

    app_env: str
    public_base_url: str
    database_url: str
    log_level: str
    admin_token: str
    uploads_dir: str
    username_max_attempts: int
    free_flavor_limit: int
    free_drum_limit: int
    free_order_limit: int
    auth_rate_limit: int
    auth_rate_window_seconds: int


@lru_cache
def get_settings() -> Settings:
    """Read the current environment and build a Settings instance."""
    def _int(value: str, default: int = 0) -> int:
        try:
            return int(value)
        except (TypeError, ValueError):
            return default

    default_uploads = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "..", "uploads"))
    return Settings(
        app_env=(os.getenv("APP_ENV") or "dev").lower(),
        public_base_url=os.getenv("PUBLIC_BASE_URL", "http://localhost:8000").rstrip("/"),
        database_url=os.getenv("DATABASE_URL", ""),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
        admin_token=os.getenv("ADMIN_TOKEN", ""),
        uploads_dir=os.getenv("UPLOADS_DIR", default_uploads),
        username_max_attempts=max(1, _int(os.getenv("USERNAME_MAX_ATTEMPTS", "1000"), 1000)),
        free_flavor_limit=_int(os.getenv("FREE_FLAVOR_LIMIT", "5"), 5),
        free_drum_limit=_int(os.getenv("FREE_DRUM_LIMIT", "5"), 5),
        free_order_limit=_int(os.getenv("FREE_ORDER_LIMIT", "30"), 30),
        auth_rate_limit=_int(os.getenv("AUTH_RATE_LIMIT", "20"), 20),
        auth_rate_window_seconds=_int(os.getenv("AUTH_RATE_WINDOW_SECONDS", "60"), 60),
    )
