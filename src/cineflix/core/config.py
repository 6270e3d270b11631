from __future__ import annotations

import logging
import os
from dataclasses import dataclass

DEFAULT_USER_ID = "user1"
TMDB_BASE = "https://api.themoviedb.org/3"
TMDB_IMG_BASE = "https://image.tmdb.org/t/p"


@dataclass(frozen=True)
class ServiceUrls:
    recommendation: str = "http://localhost:3001"
    watchlist: str = "http://localhost:3002"
    sorting: str = "http://localhost:3003"
    wildcard: str = "http://localhost:3004"


@dataclass(frozen=True)
class Settings:
    services: ServiceUrls
    tmdb_base_url: str = TMDB_BASE
    tmdb_api_key: str | None = None
    user_id: str = DEFAULT_USER_ID
    retry_max_attempts: int = 3
    retry_initial_delay_ms: int = 1000
    http_timeout_s: float = 10.0
    log_level: str = "INFO"


def _env(name: str, default: str) -> str:
    raw = os.environ.get(f"CINEFLIX_{name}", "").strip()
    return raw or default


def load_settings() -> Settings:
    """Build settings from ``CINEFLIX_*`` environment variables.

    Unset or blank variables fall back to the local development defaults
    (services on ports 3001-3004, user ``user1``).
    """

    defaults = ServiceUrls()
    services = ServiceUrls(
        recommendation=_env("RECOMMENDATION_URL", defaults.recommendation).rstrip("/"),
        watchlist=_env("WATCHLIST_URL", defaults.watchlist).rstrip("/"),
        sorting=_env("SORTING_URL", defaults.sorting).rstrip("/"),
        wildcard=_env("WILDCARD_URL", defaults.wildcard).rstrip("/"),
    )

    api_key = os.environ.get("CINEFLIX_TMDB_API_KEY", "").strip() or None

    return Settings(
        services=services,
        tmdb_base_url=_env("TMDB_BASE_URL", TMDB_BASE).rstrip("/"),
        tmdb_api_key=api_key,
        user_id=_env("USER_ID", DEFAULT_USER_ID),
        retry_max_attempts=int(_env("RETRY_MAX_ATTEMPTS", "3")),
        retry_initial_delay_ms=int(_env("RETRY_INITIAL_DELAY_MS", "1000")),
        http_timeout_s=float(_env("HTTP_TIMEOUT_S", "10")),
        log_level=_env("LOG_LEVEL", "INFO").upper(),
    )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
