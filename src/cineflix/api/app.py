from __future__ import annotations

import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from cineflix.api.rate_limit import RateLimitMiddleware
from cineflix.api.routes import router
from cineflix.core.config import Settings, configure_logging, load_settings
from cineflix.core.movie_search import MovieSearchClient
from cineflix.core.recommendation import RecommendationClient
from cineflix.core.sorting import SortingClient
from cineflix.core.tracker import FilmTracker
from cineflix.core.watchlist import WatchlistClient
from cineflix.core.wildcard import WildcardClient

logger = logging.getLogger(__name__)


def _parse_csv_env(name: str) -> list[str]:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return []

    # Support both comma-separated values and newline-separated values (common in PaaS).
    parts = [p.strip() for p in raw.replace("\n", ",").split(",")]
    return [p for p in parts if p]


def build_tracker(settings: Settings, client: httpx.AsyncClient) -> FilmTracker:
    """Wire every service client onto one shared AsyncClient."""

    urls = settings.services
    return FilmTracker(
        recommendation=RecommendationClient(client, urls.recommendation),
        watchlist=WatchlistClient(client, urls.watchlist),
        sorting=SortingClient(client, urls.sorting),
        wildcard=WildcardClient(client, urls.wildcard),
        movie_search=MovieSearchClient(
            client, settings.tmdb_base_url, api_key=settings.tmdb_api_key
        ),
        user_id=settings.user_id,
        retry_max_attempts=settings.retry_max_attempts,
        retry_initial_delay_ms=settings.retry_initial_delay_ms,
    )


def create_app(
    *, tracker: FilmTracker | None = None, settings: Settings | None = None
) -> FastAPI:
    settings = settings or load_settings()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        client: httpx.AsyncClient | None = None
        if app.state.tracker is None:
            client = httpx.AsyncClient(timeout=settings.http_timeout_s)
            app.state.tracker = build_tracker(settings, client)

        await app.state.tracker.startup()
        if app.state.tracker.state.limited_features:
            logger.warning("Started with limited features")
        try:
            yield
        finally:
            if client is not None:
                await client.aclose()

    app = FastAPI(title="CineFlix", version="0.1.0", lifespan=lifespan)

    # Attach shared components. Injected trackers are used as-is.
    app.state.tracker = tracker
    app.state.settings = settings

    # CORS is intentionally opt-in for production safety.
    # Configure allowed origins via env var, e.g.
    #   CINEFLIX_CORS_ORIGINS=https://your.site,https://admin.your.site
    cors_origins = _parse_csv_env("CINEFLIX_CORS_ORIGINS")
    if cors_origins:
        allow_all = "*" in cors_origins
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"] if allow_all else cors_origins,
            allow_credentials=False,
            allow_methods=["*"] if allow_all else ["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
            allow_headers=["*"],
        )

    # Basic rate limiting to protect the upstream services.
    app.add_middleware(RateLimitMiddleware)

    # Ensure unexpected errors don't leak internals.
    @app.exception_handler(Exception)
    async def _unhandled_exception_handler(_request, exc: Exception):
        logger.error("Unhandled error: %s", exc)
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})

    app.include_router(router)
    return app


app = create_app()
