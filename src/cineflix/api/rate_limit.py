from __future__ import annotations

import os
import time
from collections import deque
from threading import Lock

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse, Response


class SlidingWindowRateLimiter:
    """In-process sliding-window limiter keyed by client IP + bucket.

    Every request fans out to one or more backend services, so a runaway client
    is throttled here before it reaches them.
    """

    def __init__(self, clock=time.monotonic) -> None:
        self._lock = Lock()
        self._clock = clock
        self._hits: dict[str, deque[float]] = {}

    def allow(self, *, key: str, limit: int, window_s: float) -> tuple[bool, int]:
        now = self._clock()
        cutoff = now - window_s
        with self._lock:
            hits = self._hits.setdefault(key, deque())

            while hits and hits[0] < cutoff:
                hits.popleft()

            if len(hits) >= limit:
                return False, 0

            hits.append(now)
            return True, max(0, limit - len(hits))


def _rate_limited() -> JSONResponse:
    return JSONResponse(status_code=429, content={"detail": "Rate limit exceeded"})


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, *, limiter: SlidingWindowRateLimiter | None = None) -> None:
        super().__init__(app)
        self._limiter = limiter or SlidingWindowRateLimiter()

        # Defaults can be tuned via env vars (useful for tests/deploy).
        self._global_limit = int(os.environ.get("CINEFLIX_RL_GLOBAL", "120"))
        self._global_window_s = float(os.environ.get("CINEFLIX_RL_GLOBAL_WINDOW_S", "60"))

        # Search proxies the third-party movie database, which has its own quota.
        self._search_limit = int(os.environ.get("CINEFLIX_RL_SEARCH", "20"))
        self._search_window_s = float(os.environ.get("CINEFLIX_RL_SEARCH_WINDOW_S", "60"))

    async def dispatch(self, request: Request, call_next) -> Response:
        client_ip = request.client.host if request.client else "unknown"

        ok, _remaining = self._limiter.allow(
            key=f"{client_ip}:global", limit=self._global_limit, window_s=self._global_window_s
        )
        if not ok:
            return _rate_limited()

        if request.url.path.startswith("/api/search"):
            ok, _remaining = self._limiter.allow(
                key=f"{client_ip}:search", limit=self._search_limit, window_s=self._search_window_s
            )
            if not ok:
                return _rate_limited()

        return await call_next(request)
