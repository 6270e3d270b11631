from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import httpx
import pytest

from cineflix.core.movie_search import MovieSearchClient
from cineflix.core.recommendation import RecommendationClient
from cineflix.core.sorting import SortingClient
from cineflix.core.tracker import FilmTracker
from cineflix.core.watchlist import WatchlistClient
from cineflix.core.wildcard import WildcardClient

BASE_URLS = {
    "recommendation": "http://recommendation.test",
    "watchlist": "http://watchlist.test",
    "sorting": "http://sorting.test",
    "wildcard": "http://wildcard.test",
    "tmdb": "http://tmdb.test/3",
}
_HOST_TO_SERVICE = {httpx.URL(url).host: name for name, url in BASE_URLS.items()}


@dataclass
class Call:
    service: str
    method: str
    path: str
    body: Any
    params: dict[str, str]
    headers: dict[str, str]


Handler = Callable[[Call], Any]


@dataclass
class FakeBackend:
    """Stand-in for all services behind one httpx.MockTransport.

    Routes map (service, method, path) to either a JSON payload, an
    ``httpx.Response`` or a callable receiving the recorded call. Services in
    ``down`` refuse connections.
    """

    routes: dict[tuple[str, str, str], Any] = field(default_factory=dict)
    calls: list[Call] = field(default_factory=list)
    down: set[str] = field(default_factory=set)

    def on(self, service: str, method: str, path: str, response: Any) -> None:
        self.routes[(service, method, path)] = response

    def calls_to(
        self, service: str, method: str | None = None, path: str | None = None
    ) -> list[Call]:
        return [
            c
            for c in self.calls
            if c.service == service
            and (method is None or c.method == method)
            and (path is None or c.path == path)
        ]

    def _default(self, call: Call) -> Any:
        if call.path == "/health":
            return {"status": "healthy", "timestamp": "2024-01-01T00:00:00Z"}
        if call.service == "sorting" and call.method == "GET":
            return {"watchedFilms": [], "watchlistFilms": []}
        if call.service == "watchlist" and call.method == "GET":
            return {"watchlist": []}
        if call.path == "/api/trending":
            return {"trending": []}
        return {"success": True}

    def handler(self, request: httpx.Request) -> httpx.Response:
        service = _HOST_TO_SERVICE[request.url.host]
        path = request.url.path
        if service == "tmdb":
            path = path.removeprefix("/3")
        call = Call(
            service=service,
            method=request.method,
            path=path,
            body=json.loads(request.content) if request.content else None,
            params=dict(request.url.params),
            headers=dict(request.headers),
        )
        self.calls.append(call)

        if service in self.down:
            raise httpx.ConnectError("Connection refused", request=request)

        route = self.routes.get((service, request.method, path))
        if route is None:
            payload = self._default(call)
        elif callable(route):
            payload = route(call)
        else:
            payload = route

        if isinstance(payload, httpx.Response):
            return payload
        return httpx.Response(200, json=payload)


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def sleeps() -> list[float]:
    return []


@pytest.fixture
def make_tracker(backend: FakeBackend, sleeps: list[float]) -> Callable[..., FilmTracker]:
    def _make(**kwargs: Any) -> FilmTracker:
        client = httpx.AsyncClient(transport=httpx.MockTransport(backend.handler))

        async def fake_sleep(seconds: float) -> None:
            sleeps.append(seconds)

        ticks = iter(range(1_700_000_000_000, 1_800_000_000_000, 1000))
        defaults: dict[str, Any] = {
            "recommendation": RecommendationClient(client, BASE_URLS["recommendation"]),
            "watchlist": WatchlistClient(client, BASE_URLS["watchlist"]),
            "sorting": SortingClient(client, BASE_URLS["sorting"]),
            "wildcard": WildcardClient(client, BASE_URLS["wildcard"]),
            "movie_search": MovieSearchClient(client, BASE_URLS["tmdb"], api_key="k"),
            "retry_initial_delay_ms": 10,
            "sleep": fake_sleep,
            "clock": lambda: next(ticks) / 1000.0,
        }
        defaults.update(kwargs)
        return FilmTracker(**defaults)

    return _make


@pytest.fixture
def async_client(backend: FakeBackend) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(backend.handler))
