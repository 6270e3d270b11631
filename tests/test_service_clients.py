from __future__ import annotations

import asyncio

import httpx
import pytest

from cineflix.core.http_client import ServiceCallError
from cineflix.core.movie_search import MovieSearchClient, MovieSearchError, to_draft
from cineflix.core.recommendation import RecommendationClient
from cineflix.core.sorting import SortingClient
from cineflix.core.watchlist import WatchlistClient
from cineflix.core.wildcard import WildcardClient
from conftest import BASE_URLS


def test_recommendation_routes(backend, async_client) -> None:
    rec = RecommendationClient(async_client, BASE_URLS["recommendation"])

    async def run() -> None:
        await rec.create_user_profile("user1")
        await rec.add_rating("user1", "42", 4)
        await rec.get_recommendations("user1", count=3)
        await rec.get_trending()
        await rec.get_personalized_trending("user1")
        await rec.get_all_films()

    asyncio.run(run())

    assert [(c.method, c.path) for c in backend.calls] == [
        ("POST", "/api/users/user1/profile"),
        ("POST", "/api/users/user1/ratings"),
        ("POST", "/api/recommendations/user1"),
        ("GET", "/api/trending"),
        ("POST", "/api/trending/personalized/user1"),
        ("GET", "/api/films"),
    ]
    assert backend.calls[0].body == {"watchHistory": [], "ratings": []}
    assert backend.calls[1].body == {"filmId": "42", "score": 4}
    assert backend.calls[2].body == {"count": 3}


def test_watchlist_routes(backend, async_client) -> None:
    wl = WatchlistClient(async_client, BASE_URLS["watchlist"])

    async def run() -> None:
        await wl.add_to_watchlist("user1", {"id": "1", "title": "Dune"})
        await wl.get_watchlist("user1")
        await wl.get_watchlist("user1", status="watched")
        await wl.remove_from_watchlist("user1", "1")
        await wl.update_film_status("user1", "1", "watching")
        await wl.set_notification_preferences("user1")
        await wl.get_notifications("user1")
        await wl.check_releases()
        await wl.process_notifications()
        await wl.get_upcoming_releases()

    asyncio.run(run())

    assert [(c.method, c.path) for c in backend.calls] == [
        ("POST", "/api/watchlist/user1/films"),
        ("GET", "/api/watchlist/user1"),
        ("GET", "/api/watchlist/user1"),
        ("DELETE", "/api/watchlist/user1/films/1"),
        ("PATCH", "/api/watchlist/user1/films/1"),
        ("POST", "/api/watchlist/user1/notifications/preferences"),
        ("GET", "/api/notifications/user1"),
        ("POST", "/api/notifications/check-releases"),
        ("POST", "/api/notifications/process"),
        ("GET", "/api/releases/upcoming"),
    ]
    assert backend.calls[1].params == {}
    assert backend.calls[2].params == {"status": "watched"}
    assert backend.calls[4].body == {"status": "watching"}
    assert backend.calls[5].body == {"timing": "day_of_release", "enabled": True}


def test_sorting_routes(backend, async_client) -> None:
    so = SortingClient(async_client, BASE_URLS["sorting"])

    async def run() -> None:
        await so.sort_films("user1", "rating")
        await so.filter_films("user1", {"minRating": 3})
        await so.sort_and_filter_films("user1", "title", "asc", {"genre": "Drama"})
        await so.get_film_collection("user1")
        await so.get_film_collection("user1", type="watched")
        await so.update_film_collection("user1", [{"id": "1"}])
        await so.get_filter_options("user1")

    asyncio.run(run())

    calls = backend.calls
    assert calls[0].path == "/api/films/user1/sort"
    assert calls[0].body == {"criteria": "rating", "order": "desc", "filmType": "watched"}
    assert calls[1].path == "/api/films/user1/filter"
    assert calls[1].body == {"filters": {"minRating": 3}, "filmType": "watched"}
    assert calls[2].path == "/api/films/user1/sort-and-filter"
    assert calls[2].body == {
        "sortCriteria": "title",
        "sortOrder": "asc",
        "filters": {"genre": "Drama"},
        "filmType": "watched",
    }
    assert (calls[3].method, calls[3].params) == ("GET", {})
    assert calls[4].params == {"type": "watched"}
    assert calls[5].body == {"watchedFilms": [{"id": "1"}], "watchlistFilms": []}
    assert calls[6].path == "/api/filters/options/user1"
    assert calls[6].params == {"filmType": "watched"}


def test_wildcard_routes(backend, async_client) -> None:
    wc = WildcardClient(async_client, BASE_URLS["wildcard"])
    backend.on("wildcard", "GET", "/api/suggest", {"title": "Paprika"})

    async def run():
        first = await wc.get_wildcard_suggestion()
        await wc.get_genre_wildcard(878)
        await wc.get_available_genres()
        await wc.test_responsiveness()
        return first

    assert asyncio.run(run()) == {"title": "Paprika"}
    assert [c.path for c in backend.calls] == [
        "/api/suggest",
        "/api/suggest/878",
        "/api/genres",
        "/api/test/responsiveness",
    ]


def test_client_errors_propagate_unchanged(backend, async_client) -> None:
    wl = WatchlistClient(async_client, BASE_URLS["watchlist"])
    backend.on("watchlist", "GET", "/api/watchlist/user1", httpx.Response(500))

    with pytest.raises(ServiceCallError) as excinfo:
        asyncio.run(wl.get_watchlist("user1"))
    assert excinfo.value.status_code == 500
    # No retries inside the client.
    assert len(backend.calls) == 1


def test_movie_search_parses_results_and_builds_draft(backend, async_client) -> None:
    backend.on(
        "tmdb",
        "GET",
        "/search/movie",
        {
            "results": [
                {
                    "id": 329865,
                    "title": "Arrival",
                    "release_date": "2016-11-10",
                    "poster_path": "/x2FJsf1ElAgr63Y3PNPtJrcmpoe.jpg",
                    "overview": "Linguist meets heptapods.",
                },
                {"id": 1, "title": "Arrival II", "release_date": "", "overview": ""},
            ]
        },
    )
    search = MovieSearchClient(async_client, BASE_URLS["tmdb"], api_key="secret")

    results = asyncio.run(search.search("  arrival "))

    assert backend.calls[0].params == {"api_key": "secret", "query": "arrival"}
    assert [r.title for r in results] == ["Arrival", "Arrival II"]

    draft = to_draft(results[0])
    assert draft.year == 2016
    assert draft.poster == "https://image.tmdb.org/t/p/w200/x2FJsf1ElAgr63Y3PNPtJrcmpoe.jpg"
    assert draft.description == "Linguist meets heptapods."

    bare = to_draft(results[1])
    assert bare.year == "N/A"
    assert bare.poster is None
    assert bare.description == "No description available."


def test_movie_search_requires_api_key_and_skips_blank_queries(backend, async_client) -> None:
    search = MovieSearchClient(async_client, BASE_URLS["tmdb"])

    assert asyncio.run(search.search("   ")) == []
    with pytest.raises(MovieSearchError):
        asyncio.run(search.search("Heat"))
    assert backend.calls == []


def test_movie_search_wraps_http_failures(backend, async_client) -> None:
    backend.on("tmdb", "GET", "/search/movie", httpx.Response(401))
    search = MovieSearchClient(async_client, BASE_URLS["tmdb"], api_key="bad")

    with pytest.raises(MovieSearchError, match="401"):
        asyncio.run(search.search("Heat"))
