from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import date
from typing import Any, TypeVar
from urllib.parse import quote

from cineflix.core.collection import (
    filter_films_locally,
    recently_added,
    sort_films_locally,
)
from cineflix.core.config import DEFAULT_USER_ID
from cineflix.core.health import HealthMonitor
from cineflix.core.models import (
    Film,
    FilmDraft,
    FilmNotFoundError,
    FilmValidationError,
    FilterCriteria,
    HealthRecord,
    ModalState,
    SearchResult,
    SortCriterion,
    WatchlistEntry,
    parse_sort_order,
)
from cineflix.core.movie_search import MovieSearchClient, to_draft
from cineflix.core.recommendation import RecommendationClient
from cineflix.core.retry import handle_service_error, retry_operation
from cineflix.core.sorting import SortingClient
from cineflix.core.transformers import (
    extract_items,
    films_from_remote,
    films_to_remote,
    watchlist_entry_from_remote,
    watchlist_entry_payload,
    watchlist_entry_to_remote,
)
from cineflix.core.watchlist import WatchlistClient
from cineflix.core.wildcard import WildcardClient

T = TypeVar("T")

logger = logging.getLogger(__name__)

PAGES = frozenset({"home", "addFilms", "filmSearchResults", "watchedFilms", "filmDetails"})

# Recommendations are only requested once the profile has enough signal.
MIN_RATED_FOR_RECOMMENDATIONS = 5
RECOMMENDATION_COUNT = 5
MAX_RATING = 5

LIMITED_FEATURES_MESSAGE = "Some services are unavailable. Running with limited features."
MISSING_FIELDS_MESSAGE = "Please enter both film title and theater visit date."
SEARCH_FAILED_MESSAGE = (
    "Failed to fetch search results. Please check your TMDB API key and network connection."
)
WILDCARD_FAILED_MESSAGE = "Could not fetch a wildcard suggestion. Please try again later."


class ActionFailedError(RuntimeError):
    """A service answered 2xx but reported failure in its payload."""


@dataclass(frozen=True)
class ActionOutcome:
    ok: bool
    message: str


@dataclass
class AppState:
    films: list[Film] = field(default_factory=list)
    watchlist: list[WatchlistEntry] = field(default_factory=list)
    recommendations: list[Any] = field(default_factory=list)
    trending: list[Any] = field(default_factory=list)
    health: dict[str, HealthRecord] = field(default_factory=dict)
    selected_film: Film | None = None
    current_page: str = "home"
    modal: ModalState = field(default_factory=ModalState)
    search_query: str = ""
    search_results: list[SearchResult] = field(default_factory=list)
    selected_draft: FilmDraft | None = None
    limited_features: bool = False

    def find_film(self, film_id: str) -> Film | None:
        for film in self.films:
            if film.id == film_id:
                return film
        return None


def placeholder_poster(title: str) -> str:
    return f"https://placehold.co/100x150/000000/FFFFFF?text={quote(title[:10])}"


def _year_of(watched_date: str) -> int | str:
    try:
        return date.fromisoformat(watched_date[:10]).year
    except ValueError:
        return "N/A"


def _ensure_success(payload: Any) -> Any:
    if isinstance(payload, dict) and payload.get("success") is False:
        raise ActionFailedError(
            str(payload.get("error") or payload.get("message") or "Service reported failure")
        )
    return payload


def _message(payload: Any, default: str) -> str:
    if isinstance(payload, dict) and isinstance(payload.get("message"), str):
        return payload["message"]
    return default


def _validate_rating(rating: float) -> float:
    if rating is None:
        return 0
    if rating < 0 or rating > MAX_RATING:
        raise FilmValidationError(f"Rating must be between 0 and {MAX_RATING}.")
    return rating


class FilmTracker:
    """Owns the in-memory film state and keeps the services in step with it.

    Every mutating action ends with an explicit ``sync_collection()`` call; there
    is no observer wiring. Remote failures never escape an action: they degrade
    to a local fallback (sort/filter) or to an alert in ``state.modal``.
    """

    def __init__(
        self,
        *,
        recommendation: RecommendationClient,
        watchlist: WatchlistClient,
        sorting: SortingClient,
        wildcard: WildcardClient,
        movie_search: MovieSearchClient | None = None,
        health_monitor: HealthMonitor | None = None,
        state: AppState | None = None,
        user_id: str = DEFAULT_USER_ID,
        retry_max_attempts: int = 3,
        retry_initial_delay_ms: int = 1000,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.state = state or AppState()
        self.user_id = user_id
        self._recommendation = recommendation
        self._watchlist = watchlist
        self._sorting = sorting
        self._wildcard = wildcard
        self._movie_search = movie_search
        self._health_monitor = health_monitor or HealthMonitor(
            {
                "recommendation": recommendation,
                "watchlist": watchlist,
                "sorting": sorting,
                "wildcard": wildcard,
            }
        )
        self._retry_max_attempts = retry_max_attempts
        self._retry_initial_delay_ms = retry_initial_delay_ms
        self._sleep = sleep
        self._clock = clock
        # film id -> last score the recommendation service accepted
        self._pushed_ratings: dict[str, float] = {}
        # True while the sorting service stores exactly the local collection.
        self._collection_synced = False

    async def _retry(self, operation: Callable[[], Awaitable[T]]) -> T:
        return await retry_operation(
            operation,
            self._retry_max_attempts,
            self._retry_initial_delay_ms,
            sleep=self._sleep,
        )

    async def startup(self) -> None:
        """Bring local state up from the services; never raises."""

        degraded = False

        await self.check_services()
        unhealthy = [n for n, r in self.state.health.items() if not r.is_healthy]
        if unhealthy:
            logger.warning("Unhealthy services at startup: %s", ", ".join(unhealthy))
            degraded = True

        try:
            await self._retry(
                lambda: self._recommendation.create_user_profile(self.user_id, [], [])
            )
        except Exception as e:
            logger.error("Failed to create user profile: %s", e)
            degraded = True

        try:
            payload = await self._retry(lambda: self._sorting.get_film_collection(self.user_id))
            remote = [
                p for p in extract_items(payload, "watchedFilms", "films") if isinstance(p, dict)
            ]
            if remote:
                films, repaired = self._adopt_remote_films(remote)
                self.state.films = films
                self._collection_synced = not repaired
                logger.info("Loaded %d films from the sorting service", len(films))
            elif not self.state.films:
                self._collection_synced = True
        except Exception as e:
            logger.error("Failed to load film collection: %s", e)
            degraded = True

        try:
            self.state.watchlist = await self._retry(self._fetch_watchlist)
        except Exception as e:
            logger.error("Failed to load watchlist: %s", e)
            degraded = True

        if degraded:
            self.state.limited_features = True
            self.show_alert(LIMITED_FEATURES_MESSAGE)

        if not self.state.films:
            return
        if self._collection_synced:
            # The profile was just reset, so loaded ratings must be pushed again.
            await self._push_ratings()
            await self._refresh_suggestions()
        else:
            # Repaired ids or local-only films: the stored copy is replaced too.
            await self.sync_collection()

    async def check_services(self) -> dict[str, HealthRecord]:
        self.state.health = await self._health_monitor.check_all()
        return self.state.health

    def _new_film_id(self, taken: set[str] | None = None) -> str:
        candidate = int(self._clock() * 1000)
        if taken is None:
            taken = {f.id for f in self.state.films}
        while str(candidate) in taken:
            candidate += 1
        return str(candidate)

    def _adopt_remote_films(self, payloads: list[dict[str, Any]]) -> tuple[list[Film], bool]:
        """Convert stored films, keeping every id non-empty and unique.

        Repeated ids keep their first film; films without an id get a fresh
        one. The flag tells whether anything had to be changed.
        """

        films: list[Film] = []
        taken: set[str] = set()
        repaired = False
        for film in films_from_remote(payloads):
            if film.id and film.id in taken:
                logger.warning("Dropping stored film with duplicate id %s", film.id)
                repaired = True
                continue
            if film.id:
                taken.add(film.id)
            films.append(film)

        for film in films:
            if not film.id:
                film.id = self._new_film_id(taken)
                taken.add(film.id)
                repaired = True
        return films, repaired

    def _require_film(self, film_id: str) -> Film:
        film = self.state.find_film(film_id)
        if film is None:
            raise FilmNotFoundError(f"No film with id '{film_id}'")
        return film

    async def add_film(
        self,
        *,
        title: str,
        watched_date: str | None,
        year: int | str | None = None,
        rating: float = 0,
        poster: str | None = None,
        description: str = "",
        genre: str | None = None,
    ) -> Film:
        title = (title or "").strip()
        if not title or not watched_date:
            self.show_alert(MISSING_FIELDS_MESSAGE)
            raise FilmValidationError(MISSING_FIELDS_MESSAGE)

        film = Film(
            id=self._new_film_id(),
            title=title,
            year=year or _year_of(watched_date),
            rating=_validate_rating(rating),
            watched_date=watched_date,
            thoughts="",
            poster=poster or placeholder_poster(title),
            description=description or "",
            genre=genre,
        )
        self.state.films.append(film)
        self.state.selected_draft = None
        self.show_alert("Film added successfully!")
        self.navigate("watchedFilms")

        await self.sync_collection()
        return film

    async def update_film(
        self,
        film_id: str,
        *,
        rating: float | None = None,
        thoughts: str | None = None,
    ) -> Film:
        film = self._require_film(film_id)
        if rating is not None:
            film.rating = _validate_rating(rating)
        if thoughts is not None:
            film.thoughts = thoughts

        self.show_alert("Film details updated successfully!")
        self.navigate("watchedFilms")

        await self.sync_collection()
        return film

    async def remove_film(self, film_id: str) -> Film:
        film = self._require_film(film_id)
        self.state.films = [f for f in self.state.films if f.id != film_id]
        self.state.selected_film = None
        self.show_alert("Film removed successfully!")
        self.navigate("watchedFilms")

        await self.sync_collection()
        return film

    def request_remove(self, film_id: str) -> None:
        film = self._require_film(film_id)
        self.show_confirm(
            f'Are you sure you want to remove "{film.title}"? This action cannot be undone.',
            lambda: self.remove_film(film_id),
        )

    def recent_films(self, limit: int = 3) -> list[Film]:
        return recently_added(self.state.films, limit=limit)

    async def sync_collection(self) -> None:
        """Mirror the local collection to the services.

        Pushes the whole collection to the sorting service, pushes changed
        ratings, then refreshes recommendations and trending. Failures are
        logged only.
        """

        watched = films_to_remote(self.state.films)
        watchlist = [watchlist_entry_to_remote(e) for e in self.state.watchlist]
        try:
            await self._retry(
                lambda: self._sorting.update_film_collection(self.user_id, watched, watchlist)
            )
            self._collection_synced = True
        except Exception as e:
            self._collection_synced = False
            logger.error("Failed to sync film collection: %s", e)

        await self._push_ratings()
        await self._refresh_suggestions()

    async def _push_ratings(self) -> None:
        current_ids = {f.id for f in self.state.films}
        for stale in set(self._pushed_ratings) - current_ids:
            del self._pushed_ratings[stale]

        for film in list(self.state.films):
            score = film.rating or 0
            if score <= 0:
                self._pushed_ratings.pop(film.id, None)
                continue
            if self._pushed_ratings.get(film.id) == score:
                continue

            # Not retried: a rating write is not known to be idempotent.
            try:
                await self._recommendation.add_rating(self.user_id, film.id, score)
            except Exception as e:
                logger.error("Failed to push rating for film %s: %s", film.id, e)
                continue
            self._pushed_ratings[film.id] = score

    async def _refresh_suggestions(self) -> None:
        rated = sum(1 for f in self.state.films if (f.rating or 0) > 0)
        if rated >= MIN_RATED_FOR_RECOMMENDATIONS:
            try:
                payload = await self._recommendation.get_recommendations(
                    self.user_id, count=RECOMMENDATION_COUNT
                )
                self.state.recommendations = extract_items(payload, "recommendations", "films")
            except Exception as e:
                logger.error("Failed to refresh recommendations: %s", e)

        try:
            payload = await self._recommendation.get_trending()
            self.state.trending = extract_items(payload, "trending", "films")
        except Exception as e:
            logger.error("Failed to refresh trending films: %s", e)

    def _reorder_by_remote(self, items: list[Any]) -> list[Film]:
        by_id = {f.id: f for f in self.state.films}
        ids = [str(p.get("id")) for p in items if isinstance(p, dict)]
        if sorted(ids) != sorted(by_id):
            raise ActionFailedError("Sorting service returned a stale collection")
        return [by_id[i] for i in ids]

    def _require_synced(self) -> None:
        if not self._collection_synced:
            raise ActionFailedError("Sorting service holds an outdated collection")

    async def sort_films(self, criteria: str | SortCriterion, order: str = "desc") -> list[Film]:
        """Return the collection sorted; ``state.films`` keeps insertion order."""

        crit = SortCriterion.parse(criteria)
        order = parse_sort_order(order)
        try:
            self._require_synced()
            payload = _ensure_success(
                await self._sorting.sort_films(self.user_id, crit.remote_name, order, "watched")
            )
            return self._reorder_by_remote(extract_items(payload, "films", "watchedFilms"))
        except Exception as e:
            return handle_service_error(
                e, "Sorting", lambda: sort_films_locally(self.state.films, crit, order)
            )

    async def filter_films(self, criteria: FilterCriteria) -> list[Film]:
        """Return the films matching ``criteria``; the collection is untouched."""

        try:
            self._require_synced()
            payload = _ensure_success(
                await self._sorting.filter_films(self.user_id, criteria.to_remote(), "watched")
            )
            by_id = {f.id: f for f in self.state.films}
            ids = [
                str(p.get("id"))
                for p in extract_items(payload, "films", "watchedFilms")
                if isinstance(p, dict)
            ]
            return [by_id[i] for i in ids if i in by_id]
        except Exception as e:
            return handle_service_error(
                e, "Filtering", lambda: filter_films_locally(self.state.films, criteria)
            )

    async def _fetch_watchlist(self) -> list[WatchlistEntry]:
        payload = await self._watchlist.get_watchlist(self.user_id)
        return [
            watchlist_entry_from_remote(p)
            for p in extract_items(payload, "watchlist", "films")
            if isinstance(p, dict)
        ]

    async def refresh_watchlist(self) -> bool:
        # The snapshot is only replaced once the whole response parsed.
        try:
            entries = await self._fetch_watchlist()
        except Exception as e:
            logger.error("Failed to refresh watchlist: %s", e)
            return False
        self.state.watchlist = entries
        return True

    async def _watchlist_action(
        self,
        call: Callable[[], Awaitable[Any]],
        *,
        success: str,
        failure: str,
    ) -> ActionOutcome:
        try:
            payload = _ensure_success(await call())
        except Exception as e:
            message = f"{failure}: {e}"
            logger.error("%s", message)
            self.show_alert(message)
            return ActionOutcome(ok=False, message=message)

        message = _message(payload, success)
        await self.refresh_watchlist()
        self.show_alert(message)
        return ActionOutcome(ok=True, message=message)

    async def add_to_watchlist(
        self,
        *,
        title: str,
        genre: str | None = None,
        release_year: int | str | None = None,
        description: str | None = None,
        poster: str | None = None,
        film_id: str | None = None,
    ) -> ActionOutcome:
        body = watchlist_entry_payload(
            id=film_id or self._new_film_id(),
            title=title,
            genre=genre,
            release_year=release_year,
            description=description,
            poster=poster,
        )
        return await self._watchlist_action(
            lambda: self._watchlist.add_to_watchlist(self.user_id, body),
            success="Film added to watchlist!",
            failure="Failed to add film to watchlist",
        )

    async def remove_from_watchlist(self, film_id: str) -> ActionOutcome:
        return await self._watchlist_action(
            lambda: self._watchlist.remove_from_watchlist(self.user_id, film_id),
            success="Film removed from watchlist.",
            failure="Failed to remove film from watchlist",
        )

    async def update_watchlist_status(self, film_id: str, status: str) -> ActionOutcome:
        return await self._watchlist_action(
            lambda: self._watchlist.update_film_status(self.user_id, film_id, status),
            success="Watchlist status updated.",
            failure="Failed to update watchlist status",
        )

    async def get_wildcard(self, genre_id: str | int | None = None) -> Any | None:
        try:
            if genre_id is None:
                return await self._wildcard.get_wildcard_suggestion()
            return await self._wildcard.get_genre_wildcard(genre_id)
        except Exception as e:
            logger.error("Wildcard suggestion failed: %s", e)
            self.show_alert(WILDCARD_FAILED_MESSAGE)
            return None

    async def get_genres(self) -> list[Any]:
        try:
            return extract_items(await self._wildcard.get_available_genres(), "genres")
        except Exception as e:
            logger.error("Failed to load wildcard genres: %s", e)
            return []

    async def search_films(self, query: str) -> list[SearchResult]:
        query = (query or "").strip()
        if not query:
            self.show_alert("Please enter a film title to search.")
            return []

        self.state.search_query = query
        self.navigate("filmSearchResults")
        try:
            if self._movie_search is None:
                raise RuntimeError("Movie search is not configured")
            results = await self._movie_search.search(query)
        except Exception as e:
            logger.error("Error fetching movie data from TMDB: %s", e)
            self.show_alert(SEARCH_FAILED_MESSAGE)
            results = []

        self.state.search_results = results
        return results

    def select_search_result(self, result: SearchResult) -> FilmDraft:
        draft = to_draft(result)
        self.state.selected_draft = draft
        self.navigate("addFilms")
        return draft

    def navigate(self, page: str) -> None:
        if page not in PAGES:
            raise ValueError(f"Unknown page: {page}")
        self.state.current_page = page

    def back(self) -> str:
        page = self.state.current_page
        if page == "filmSearchResults":
            self.navigate("addFilms")
        elif page == "filmDetails":
            self.navigate("watchedFilms")
        else:
            self.navigate("home")
        return self.state.current_page

    def select_film(self, film_id: str) -> Film:
        film = self._require_film(film_id)
        self.state.selected_film = film
        self.navigate("filmDetails")
        return film

    def show_alert(self, message: str) -> None:
        self.state.modal = ModalState(show=True, kind="alert", message=message)

    def show_confirm(self, message: str, action: Callable[[], Awaitable[Any]]) -> None:
        self.state.modal = ModalState(show=True, kind="confirm", message=message, action=action)

    def close_modal(self) -> None:
        self.state.modal = ModalState()

    async def confirm_modal(self) -> Any:
        action = self.state.modal.action
        # Close first so an alert raised by the action stays visible.
        self.close_modal()
        if action is None:
            return None
        return await action()
