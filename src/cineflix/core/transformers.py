from __future__ import annotations

from collections.abc import Iterable
from datetime import date
from typing import Any

from cineflix.core.models import Film, HealthRecord, WatchlistEntry

# Keys under which services wrap list payloads.
DEFAULT_ITEM_KEYS = (
    "films",
    "watchedFilms",
    "watchlist",
    "recommendations",
    "trending",
    "results",
    "data",
)


def film_to_remote(film: Film) -> dict[str, Any]:
    """Convert a local film to the microservice film shape."""

    return {
        "id": film.id,
        "title": film.title,
        "genre": film.genre or "Unknown",
        "rating": film.rating or 0,
        "dateWatched": film.watched_date,
        "releaseYear": film.year or date.today().year,
        "poster": film.poster,
        "description": film.description or "",
        "thoughts": film.thoughts or "",
    }


def film_from_remote(payload: dict[str, Any]) -> Film:
    """Convert a microservice film payload to the local film shape."""

    return Film(
        id=str(payload.get("id") or ""),
        title=payload.get("title") or "",
        year=payload.get("releaseYear") or payload.get("year"),
        rating=payload.get("rating") or 0,
        watched_date=payload.get("dateWatched"),
        poster=payload.get("poster"),
        description=payload.get("description") or "",
        thoughts=payload.get("thoughts") or "",
        genre=payload.get("genre"),
    )


def films_to_remote(films: Iterable[Film]) -> list[dict[str, Any]]:
    return [film_to_remote(f) for f in films]


def films_from_remote(payloads: Iterable[dict[str, Any]]) -> list[Film]:
    return [film_from_remote(p) for p in payloads]


def extract_items(payload: Any, *keys: str) -> list[Any]:
    """Pull the list out of a service response.

    Services answer either with a bare JSON array or with an object wrapping the
    array under one of ``keys`` (or DEFAULT_ITEM_KEYS when none are given).
    Anything else yields an empty list.
    """

    if isinstance(payload, list):
        return payload
    if not isinstance(payload, dict):
        return []

    for key in keys or DEFAULT_ITEM_KEYS:
        value = payload.get(key)
        if isinstance(value, list):
            return value
        # One level of nesting, e.g. {"data": {"films": [...]}}.
        if isinstance(value, dict):
            nested = extract_items(value, *(keys or DEFAULT_ITEM_KEYS))
            if nested:
                return nested
    return []


def watchlist_entry_from_remote(payload: dict[str, Any]) -> WatchlistEntry:
    return WatchlistEntry(
        id=str(payload.get("id") or payload.get("filmId") or ""),
        title=payload.get("title") or "",
        genre=payload.get("genre"),
        release_year=payload.get("releaseYear") or payload.get("year"),
        description=payload.get("description"),
        poster=payload.get("poster"),
        status=payload.get("status") or "want_to_watch",
        added_at=payload.get("addedAt"),
    )


def watchlist_entry_to_remote(entry: WatchlistEntry) -> dict[str, Any]:
    return {
        "id": entry.id,
        "title": entry.title,
        "genre": entry.genre or "Unknown",
        "releaseYear": entry.release_year,
        "description": entry.description or "",
        "poster": entry.poster,
        "status": entry.status,
        "addedAt": entry.added_at,
    }


def watchlist_entry_payload(
    *,
    id: str,
    title: str,
    genre: str | None = None,
    release_year: int | str | None = None,
    description: str | None = None,
    poster: str | None = None,
) -> dict[str, Any]:
    """Body for adding a film to the watchlist service."""

    body: dict[str, Any] = {
        "id": id,
        "title": title,
        "genre": genre or "Unknown",
        "releaseYear": release_year,
    }
    if description:
        body["description"] = description
    if poster:
        body["poster"] = poster
    return body


def health_record_from_payload(payload: Any) -> HealthRecord:
    if not isinstance(payload, dict):
        return HealthRecord(status="unhealthy", error="Malformed health response")

    error = payload.get("error")
    return HealthRecord(
        status=str(payload.get("status") or "unhealthy"),
        error=str(error) if error is not None else None,
        timestamp=payload.get("timestamp"),
    )
