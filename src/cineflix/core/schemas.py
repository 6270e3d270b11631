from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class FilmOut(BaseModel):
    id: str
    title: str
    year: int | str | None = None
    rating: float = 0
    watched_date: str | None = None
    thoughts: str = ""
    poster: str | None = None
    description: str = ""
    genre: str | None = None


class AddFilmRequest(BaseModel):
    title: str
    watched_date: str | None = None
    year: int | str | None = None
    rating: float = Field(default=0, ge=0, le=5)
    poster: str | None = None
    description: str = ""
    genre: str | None = None


class UpdateFilmRequest(BaseModel):
    rating: float | None = Field(default=None, ge=0, le=5)
    thoughts: str | None = None


class SortRequest(BaseModel):
    criteria: str = "watched_date"
    order: str = Field(default="desc", pattern="^(asc|desc)$")


class FilterRequest(BaseModel):
    genre: str | None = None
    min_rating: float | None = Field(default=None, ge=0, le=5)
    max_rating: float | None = Field(default=None, ge=0, le=5)
    year: int | str | None = None


class WatchlistEntryOut(BaseModel):
    id: str
    title: str
    genre: str | None = None
    release_year: int | str | None = None
    description: str | None = None
    poster: str | None = None
    status: str
    added_at: str | None = None


class AddWatchlistRequest(BaseModel):
    title: str = Field(min_length=1)
    film_id: str | None = None
    genre: str | None = None
    release_year: int | str | None = None
    description: str | None = None
    poster: str | None = None


class UpdateWatchlistRequest(BaseModel):
    status: str = Field(min_length=1)


class ActionResponse(BaseModel):
    ok: bool
    message: str


class HealthRecordOut(BaseModel):
    status: str
    error: str | None = None
    timestamp: str | None = None


class ServicesHealthResponse(BaseModel):
    services: dict[str, HealthRecordOut]
    all_healthy: bool


class SearchResultOut(BaseModel):
    tmdb_id: int | None = None
    title: str
    release_date: str | None = None
    poster_path: str | None = None
    overview: str | None = None


class FilmDraftOut(BaseModel):
    title: str
    year: int | str
    poster: str | None = None
    description: str


class SearchResponse(BaseModel):
    query: str
    results: list[SearchResultOut]


class SelectSearchResultRequest(BaseModel):
    tmdb_id: int


class NavigateRequest(BaseModel):
    page: str


class ModalOut(BaseModel):
    show: bool
    kind: str
    message: str


class StateResponse(BaseModel):
    user_id: str
    current_page: str
    film_count: int = Field(ge=0)
    watchlist_count: int = Field(ge=0)
    selected_film: FilmOut | None = None
    selected_draft: FilmDraftOut | None = None
    modal: ModalOut
    limited_features: bool


class SuggestionsResponse(BaseModel):
    items: list[Any]
