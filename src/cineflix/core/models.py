from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any


class FilmValidationError(RuntimeError):
    pass


class FilmNotFoundError(LookupError):
    pass


@dataclass
class Film:
    """A film the user watched in a theater (local form)."""

    id: str
    title: str
    year: int | str | None = None
    rating: float = 0
    watched_date: str | None = None
    thoughts: str = ""
    poster: str | None = None
    description: str = ""
    genre: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class WatchlistEntry:
    id: str
    title: str
    genre: str | None = None
    release_year: int | str | None = None
    description: str | None = None
    poster: str | None = None
    status: str = "want_to_watch"
    added_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class HealthRecord:
    status: str
    error: str | None = None
    timestamp: str | None = None

    @property
    def is_healthy(self) -> bool:
        return self.status == "healthy"


@dataclass(frozen=True)
class SearchResult:
    tmdb_id: int | None
    title: str
    release_date: str | None = None
    poster_path: str | None = None
    overview: str | None = None


@dataclass(frozen=True)
class FilmDraft:
    """Prefilled add-film form built from a search hit."""

    title: str
    year: int | str
    poster: str | None
    description: str


class SortCriterion(str, Enum):
    RATING = "rating"
    YEAR = "year"
    WATCHED_DATE = "watched_date"
    TITLE = "title"

    @classmethod
    def parse(cls, value: str | SortCriterion) -> SortCriterion:
        if isinstance(value, SortCriterion):
            return value
        key = value.strip()
        aliased = _CRITERION_ALIASES.get(key) or _CRITERION_ALIASES.get(key.lower())
        if aliased is None:
            raise ValueError(f"Unknown sort criterion: {value}")
        return aliased

    @property
    def remote_name(self) -> str:
        # Field names as the sorting service knows them.
        return {
            SortCriterion.RATING: "rating",
            SortCriterion.YEAR: "releaseYear",
            SortCriterion.WATCHED_DATE: "dateWatched",
            SortCriterion.TITLE: "title",
        }[self]


_CRITERION_ALIASES: dict[str, SortCriterion] = {
    "rating": SortCriterion.RATING,
    "year": SortCriterion.YEAR,
    "releaseYear": SortCriterion.YEAR,
    "release_year": SortCriterion.YEAR,
    "watched_date": SortCriterion.WATCHED_DATE,
    "watchedDate": SortCriterion.WATCHED_DATE,
    "dateWatched": SortCriterion.WATCHED_DATE,
    "date": SortCriterion.WATCHED_DATE,
    "title": SortCriterion.TITLE,
}


def parse_sort_order(order: str) -> str:
    value = (order or "desc").strip().lower()
    if value not in {"asc", "desc"}:
        raise ValueError(f"Unknown sort order: {order}")
    return value


@dataclass(frozen=True)
class FilterCriteria:
    genre: str | None = None
    min_rating: float | None = None
    max_rating: float | None = None
    year: int | str | None = None

    def to_remote(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.genre:
            out["genre"] = self.genre
        if self.min_rating is not None:
            out["minRating"] = self.min_rating
        if self.max_rating is not None:
            out["maxRating"] = self.max_rating
        if self.year is not None and self.year != "":
            out["year"] = self.year
        return out


@dataclass
class ModalState:
    show: bool = False
    kind: str = ""
    message: str = ""
    # Coroutine factory run when a confirm modal is accepted.
    action: Any = field(default=None, repr=False)
