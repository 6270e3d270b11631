from __future__ import annotations

from collections.abc import Sequence

import pandas as pd

from cineflix.core.models import Film, FilterCriteria, SortCriterion, parse_sort_order


def _sort_key(films: Sequence[Film], criterion: SortCriterion) -> pd.Series:
    if criterion is SortCriterion.RATING:
        return pd.to_numeric(pd.Series([f.rating for f in films], dtype=object), errors="coerce")
    if criterion is SortCriterion.YEAR:
        # Non-numeric years (e.g. "N/A") become NaN and sort last.
        return pd.to_numeric(pd.Series([f.year for f in films], dtype=object), errors="coerce")
    if criterion is SortCriterion.WATCHED_DATE:
        return pd.to_datetime(
            pd.Series([f.watched_date for f in films], dtype=object),
            errors="coerce",
            format="ISO8601",
        )
    return pd.Series([(f.title or "").lower() for f in films], dtype=object)


def sort_films_locally(
    films: Sequence[Film], criterion: str | SortCriterion, order: str = "desc"
) -> list[Film]:
    """Sort films in memory with the same semantics as the sorting service.

    Ratings and years compare numerically, watched dates as dates and titles
    case-insensitively. Missing values go last; ties keep no particular order.
    """

    if not films:
        return []

    crit = SortCriterion.parse(criterion)
    ascending = parse_sort_order(order) == "asc"

    df = pd.DataFrame({"pos": range(len(films))})
    df["key"] = _sort_key(films, crit).values
    df = df.sort_values("key", ascending=ascending, kind="stable", na_position="last")
    return [films[int(i)] for i in df["pos"]]


def films_frame(films: Sequence[Film]) -> pd.DataFrame:
    """Tabular view used for predicate evaluation."""

    return pd.DataFrame(
        {
            "id": [f.id for f in films],
            "genre": [f.genre or "" for f in films],
            # Unrated films count as 0.
            "rating": pd.to_numeric(
                pd.Series([f.rating for f in films], dtype=object), errors="coerce"
            )
            .fillna(0)
            .values,
            "year": ["" if f.year is None else str(f.year).strip() for f in films],
        }
    )


def filter_films_locally(films: Sequence[Film], criteria: FilterCriteria) -> list[Film]:
    if not films:
        return []

    df = films_frame(films)
    mask = pd.Series(True, index=df.index)

    if criteria.genre:
        needle = criteria.genre.strip().lower()
        mask &= df["genre"].str.lower().str.contains(needle, regex=False)
    if criteria.min_rating is not None:
        mask &= df["rating"] >= float(criteria.min_rating)
    if criteria.max_rating is not None:
        mask &= df["rating"] <= float(criteria.max_rating)
    if criteria.year is not None and str(criteria.year).strip():
        mask &= df["year"] == str(criteria.year).strip()

    return [f for f, keep in zip(films, mask.tolist()) if keep]


def recently_added(films: Sequence[Film], *, limit: int = 3) -> list[Film]:
    """Newest first; new films are appended to the end of the collection."""

    if limit <= 0:
        return []
    return list(reversed(films[-limit:]))
