from __future__ import annotations

from typing import Any

import httpx

from cineflix.core.config import TMDB_BASE, TMDB_IMG_BASE
from cineflix.core.http_client import ServiceCallError, ServiceClient
from cineflix.core.models import FilmDraft, SearchResult

NO_DESCRIPTION = "No description available."


class MovieSearchError(RuntimeError):
    pass


def poster_url(poster_path: str | None, *, size: str = "w200") -> str | None:
    if not poster_path:
        return None
    return f"{TMDB_IMG_BASE}/{size}{poster_path}"


def _year_from_release_date(release_date: str | None) -> int | str:
    if isinstance(release_date, str) and len(release_date) >= 4:
        try:
            return int(release_date[:4])
        except ValueError:
            pass
    return "N/A"


def parse_search_results(payload: Any) -> list[SearchResult]:
    if not isinstance(payload, dict):
        return []

    out: list[SearchResult] = []
    for item in payload.get("results") or []:
        if not isinstance(item, dict) or not item.get("title"):
            continue
        out.append(
            SearchResult(
                tmdb_id=item.get("id"),
                title=item["title"],
                release_date=item.get("release_date") or None,
                poster_path=item.get("poster_path"),
                overview=item.get("overview"),
            )
        )
    return out


def to_draft(result: SearchResult) -> FilmDraft:
    """Map a search hit to the prefilled add-film form."""

    return FilmDraft(
        title=result.title,
        year=_year_from_release_date(result.release_date),
        poster=poster_url(result.poster_path),
        description=result.overview or NO_DESCRIPTION,
    )


class MovieSearchClient(ServiceClient):
    """Title search against TMDb."""

    name = "movie_search"

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str = TMDB_BASE,
        *,
        api_key: str | None = None,
    ) -> None:
        super().__init__(client, base_url)
        self._api_key = api_key

    async def search(self, query: str) -> list[SearchResult]:
        query = (query or "").strip()
        if not query:
            return []
        if not self._api_key:
            raise MovieSearchError("TMDb API key is not configured")

        try:
            payload = await self._call(
                "GET", "/search/movie", params={"api_key": self._api_key, "query": query}
            )
        except ServiceCallError as e:
            raise MovieSearchError(f"Movie search failed: {e}") from e
        return parse_search_results(payload)
