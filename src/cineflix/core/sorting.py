from __future__ import annotations

from typing import Any

from cineflix.core.http_client import ServiceClient


class SortingClient(ServiceClient):
    """Server-side sort/filter and storage of a user's film collection."""

    name = "sorting"

    async def sort_films(
        self, user_id: str, criteria: str, order: str = "desc", film_type: str = "watched"
    ) -> Any:
        return await self._call(
            "POST",
            f"/api/films/{user_id}/sort",
            json={"criteria": criteria, "order": order, "filmType": film_type},
        )

    async def filter_films(
        self, user_id: str, filters: dict[str, Any], film_type: str = "watched"
    ) -> Any:
        return await self._call(
            "POST",
            f"/api/films/{user_id}/filter",
            json={"filters": filters, "filmType": film_type},
        )

    async def sort_and_filter_films(
        self,
        user_id: str,
        sort_criteria: str,
        sort_order: str = "desc",
        filters: dict[str, Any] | None = None,
        film_type: str = "watched",
    ) -> Any:
        return await self._call(
            "POST",
            f"/api/films/{user_id}/sort-and-filter",
            json={
                "sortCriteria": sort_criteria,
                "sortOrder": sort_order,
                "filters": filters or {},
                "filmType": film_type,
            },
        )

    async def get_film_collection(self, user_id: str, type: str = "all") -> Any:
        params = {"type": type} if type != "all" else None
        return await self._call("GET", f"/api/films/{user_id}", params=params)

    async def update_film_collection(
        self,
        user_id: str,
        watched_films: list[dict[str, Any]] | None = None,
        watchlist_films: list[dict[str, Any]] | None = None,
    ) -> Any:
        # Full replace of the stored collection.
        return await self._call(
            "POST",
            f"/api/films/{user_id}",
            json={
                "watchedFilms": watched_films or [],
                "watchlistFilms": watchlist_films or [],
            },
        )

    async def get_filter_options(self, user_id: str, film_type: str = "watched") -> Any:
        return await self._call(
            "GET", f"/api/filters/options/{user_id}", params={"filmType": film_type}
        )
