from __future__ import annotations

from typing import Any

from cineflix.core.http_client import ServiceClient


class RecommendationClient(ServiceClient):
    """User profiles, ratings and suggestions.

    The ranking itself happens server-side; this client only moves data.
    """

    name = "recommendation"

    async def create_user_profile(
        self,
        user_id: str,
        watch_history: list[dict[str, Any]] | None = None,
        ratings: list[dict[str, Any]] | None = None,
    ) -> Any:
        return await self._call(
            "POST",
            f"/api/users/{user_id}/profile",
            json={"watchHistory": watch_history or [], "ratings": ratings or []},
        )

    async def add_rating(self, user_id: str, film_id: str, score: float) -> Any:
        return await self._call(
            "POST",
            f"/api/users/{user_id}/ratings",
            json={"filmId": film_id, "score": score},
        )

    async def get_recommendations(self, user_id: str, count: int = 5) -> Any:
        return await self._call(
            "POST", f"/api/recommendations/{user_id}", json={"count": count}
        )

    async def get_trending(self) -> Any:
        return await self._call("GET", "/api/trending")

    async def get_personalized_trending(self, user_id: str) -> Any:
        return await self._call("POST", f"/api/trending/personalized/{user_id}")

    async def get_all_films(self) -> Any:
        return await self._call("GET", "/api/films")
