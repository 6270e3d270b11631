from __future__ import annotations

from typing import Any

from cineflix.core.http_client import ServiceClient


class WatchlistClient(ServiceClient):
    name = "watchlist"

    async def add_to_watchlist(self, user_id: str, film_data: dict[str, Any]) -> Any:
        return await self._call("POST", f"/api/watchlist/{user_id}/films", json=film_data)

    async def get_watchlist(self, user_id: str, status: str | None = None) -> Any:
        params = {"status": status} if status else None
        return await self._call("GET", f"/api/watchlist/{user_id}", params=params)

    async def remove_from_watchlist(self, user_id: str, film_id: str) -> Any:
        return await self._call("DELETE", f"/api/watchlist/{user_id}/films/{film_id}")

    async def update_film_status(self, user_id: str, film_id: str, status: str) -> Any:
        return await self._call(
            "PATCH",
            f"/api/watchlist/{user_id}/films/{film_id}",
            json={"status": status},
        )

    async def set_notification_preferences(
        self, user_id: str, timing: str = "day_of_release", enabled: bool = True
    ) -> Any:
        return await self._call(
            "POST",
            f"/api/watchlist/{user_id}/notifications/preferences",
            json={"timing": timing, "enabled": enabled},
        )

    async def get_notifications(self, user_id: str) -> Any:
        return await self._call("GET", f"/api/notifications/{user_id}")

    async def check_releases(self) -> Any:
        return await self._call("POST", "/api/notifications/check-releases")

    async def process_notifications(self) -> Any:
        return await self._call("POST", "/api/notifications/process")

    async def get_upcoming_releases(self) -> Any:
        return await self._call("GET", "/api/releases/upcoming")
