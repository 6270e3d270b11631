from __future__ import annotations

from typing import Any

from cineflix.core.http_client import ServiceClient


class WildcardClient(ServiceClient):
    name = "wildcard"

    async def get_wildcard_suggestion(self) -> Any:
        return await self._call("GET", "/api/suggest")

    async def get_genre_wildcard(self, genre_id: str | int) -> Any:
        return await self._call("GET", f"/api/suggest/{genre_id}")

    async def get_available_genres(self) -> Any:
        return await self._call("GET", "/api/genres")

    async def test_responsiveness(self) -> Any:
        return await self._call("GET", "/api/test/responsiveness")
