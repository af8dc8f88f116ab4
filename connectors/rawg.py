"""
RawgClient: read-only client for the RAWG games catalog.

Wraps ``GET /games`` and normalises each result into the shape the
frontend renders.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)

RAWG_BASE_URL = "https://api.rawg.io/api"
PLACEHOLDER_IMAGE = "https://via.placeholder.com/400x600"

# Friendly genre names → RAWG genre slugs
GENRE_ALIASES: Dict[str, str] = {
    "shooter": "shooter",
    "action": "action",
    "adventure": "adventure",
    "rpg": "role-playing-games-rpg",
    "strategy": "strategy",
    "sports": "sports",
    "racing": "racing",
    "puzzle": "puzzle",
}


class RawgError(Exception):
    """Upstream catalog request failed or returned an unusable body."""


class RawgNotConfigured(RawgError):
    pass


def resolve_genre(genre: str) -> str:
    return GENRE_ALIASES.get(genre.lower(), genre)


def format_game(game: Dict[str, Any]) -> Dict[str, Any]:
    metacritic = game.get("metacritic")
    return {
        "id": str(game["id"]),
        "title": game.get("name"),
        "image": game.get("background_image") or PLACEHOLDER_IMAGE,
        "genres": [g.get("name") for g in game.get("genres") or []],
        "platform": [
            p["platform"]["name"]
            for p in game.get("parent_platforms") or []
            if p.get("platform")
        ],
        "rating": game.get("rating"),
        "releaseDate": game.get("released"),
        "description": game.get("description_raw"),
        "featured": bool(metacritic and metacritic > 80),
    }


class RawgClient:
    """Thin async wrapper over the RAWG REST API."""

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = RAWG_BASE_URL,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def fetch_games(
        self,
        *,
        page: int = 1,
        page_size: int = 10,
        ordering: Optional[str] = None,
        genres: Optional[str] = None,
        search: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Fetch one page of games.

        Returns ``{"results": [formatted games], "count": int}``.
        """
        if not self.is_configured():
            raise RawgNotConfigured("RAWG_API_KEY is not set")

        params: Dict[str, Any] = {
            "key": self.api_key,
            "page": page,
            "page_size": page_size,
        }
        if ordering:
            params["ordering"] = ordering
        if genres:
            params["genres"] = genres
        if search:
            params["search"] = search

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.get(f"{self.base_url}/games", params=params)
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPStatusError as exc:
            raise RawgError(f"RAWG API error: {exc.response.status_code}") from exc
        except (httpx.RequestError, ValueError) as exc:
            raise RawgError(f"RAWG API request failed: {type(exc).__name__}") from exc

        results: List[Dict[str, Any]] = [format_game(g) for g in data.get("results") or []]
        return {"results": results, "count": int(data.get("count") or 0)}
