"""
Game catalog routes: proxy to RAWG with offset/limit pagination.

Route prefix: /api/games
"""

from __future__ import annotations

import logging
import random
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from connectors.rawg import RawgClient, RawgError, RawgNotConfigured, resolve_genre

logger = logging.getLogger(__name__)

router = APIRouter(tags=["games"])

MAX_PAGE_SIZE = 40


def _rawg(request: Request) -> RawgClient:
    return request.app.state.rawg


def _page_for(limit: int, offset: int) -> int:
    return offset // limit + 1


async def _paged(
    rawg: RawgClient,
    failure: str,
    *,
    limit: int,
    offset: int,
    shuffle: bool = False,
    **filters: Any,
) -> Dict[str, Any]:
    page = _page_for(limit, offset)
    try:
        data = await rawg.fetch_games(page=page, page_size=limit, **filters)
    except RawgNotConfigured:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Game catalog is not configured",
        )
    except RawgError as exc:
        logger.error("%s: %s", failure, exc)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=failure)

    games = data["results"]
    if shuffle:
        games = random.sample(games, len(games))
    total = data["count"]
    return {
        "games": games,
        "total": total,
        "page": page,
        "pageSize": limit,
        "hasMore": page * limit < total,
    }


@router.get("")
async def list_games(
    genre: Optional[str] = None,
    ordering: str = "-rating",
    limit: int = Query(10, ge=1, le=MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    rawg: RawgClient = Depends(_rawg),
) -> Dict[str, Any]:
    """Games filtered by genre slug (defaults to shooters)."""
    return await _paged(
        rawg,
        "Failed to fetch games",
        limit=limit,
        offset=offset,
        genres=genre or "shooter",
        ordering=ordering,
    )


@router.get("/random")
async def random_games(
    limit: int = Query(10, ge=1, le=MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    rawg: RawgClient = Depends(_rawg),
) -> Dict[str, Any]:
    """Highly rated games in shuffled order."""
    return await _paged(
        rawg,
        "Failed to fetch random games",
        limit=limit,
        offset=offset,
        shuffle=True,
        ordering="-rating,-metacritic",
    )


@router.get("/top")
async def top_games(
    limit: int = Query(10, ge=1, le=MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    rawg: RawgClient = Depends(_rawg),
) -> Dict[str, Any]:
    return await _paged(
        rawg,
        "Failed to fetch top games",
        limit=limit,
        offset=offset,
        ordering="-metacritic,-rating",
    )


@router.get("/genre/{genre}")
async def games_by_genre(
    genre: str,
    ordering: str = "-rating",
    limit: int = Query(10, ge=1, le=MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    rawg: RawgClient = Depends(_rawg),
) -> Dict[str, Any]:
    return await _paged(
        rawg,
        "Failed to fetch games by genre",
        limit=limit,
        offset=offset,
        genres=resolve_genre(genre),
        ordering=ordering,
    )


@router.get("/search")
async def search_games(
    q: Optional[str] = None,
    limit: int = Query(20, ge=1, le=MAX_PAGE_SIZE),
    rawg: RawgClient = Depends(_rawg),
) -> Dict[str, Any]:
    if not q or not q.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Search query is required")

    logger.info("Searching games for %r", q)
    try:
        data = await rawg.fetch_games(page=1, page_size=limit, search=q.strip())
    except RawgNotConfigured:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Game catalog is not configured",
        )
    except RawgError as exc:
        logger.error("Failed to search games: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to search games",
        )
    return {"games": data["results"]}
