"""
REST API router: mounts the feature routers under /api.
"""

from __future__ import annotations

from typing import Dict

from fastapi import APIRouter

from api.communities import router as communities_router
from api.games import router as games_router
from api.uploads import router as uploads_router

router = APIRouter()


@router.get("/ping")
async def ping() -> Dict[str, str]:
    return {"message": "ping"}


router.include_router(communities_router)
router.include_router(uploads_router)
router.include_router(games_router, prefix="/games")
