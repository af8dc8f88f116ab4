"""
Community routes: communities, membership, posts, comments, likes.

Listing endpoints accept an optional bearer token and then include
per-user flags (``is_member``/``role``, ``is_liked``); writes require one.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from auth.dependencies import db_session, get_current_user_id, get_optional_user
from auth.models import AuthContext
from database import community as store

logger = logging.getLogger(__name__)

router = APIRouter(tags=["communities"])


class CommunityCreate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    image_url: Optional[str] = None
    banner_image_url: Optional[str] = None


class PostCreate(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None
    image_url: Optional[str] = None


class CommentCreate(BaseModel):
    content: Optional[str] = None
    parent_comment_id: Optional[int] = None
    image_url: Optional[str] = None


def _bad_request(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


def _not_found(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


async def _require_community(session: AsyncSession, community_id: int) -> None:
    if not await store.community_exists(session, community_id):
        raise _not_found("Community not found")


async def _require_post(session: AsyncSession, community_id: int, post_id: int) -> None:
    post = await store.get_post(session, post_id)
    if post is None or post.community_id != community_id:
        raise _not_found("Post not found")


async def _require_comment(
    session: AsyncSession, community_id: int, post_id: int, comment_id: int
) -> None:
    comment = await store.find_comment_in_community(session, comment_id, community_id)
    if comment is None or comment.post_id != post_id:
        raise _not_found("Comment not found")


# ── Communities ────────────────────────────────────────────────────────


@router.get("/communities")
async def list_communities(
    viewer: Optional[AuthContext] = Depends(get_optional_user),
    session: AsyncSession = Depends(db_session),
) -> Dict[str, Any]:
    communities = await store.list_communities(session)
    if viewer is not None:
        roles = await store.membership_roles(session, viewer.user_id, [c["id"] for c in communities])
        for community in communities:
            community["is_member"] = community["id"] in roles
            community["role"] = roles.get(community["id"])
    return {"communities": communities}


@router.get("/communities/{community_id}")
async def get_community(
    community_id: int,
    viewer: Optional[AuthContext] = Depends(get_optional_user),
    session: AsyncSession = Depends(db_session),
) -> Dict[str, Any]:
    community = await store.get_community(session, community_id)
    if community is None:
        raise _not_found("Community not found")
    if viewer is not None:
        roles = await store.membership_roles(session, viewer.user_id, [community_id])
        community["is_member"] = community_id in roles
        community["role"] = roles.get(community_id)
    return {"community": community}


@router.post("/communities", status_code=status.HTTP_201_CREATED)
async def create_community(
    req: CommunityCreate,
    user_id: int = Depends(get_current_user_id),
    session: AsyncSession = Depends(db_session),
) -> Dict[str, Any]:
    if not req.name or not req.description or not req.category:
        raise _bad_request("Name, description, and category are required")
    community_id = await store.create_community(
        session,
        creator_id=user_id,
        name=req.name,
        description=req.description,
        category=req.category,
        image_url=req.image_url,
        banner_image_url=req.banner_image_url,
    )
    logger.info("User %s created community %s", user_id, community_id)
    return {"id": community_id, "message": "Community created successfully"}


@router.post("/communities/{community_id}/join")
async def join_community(
    community_id: int,
    user_id: int = Depends(get_current_user_id),
    session: AsyncSession = Depends(db_session),
) -> Dict[str, Any]:
    await _require_community(session, community_id)
    try:
        await store.add_member(session, user_id, community_id)
    except store.AlreadyExists:
        raise _bad_request("Already a member of this community")
    return {"message": "Joined community successfully"}


@router.delete("/communities/{community_id}/join")
async def leave_community(
    community_id: int,
    user_id: int = Depends(get_current_user_id),
    session: AsyncSession = Depends(db_session),
) -> Dict[str, Any]:
    if not await store.remove_member(session, user_id, community_id):
        raise _bad_request("Not a member of this community")
    return {"message": "Left community successfully"}


# ── Posts ──────────────────────────────────────────────────────────────


@router.get("/communities/{community_id}/posts")
async def list_posts(
    community_id: int,
    viewer: Optional[AuthContext] = Depends(get_optional_user),
    session: AsyncSession = Depends(db_session),
) -> Dict[str, Any]:
    posts = await store.list_posts(session, community_id)
    liked = set()
    if viewer is not None:
        liked = await store.liked_post_ids(session, viewer.user_id, [p["id"] for p in posts])
    for post in posts:
        post["is_liked"] = post["id"] in liked
    return {"posts": posts}


@router.post("/communities/{community_id}/posts", status_code=status.HTTP_201_CREATED)
async def create_post(
    community_id: int,
    req: PostCreate,
    user_id: int = Depends(get_current_user_id),
    session: AsyncSession = Depends(db_session),
) -> Dict[str, Any]:
    if not req.title or not req.content:
        raise _bad_request("Title and content are required")
    await _require_community(session, community_id)
    post_id = await store.create_post(
        session,
        community_id=community_id,
        user_id=user_id,
        title=req.title,
        content=req.content,
        image_url=req.image_url,
    )
    return {"id": post_id, "message": "Post created successfully"}


@router.post("/posts/{post_id}/like")
async def like_post(
    post_id: int,
    user_id: int = Depends(get_current_user_id),
    session: AsyncSession = Depends(db_session),
) -> Dict[str, Any]:
    if await store.get_post(session, post_id) is None:
        raise _not_found("Post not found")
    try:
        await store.like_post(session, user_id, post_id)
    except store.AlreadyExists:
        raise _bad_request("Already liked this post")
    return {"message": "Post liked successfully"}


@router.delete("/posts/{post_id}/like")
async def unlike_post(
    post_id: int,
    user_id: int = Depends(get_current_user_id),
    session: AsyncSession = Depends(db_session),
) -> Dict[str, Any]:
    if not await store.unlike_post(session, user_id, post_id):
        raise _bad_request("Post not liked")
    return {"message": "Post unliked successfully"}


# ── Comments ───────────────────────────────────────────────────────────


@router.get("/communities/{community_id}/posts/{post_id}/comments")
async def list_comments(
    community_id: int,
    post_id: int,
    limit: int = Query(5, ge=1, le=100),
    offset: int = Query(0, ge=0),
    viewer: Optional[AuthContext] = Depends(get_optional_user),
    session: AsyncSession = Depends(db_session),
) -> Dict[str, Any]:
    comments, has_more = await store.list_comments(session, post_id, limit, offset)
    liked = set()
    if viewer is not None:
        liked = await store.liked_comment_ids(session, viewer.user_id, [c["id"] for c in comments])
    for comment in comments:
        comment["is_liked"] = comment["id"] in liked
    return {"comments": comments, "hasMore": has_more}


@router.post(
    "/communities/{community_id}/posts/{post_id}/comments",
    status_code=status.HTTP_201_CREATED,
)
async def create_comment(
    community_id: int,
    post_id: int,
    req: CommentCreate,
    user_id: int = Depends(get_current_user_id),
    session: AsyncSession = Depends(db_session),
) -> Dict[str, Any]:
    if not req.content:
        raise _bad_request("Content is required")
    await _require_post(session, community_id, post_id)
    if req.parent_comment_id is not None:
        parent = await store.get_comment(session, req.parent_comment_id)
        if parent is None or parent.post_id != post_id:
            raise _bad_request("Parent comment not found on this post")
    comment_id = await store.create_comment(
        session,
        post_id=post_id,
        user_id=user_id,
        content=req.content,
        parent_comment_id=req.parent_comment_id,
        image_url=req.image_url,
    )
    return {"id": comment_id, "message": "Comment created successfully"}


@router.post("/communities/{community_id}/posts/{post_id}/comments/{comment_id}/like")
async def like_comment(
    community_id: int,
    post_id: int,
    comment_id: int,
    user_id: int = Depends(get_current_user_id),
    session: AsyncSession = Depends(db_session),
) -> Dict[str, Any]:
    await _require_comment(session, community_id, post_id, comment_id)
    try:
        await store.like_comment(session, user_id, comment_id)
    except store.AlreadyExists:
        raise _bad_request("Already liked")
    return {"message": "Comment liked"}


@router.delete("/communities/{community_id}/posts/{post_id}/comments/{comment_id}/like")
async def unlike_comment(
    community_id: int,
    post_id: int,
    comment_id: int,
    user_id: int = Depends(get_current_user_id),
    session: AsyncSession = Depends(db_session),
) -> Dict[str, Any]:
    await _require_comment(session, community_id, post_id, comment_id)
    if not await store.unlike_comment(session, user_id, comment_id):
        raise _bad_request("Not liked")
    return {"message": "Comment unliked"}


@router.delete("/communities/{community_id}/posts/{post_id}/comments/{comment_id}")
async def delete_comment(
    community_id: int,
    post_id: int,
    comment_id: int,
    user_id: int = Depends(get_current_user_id),
    session: AsyncSession = Depends(db_session),
) -> Dict[str, Any]:
    """Community admins only."""
    if not await store.is_admin(session, user_id, community_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only community admins can delete comments",
        )
    comment = await store.find_comment_in_community(session, comment_id, community_id)
    if comment is None:
        raise _not_found("Comment not found in this community")
    await store.delete_comment_tree(session, comment)
    return {"message": "Comment deleted successfully"}
