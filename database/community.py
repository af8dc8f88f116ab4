"""
Community persistence: communities, memberships, posts, comments and likes.

Counter columns are changed with single ``UPDATE ... SET n = n + 1``
statements; duplicate memberships and likes are rejected by unique keys.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from database.models import (
    CommentLike,
    Community,
    CommunityComment,
    CommunityMember,
    CommunityPost,
    PostLike,
    User,
)
from utils.uploads import normalize_upload_collection, normalize_upload_fields

logger = logging.getLogger(__name__)

_IMAGE_FIELDS = ("image_url", "banner_image_url")


class AlreadyExists(Exception):
    """A membership or like row for this pair already exists."""


def _fields(obj: Any, columns: Tuple[str, ...]) -> Dict[str, Any]:
    return {c: getattr(obj, c) for c in columns}


def _row(obj: Any, columns: Tuple[str, ...]) -> Dict[str, Any]:
    return normalize_upload_fields(_fields(obj, columns), _IMAGE_FIELDS)


def _rows(objs: Iterable[Any], columns: Tuple[str, ...]) -> List[Dict[str, Any]]:
    return normalize_upload_collection([_fields(o, columns) for o in objs], _IMAGE_FIELDS)


_COMMUNITY_COLUMNS = (
    "id", "name", "description", "category", "image_url", "banner_image_url",
    "member_count", "post_count", "created_at",
)
_POST_COLUMNS = (
    "id", "community_id", "user_id", "title", "content", "image_url", "author",
    "likes_count", "comments_count", "created_at",
)
_COMMENT_COLUMNS = (
    "id", "post_id", "parent_comment_id", "user_id", "content", "image_url",
    "author", "likes_count", "created_at",
)


async def _insert_unique(session: AsyncSession, row: Any) -> None:
    session.add(row)
    try:
        await session.flush()
    except IntegrityError as exc:
        await session.rollback()
        raise AlreadyExists() from exc


async def author_name(session: AsyncSession, user_id: int) -> str:
    user = await session.get(User, user_id)
    if user is None:
        return "Anonymous"
    return user.display_name or user.username or "Anonymous"


# ── Communities & membership ───────────────────────────────────────────


async def list_communities(session: AsyncSession) -> List[Dict[str, Any]]:
    result = await session.execute(
        select(Community).order_by(Community.created_at.desc(), Community.id.desc())
    )
    return _rows(result.scalars(), _COMMUNITY_COLUMNS)


async def get_community(session: AsyncSession, community_id: int) -> Optional[Dict[str, Any]]:
    community = await session.get(Community, community_id)
    return _row(community, _COMMUNITY_COLUMNS) if community else None


async def community_exists(session: AsyncSession, community_id: int) -> bool:
    return await session.get(Community, community_id) is not None


async def membership_roles(
    session: AsyncSession,
    user_id: int,
    community_ids: List[int],
) -> Dict[int, str]:
    """community_id → role for the communities ``user_id`` belongs to."""
    if not community_ids:
        return {}
    result = await session.execute(
        select(CommunityMember.community_id, CommunityMember.role).where(
            CommunityMember.user_id == user_id,
            CommunityMember.community_id.in_(community_ids),
        )
    )
    return {cid: role for cid, role in result.all()}


async def create_community(
    session: AsyncSession,
    creator_id: int,
    name: str,
    description: str,
    category: str,
    image_url: Optional[str] = None,
    banner_image_url: Optional[str] = None,
) -> int:
    """Insert a community with its creator as the first (admin) member."""
    community = Community(
        name=name,
        description=description,
        category=category,
        image_url=image_url or None,
        banner_image_url=banner_image_url or None,
        member_count=1,
    )
    session.add(community)
    await session.flush()
    session.add(CommunityMember(user_id=creator_id, community_id=community.id, role="admin"))
    await session.flush()
    return community.id


async def add_member(session: AsyncSession, user_id: int, community_id: int) -> None:
    await _insert_unique(
        session,
        CommunityMember(user_id=user_id, community_id=community_id, role="member"),
    )
    await session.execute(
        update(Community)
        .where(Community.id == community_id)
        .values(member_count=Community.member_count + 1)
    )


async def remove_member(session: AsyncSession, user_id: int, community_id: int) -> bool:
    result = await session.execute(
        delete(CommunityMember).where(
            CommunityMember.user_id == user_id,
            CommunityMember.community_id == community_id,
        )
    )
    if result.rowcount == 0:
        return False
    await session.execute(
        update(Community)
        .where(Community.id == community_id)
        .values(member_count=Community.member_count - 1)
    )
    return True


async def is_admin(session: AsyncSession, user_id: int, community_id: int) -> bool:
    roles = await membership_roles(session, user_id, [community_id])
    return roles.get(community_id) == "admin"


# ── Posts ──────────────────────────────────────────────────────────────


async def list_posts(session: AsyncSession, community_id: int) -> List[Dict[str, Any]]:
    result = await session.execute(
        select(CommunityPost)
        .where(CommunityPost.community_id == community_id)
        .order_by(CommunityPost.created_at.desc(), CommunityPost.id.desc())
    )
    return _rows(result.scalars(), _POST_COLUMNS)


async def liked_post_ids(session: AsyncSession, user_id: int, post_ids: List[int]) -> Set[int]:
    if not post_ids:
        return set()
    result = await session.execute(
        select(PostLike.post_id).where(PostLike.user_id == user_id, PostLike.post_id.in_(post_ids))
    )
    return set(result.scalars())


async def create_post(
    session: AsyncSession,
    community_id: int,
    user_id: int,
    title: str,
    content: str,
    image_url: Optional[str] = None,
) -> int:
    post = CommunityPost(
        community_id=community_id,
        user_id=user_id,
        title=title,
        content=content,
        image_url=image_url or None,
        author=await author_name(session, user_id),
    )
    session.add(post)
    await session.flush()
    await session.execute(
        update(Community)
        .where(Community.id == community_id)
        .values(post_count=Community.post_count + 1)
    )
    return post.id


async def get_post(session: AsyncSession, post_id: int) -> Optional[CommunityPost]:
    return await session.get(CommunityPost, post_id)


async def like_post(session: AsyncSession, user_id: int, post_id: int) -> None:
    await _insert_unique(session, PostLike(user_id=user_id, post_id=post_id))
    await session.execute(
        update(CommunityPost)
        .where(CommunityPost.id == post_id)
        .values(likes_count=CommunityPost.likes_count + 1)
    )


async def unlike_post(session: AsyncSession, user_id: int, post_id: int) -> bool:
    result = await session.execute(
        delete(PostLike).where(PostLike.user_id == user_id, PostLike.post_id == post_id)
    )
    if result.rowcount == 0:
        return False
    await session.execute(
        update(CommunityPost)
        .where(CommunityPost.id == post_id)
        .values(likes_count=CommunityPost.likes_count - 1)
    )
    return True


# ── Comments ───────────────────────────────────────────────────────────


async def list_comments(
    session: AsyncSession,
    post_id: int,
    limit: int,
    offset: int,
) -> Tuple[List[Dict[str, Any]], bool]:
    """Oldest first. Returns ``(comments, has_more)``."""
    result = await session.execute(
        select(CommunityComment)
        .where(CommunityComment.post_id == post_id)
        .order_by(CommunityComment.created_at.asc(), CommunityComment.id.asc())
        .limit(limit + 1)
        .offset(offset)
    )
    rows = _rows(result.scalars(), _COMMENT_COLUMNS)
    return rows[:limit], len(rows) > limit


async def liked_comment_ids(session: AsyncSession, user_id: int, comment_ids: List[int]) -> Set[int]:
    if not comment_ids:
        return set()
    result = await session.execute(
        select(CommentLike.comment_id).where(
            CommentLike.user_id == user_id,
            CommentLike.comment_id.in_(comment_ids),
        )
    )
    return set(result.scalars())


async def create_comment(
    session: AsyncSession,
    post_id: int,
    user_id: int,
    content: str,
    parent_comment_id: Optional[int] = None,
    image_url: Optional[str] = None,
) -> int:
    comment = CommunityComment(
        post_id=post_id,
        parent_comment_id=parent_comment_id,
        user_id=user_id,
        content=content,
        image_url=image_url or None,
        author=await author_name(session, user_id),
    )
    session.add(comment)
    await session.flush()
    await session.execute(
        update(CommunityPost)
        .where(CommunityPost.id == post_id)
        .values(comments_count=CommunityPost.comments_count + 1)
    )
    return comment.id


async def get_comment(session: AsyncSession, comment_id: int) -> Optional[CommunityComment]:
    return await session.get(CommunityComment, comment_id)


async def like_comment(session: AsyncSession, user_id: int, comment_id: int) -> None:
    await _insert_unique(session, CommentLike(user_id=user_id, comment_id=comment_id))
    await session.execute(
        update(CommunityComment)
        .where(CommunityComment.id == comment_id)
        .values(likes_count=CommunityComment.likes_count + 1)
    )


async def unlike_comment(session: AsyncSession, user_id: int, comment_id: int) -> bool:
    result = await session.execute(
        delete(CommentLike).where(
            CommentLike.user_id == user_id,
            CommentLike.comment_id == comment_id,
        )
    )
    if result.rowcount == 0:
        return False
    await session.execute(
        update(CommunityComment)
        .where(CommunityComment.id == comment_id)
        .values(likes_count=CommunityComment.likes_count - 1)
    )
    return True


async def find_comment_in_community(
    session: AsyncSession,
    comment_id: int,
    community_id: int,
) -> Optional[CommunityComment]:
    result = await session.execute(
        select(CommunityComment)
        .join(CommunityPost, CommunityComment.post_id == CommunityPost.id)
        .where(CommunityComment.id == comment_id, CommunityPost.community_id == community_id)
    )
    return result.scalar_one_or_none()


async def delete_comment_tree(session: AsyncSession, comment: CommunityComment) -> int:
    """Delete ``comment``, all replies beneath it and their likes. Returns the count removed."""
    ids = [comment.id]
    frontier = [comment.id]
    while frontier:
        result = await session.execute(
            select(CommunityComment.id).where(CommunityComment.parent_comment_id.in_(frontier))
        )
        frontier = list(result.scalars())
        ids.extend(frontier)

    post_id = comment.post_id
    await session.execute(delete(CommentLike).where(CommentLike.comment_id.in_(ids)))
    # children first so the self-referencing key never dangles
    for comment_id in reversed(ids):
        await session.execute(delete(CommunityComment).where(CommunityComment.id == comment_id))
    await session.execute(
        update(CommunityPost)
        .where(CommunityPost.id == post_id)
        .values(comments_count=CommunityPost.comments_count - len(ids))
    )
    logger.info("Deleted comment %s (%d including replies)", comment.id, len(ids))
    return len(ids)
