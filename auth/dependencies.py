"""
FastAPI dependencies for authentication.

Provides ``db_session`` plus the two request-authentication modes:

* ``get_current_user``: a bearer token is mandatory (401 when absent,
  403 when it does not verify);
* ``get_optional_user``: the request proceeds without identity when the
  token is absent or invalid.

On success the resolved identity is also stored on ``request.state``.
"""

from __future__ import annotations

import logging
from typing import AsyncGenerator, Optional

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from auth.jwt import InvalidTokenError, TokenService
from auth.models import AuthContext

logger = logging.getLogger(__name__)


async def db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Yield a session from the app's pool; commit on success, roll back on error."""
    async with request.app.state.session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Return the token from ``Bearer <token>``; anything else counts as no token."""
    if not authorization:
        return None
    scheme, _, token = authorization.strip().partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        return None
    return token


def _authenticate(request: Request, token: str) -> AuthContext:
    tokens: TokenService = request.app.state.tokens
    claims = tokens.verify(token)
    ctx = AuthContext(user_id=claims.user_id, claims=claims)
    request.state.user_id = ctx.user_id
    request.state.user = claims
    return ctx


async def get_current_user(
    request: Request,
    authorization: Optional[str] = Header(None),
) -> AuthContext:
    token = extract_bearer_token(authorization)
    if token is None:
        logger.debug("%s %s: no bearer token", request.method, request.url.path)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Access token required",
        )
    try:
        return _authenticate(request, token)
    except InvalidTokenError:
        logger.info("%s %s: token rejected", request.method, request.url.path)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid or expired token",
        )


async def get_optional_user(
    request: Request,
    authorization: Optional[str] = Header(None),
) -> Optional[AuthContext]:
    token = extract_bearer_token(authorization)
    if token is None:
        return None
    try:
        return _authenticate(request, token)
    except InvalidTokenError:
        logger.warning(
            "Invalid token provided on %s %s; continuing unauthenticated",
            request.method,
            request.url.path,
        )
        return None


async def get_current_user_id(ctx: AuthContext = Depends(get_current_user)) -> int:
    """Just the authenticated ``user_id``."""
    return ctx.user_id
