"""
JWT session tokens.

Tokens are HS256-signed JWTs carrying ``userId``, ``username``, ``email``,
``iat`` and ``exp``.  They are stateless: nothing is stored per token, so a
token stays valid until it expires, logout included.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict

import jwt
from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)

_JWT_ALG = "HS256"


class TokenConfigError(RuntimeError):
    """No signing secret configured; the process cannot serve authenticated traffic."""


class InvalidTokenError(Exception):
    """Bad signature, malformed token, missing claims or expired. Deliberately one type."""


class TokenClaims(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    user_id: int = Field(..., alias="userId")
    username: str
    email: str
    iat: int
    exp: int


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenService:
    """Issues and verifies session tokens with a server-held secret."""

    def __init__(
        self,
        secret: str,
        expiry_seconds: int = 604800,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if not secret:
            raise TokenConfigError("JWT_SECRET is not defined")
        self._secret = secret
        self._expiry = timedelta(seconds=expiry_seconds)
        self._clock = clock

    def issue(self, user: Any) -> str:
        """Create a signed token for ``user`` (anything with id/username/email)."""
        now = self._clock()
        payload: Dict[str, Any] = {
            "userId": user.id,
            "username": user.username,
            "email": user.email,
            "iat": int(now.timestamp()),
            "exp": int((now + self._expiry).timestamp()),
        }
        return jwt.encode(payload, self._secret, algorithm=_JWT_ALG)

    def verify(self, token: str) -> TokenClaims:
        """
        Verify ``token`` and return its claims.

        Raises ``InvalidTokenError`` for every kind of failure; the reason is
        only logged.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[_JWT_ALG],
                options={"require": ["exp", "iat"]},
            )
            return TokenClaims.model_validate(payload)
        except (jwt.PyJWTError, ValidationError) as exc:
            logger.debug("Token rejected: %s", type(exc).__name__)
            raise InvalidTokenError("Invalid token") from exc
