"""
Auth API routes: register, login, logout, profile.

Route prefix: /api/auth
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession

from auth.dependencies import db_session, get_current_user
from auth.models import AuthContext
from auth.service import AccountError, AccountService, AuthResult

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


# ── Request schemas ────────────────────────────────────────────────────
# Fields are optional here so that missing values get the account
# service's own 400 messages instead of a generic validation error.


class RegisterRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    username: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    display_name: Optional[str] = Field(None, alias="displayName")


class LoginRequest(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None


def _accounts(request: Request) -> AccountService:
    return request.app.state.accounts


def _http_error(exc: AccountError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=exc.message)


def _auth_payload(message: str, result: AuthResult) -> Dict[str, Any]:
    return {
        "message": message,
        "user": result.user.model_dump(mode="json"),
        "accessToken": result.access_token,
    }


# ── Endpoints ──────────────────────────────────────────────────────────


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    req: RegisterRequest,
    accounts: AccountService = Depends(_accounts),
    session: AsyncSession = Depends(db_session),
) -> Dict[str, Any]:
    """Register a new user and return a session token."""
    try:
        result = await accounts.register(
            session,
            username=req.username,
            email=req.email,
            password=req.password,
            display_name=req.display_name,
        )
    except AccountError as exc:
        raise _http_error(exc)
    return _auth_payload("User registered successfully", result)


@router.post("/login")
async def login(
    req: LoginRequest,
    accounts: AccountService = Depends(_accounts),
    session: AsyncSession = Depends(db_session),
) -> Dict[str, Any]:
    """Login with username or email + password."""
    try:
        result = await accounts.login(session, req.username, req.password)
    except AccountError as exc:
        raise _http_error(exc)
    return _auth_payload("Login successful", result)


@router.post("/logout")
async def logout(accounts: AccountService = Depends(_accounts)) -> Dict[str, Any]:
    await accounts.logout()
    return {"message": "Logged out successfully"}


@router.get("/profile")
async def profile(
    ctx: AuthContext = Depends(get_current_user),
    accounts: AccountService = Depends(_accounts),
    session: AsyncSession = Depends(db_session),
) -> Dict[str, Any]:
    try:
        user = await accounts.get_profile(session, ctx.user_id)
    except AccountError as exc:
        raise _http_error(exc)
    return {"user": user.model_dump(mode="json")}
