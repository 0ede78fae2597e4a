"""Auth API — signup, login, token refresh, current user, logout.

Routes:
- POST /auth/signup  → create account, set auth cookies
- POST /auth/login   → email/password → set auth cookies
- POST /auth/refresh → refreshToken cookie → rotated cookies
- GET  /auth/me      → current user
- POST /auth/logout  → clear cookies

Tokens never appear in response bodies; they only travel as HTTP-only
cookies. Logout does not revoke anything server-side: a copied refresh
token stays valid until it expires.
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Cookie, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from tickoff.auth.cookies import (
    REFRESH_COOKIE,
    clear_auth_cookies,
    set_auth_cookies,
)
from tickoff.auth.dependencies import CurrentIdentity, get_current_user
from tickoff.auth.jwt import TokenError, issue_tokens, refresh_tokens
from tickoff.db.engine import get_db
from tickoff.errors import Unauthorized
from tickoff.schemas.auth import (
    AuthResponse,
    LoginRequest,
    RefreshResponse,
    SignupRequest,
    UserRead,
)
from tickoff.services.user_service import CredentialStore

router = APIRouter(prefix="/auth")
logger = structlog.get_logger()


def _store(db: AsyncSession = Depends(get_db)) -> CredentialStore:
    return CredentialStore(db)


@router.post("/signup", response_model=AuthResponse, status_code=201)
async def signup(
    body: SignupRequest,
    response: Response,
    store: CredentialStore = Depends(_store),
):
    """Create a new account and sign it in."""
    user = await store.create_user(
        name=body.name, email=body.email, password=body.password
    )
    set_auth_cookies(response, issue_tokens(str(user.id)))
    return {"user": user}


@router.post("/login", response_model=AuthResponse)
async def login(
    body: LoginRequest,
    response: Response,
    store: CredentialStore = Depends(_store),
):
    """Login with email and password."""
    user = await store.authenticate(body.email, body.password)
    if not user:
        logger.info("auth.login_failed")
        raise Unauthorized("Invalid email or password")

    set_auth_cookies(response, issue_tokens(str(user.id)))
    logger.info("auth.login", user_id=str(user.id))
    return {"user": user}


@router.post("/refresh", response_model=RefreshResponse)
async def refresh(
    response: Response,
    refresh_token: Optional[str] = Cookie(None, alias=REFRESH_COOKIE),
):
    """Exchange the refresh cookie for a new access + refresh pair."""
    if not refresh_token:
        raise Unauthorized("Refresh token missing")
    try:
        tokens = refresh_tokens(refresh_token)
    except TokenError as e:
        raise Unauthorized(str(e))

    set_auth_cookies(response, tokens)
    return {"user_id": tokens.user_id}


@router.get("/me", response_model=UserRead)
async def get_me(
    identity: CurrentIdentity = Depends(get_current_user),
    store: CredentialStore = Depends(_store),
):
    """Get the current authenticated user's info."""
    user = await store.get_user(identity.user_uuid)
    if not user:
        # Valid token for an account that no longer resolves.
        raise Unauthorized("User not found")
    return user


@router.post("/logout")
async def logout(response: Response):
    """Clear both auth cookies."""
    clear_auth_cookies(response)
    return {"message": "Logged out"}
