"""FastAPI auth dependencies.

Used as Depends() in route handlers (or at include_router level) to
resolve the identity behind a request:

    no token → 401
    token    → verify → CurrentIdentity bound to the request
             → verification failure → 401

Browsers send the access token in the `accessToken` cookie. Non-browser
clients may send it as `Authorization: Bearer <token>` instead.
Failure is terminal for the request; refreshing is the client's call.
"""

import uuid
from typing import Optional

import structlog
from fastapi import Cookie, Header, Request

from tickoff.auth.cookies import ACCESS_COOKIE
from tickoff.auth.jwt import ACCESS, TokenExpired, TokenInvalid, verify_token
from tickoff.errors import Unauthorized

logger = structlog.get_logger()


class CurrentIdentity:
    """The authenticated user making the request."""

    def __init__(self, user_id: str):
        self.user_id = user_id

    @property
    def user_uuid(self) -> uuid.UUID:
        return uuid.UUID(self.user_id)

    def __repr__(self) -> str:
        return f"CurrentIdentity(user_id={self.user_id!r})"


def _extract_token(
    cookie_token: Optional[str], authorization: Optional[str]
) -> Optional[str]:
    if cookie_token:
        return cookie_token
    if authorization and authorization.startswith("Bearer "):
        return authorization[7:]
    return None


async def get_current_user(
    request: Request,
    access_token: Optional[str] = Cookie(None, alias=ACCESS_COOKIE),
    authorization: Optional[str] = Header(None),
) -> CurrentIdentity:
    """Resolve the current identity (required — 401 if missing or bad)."""
    token = _extract_token(access_token, authorization)
    if not token:
        raise Unauthorized("Authentication required")

    try:
        user_id = verify_token(token, ACCESS)
        # Subjects are always UUIDs we issued; anything else is forged.
        uuid.UUID(user_id)
    except TokenExpired:
        raise Unauthorized("Access token has expired")
    except (TokenInvalid, ValueError):
        logger.info("auth.invalid_token", path=request.url.path)
        raise Unauthorized("Invalid access token")

    identity = CurrentIdentity(user_id=user_id)
    request.state.identity = identity
    structlog.contextvars.bind_contextvars(user_id=user_id)
    return identity
