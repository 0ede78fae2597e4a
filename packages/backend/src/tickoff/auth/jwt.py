"""JWT token creation, verification and rotation.

Stateless authentication with two token kinds:
- Access token: short-lived (15 min), sent on every API call
- Refresh token: long-lived (7 days), exchanged for a fresh pair

Both carry the user id in `sub` and their kind in `type`, so one can never
be used in place of the other. There is no server-side revocation list:
a token is valid until it expires.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from tickoff.config import settings

ACCESS = "access"
REFRESH = "refresh"


class TokenError(Exception):
    """Raised when token verification fails."""


class TokenExpired(TokenError):
    """The token's signature is valid but its exp has passed."""


class TokenInvalid(TokenError):
    """Bad signature, malformed token, wrong kind or missing subject."""


@dataclass(frozen=True)
class TokenPair:
    user_id: str
    access_token: str
    refresh_token: str
    access_expires_at: datetime
    refresh_expires_at: datetime


def _now() -> datetime:
    # JWT timestamps are whole seconds; truncating keeps exp - iat exact.
    return datetime.now(timezone.utc).replace(microsecond=0)


def _encode(
    user_id: str, kind: str, lifetime: timedelta, now: datetime
) -> tuple[str, datetime]:
    expires = now + lifetime
    payload = {
        "sub": str(user_id),
        "type": kind,
        "iat": now,
        "exp": expires,
        "jti": uuid.uuid4().hex,
    }
    token = jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)
    return token, expires


def issue_tokens(user_id: str, now: Optional[datetime] = None) -> TokenPair:
    """Issue a fresh access + refresh pair for a user.

    `now` is the issuance instant; it defaults to the current time and
    exists so callers (and tests) can pin expiry arithmetic.
    """
    issued_at = (now or _now()).replace(microsecond=0)
    access, access_exp = _encode(
        user_id,
        ACCESS,
        timedelta(minutes=settings.access_token_expire_minutes),
        issued_at,
    )
    refresh, refresh_exp = _encode(
        user_id,
        REFRESH,
        timedelta(days=settings.refresh_token_expire_days),
        issued_at,
    )
    return TokenPair(
        user_id=str(user_id),
        access_token=access,
        refresh_token=refresh,
        access_expires_at=access_exp,
        refresh_expires_at=refresh_exp,
    )


def decode_token(token: str) -> dict:
    """Verify signature and expiry, returning the raw payload."""
    try:
        return jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["exp", "sub", "type"]},
        )
    except jwt.ExpiredSignatureError:
        raise TokenExpired("Token has expired")
    except jwt.InvalidTokenError as e:
        raise TokenInvalid(f"Invalid token: {e}")


def verify_token(token: str, kind: str = ACCESS) -> str:
    """Verify a token of the given kind and return its user id.

    Raises TokenExpired or TokenInvalid.
    """
    payload = decode_token(token)
    if payload.get("type") != kind:
        raise TokenInvalid(f"Expected a {kind} token")
    subject = payload.get("sub")
    if not subject:
        raise TokenInvalid("Token has no subject")
    return subject


def refresh_tokens(refresh_token: str, now: Optional[datetime] = None) -> TokenPair:
    """Exchange a refresh token for a new pair (the refresh token rotates).

    An expired refresh token is reported as TokenInvalid: the caller must
    log in again either way.
    """
    try:
        user_id = verify_token(refresh_token, REFRESH)
    except TokenExpired:
        raise TokenInvalid("Refresh token has expired")
    return issue_tokens(user_id, now=now)
