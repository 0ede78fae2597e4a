"""Auth cookie helpers.

Both tokens travel as HTTP-only cookies scoped to the API path. Max-Age
mirrors each token's lifetime so the browser drops a cookie when its token
would be rejected anyway.
"""

from fastapi import Response

from tickoff.auth.jwt import TokenPair
from tickoff.config import settings

ACCESS_COOKIE = "accessToken"
REFRESH_COOKIE = "refreshToken"


def _cookie_options() -> dict:
    return {
        "httponly": True,
        "secure": settings.cookie_secure,
        "samesite": settings.cookie_samesite.lower(),
        "domain": settings.cookie_domain,
        "path": settings.cookie_path,
    }


def set_auth_cookies(response: Response, tokens: TokenPair) -> None:
    """Attach both token cookies to a response."""
    opts = _cookie_options()
    response.set_cookie(
        ACCESS_COOKIE,
        tokens.access_token,
        max_age=settings.access_token_expire_minutes * 60,
        **opts,
    )
    response.set_cookie(
        REFRESH_COOKIE,
        tokens.refresh_token,
        max_age=settings.refresh_token_expire_days * 24 * 3600,
        **opts,
    )


def clear_auth_cookies(response: Response) -> None:
    """Expire both token cookies (attributes must match the ones set)."""
    opts = _cookie_options()
    for name in (ACCESS_COOKIE, REFRESH_COOKIE):
        response.delete_cookie(name, **opts)
