"""Auth API tests: signup, login, cookies, /me, refresh, logout.

All requests go through the real cookie → JWT pipeline; nothing is
mocked except the database.
"""

import uuid
from datetime import datetime, timedelta, timezone

import pytest

from tickoff.auth.jwt import issue_tokens

PASSWORD = "correct-horse-battery"


def _email(prefix: str = "user") -> str:
    return f"{prefix}-{uuid.uuid4().hex[:8]}@example.com"


def _set_cookies(r) -> dict[str, str]:
    """Map cookie name → raw Set-Cookie header for a response."""
    return {
        h.split("=", 1)[0]: h for h in r.headers.get_list("set-cookie")
    }


# ═══════════════════════════════════════════════════════════
# Signup
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_signup_creates_user_and_sets_cookies(anon_client):
    email = _email("signup")
    r = await anon_client.post(
        "/api/auth/signup",
        json={"name": "Ada Lovelace", "email": email, "password": PASSWORD},
    )
    assert r.status_code == 201
    user = r.json()["user"]
    assert user["email"] == email
    assert user["name"] == "Ada Lovelace"
    assert "id" in user
    assert "password_hash" not in user

    cookies = _set_cookies(r)
    assert set(cookies) == {"accessToken", "refreshToken"}
    for header in cookies.values():
        lowered = header.lower()
        assert "httponly" in lowered
        assert "path=/api" in lowered
        assert "samesite=lax" in lowered
    assert "max-age=900" in cookies["accessToken"].lower()


@pytest.mark.asyncio
async def test_signup_never_returns_tokens_in_body(anon_client):
    r = await anon_client.post(
        "/api/auth/signup",
        json={"name": "Body", "email": _email(), "password": PASSWORD},
    )
    assert "accessToken" not in r.text
    assert "refreshToken" not in r.text


@pytest.mark.asyncio
async def test_signup_duplicate_email(anon_client):
    """Can't sign up twice with the same email, whatever its case."""
    email = _email("dup")
    body = {"name": "User 1", "email": email, "password": PASSWORD}

    r1 = await anon_client.post("/api/auth/signup", json=body)
    assert r1.status_code == 201

    r2 = await anon_client.post(
        "/api/auth/signup", json={**body, "email": email.upper()}
    )
    assert r2.status_code == 409
    assert r2.json()["error"] == "conflict"
    assert r2.json()["fields"][0]["field"] == "email"


@pytest.mark.asyncio
async def test_signup_short_password(anon_client):
    r = await anon_client.post(
        "/api/auth/signup",
        json={"name": "Short", "email": _email("short"), "password": "abc"},
    )
    assert r.status_code == 400
    body = r.json()
    assert body["error"] == "validation_error"
    assert [f["field"] for f in body["fields"]] == ["password"]


@pytest.mark.asyncio
async def test_signup_reports_every_bad_field(anon_client):
    r = await anon_client.post(
        "/api/auth/signup",
        json={"name": "   ", "email": "not-an-email", "password": PASSWORD},
    )
    assert r.status_code == 400
    fields = {f["field"]: f["message"] for f in r.json()["fields"]}
    assert fields == {
        "name": "Name is required",
        "email": "Enter a valid email address",
    }


@pytest.mark.asyncio
async def test_signup_missing_fields(anon_client):
    r = await anon_client.post("/api/auth/signup", json={})
    assert r.status_code == 400
    assert {f["field"] for f in r.json()["fields"]} == {"name", "email", "password"}


# ═══════════════════════════════════════════════════════════
# Login
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_login_after_signup(anon_client):
    """Signing up then logging in with the same credentials succeeds."""
    email = _email("login")
    await anon_client.post(
        "/api/auth/signup",
        json={"name": "Login User", "email": email, "password": PASSWORD},
    )

    r = await anon_client.post(
        "/api/auth/login", json={"email": email, "password": PASSWORD}
    )
    assert r.status_code == 200
    assert r.json()["user"]["email"] == email
    assert set(_set_cookies(r)) == {"accessToken", "refreshToken"}


@pytest.mark.asyncio
async def test_login_email_is_case_insensitive(anon_client):
    email = _email("case")
    await anon_client.post(
        "/api/auth/signup",
        json={"name": "Case", "email": email, "password": PASSWORD},
    )
    r = await anon_client.post(
        "/api/auth/login", json={"email": f"  {email.upper()} ", "password": PASSWORD}
    )
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_login_wrong_password(client, anon_client):
    r = await anon_client.post(
        "/api/auth/login",
        json={"email": client.user["email"], "password": "wrong_password"},
    )
    assert r.status_code == 401
    assert r.json()["error"] == "unauthorized"
    assert "set-cookie" not in r.headers


@pytest.mark.asyncio
async def test_login_nonexistent_user(anon_client):
    r = await anon_client.post(
        "/api/auth/login",
        json={"email": "nobody@example.com", "password": "whatever"},
    )
    assert r.status_code == 401


# ═══════════════════════════════════════════════════════════
# Current user (/me)
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_me_with_cookie(client):
    r = await client.get("/api/auth/me")
    assert r.status_code == 200
    assert r.json()["id"] == client.user["id"]
    assert r.json()["email"] == client.user["email"]


@pytest.mark.asyncio
async def test_me_with_bearer_header(client, anon_client):
    token = issue_tokens(client.user["id"]).access_token
    r = await anon_client.get(
        "/api/auth/me", headers={"Authorization": f"Bearer {token}"}
    )
    assert r.status_code == 200
    assert r.json()["id"] == client.user["id"]


@pytest.mark.asyncio
async def test_me_unauthenticated(anon_client):
    r = await anon_client.get("/api/auth/me")
    assert r.status_code == 401
    assert r.json()["message"] == "Authentication required"


@pytest.mark.asyncio
async def test_me_with_expired_access_token(client, anon_client):
    issued = datetime.now(timezone.utc) - timedelta(minutes=16)
    token = issue_tokens(client.user["id"], now=issued).access_token
    r = await anon_client.get(
        "/api/auth/me", headers={"Cookie": f"accessToken={token}"}
    )
    assert r.status_code == 401
    assert r.json()["message"] == "Access token has expired"


@pytest.mark.asyncio
async def test_me_rejects_refresh_token_as_access(client, anon_client):
    token = issue_tokens(client.user["id"]).refresh_token
    r = await anon_client.get(
        "/api/auth/me", headers={"Cookie": f"accessToken={token}"}
    )
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_me_for_unknown_user(anon_client):
    token = issue_tokens(str(uuid.uuid4())).access_token
    r = await anon_client.get(
        "/api/auth/me", headers={"Cookie": f"accessToken={token}"}
    )
    assert r.status_code == 401


# ═══════════════════════════════════════════════════════════
# Refresh
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_refresh_rotates_cookies(client):
    r = await client.post("/api/auth/refresh")
    assert r.status_code == 200
    assert r.json()["user_id"] == client.user["id"]
    assert set(_set_cookies(r)) == {"accessToken", "refreshToken"}

    # The rotated cookies keep working.
    r = await client.get("/api/auth/me")
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_refresh_without_cookie(anon_client):
    r = await anon_client.post("/api/auth/refresh")
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_refresh_with_access_token_fails(client, anon_client):
    access = issue_tokens(client.user["id"]).access_token
    r = await anon_client.post(
        "/api/auth/refresh", headers={"Cookie": f"refreshToken={access}"}
    )
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_refresh_with_expired_token_fails(client, anon_client):
    issued = datetime.now(timezone.utc) - timedelta(days=8)
    stale = issue_tokens(client.user["id"], now=issued).refresh_token
    r = await anon_client.post(
        "/api/auth/refresh", headers={"Cookie": f"refreshToken={stale}"}
    )
    assert r.status_code == 401


# ═══════════════════════════════════════════════════════════
# Logout
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_logout_clears_cookies(client):
    r = await client.post("/api/auth/logout")
    assert r.status_code == 200
    cookies = _set_cookies(r)
    assert set(cookies) == {"accessToken", "refreshToken"}
    for header in cookies.values():
        assert "max-age=0" in header.lower()
        assert "path=/api" in header.lower()

    r = await client.get("/api/auth/me")
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_logout_does_not_revoke_refresh_token(client, anon_client):
    """Logout is cookie-only: a copied refresh token outlives it."""
    stolen = issue_tokens(client.user["id"]).refresh_token
    await client.post("/api/auth/logout")

    r = await anon_client.post(
        "/api/auth/refresh", headers={"Cookie": f"refreshToken={stolen}"}
    )
    assert r.status_code == 200
