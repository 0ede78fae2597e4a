"""Server-side failures surface as a generic 500 without internal detail."""

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import OperationalError

from tickoff.services.todo_service import TodoRepository
from tickoff.services.user_service import CredentialStore

SECRET = "password=hunter2"


@pytest.mark.asyncio
async def test_database_error_is_internal_error(client, monkeypatch):
    async def broken_list(self, *args, **kwargs):
        raise OperationalError(
            f"SELECT * FROM todos -- {SECRET}", {}, Exception(f"connection lost: {SECRET}")
        )

    monkeypatch.setattr(TodoRepository, "list_todos", broken_list)

    r = await client.get("/api/todos")
    assert r.status_code == 500
    body = r.json()
    assert body == {
        "error": "internal_error",
        "message": "Internal server error",
        "fields": [],
    }
    assert SECRET not in r.text


@pytest.mark.asyncio
async def test_unhandled_error_is_internal_error(test_app, monkeypatch):
    async def broken_create(self, *args, **kwargs):
        raise RuntimeError(f"boom: {SECRET}")

    monkeypatch.setattr(CredentialStore, "create_user", broken_create)

    # The outermost handler re-raises after responding; keep the response.
    transport = ASGITransport(app=test_app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        r = await ac.post(
            "/api/auth/signup",
            json={"name": "Ada", "email": "ada@example.com", "password": "long-enough-pw"},
        )

    assert r.status_code == 500
    assert r.json()["error"] == "internal_error"
    assert SECRET not in r.text
