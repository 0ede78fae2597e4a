"""Tickoff CLI — manage your todos from the terminal.

Usage:
    tickoff signup --name Ada --email ada@example.com
    tickoff login --email ada@example.com
    tickoff add "buy milk" -d "2 litres"
    tickoff list --search milk --page 2
    tickoff toggle <id>
    tickoff edit <id> --title "buy oat milk"
    tickoff rm <id>
    tickoff logout
    tickoff serve                      # run the API server

The auth cookies the API sets are kept in $TICKOFF_HOME/cookies.json
(default ~/.tickoff) and sent with every request. When the access token
has expired the CLI refreshes once and retries.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import json
import os
import sys
from pathlib import Path
from typing import Optional

import click
import httpx

from tickoff import __version__

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

DEFAULT_API_URL = "http://localhost:5000"
AUTH_COOKIES = ("accessToken", "refreshToken")
# Requests that must never trigger a refresh-and-retry.
NO_REFRESH_PATHS = (
    "/api/auth/login",
    "/api/auth/signup",
    "/api/auth/refresh",
    "/api/auth/logout",
)


def _api_url() -> str:
    return os.environ.get("TICKOFF_API_URL", DEFAULT_API_URL).rstrip("/")


def _home() -> Path:
    return Path(os.environ.get("TICKOFF_HOME", "~/.tickoff")).expanduser()


def _client() -> httpx.AsyncClient:
    """Build an async HTTP client pointed at the Tickoff API."""
    return httpx.AsyncClient(base_url=_api_url(), timeout=30.0)


# ---------------------------------------------------------------------------
# Session (persisted auth cookies)
# ---------------------------------------------------------------------------


class Session:
    """Auth cookies carried between CLI invocations.

    The cookies are kept in a plain dict rather than httpx's cookie jar:
    the server scopes them to /api on its own host, and the jar would
    otherwise hold a stale copy next to each rotated one.
    """

    def __init__(self, path: Path, cookies: Optional[dict[str, str]] = None):
        self.path = path
        self.cookies = cookies or {}

    @classmethod
    def load(cls) -> "Session":
        path = _home() / "cookies.json"
        try:
            data = json.loads(path.read_text())
        except (OSError, ValueError):
            data = {}
        return cls(path, {k: v for k, v in data.items() if k in AUTH_COOKIES})

    def headers(self) -> dict[str, str]:
        if not self.cookies:
            return {}
        return {"Cookie": "; ".join(f"{k}={v}" for k, v in self.cookies.items())}

    def update_from(self, response: httpx.Response) -> None:
        for cookie in response.cookies.jar:
            if cookie.name in AUTH_COOKIES:
                self.cookies[cookie.name] = cookie.value

    def save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(self.cookies))
        self.path.chmod(0o600)

    def clear(self) -> None:
        self.cookies = {}
        self.path.unlink(missing_ok=True)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Run an async coroutine from a synchronous Click handler.

    Falls back to a worker thread when an event loop is already running
    (e.g. CliRunner invoked from inside an async test).
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


async def _send(
    client: httpx.AsyncClient, session: Session, method: str, path: str, **kwargs
) -> httpx.Response:
    r = await client.request(method, path, headers=session.headers(), **kwargs)
    session.update_from(r)
    client.cookies.clear()
    return r


async def _request(method: str, path: str, **kwargs) -> httpx.Response:
    """Send an authenticated request, refreshing the session once on 401."""
    session = Session.load()
    try:
        async with _client() as c:
            r = await _send(c, session, method, path, **kwargs)
            if (
                r.status_code == 401
                and "refreshToken" in session.cookies
                and path not in NO_REFRESH_PATHS
            ):
                rr = await _send(c, session, "POST", "/api/auth/refresh")
                if rr.status_code == 200:
                    r = await _send(c, session, method, path, **kwargs)
    except httpx.ConnectError:
        click.secho(f"Error: API not reachable at {_api_url()}", fg="red", err=True)
        sys.exit(1)

    if session.cookies:
        session.save()
    return r


def _fail(r: httpx.Response) -> None:
    """Print the API's error payload and exit 1."""
    try:
        body = r.json()
        message = body.get("message") or r.reason_phrase
        fields = body.get("fields") or []
    except ValueError:
        message, fields = r.text or r.reason_phrase, []
    click.secho(f"Error ({r.status_code}): {message}", fg="red", err=True)
    for f in fields:
        click.secho(f"  {f['field']}: {f['message']}", fg="red", err=True)
    if r.status_code == 401:
        click.secho("Run `tickoff login` to sign in.", fg="yellow", err=True)
    sys.exit(1)


def _check(r: httpx.Response, *ok: int) -> httpx.Response:
    if r.status_code not in (ok or (200,)):
        _fail(r)
    return r


def _pretty_json(data: dict | list) -> str:
    return json.dumps(data, indent=2, default=str)


def _print_todo(todo: dict, verbose: bool = False) -> None:
    done = todo["status"] == "done"
    mark = click.style("[x]", fg="green") if done else click.style("[ ]", fg="yellow")
    click.echo(f"{mark} {todo['title']}  " + click.style(todo["id"], dim=True))
    if verbose:
        if todo.get("description"):
            click.echo(f"    {todo['description']}")
        click.echo(f"    created {todo['created_at']}  updated {todo['updated_at']}")


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="tickoff")
def main():
    """Tickoff — todo lists in your terminal."""


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


@main.command()
@click.option("--name", prompt=True, help="Display name")
@click.option("--email", prompt=True, help="Email address")
@click.option("--password", prompt=True, hide_input=True, confirmation_prompt=True)
def signup(name: str, email: str, password: str):
    """Create an account and sign in."""
    r = _check(
        _run(_request("POST", "/api/auth/signup",
                      json={"name": name, "email": email, "password": password})),
        201,
    )
    user = r.json()["user"]
    click.secho(f"Welcome, {user['name']}! You are signed in.", fg="green")


@main.command()
@click.option("--email", prompt=True, help="Email address")
@click.option("--password", prompt=True, hide_input=True)
def login(email: str, password: str):
    """Sign in with email and password."""
    r = _check(
        _run(_request("POST", "/api/auth/login",
                      json={"email": email, "password": password}))
    )
    user = r.json()["user"]
    click.secho(f"Signed in as {user['name']} <{user['email']}>", fg="green")


@main.command()
def logout():
    """Sign out and forget the stored session."""
    _run(_request("POST", "/api/auth/logout"))
    Session.load().clear()
    click.echo("Signed out.")


@main.command()
def whoami():
    """Show the signed-in user."""
    user = _check(_run(_request("GET", "/api/auth/me"))).json()
    click.echo(f"{user['name']} <{user['email']}>")


# ---------------------------------------------------------------------------
# Todos
# ---------------------------------------------------------------------------


@main.command("list")
@click.option("--page", "-p", default=1, show_default=True, help="Page number")
@click.option("--limit", "-l", default=10, show_default=True, help="Todos per page")
@click.option("--search", "-s", help="Only todos whose title/description contain this")
@click.option("--json", "as_json", is_flag=True, help="Print raw JSON")
def list_cmd(page: int, limit: int, search: Optional[str], as_json: bool):
    """List your todos, newest first."""
    params = {"page": page, "limit": limit}
    if search:
        params["search"] = search
    data = _check(_run(_request("GET", "/api/todos", params=params))).json()

    if as_json:
        click.echo(_pretty_json(data))
        return
    if not data["items"]:
        click.echo("No todos found.")
        return
    for todo in data["items"]:
        _print_todo(todo)
    click.secho(
        f"Page {data['page']} of {max(data['pages'], 1)} ({data['total']} total)",
        dim=True,
    )


@main.command()
@click.argument("title")
@click.option("--description", "-d", help="Optional details")
def add(title: str, description: Optional[str]):
    """Create a todo."""
    body = {"title": title}
    if description is not None:
        body["description"] = description
    todo = _check(_run(_request("POST", "/api/todos", json=body)), 201).json()
    click.secho("Added:", fg="green")
    _print_todo(todo)


@main.command()
@click.argument("todo_id")
def show(todo_id: str):
    """Show one todo."""
    todo = _check(_run(_request("GET", f"/api/todos/{todo_id}"))).json()
    _print_todo(todo, verbose=True)


@main.command()
@click.argument("todo_id")
@click.option("--title", help="New title")
@click.option("--description", help="New description")
@click.option("--status", type=click.Choice(["pending", "done"]), help="New status")
def edit(todo_id: str, title: Optional[str], description: Optional[str],
         status: Optional[str]):
    """Change a todo's title, description or status."""
    body = {
        k: v
        for k, v in {"title": title, "description": description, "status": status}.items()
        if v is not None
    }
    if not body:
        click.secho("Nothing to change: pass --title, --description or --status",
                    fg="red", err=True)
        sys.exit(1)
    todo = _check(_run(_request("PUT", f"/api/todos/{todo_id}", json=body))).json()
    _print_todo(todo, verbose=True)


@main.command()
@click.argument("todo_id")
def toggle(todo_id: str):
    """Mark a todo done (or pending again)."""
    todo = _check(_run(_request("PATCH", f"/api/todos/{todo_id}/toggle"))).json()
    _print_todo(todo)


@main.command()
@click.argument("todo_id")
def rm(todo_id: str):
    """Delete a todo."""
    _check(_run(_request("DELETE", f"/api/todos/{todo_id}")), 204)
    click.echo(f"Deleted {todo_id}")


# ---------------------------------------------------------------------------
# Server
# ---------------------------------------------------------------------------


@main.command()
def health():
    """Check API and dependency health."""
    data = _check(_run(_request("GET", "/api/health"))).json()
    color = "green" if data["status"] == "healthy" else "yellow"
    click.secho(f"{data['status']} (v{data['version']})", fg=color, bold=True)
    for key in ("server", "database", "redis"):
        click.echo(f"  {key}: {data.get(key, '—')}")


@main.command()
@click.option("--host", help="Bind address (default: TICKOFF_HOST)")
@click.option("--port", type=int, help="Port (default: TICKOFF_PORT)")
@click.option("--reload", is_flag=True, help="Auto-reload on code changes")
def serve(host: Optional[str], port: Optional[int], reload: bool):
    """Run the API server with uvicorn."""
    import uvicorn

    from tickoff.config import settings

    uvicorn.run(
        "tickoff.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )
