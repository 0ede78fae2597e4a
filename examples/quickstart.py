#!/usr/bin/env python3
"""
Tickoff Quickstart — the whole todo lifecycle in one script.

Signs up a fresh user → creates todos → searches → pages → toggles →
edits → deletes → refreshes the session → logs out.
Run with: python examples/quickstart.py

Requires: pip install httpx
Backend must be running: http://localhost:5000
"""

import sys
import uuid

import httpx

BASE = "http://localhost:5000/api"


def main():
    run_id = uuid.uuid4().hex[:6]
    # httpx.Client keeps the HTTP-only auth cookies between requests,
    # just like a browser would.
    client = httpx.Client(base_url=BASE, timeout=10)

    # ── Health check ──────────────────────────────────────────────
    print("Checking backend health...")
    try:
        resp = client.get("/health")
    except httpx.ConnectError:
        print(f"Backend not reachable at {BASE}")
        sys.exit(1)
    health = resp.json()
    print(f"  Database: {'✓' if health['database'] == 'ok' else '✗'}")
    print(f"  Redis:    {'✓' if health['redis'] == 'ok' else '✗ (rate limiting off)'}")

    # ── Sign up ───────────────────────────────────────────────────
    print("\n1. Signing up...")
    resp = client.post("/auth/signup", json={
        "name": f"Demo {run_id}",
        "email": f"demo-{run_id}@example.com",
        "password": "demo-password-123",
    })
    assert resp.status_code == 201, f"Failed: {resp.text}"
    print(f"   User: {resp.json()['user']['name']}")
    print(f"   Cookies: {sorted(client.cookies.keys())}")

    # ── Create todos ──────────────────────────────────────────────
    print("\n2. Creating 12 todos...")
    ids = []
    for i in range(1, 13):
        body = {"title": f"Chore #{i}"}
        if i % 4 == 0:
            body["description"] = "remember the milk"
        resp = client.post("/todos", json=body)
        assert resp.status_code == 201, f"Failed: {resp.text}"
        ids.append(resp.json()["id"])

    # ── Search + paginate ─────────────────────────────────────────
    print("\n3. Searching for 'MILK'...")
    page = client.get("/todos", params={"search": "MILK"}).json()
    print(f"   {page['total']} match(es): {[t['title'] for t in page['items']]}")

    print("\n4. Second page of 10...")
    page = client.get("/todos", params={"page": 2, "limit": 10}).json()
    print(f"   {len(page['items'])} item(s) on page {page['page']} of {page['pages']}")

    # ── Toggle + edit ─────────────────────────────────────────────
    print("\n5. Completing the first todo...")
    todo = client.patch(f"/todos/{ids[0]}/toggle").json()
    print(f"   {todo['title']}: {todo['status']}")

    print("\n6. Renaming the second todo...")
    todo = client.put(f"/todos/{ids[1]}", json={"title": "Chore #2 (renamed)"}).json()
    print(f"   {todo['title']}")

    # ── Delete ────────────────────────────────────────────────────
    print("\n7. Deleting the last todo twice...")
    print(f"   first:  {client.delete(f'/todos/{ids[-1]}').status_code}")
    print(f"   second: {client.delete(f'/todos/{ids[-1]}').status_code}")

    # ── Refresh + logout ──────────────────────────────────────────
    print("\n8. Rotating tokens...")
    resp = client.post("/auth/refresh")
    print(f"   refresh: {resp.status_code}")

    print("\n9. Logging out...")
    client.post("/auth/logout")
    resp = client.get("/auth/me")
    print(f"   /auth/me after logout: {resp.status_code}")

    print("\nDone.")


if __name__ == "__main__":
    main()
