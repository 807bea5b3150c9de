#!/usr/bin/env python3
"""
Inkwell Quickstart — both credential channels in one script.

Logs in → reads /me over the session cookie → publishes a post →
logs out → shows the bearer token still works on a fresh client.
Run with: python examples/quickstart.py

Requires: pip install httpx
Backend must be running and initialised (inkwell init-db). Over plain
http, set INKWELL_SESSION_COOKIE_SECURE=false (with SAMESITE=lax outside
development) so the cookie is sent back.
"""

import httpx

from _common import BASE, admin_credentials, check_backend, login


def main():
    check_backend()
    client = httpx.Client(base_url=BASE, timeout=10)

    # ── Login ─────────────────────────────────────────────────────
    print("\n1. Logging in...")
    body = login(client, admin_credentials())
    token = body["token"]
    print(f"   User: {body['user']['username']} ({body['user']['role']})")

    # ── Session channel ───────────────────────────────────────────
    print("\n2. Reading /auth/me with the session cookie...")
    me = client.get("/auth/me").json()
    print(f"   Resolved via {me['source']}")

    # ── Publish ───────────────────────────────────────────────────
    print("\n3. Publishing a post...")
    resp = client.post("/blog/", json={
        "title": "Hello from the quickstart",
        "excerpt": "Created by examples/quickstart.py",
        "content": "# Hello\n\nThis post was published over the session channel.",
        "tags": ["quickstart"],
    })
    assert resp.status_code == 201, f"Failed: {resp.text}"
    post = resp.json()
    print(f"   Post: /{post['slug']} ({post['status']})")

    # ── Logout ────────────────────────────────────────────────────
    print("\n4. Logging out...")
    client.post("/auth/logout")
    resp = client.get("/auth/me")
    print(f"   /auth/me without session: {resp.status_code}")

    # ── Token channel ─────────────────────────────────────────────
    print("\n5. Reading /auth/me with only the bearer token...")
    fresh = httpx.Client(
        base_url=BASE, timeout=10, headers={"Authorization": f"Bearer {token}"}
    )
    me = fresh.get("/auth/me").json()
    print(f"   Resolved via {me['source']} as {me['user']['username']}")

    # ── Cleanup ───────────────────────────────────────────────────
    resp = fresh.delete(f"/blog/{post['id']}")
    print(f"\n6. Cleanup: {resp.json()['message']}")


if __name__ == "__main__":
    main()
