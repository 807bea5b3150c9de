"""
Shared helpers for Inkwell examples.

Handles the health check and login so each example can focus on its
specific flow. Credentials come from INKWELL_ADMIN_EMAIL /
INKWELL_ADMIN_PASSWORD, the same variables `inkwell init-db` reads.
"""

import os
import sys

import httpx

BASE = os.environ.get("INKWELL_BASE_URL", "http://localhost:3001/api")


def check_backend() -> None:
    """Verify the backend is reachable and healthy."""
    try:
        resp = httpx.get(f"{BASE}/health", timeout=5)
    except httpx.ConnectError:
        print(f"ERROR: Backend not reachable at {BASE}")
        print("Start it with:  uvicorn inkwell.main:app --reload --port 3001")
        sys.exit(1)

    if resp.status_code != 200:
        print(f"ERROR: Health check returned {resp.status_code}")
        sys.exit(1)

    health = resp.json()
    print("Backend health:")
    print(f"  Database: {'✓' if health['database'] == 'ok' else '✗'}")
    print(f"  Sessions: {health['sessions']}")

    if health["database"] != "ok":
        print("\nERROR: Database is not connected. Run: inkwell init-db")
        sys.exit(1)


def admin_credentials() -> dict:
    email = os.environ.get("INKWELL_ADMIN_EMAIL")
    password = os.environ.get("INKWELL_ADMIN_PASSWORD")
    if not email or not password:
        print("ERROR: set INKWELL_ADMIN_EMAIL and INKWELL_ADMIN_PASSWORD")
        sys.exit(1)
    return {"email": email, "password": password}


def login(client: httpx.Client, credentials: dict) -> dict:
    """Log in on `client` (its cookie jar keeps the session). Returns the body."""
    resp = client.post("/auth/login", json=credentials)
    if resp.status_code != 200:
        print(f"ERROR: Login failed: {resp.status_code} {resp.text}")
        sys.exit(1)
    return resp.json()
