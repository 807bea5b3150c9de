"""Health check endpoint.

Learn: Simple GET endpoint that verifies the server is running
and its dependencies (database, session store) are reachable.
"""

from fastapi import APIRouter, Request
from sqlalchemy import text

from inkwell import __version__
from inkwell.auth.sessions import RedisSessionStore
from inkwell.cache import get_redis
from inkwell.db.engine import engine

router = APIRouter()


@router.get("/health")
async def health_check(request: Request):
    """Check server health and dependency connectivity."""
    checks = {"server": "ok", "version": __version__}

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as e:
        checks["database"] = f"error: {e}"

    store = request.app.state.session_store
    if isinstance(store, RedisSessionStore):
        try:
            await get_redis().ping()
            checks["sessions"] = "ok"
        except Exception as e:
            checks["sessions"] = f"error: {e}"
    else:
        checks["sessions"] = "memory"

    status = "healthy" if all(
        v in ("ok", "memory") for k, v in checks.items() if k != "version"
    ) else "degraded"

    return {"status": status, **checks}
