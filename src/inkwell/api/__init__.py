"""API route aggregation.

All routers registered here get mounted in main.py.

Learn: The admin router is gated at the include_router level using
FastAPI's dependencies parameter. The others mix open and protected
routes, so each protected handler declares its own gate.
"""

from fastapi import APIRouter, Depends

from inkwell.api.admin import router as admin_router
from inkwell.api.auth import router as auth_router
from inkwell.api.blog import router as blog_router
from inkwell.api.health import router as health_router
from inkwell.api.uploads import router as uploads_router
from inkwell.auth.dependencies import require_admin

api_router = APIRouter(prefix="/api")

api_router.include_router(health_router, tags=["health"])
api_router.include_router(auth_router, tags=["auth"])
api_router.include_router(blog_router, tags=["blog"])
api_router.include_router(uploads_router, tags=["uploads"])
api_router.include_router(
    admin_router, tags=["admin"], dependencies=[Depends(require_admin)]
)
