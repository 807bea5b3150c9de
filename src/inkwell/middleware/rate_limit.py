"""Rate limiting middleware — Redis fixed-window counters.

Learn: Each IP gets a counter key like "inkwell:rl:{ip}:{bucket}:{minute}".
Credential-accepting endpoints (login, invite registration) get a
stricter limit to slow down password guessing.

Gracefully skips rate limiting if Redis is unavailable (e.g., in tests
or with the memory session backend).
"""

import time

import redis.exceptions
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from inkwell.cache import get_redis

STRICT_PATHS = ("/api/auth/login", "/api/auth/admin-register")


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Redis-based rate limiting per IP per minute."""

    def __init__(self, app, default_rpm: int = 100, auth_rpm: int = 10):
        super().__init__(app)
        self.default_rpm = default_rpm
        self.auth_rpm = auth_rpm

    async def dispatch(self, request: Request, call_next) -> Response:
        try:
            r = get_redis()
        except RuntimeError:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        is_auth = request.url.path.startswith(STRICT_PATHS)
        rpm = self.auth_rpm if is_auth else self.default_rpm

        window = int(time.time() // 60)
        bucket = "auth" if is_auth else "api"
        key = f"inkwell:rl:{client_ip}:{bucket}:{window}"

        try:
            count = await r.incr(key)
            if count == 1:
                await r.expire(key, 120)  # 2-min TTL for safety
        except redis.exceptions.RedisError:
            # Redis error: let the request through
            return await call_next(request)

        if count > rpm:
            return JSONResponse(
                status_code=429,
                content={"detail": "Rate limit exceeded. Try again later."},
                headers={"Retry-After": "60"},
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(rpm)
        response.headers["X-RateLimit-Remaining"] = str(max(0, rpm - count))
        return response
