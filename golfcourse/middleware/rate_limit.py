"""FastAPI middleware for rate limiting.

Applies rate limits per client based on endpoint patterns. Clients are
identified by the X-Client-Id header the editor sends, or by IP without it.
"""

import re
from typing import Callable, Optional

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from golfcourse.core.metrics import record_rate_limit
from golfcourse.core.rate_limiter import (
    RateLimitType,
    check_rate_limit,
    RateLimitResult,
)


# Route patterns mapped to rate limit types
ROUTE_PATTERNS: list[tuple[re.Pattern, RateLimitType, list[str]]] = [
    # Code runs - the cooldown between runs
    (re.compile(r"^/api/execute/?$"), RateLimitType.RUN, ["POST"]),

    # Submissions re-run the code as well
    (re.compile(r"^/api/submissions/?$"), RateLimitType.SUBMIT, ["POST"]),

    # Read-heavy endpoints
    (re.compile(r"^/api/"), RateLimitType.API_READ, ["GET"]),
]

# Endpoints exempt from rate limiting
EXEMPT_PATTERNS: list[re.Pattern] = [
    re.compile(r"^/health$"),
    re.compile(r"^/metrics$"),
    re.compile(r"^/docs"),
    re.compile(r"^/openapi.json$"),
    re.compile(r"^/$"),
    re.compile(r"^/api/leaderboard/ws$"),
]


def get_client_ip(request: Request) -> str:
    """Extract client IP from request, handling proxies."""
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        # First IP in the chain is the original client
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()

    if request.client:
        return request.client.host

    return "unknown"


CLIENT_ID_HEADER = "x-client-id"
_CLIENT_ID = re.compile(r"^[A-Za-z0-9_-]{8,64}$")


def get_client_identifier(request: Request) -> str:
    """Bucket key for a request: the editor's client id, else the client IP."""
    client_id = request.headers.get(CLIENT_ID_HEADER)
    if client_id and _CLIENT_ID.match(client_id):
        return f"client:{client_id}"
    return f"ip:{get_client_ip(request)}"


def get_rate_limit_type(path: str, method: str) -> Optional[RateLimitType]:
    """Determine rate limit type for a request."""
    if method.upper() == "OPTIONS":
        return None

    for pattern in EXEMPT_PATTERNS:
        if pattern.match(path):
            return None

    for pattern, limit_type, methods in ROUTE_PATTERNS:
        if pattern.match(path) and method.upper() in methods:
            return limit_type

    # Default limit for unmatched API routes
    if path.startswith("/api/"):
        return RateLimitType.DEFAULT

    return None


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Middleware that enforces per-client rate limits on API endpoints.

    Fails open when Redis is unavailable and adds rate limit headers
    to every limited response.
    """

    def __init__(self, app, enabled: bool = True):
        super().__init__(app)
        self.enabled = enabled

    async def dispatch(
        self,
        request: Request,
        call_next: Callable,
    ) -> Response:
        if not self.enabled:
            return await call_next(request)

        limit_type = get_rate_limit_type(request.url.path, request.method)
        if limit_type is None:
            return await call_next(request)

        identifier = get_client_identifier(request)
        result: RateLimitResult = await check_rate_limit(limit_type, identifier)
        record_rate_limit(limit_type.value, result.allowed)

        if not result.allowed:
            return JSONResponse(
                status_code=429,
                content={
                    "detail": "Rate limit exceeded",
                    "error": "too_many_requests",
                    "retry_after": int(result.retry_after) if result.retry_after else 1,
                },
                headers=result.headers,
            )

        response = await call_next(request)

        for key, value in result.headers.items():
            response.headers[key] = value

        return response
