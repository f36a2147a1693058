"""Tests for the rate limit middleware with a stubbed bucket store."""

import time
from collections import defaultdict

import pytest
from fastapi import FastAPI
from httpx import AsyncClient, ASGITransport

from golfcourse.core.rate_limiter import RateLimitResult
from golfcourse.middleware import rate_limit
from golfcourse.middleware.rate_limit import RateLimitMiddleware


class StubBuckets:
    """Per-identifier buckets that allow ``capacity`` requests each."""

    def __init__(self, capacity: int = 1):
        self.capacity = capacity
        self.used: dict[tuple, int] = defaultdict(int)
        self.identifiers: list[str] = []

    async def __call__(self, limit_type, identifier):
        self.identifiers.append(identifier)
        self.used[(limit_type, identifier)] += 1
        remaining = self.capacity - self.used[(limit_type, identifier)]
        if remaining < 0:
            return RateLimitResult(
                allowed=False,
                remaining=0,
                reset_at=time.time() + 10,
                retry_after=9.5,
            )
        return RateLimitResult(allowed=True, remaining=remaining, reset_at=time.time() + 10)


def make_app(enabled: bool = True) -> FastAPI:
    app = FastAPI()
    app.add_middleware(RateLimitMiddleware, enabled=enabled)

    @app.post("/api/execute")
    async def run_code():
        return {"success": True}

    return app


@pytest.fixture
def buckets(monkeypatch):
    stub = StubBuckets(capacity=1)
    monkeypatch.setattr(rate_limit, "check_rate_limit", stub)
    return stub


async def post_run(app: FastAPI, client_id: str | None = None):
    headers = {"X-Client-Id": client_id} if client_id else {}
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        return await ac.post("/api/execute", headers=headers)


class TestRateLimitMiddleware:
    @pytest.mark.asyncio
    async def test_denied_request_gets_429(self, buckets):
        app = make_app()

        await post_run(app, "team-one-browser")
        response = await post_run(app, "team-one-browser")

        assert response.status_code == 429
        assert response.json() == {
            "detail": "Rate limit exceeded",
            "error": "too_many_requests",
            "retry_after": 9,
        }
        assert response.headers["Retry-After"] == "10"
        assert response.headers["X-RateLimit-Remaining"] == "0"

    @pytest.mark.asyncio
    async def test_allowed_request_carries_headers(self, buckets):
        response = await post_run(make_app(), "team-one-browser")

        assert response.status_code == 200
        assert response.headers["X-RateLimit-Remaining"] == "0"
        assert "Retry-After" not in response.headers

    @pytest.mark.asyncio
    async def test_clients_behind_one_ip_have_separate_buckets(self, buckets):
        app = make_app()

        first = await post_run(app, "team-one-browser")
        blocked = await post_run(app, "team-one-browser")
        other = await post_run(app, "team-two-browser")

        assert first.status_code == 200
        assert blocked.status_code == 429
        assert other.status_code == 200
        assert buckets.identifiers == [
            "client:team-one-browser",
            "client:team-one-browser",
            "client:team-two-browser",
        ]

    @pytest.mark.asyncio
    async def test_falls_back_to_ip(self, buckets):
        app = make_app()

        await post_run(app)
        response = await post_run(app)

        assert response.status_code == 429
        assert buckets.identifiers == ["ip:127.0.0.1", "ip:127.0.0.1"]

    @pytest.mark.asyncio
    async def test_malformed_client_id_falls_back_to_ip(self, buckets):
        await post_run(make_app(), "bad id!")

        assert buckets.identifiers == ["ip:127.0.0.1"]

    @pytest.mark.asyncio
    async def test_disabled_middleware_skips_limiter(self, buckets):
        app = make_app(enabled=False)

        for _ in range(3):
            response = await post_run(app, "team-one-browser")
            assert response.status_code == 200

        assert buckets.identifiers == []
