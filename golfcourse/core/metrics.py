"""Prometheus metrics for Golf Course.

Provides observability into request handling, code execution and
contest activity.
"""

import re
import time
from typing import Callable

from prometheus_client import (
    Counter,
    Gauge,
    Histogram,
    Info,
    generate_latest,
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    multiprocess,
    REGISTRY,
)
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from golfcourse.config import settings


def get_registry() -> CollectorRegistry:
    """Get the appropriate registry for the current mode."""
    if settings.environment == "production":
        # In production with multiple workers, use multiprocess mode
        registry = CollectorRegistry()
        multiprocess.MultiProcessCollector(registry)
        return registry
    return REGISTRY


# Application info
APP_INFO = Info("golfcourse", "Golf Course application information")
APP_INFO.info({
    "version": "0.1.0",
    "environment": settings.environment,
    "active_problem": settings.active_problem,
})


# HTTP Request Metrics
HTTP_REQUESTS_TOTAL = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
)

HTTP_REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

HTTP_REQUESTS_IN_PROGRESS = Gauge(
    "http_requests_in_progress",
    "HTTP requests currently being processed",
    ["method", "endpoint"],
)


# Execution Metrics
EXECUTIONS_TOTAL = Counter(
    "golf_executions_total",
    "Total code executions",
    ["language", "result"],  # result: "passed", "failed", "error", "timeout"
)

EXECUTION_DURATION = Histogram(
    "golf_execution_duration_seconds",
    "Submitted code execution time",
    ["language"],
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0),
)

CODE_LENGTH = Histogram(
    "golf_code_length_characters",
    "Non-whitespace characters per executed solution",
    ["language"],
    buckets=(10, 25, 50, 75, 100, 150, 200, 500, 1000),
)


# Contest Metrics
SUBMISSIONS_TOTAL = Counter(
    "golf_submissions_total",
    "Submissions received",
    ["language", "result"],  # result: "accepted", "rejected"
)

LEADERBOARD_SUBSCRIBERS = Gauge(
    "golf_leaderboard_subscribers",
    "Open leaderboard WebSocket connections",
)

RATE_LIMIT_HITS = Counter(
    "rate_limit_hits_total",
    "Rate limit hits",
    ["limit_type", "result"],  # result: "allowed", "blocked"
)


def normalize_endpoint(path: str) -> str:
    """Normalize endpoint path to reduce metric cardinality.

    Replaces UUIDs and numeric IDs with placeholders.
    """
    path = re.sub(
        r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}",
        "{id}",
        path,
        flags=re.IGNORECASE,
    )
    path = re.sub(r"/\d+(?=/|$)", "/{id}", path)
    return path


def record_execution(
    language: str,
    result: str,
    execution_time: float,
    code_length: int,
) -> None:
    """Record a code execution."""
    EXECUTIONS_TOTAL.labels(language=language, result=result).inc()
    EXECUTION_DURATION.labels(language=language).observe(execution_time)
    CODE_LENGTH.labels(language=language).observe(code_length)


def record_submission(language: str, accepted: bool) -> None:
    """Record a leaderboard submission attempt."""
    result = "accepted" if accepted else "rejected"
    SUBMISSIONS_TOTAL.labels(language=language, result=result).inc()


def record_rate_limit(limit_type: str, allowed: bool) -> None:
    """Record a rate limit check."""
    result = "allowed" if allowed else "blocked"
    RATE_LIMIT_HITS.labels(limit_type=limit_type, result=result).inc()


class MetricsMiddleware(BaseHTTPMiddleware):
    """Middleware to automatically track HTTP metrics."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        # Skip metrics endpoint itself
        if request.url.path == "/metrics":
            return await call_next(request)

        method = request.method
        normalized = normalize_endpoint(request.url.path)

        HTTP_REQUESTS_IN_PROGRESS.labels(method=method, endpoint=normalized).inc()
        start_time = time.perf_counter()
        status = 500

        try:
            response = await call_next(request)
            status = response.status_code
        finally:
            duration = time.perf_counter() - start_time
            HTTP_REQUESTS_IN_PROGRESS.labels(method=method, endpoint=normalized).dec()
            HTTP_REQUESTS_TOTAL.labels(
                method=method,
                endpoint=normalized,
                status=status,
            ).inc()
            HTTP_REQUEST_DURATION.labels(
                method=method,
                endpoint=normalized,
            ).observe(duration)

        return response


async def get_metrics() -> tuple[bytes, str]:
    """Generate Prometheus metrics output."""
    registry = get_registry()
    return generate_latest(registry), CONTENT_TYPE_LATEST
