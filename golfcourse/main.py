import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware

from golfcourse.api.routes import contest, execute, problems, submissions
from golfcourse.config import settings
from golfcourse.core.metrics import MetricsMiddleware, get_metrics
from golfcourse.core.rate_limiter import rate_limiter
from golfcourse.db.database import init_db
from golfcourse.executor.problems import get_active_problem
from golfcourse.middleware.rate_limit import RateLimitMiddleware

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    await init_db()
    logger.info(
        "Golf Course started: problem=%s languages=%s sandbox=%s",
        settings.active_problem, settings.allowed_languages, settings.sandbox_backend,
    )
    yield
    await rate_limiter.close()


app = FastAPI(
    title="Golf Course",
    description="Code golf contest backend: run, validate and rank short solutions",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    RateLimitMiddleware,
    enabled=settings.rate_limit_enabled,
)

if settings.metrics_enabled:
    app.add_middleware(MetricsMiddleware)

# Added last so it wraps everything and answers preflight first
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["authorization", "x-client-info", "x-client-id", "apikey", "content-type"],
)

# REST API routes
app.include_router(execute.router, prefix="/api", tags=["execute"])
app.include_router(problems.router, prefix="/api/problems", tags=["problems"])
app.include_router(submissions.router, prefix="/api", tags=["submissions"])
app.include_router(contest.router, prefix="/api", tags=["contest"])


@app.get("/health")
async def health_check() -> dict[str, str]:
    return {"status": "healthy"}


@app.get("/metrics")
async def metrics() -> Response:
    body, content_type = await get_metrics()
    return Response(content=body, media_type=content_type)


@app.get("/")
async def root() -> dict[str, Any]:
    problem = get_active_problem()
    return {
        "name": "Golf Course",
        "version": "0.1.0",
        "docs": "/docs",
        "problem": {
            "slug": problem.slug,
            "title": problem.title,
        },
        "languages": settings.allowed_languages,
        "endpoints": {
            "execute": "/api/execute",
            "problems": "/api/problems",
            "submissions": "/api/submissions",
            "leaderboard": "/api/leaderboard",
            "leaderboard_feed": "/api/leaderboard/ws",
            "settings": "/api/settings",
        },
    }
