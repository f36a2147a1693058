import os
import shutil
import sys

# Settings are read at import time, so configure before importing the app
os.environ.setdefault("GOLF_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ["GOLF_RATE_LIMIT_ENABLED"] = "false"
os.environ["GOLF_ENVIRONMENT"] = "development"
os.environ["GOLF_SANDBOX_BACKEND"] = "process"
os.environ["GOLF_PYTHON_COMMAND"] = sys.executable
os.environ["GOLF_ACTIVE_PROBLEM"] = "primes"
os.environ["GOLF_ADMIN_TOKEN"] = "test-admin-token"

from typing import AsyncGenerator, Optional

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from golfcourse.db import models  # noqa: F401
from golfcourse.db.database import Base, get_session
from golfcourse.executor.sandbox import SandboxRun
from golfcourse.main import app


TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

requires_node = pytest.mark.skipif(
    shutil.which("node") is None,
    reason="node is not installed",
)

PRIMES_PY = 'print(*[n for n in range(2,101) if all(n%d for d in range(2,n))],sep="\\n")'

FIZZBUZZ_JS = (
    "for(let i=1;i<=100;i++){let o='';if(i%3===0)o+='Fizz';"
    "if(i%5===0)o+='Buzz';console.log(o||i)}"
)

PRIMES_JS = (
    "for(let n=2;n<=100;n++){let p=1;"
    "for(let d=2;d*d<=n;d++)if(n%d==0)p=0;if(p)console.log(n)}"
)


class FakeSandbox:
    """Stands in for SandboxExecutor and replays a canned run."""

    def __init__(self, run: Optional[SandboxRun] = None):
        self.run = run
        self.calls: list[tuple[str, str]] = []

    async def execute(self, code, language):
        self.calls.append((code, language.value))
        return self.run


def ok_run(stdout: str) -> SandboxRun:
    return SandboxRun(success=True, stdout=stdout, stderr="", exit_code=0, execution_time_ms=5)


def failed_run(stderr: str, exit_code: int = 1) -> SandboxRun:
    return SandboxRun(success=False, stdout="", stderr=stderr, exit_code=exit_code, execution_time_ms=5)


@pytest_asyncio.fixture
async def test_engine():
    """Create a test database engine."""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def test_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async_session_factory = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    async with async_session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(test_session) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client."""

    async def override_get_session():
        yield test_session

    app.dependency_overrides[get_session] = override_get_session

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
