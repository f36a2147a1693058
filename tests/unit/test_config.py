"""Tests for settings parsing."""

import pytest
from pydantic import ValidationError

from golfcourse.config import Settings


def test_postgres_url_uses_async_driver():
    settings = Settings(database_url="postgresql://u:p@db:5432/golf")
    assert settings.database_url == "postgresql+asyncpg://u:p@db:5432/golf"


def test_unknown_problem_rejected():
    with pytest.raises(ValidationError):
        Settings(active_problem="sudoku")


def test_problem_from_environment(monkeypatch):
    monkeypatch.setenv("GOLF_ACTIVE_PROBLEM", "fizzbuzz")
    assert Settings().active_problem == "fizzbuzz"


def test_allowed_languages_from_environment(monkeypatch):
    monkeypatch.setenv("GOLF_ALLOWED_LANGUAGES", '["python"]')
    assert Settings().allowed_languages == ["python"]


def test_defaults(monkeypatch):
    monkeypatch.delenv("GOLF_SANDBOX_BACKEND", raising=False)
    settings = Settings(_env_file=None)
    assert settings.output_limit == 500
    assert settings.challenge_duration_minutes == 15
    assert settings.sandbox_backend == "docker"
    assert settings.sandbox_user is None


def test_process_backend_rejected_in_production():
    with pytest.raises(ValidationError):
        Settings(environment="production", sandbox_backend="process")


def test_process_backend_allowed_in_development():
    settings = Settings(environment="development", sandbox_backend="process")
    assert settings.sandbox_backend == "process"
