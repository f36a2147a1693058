"""API routes for contest problems."""

from typing import Any

from fastapi import APIRouter

from golfcourse.config import settings
from golfcourse.core.exceptions import not_found
from golfcourse.executor.problems import Problem, get_active_problem, get_all_problems, get_problem


router = APIRouter()


def _problem_summary(problem: Problem) -> dict[str, Any]:
    return {
        "slug": problem.slug,
        "title": problem.title,
        "tags": problem.tags,
        "active": problem.slug == settings.active_problem,
    }


def _problem_detail(problem: Problem) -> dict[str, Any]:
    return {
        **_problem_summary(problem),
        "description": problem.description,
        "starter_code": problem.starter_code,
        "example_output": problem.example_output,
        "languages": settings.allowed_languages,
        "default_language": settings.default_language,
    }


@router.get("")
async def list_problems() -> list[dict[str, Any]]:
    """List all problems, marking the active one."""
    return [_problem_summary(p) for p in get_all_problems()]


@router.get("/active")
async def get_active() -> dict[str, Any]:
    """The problem submissions are validated against."""
    return _problem_detail(get_active_problem())


@router.get("/{slug}")
async def get_problem_detail(slug: str) -> dict[str, Any]:
    """Get a single problem."""
    problem = get_problem(slug)
    if not problem:
        raise not_found(f"Problem '{slug}' not found")
    return _problem_detail(problem)
