"""Service for contest submissions and the leaderboard."""

import logging
import math
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from golfcourse.core.exceptions import SubmissionRejected
from golfcourse.core.metrics import record_submission
from golfcourse.db.models.submission import Submission
from golfcourse.executor.judge import ExecutionService, count_characters, execution_service
from golfcourse.services.leaderboard_feed import LeaderboardFeed, leaderboard_feed

logger = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def compute_solve_time(started_at_ms: int, now: Optional[datetime] = None) -> int:
    """Whole seconds between a client start timestamp (epoch ms) and now."""
    now = now or datetime.now(timezone.utc)
    elapsed_ms = now.timestamp() * 1000 - started_at_ms
    return max(0, math.floor(elapsed_ms / 1000))


def format_solve_time(seconds: Optional[int]) -> str:
    """Render a solve time as ``m:ss``."""
    if not seconds:
        return "N/A"
    return f"{seconds // 60}:{seconds % 60:02d}"


def format_relative_time(timestamp: datetime, now: Optional[datetime] = None) -> str:
    """Render how long ago a submission was made."""
    now = now or datetime.now(timezone.utc)
    diff_mins = math.floor((now - _as_utc(timestamp)).total_seconds() / 60)

    if diff_mins < 1:
        return "Just now"
    if diff_mins < 60:
        return f"{diff_mins}m ago"

    diff_hours = diff_mins // 60
    if diff_hours < 24:
        return f"{diff_hours}h ago"

    return f"{diff_hours // 24}d ago"


def serialize_submission(submission: Submission, include_code: bool = True) -> dict[str, Any]:
    data = {
        "id": str(submission.id),
        "category": submission.category,
        "team_number": submission.team_number,
        "team": submission.team_label,
        "language": submission.language,
        "character_count": submission.character_count,
        "is_valid": submission.is_valid,
        "solve_time_seconds": submission.solve_time_seconds,
        "created_at": _as_utc(submission.created_at).isoformat(),
    }
    if include_code:
        data["code"] = submission.code
    return data


class SubmissionService:
    """Stores validated submissions and answers leaderboard queries.

    Code is always re-executed on the server before it is stored, so the
    leaderboard only ever holds solutions that produced the expected output.
    """

    def __init__(
        self,
        session: AsyncSession,
        executor: Optional[ExecutionService] = None,
        feed: Optional[LeaderboardFeed] = None,
    ):
        self.session = session
        self.executor = executor or execution_service
        self.feed = feed or leaderboard_feed

    async def submit_solution(
        self,
        category: int,
        team_number: int,
        code: str,
        language: Optional[str] = None,
        solve_time_seconds: Optional[int] = None,
        started_at: Optional[int] = None,
    ) -> Submission:
        """Validate and store a team's solution.

        Args:
            category: Team category (1 or 2)
            team_number: Team number within the category
            code: Solution source code
            language: Language tag, the deployment default when omitted
            solve_time_seconds: Client-measured solve time
            started_at: Challenge start as epoch milliseconds, used when
                solve_time_seconds is not given

        Returns:
            The stored Submission

        Raises:
            SubmissionRejected: if the code fails to run or is incorrect
        """
        language_name = (language or self.executor.default_language).lower()
        result = await self.executor.execute(code, language_name)

        if not result.success:
            record_submission(language_name, accepted=False)
            raise SubmissionRejected(result.error or "Execution failed", code="execution_error")

        if not result.is_valid:
            record_submission(language_name, accepted=False)
            raise SubmissionRejected(
                "Your solution is incorrect. Please fix it before submitting.",
                code="incorrect_solution",
            )

        if solve_time_seconds is None and started_at is not None:
            solve_time_seconds = compute_solve_time(started_at)

        submission = Submission(
            category=category,
            team_number=team_number,
            language=language_name,
            code=code,
            character_count=count_characters(code),
            is_valid=True,
            solve_time_seconds=solve_time_seconds,
        )
        self.session.add(submission)
        await self.session.commit()

        record_submission(language_name, accepted=True)
        logger.info(
            "Team %s submitted %s characters of %s",
            submission.team_label, submission.character_count, language_name,
        )

        await self.feed.publish_insert(serialize_submission(submission, include_code=False))
        return submission

    async def get_leaderboard(self, limit: int = 100) -> list[dict[str, Any]]:
        """Valid submissions ranked by character count, then submission time."""
        stmt = (
            select(Submission)
            .where(Submission.is_valid.is_(True))
            .order_by(Submission.character_count, Submission.created_at)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        submissions = result.scalars().all()

        now = datetime.now(timezone.utc)
        entries = []
        for rank, submission in enumerate(submissions, 1):
            entry = serialize_submission(submission, include_code=False)
            entry["rank"] = rank
            entry["solve_time"] = format_solve_time(submission.solve_time_seconds)
            entry["submitted"] = format_relative_time(submission.created_at, now)
            entries.append(entry)
        return entries

    async def get_team_submissions(
        self,
        category: int,
        team_number: int,
        limit: int = 20,
    ) -> list[dict[str, Any]]:
        """A team's submission history, newest first."""
        stmt = (
            select(Submission)
            .where(
                and_(
                    Submission.category == category,
                    Submission.team_number == team_number,
                )
            )
            .order_by(Submission.created_at.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return [serialize_submission(s) for s in result.scalars().all()]
