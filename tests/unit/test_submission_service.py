"""Tests for submission helpers and the submission service."""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select

from golfcourse.core.exceptions import SubmissionRejected
from golfcourse.db.models import Submission
from golfcourse.executor.judge import ExecutionService
from golfcourse.executor.problems import PROBLEMS, generate_primes
from golfcourse.services.leaderboard_feed import LeaderboardFeed
from golfcourse.services.submission_service import (
    SubmissionService,
    compute_solve_time,
    format_relative_time,
    format_solve_time,
)
from tests.conftest import FakeSandbox, failed_run, ok_run


NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


class TestFormatSolveTime:
    def test_minutes_and_seconds(self):
        assert format_solve_time(125) == "2:05"

    def test_under_a_minute(self):
        assert format_solve_time(9) == "0:09"

    def test_missing(self):
        assert format_solve_time(None) == "N/A"
        assert format_solve_time(0) == "N/A"


class TestFormatRelativeTime:
    def test_just_now(self):
        assert format_relative_time(NOW - timedelta(seconds=30), NOW) == "Just now"

    def test_minutes(self):
        assert format_relative_time(NOW - timedelta(minutes=5), NOW) == "5m ago"

    def test_hours(self):
        assert format_relative_time(NOW - timedelta(hours=3, minutes=10), NOW) == "3h ago"

    def test_days(self):
        assert format_relative_time(NOW - timedelta(days=2, hours=1), NOW) == "2d ago"

    def test_naive_timestamp_treated_as_utc(self):
        naive = (NOW - timedelta(minutes=2)).replace(tzinfo=None)
        assert format_relative_time(naive, NOW) == "2m ago"


class TestComputeSolveTime:
    def test_floors_to_seconds(self):
        started = int(NOW.timestamp() * 1000) - 90_900
        assert compute_solve_time(started, NOW) == 90

    def test_future_start_is_zero(self):
        started = int(NOW.timestamp() * 1000) + 5_000
        assert compute_solve_time(started, NOW) == 0


class RecordingFeed(LeaderboardFeed):
    def __init__(self):
        super().__init__()
        self.published: list[dict] = []

    async def publish_insert(self, record):
        self.published.append(record)
        return 0


def make_service(session, run, feed=None) -> SubmissionService:
    executor = ExecutionService(
        executor=FakeSandbox(run),
        problem=PROBLEMS["primes"],
        allowed_languages=["javascript", "python"],
        default_language="javascript",
    )
    return SubmissionService(session, executor=executor, feed=feed or RecordingFeed())


async def count_submissions(session) -> int:
    result = await session.execute(select(func.count()).select_from(Submission))
    return result.scalar_one()


class TestSubmitSolution:
    @pytest.mark.asyncio
    async def test_valid_solution_stored(self, test_session):
        feed = RecordingFeed()
        service = make_service(test_session, ok_run(generate_primes()), feed)

        submission = await service.submit_solution(
            category=1, team_number=4, code="for (x of y)\n  z()", solve_time_seconds=75
        )

        assert submission.is_valid is True
        assert submission.character_count == 12
        assert submission.language == "javascript"
        assert submission.team_label == "1-4"
        assert await count_submissions(test_session) == 1

        assert len(feed.published) == 1
        assert feed.published[0]["team"] == "1-4"
        assert "code" not in feed.published[0]

    @pytest.mark.asyncio
    async def test_incorrect_solution_rejected(self, test_session):
        feed = RecordingFeed()
        service = make_service(test_session, ok_run("2\n3"), feed)

        with pytest.raises(SubmissionRejected) as exc_info:
            await service.submit_solution(category=1, team_number=1, code="x")

        assert exc_info.value.code == "incorrect_solution"
        assert await count_submissions(test_session) == 0
        assert feed.published == []

    @pytest.mark.asyncio
    async def test_failing_solution_rejected(self, test_session):
        service = make_service(test_session, failed_run("boom"))

        with pytest.raises(SubmissionRejected) as exc_info:
            await service.submit_solution(category=2, team_number=1, code="x")

        assert exc_info.value.code == "execution_error"
        assert exc_info.value.message == "boom"
        assert await count_submissions(test_session) == 0

    @pytest.mark.asyncio
    async def test_solve_time_from_start_timestamp(self, test_session):
        service = make_service(test_session, ok_run(generate_primes()))
        started_at = int(datetime.now(timezone.utc).timestamp() * 1000) - 61_000

        submission = await service.submit_solution(
            category=1, team_number=2, code="x", started_at=started_at
        )

        assert submission.solve_time_seconds in (61, 62)


class TestLeaderboard:
    @pytest.mark.asyncio
    async def test_ranked_by_length_then_time(self, test_session):
        service = make_service(test_session, ok_run(generate_primes()))

        await service.submit_solution(category=1, team_number=1, code="aaaaa")
        await service.submit_solution(category=2, team_number=1, code="aaa")
        await service.submit_solution(category=1, team_number=2, code="bbbbb")

        entries = await service.get_leaderboard()

        assert [e["team"] for e in entries] == ["2-1", "1-1", "1-2"]
        assert [e["rank"] for e in entries] == [1, 2, 3]
        assert entries[0]["solve_time"] == "N/A"
        assert entries[0]["submitted"] == "Just now"
        assert "code" not in entries[0]

    @pytest.mark.asyncio
    async def test_invalid_rows_excluded(self, test_session):
        test_session.add(Submission(
            category=1, team_number=9, language="python", code="x",
            character_count=1, is_valid=False,
        ))
        await test_session.commit()
        service = make_service(test_session, ok_run(generate_primes()))

        assert await service.get_leaderboard() == []

    @pytest.mark.asyncio
    async def test_team_history_newest_first(self, test_session):
        service = make_service(test_session, ok_run(generate_primes()))

        await service.submit_solution(category=1, team_number=3, code="first")
        await service.submit_solution(category=1, team_number=3, code="second")
        await service.submit_solution(category=2, team_number=3, code="other team")

        history = await service.get_team_submissions(1, 3)

        assert [s["code"] for s in history] == ["second", "first"]
