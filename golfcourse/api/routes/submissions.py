"""API routes for submissions and the leaderboard."""

from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status
from pydantic import BaseModel, Field, model_validator
from sqlalchemy.ext.asyncio import AsyncSession

from golfcourse.core.exceptions import SubmissionRejected, unprocessable
from golfcourse.db.database import get_session
from golfcourse.executor.judge import ExecutionService, get_execution_service
from golfcourse.services.leaderboard_feed import leaderboard_feed
from golfcourse.services.submission_service import SubmissionService, serialize_submission


router = APIRouter()


class SubmitSolutionRequest(BaseModel):
    """Request to submit a solution to the leaderboard."""
    category: Literal[1, 2]
    team_number: int = Field(..., ge=1)
    code: str = Field(..., min_length=1, max_length=50000)
    language: Optional[Literal["javascript", "python"]] = None
    solve_time_seconds: Optional[int] = Field(None, ge=0)
    started_at: Optional[int] = Field(None, ge=0, description="Challenge start, epoch milliseconds")

    @model_validator(mode="after")
    def one_timing_source(self) -> "SubmitSolutionRequest":
        if self.solve_time_seconds is not None and self.started_at is not None:
            raise ValueError("Send either solve_time_seconds or started_at, not both")
        return self


class SubmissionResponse(BaseModel):
    """A stored submission."""
    id: str
    category: int
    team_number: int
    team: str
    language: str
    code: str
    character_count: int
    is_valid: bool
    solve_time_seconds: Optional[int]
    created_at: str


@router.post(
    "/submissions",
    response_model=SubmissionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def submit_solution(
    request: SubmitSolutionRequest,
    session: AsyncSession = Depends(get_session),
    executor: ExecutionService = Depends(get_execution_service),
) -> SubmissionResponse:
    """Validate a solution and add it to the leaderboard."""
    service = SubmissionService(session, executor=executor)
    try:
        submission = await service.submit_solution(
            category=request.category,
            team_number=request.team_number,
            code=request.code,
            language=request.language,
            solve_time_seconds=request.solve_time_seconds,
            started_at=request.started_at,
        )
    except SubmissionRejected as e:
        raise unprocessable({"code": e.code, "message": e.message}) from e

    return SubmissionResponse(**serialize_submission(submission))


@router.get("/submissions/team/{category}/{team_number}")
async def get_team_submissions(
    category: int,
    team_number: int,
    session: AsyncSession = Depends(get_session),
) -> dict:
    """Get a team's submission history."""
    service = SubmissionService(session)
    submissions = await service.get_team_submissions(category, team_number)

    return {
        "team": f"{category}-{team_number}",
        "submissions": submissions,
    }


@router.get("/leaderboard")
async def get_leaderboard(
    limit: int = Query(100, ge=1, le=500),
    session: AsyncSession = Depends(get_session),
) -> dict:
    """Valid submissions ranked by character count, then submission time."""
    service = SubmissionService(session)
    entries = await service.get_leaderboard(limit=limit)

    return {
        "leaderboard": entries,
        "count": len(entries),
    }


@router.websocket("/leaderboard/ws")
async def leaderboard_socket(websocket: WebSocket) -> None:
    """Stream submission inserts to a leaderboard view."""
    await leaderboard_feed.connect(websocket)
    try:
        while True:
            message = await websocket.receive_text()
            if message == "ping":
                await websocket.send_json({"type": "pong"})
    except WebSocketDisconnect:
        pass
    finally:
        await leaderboard_feed.disconnect(websocket)
