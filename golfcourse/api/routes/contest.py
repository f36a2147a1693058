"""API routes for contest settings."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from golfcourse.core.security import require_admin
from golfcourse.db.database import get_session
from golfcourse.services.contest_service import ContestService


router = APIRouter()


class ContestSettingsResponse(BaseModel):
    challenge_duration_minutes: int


class UpdateContestSettingsRequest(BaseModel):
    challenge_duration_minutes: int = Field(..., ge=1, le=24 * 60)


@router.get("/settings", response_model=ContestSettingsResponse)
async def get_contest_settings(
    session: AsyncSession = Depends(get_session),
) -> ContestSettingsResponse:
    """Settings the client timer needs."""
    service = ContestService(session)
    minutes = await service.get_challenge_duration()
    return ContestSettingsResponse(challenge_duration_minutes=minutes)


@router.put(
    "/settings",
    response_model=ContestSettingsResponse,
    dependencies=[Depends(require_admin)],
)
async def update_contest_settings(
    request: UpdateContestSettingsRequest,
    session: AsyncSession = Depends(get_session),
) -> ContestSettingsResponse:
    """Change the challenge duration (organisers only)."""
    service = ContestService(session)
    row = await service.set_challenge_duration(request.challenge_duration_minutes)
    return ContestSettingsResponse(challenge_duration_minutes=row.challenge_duration_minutes)
