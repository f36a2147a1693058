"""Service for contest-wide settings."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from golfcourse.config import settings
from golfcourse.db.models.contest import ContestSettings

logger = logging.getLogger(__name__)

SETTINGS_ROW_ID = 1


class ContestService:
    """Reads and updates the single contest settings row."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_challenge_duration(self) -> int:
        """Challenge duration in minutes, falling back to configuration."""
        row = await self.session.get(ContestSettings, SETTINGS_ROW_ID)
        if row is None:
            return settings.challenge_duration_minutes
        return row.challenge_duration_minutes

    async def set_challenge_duration(self, minutes: int) -> ContestSettings:
        row = await self.session.get(ContestSettings, SETTINGS_ROW_ID)
        if row is None:
            row = ContestSettings(id=SETTINGS_ROW_ID, challenge_duration_minutes=minutes)
            self.session.add(row)
        else:
            row.challenge_duration_minutes = minutes

        await self.session.commit()
        logger.info("Challenge duration set to %s minutes", minutes)
        return row
