"""Database model for contest-wide settings."""

from datetime import datetime, timezone

from sqlalchemy import DateTime, Integer
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from golfcourse.db.database import Base


class ContestSettings(Base):
    """Single-row table holding settings the organisers change live."""

    __tablename__ = "contest_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=1)
    challenge_duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
    )
