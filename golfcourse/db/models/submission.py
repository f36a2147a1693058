"""Database models for contest submissions."""

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import Boolean, DateTime, Index, Integer, SmallInteger, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from golfcourse.db.database import Base


class Submission(Base):
    """A validated solution submitted by a team.

    Rows are written once and never updated.
    """

    __tablename__ = "submissions"
    __table_args__ = (
        Index("idx_submissions_ranking", "is_valid", "character_count", "created_at"),
        Index("idx_submissions_team", "category", "team_number"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    category: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    team_number: Mapped[int] = mapped_column(Integer, nullable=False)

    # Submission content
    language: Mapped[str] = mapped_column(String(20), nullable=False)
    code: Mapped[str] = mapped_column(Text, nullable=False)
    character_count: Mapped[int] = mapped_column(Integer, nullable=False)

    is_valid: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    solve_time_seconds: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
        nullable=False,
    )

    @property
    def team_label(self) -> str:
        return f"{self.category}-{self.team_number}"
