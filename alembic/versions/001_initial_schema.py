"""Initial schema - submissions and contest settings

Revision ID: 001
Revises:
Create Date: 2026-10-17 00:00:00.000000

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "submissions",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("category", sa.SmallInteger(), nullable=False),
        sa.Column("team_number", sa.Integer(), nullable=False),
        sa.Column("language", sa.String(20), nullable=False),
        sa.Column("code", sa.Text(), nullable=False),
        sa.Column("character_count", sa.Integer(), nullable=False),
        sa.Column("is_valid", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("solve_time_seconds", sa.Integer(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
    )

    op.create_index(
        "idx_submissions_ranking",
        "submissions",
        ["is_valid", "character_count", "created_at"],
    )
    op.create_index(
        "idx_submissions_team",
        "submissions",
        ["category", "team_number"],
    )

    op.create_table(
        "contest_settings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("challenge_duration_minutes", sa.Integer(), nullable=False),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
    )


def downgrade() -> None:
    op.drop_table("contest_settings")
    op.drop_index("idx_submissions_team", table_name="submissions")
    op.drop_index("idx_submissions_ranking", table_name="submissions")
    op.drop_table("submissions")
