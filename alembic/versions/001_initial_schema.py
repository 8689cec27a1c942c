"""Initial schema: users, refresh tokens, poems, readings, progress, favorites.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19
"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

revision: str = "001_initial_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps() -> list[sa.Column]:  # type: ignore[type-arg]
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    """Create all tables."""
    # --- users ---
    op.create_table(
        "users",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("password_hash", sa.String(256), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("role", sa.String(16), server_default="student", nullable=False),
        sa.Column("level", sa.String(16), server_default="beginner", nullable=False),
        sa.Column("class_id", sa.String(64), nullable=True),
        sa.Column("avatar_url", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), server_default="true", nullable=False),
        sa.Column("last_login", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.UniqueConstraint("email", name="uq_users_email"),
        sa.CheckConstraint("role IN ('student', 'teacher', 'admin')", name="ck_users_role"),
        sa.CheckConstraint("level IN ('beginner', 'intermediate', 'advanced')", name="ck_users_level"),
    )
    op.create_index("ix_users_role", "users", ["role"])
    op.create_index("ix_users_class_id", "users", ["class_id"])
    op.create_index("ix_users_email_lower", "users", [sa.text("lower(email)")], unique=True)

    # --- refresh_tokens ---
    op.create_table(
        "refresh_tokens",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("token_hash", sa.String(128), nullable=False),
        sa.Column("issued_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("ip_address", sa.String(64), nullable=True),
        sa.Column("user_agent", sa.String(512), nullable=True),
        sa.Column("is_revoked", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("replaced_by", sa.String(36), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_refresh_tokens"),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"], name="fk_refresh_tokens_user_id_users", ondelete="CASCADE"
        ),
    )
    op.create_index("ix_refresh_tokens_user_id", "refresh_tokens", ["user_id"])

    # --- poems ---
    op.create_table(
        "poems",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("author", sa.String(100), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("theme", sa.String(50), nullable=False),
        sa.Column("level", sa.String(16), nullable=False),
        sa.Column("difficulty", sa.String(16), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), nullable=False),
        sa.Column("description", sa.String(500), nullable=True),
        sa.Column("tags", postgresql.JSONB(), server_default="[]", nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default="true", nullable=False),
        sa.Column("created_by", sa.BigInteger(), nullable=False),
        sa.Column("read_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column("average_score", sa.Float(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_poems"),
        sa.ForeignKeyConstraint(
            ["created_by"], ["users.id"], name="fk_poems_created_by_users", ondelete="RESTRICT"
        ),
        sa.CheckConstraint("level IN ('beginner', 'intermediate', 'advanced')", name="ck_poems_level"),
        sa.CheckConstraint("difficulty IN ('easy', 'medium', 'hard')", name="ck_poems_difficulty"),
        sa.CheckConstraint("duration_minutes BETWEEN 1 AND 60", name="ck_poems_duration_minutes"),
    )
    op.create_index("ix_poems_level_difficulty", "poems", ["level", "difficulty"])
    op.create_index("ix_poems_theme", "poems", ["theme"])
    op.create_index("ix_poems_created_at", "poems", ["created_at"])

    # --- readings ---
    op.create_table(
        "readings",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("poem_id", sa.BigInteger(), nullable=False),
        sa.Column("score", sa.Float(), nullable=False),
        sa.Column("duration_seconds", sa.Integer(), nullable=False),
        sa.Column("completed", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("recording_url", sa.Text(), nullable=True),
        sa.Column("feedback", sa.String(1000), nullable=True),
        sa.Column("mistakes", postgresql.JSONB(), server_default="[]", nullable=False),
        sa.Column("session_data", postgresql.JSONB(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_readings"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], name="fk_readings_user_id_users", ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["poem_id"], ["poems.id"], name="fk_readings_poem_id_poems", ondelete="CASCADE"),
        sa.CheckConstraint("score BETWEEN 0 AND 100", name="ck_readings_score"),
        sa.CheckConstraint("duration_seconds >= 1", name="ck_readings_duration_seconds"),
    )
    op.create_index("ix_readings_user_completed_created", "readings", ["user_id", "completed", "created_at"])
    op.create_index("ix_readings_poem_created", "readings", ["poem_id", "created_at"])

    # --- progress ---
    op.create_table(
        "progress",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("week_start", sa.Date(), nullable=False),
        sa.Column("readings_completed", sa.Integer(), server_default="0", nullable=False),
        sa.Column("total_time_minutes", sa.Float(), server_default="0", nullable=False),
        sa.Column("average_score", sa.Float(), server_default="0", nullable=False),
        sa.Column("improvement_percentage", sa.Float(), server_default="0", nullable=False),
        sa.Column("weekly_goal", sa.Integer(), nullable=True),
        sa.Column("goal_achieved", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("streak_days", sa.Integer(), server_default="0", nullable=False),
        sa.Column("best_score", sa.Float(), server_default="0", nullable=False),
        sa.Column("worst_score", sa.Float(), server_default="0", nullable=False),
        sa.Column("total_mistakes", sa.Integer(), server_default="0", nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_progress"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], name="fk_progress_user_id_users", ondelete="CASCADE"),
        sa.UniqueConstraint("user_id", "week_start", name="uq_progress_user_id_week_start"),
        sa.CheckConstraint("weekly_goal IS NULL OR weekly_goal BETWEEN 1 AND 50", name="ck_progress_weekly_goal"),
    )
    op.create_index("ix_progress_week_start", "progress", ["week_start"])

    # --- favorites ---
    op.create_table(
        "favorites",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("poem_id", sa.BigInteger(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_favorites"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], name="fk_favorites_user_id_users", ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["poem_id"], ["poems.id"], name="fk_favorites_poem_id_poems", ondelete="CASCADE"),
        sa.UniqueConstraint("user_id", "poem_id", name="uq_favorites_user_id_poem_id"),
    )
    op.create_index("ix_favorites_poem_id", "favorites", ["poem_id"])


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table("favorites")
    op.drop_table("progress")
    op.drop_table("readings")
    op.drop_table("poems")
    op.drop_table("refresh_tokens")
    op.drop_table("users")
