"""ORM models.

Plain records only: aggregation and business rules live in the service
modules, not on the entities.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Any

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from recite.db.base import Base, BigIntPK, JSONType, utcnow

# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class User(Base):
    """A student, teacher or administrator account."""

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("role IN ('student', 'teacher', 'admin')", name="role"),
        CheckConstraint("level IN ('beginner', 'intermediate', 'advanced')", name="level"),
        Index("ix_users_role", "role"),
        Index("ix_users_class_id", "class_id"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(256), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    role: Mapped[str] = mapped_column(String(16), nullable=False, default="student", server_default="student")
    level: Mapped[str] = mapped_column(String(16), nullable=False, default="beginner", server_default="beginner")
    class_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, server_default="true")
    last_login: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    refresh_tokens: Mapped[list[RefreshToken]] = relationship(
        "RefreshToken", back_populates="user", cascade="all, delete-orphan"
    )


# ---------------------------------------------------------------------------
# Auth: Refresh Tokens
# ---------------------------------------------------------------------------


class RefreshToken(Base):
    """Refresh credential tracking for revocation and rotation."""

    __tablename__ = "refresh_tokens"
    __table_args__ = (Index("ix_refresh_tokens_user_id", "user_id"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    token_hash: Mapped[str] = mapped_column(String(128), nullable=False)
    issued_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    revoked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    ip_address: Mapped[str | None] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(512), nullable=True)
    is_revoked: Mapped[bool] = mapped_column(Boolean, default=False, server_default="false")
    replaced_by: Mapped[str | None] = mapped_column(String(36), nullable=True)

    user: Mapped[User] = relationship("User", back_populates="refresh_tokens")


# ---------------------------------------------------------------------------
# Poems
# ---------------------------------------------------------------------------


class Poem(Base):
    """A poem students can read aloud."""

    __tablename__ = "poems"
    __table_args__ = (
        CheckConstraint("level IN ('beginner', 'intermediate', 'advanced')", name="level"),
        CheckConstraint("difficulty IN ('easy', 'medium', 'hard')", name="difficulty"),
        CheckConstraint("duration_minutes BETWEEN 1 AND 60", name="duration_minutes"),
        Index("ix_poems_level_difficulty", "level", "difficulty"),
        Index("ix_poems_theme", "theme"),
        Index("ix_poems_created_at", "created_at"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    author: Mapped[str] = mapped_column(String(100), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    theme: Mapped[str] = mapped_column(String(50), nullable=False)
    level: Mapped[str] = mapped_column(String(16), nullable=False)
    difficulty: Mapped[str] = mapped_column(String(16), nullable=False)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    tags: Mapped[list[str]] = mapped_column(JSONType, default=list, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, server_default="true")
    created_by: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)
    read_count: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    average_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )


# ---------------------------------------------------------------------------
# Readings
# ---------------------------------------------------------------------------


class Reading(Base):
    """One read-aloud session of a poem by a user."""

    __tablename__ = "readings"
    __table_args__ = (
        CheckConstraint("score BETWEEN 0 AND 100", name="score"),
        CheckConstraint("duration_seconds >= 1", name="duration_seconds"),
        Index("ix_readings_user_completed_created", "user_id", "completed", "created_at"),
        Index("ix_readings_poem_created", "poem_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    poem_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("poems.id", ondelete="CASCADE"), nullable=False)
    score: Mapped[float] = mapped_column(Float, nullable=False)
    duration_seconds: Mapped[int] = mapped_column(Integer, nullable=False)
    completed: Mapped[bool] = mapped_column(Boolean, default=False, server_default="false")
    recording_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    feedback: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    mistakes: Mapped[list[dict[str, Any]]] = mapped_column(JSONType, default=list, nullable=False)
    session_data: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    poem: Mapped[Poem] = relationship("Poem", lazy="raise")


# ---------------------------------------------------------------------------
# Progress
# ---------------------------------------------------------------------------


class Progress(Base):
    """Weekly aggregate of a user's completed readings. Recomputable from readings."""

    __tablename__ = "progress"
    __table_args__ = (
        UniqueConstraint("user_id", "week_start", name="uq_progress_user_id_week_start"),
        CheckConstraint("weekly_goal IS NULL OR weekly_goal BETWEEN 1 AND 50", name="weekly_goal"),
        Index("ix_progress_week_start", "week_start"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    week_start: Mapped[date] = mapped_column(Date, nullable=False)
    readings_completed: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    total_time_minutes: Mapped[float] = mapped_column(Float, default=0.0, server_default="0")
    average_score: Mapped[float] = mapped_column(Float, default=0.0, server_default="0")
    improvement_percentage: Mapped[float] = mapped_column(Float, default=0.0, server_default="0")
    weekly_goal: Mapped[int | None] = mapped_column(Integer, nullable=True)
    goal_achieved: Mapped[bool] = mapped_column(Boolean, default=False, server_default="false")
    streak_days: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    best_score: Mapped[float] = mapped_column(Float, default=0.0, server_default="0")
    worst_score: Mapped[float] = mapped_column(Float, default=0.0, server_default="0")
    total_mistakes: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )


# ---------------------------------------------------------------------------
# Favorites
# ---------------------------------------------------------------------------


class Favorite(Base):
    """A user's bookmarked poem."""

    __tablename__ = "favorites"
    __table_args__ = (
        UniqueConstraint("user_id", "poem_id", name="uq_favorites_user_id_poem_id"),
        Index("ix_favorites_poem_id", "poem_id"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    poem_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("poems.id", ondelete="CASCADE"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    poem: Mapped[Poem] = relationship("Poem", lazy="raise")
