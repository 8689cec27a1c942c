"""Student roster management for teachers and admins."""

from __future__ import annotations

from typing import Any

import structlog
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from recite.auth.service import register_user, revoke_all_tokens
from recite.db.models import User
from recite.errors import NotFound

logger = structlog.get_logger()


async def list_students(
    db: AsyncSession,
    *,
    page: int = 1,
    limit: int = 20,
    class_id: str | None = None,
    level: str | None = None,
    search: str | None = None,
    include_inactive: bool = False,
) -> tuple[list[User], int]:
    """Students matching the filters, ordered by name. Returns (students, total)."""
    conditions = [User.role == "student"]
    if not include_inactive:
        conditions.append(User.is_active.is_(True))
    if class_id is not None:
        conditions.append(User.class_id == class_id)
    if level is not None:
        conditions.append(User.level == level)
    if search and search.strip():
        term = f"%{search.strip().lower()}%"
        conditions.append(or_(func.lower(User.name).like(term), func.lower(User.email).like(term)))

    total = (await db.execute(select(func.count()).select_from(User).where(*conditions))).scalar_one()
    result = await db.execute(
        select(User)
        .where(*conditions)
        .order_by(User.name.asc(), User.id.asc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return list(result.scalars().all()), total


async def get_student(db: AsyncSession, student_id: int) -> User:
    """Load a student account or raise ``NotFound``."""
    user = await db.get(User, student_id)
    if user is None or user.role != "student":
        msg = "Student not found"
        raise NotFound(msg)
    return user


async def create_student(
    db: AsyncSession,
    *,
    email: str,
    password: str,
    name: str,
    level: str,
    class_id: str | None,
    created_by: User,
) -> User:
    """Create a student account on behalf of a teacher or admin."""
    student = await register_user(
        db,
        email=email,
        password=password,
        name=name,
        role="student",
        level=level,
        class_id=class_id,
    )
    logger.info("student_created", student_id=student.id, created_by=created_by.id)
    return student


async def update_student(db: AsyncSession, student: User, changes: dict[str, Any]) -> User:
    """Apply roster changes. Deactivation also revokes the student's sessions."""
    for field in ("name", "level", "is_active"):
        if changes.get(field) is not None:
            setattr(student, field, changes[field])
    if "class_id" in changes:
        student.class_id = changes["class_id"]
    await db.flush()

    if changes.get("is_active") is False:
        await revoke_all_tokens(db, student.id)
    return student


async def deactivate_student(db: AsyncSession, student: User) -> User:
    """Soft delete: the account is kept for its history but can no longer log in."""
    student.is_active = False
    await db.flush()
    revoked = await revoke_all_tokens(db, student.id)
    logger.info("student_deactivated", student_id=student.id, revoked_tokens=revoked)
    return student
