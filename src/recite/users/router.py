"""Student roster endpoints under /api/users/students (teachers and admins)."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from recite.auth.dependencies import ensure_same_class_or_admin, require_teacher_or_admin
from recite.auth.password import PasswordStrengthError
from recite.auth.schemas import UserResponse
from recite.db.models import User
from recite.dependencies import get_db
from recite.enums import Level
from recite.errors import Forbidden, ValidationFailed
from recite.responses import ApiResponse, Page, Pagination, ok
from recite.users.schemas import StudentCreateRequest, StudentUpdateRequest
from recite.users.service import (
    create_student,
    deactivate_student,
    get_student,
    list_students,
    update_student,
)

router = APIRouter(prefix="/api/users", tags=["Users"])


def _teacher_class(user: User, requested: str | None) -> str | None:
    """Teachers with a class are pinned to it; admins may pick any class."""
    if user.role != "teacher" or user.class_id is None:
        return requested
    if requested is not None and requested != user.class_id:
        msg = "Teachers can only manage their own class"
        raise Forbidden(msg)
    return user.class_id


@router.get("/students", response_model=ApiResponse[Page[UserResponse]])
async def get_students(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    class_id: str | None = Query(None, max_length=64),
    level: Level | None = Query(None),
    search: str | None = Query(None, max_length=100),
    include_inactive: bool = Query(False),
    user: User = Depends(require_teacher_or_admin),
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[Page[UserResponse]]:
    students, total = await list_students(
        db,
        page=page,
        limit=limit,
        class_id=_teacher_class(user, class_id),
        level=level,
        search=search,
        include_inactive=include_inactive,
    )
    return ok(
        Page(
            items=[UserResponse.model_validate(s) for s in students],
            pagination=Pagination.build(page, limit, total),
        )
    )


@router.post("/students", status_code=201, response_model=ApiResponse[UserResponse])
async def post_student(
    body: StudentCreateRequest,
    user: User = Depends(require_teacher_or_admin),
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[UserResponse]:
    """Create a student account; a teacher's students join the teacher's class."""
    try:
        student = await create_student(
            db,
            email=body.email,
            password=body.password,
            name=body.name,
            level=body.level,
            class_id=_teacher_class(user, body.class_id),
            created_by=user,
        )
    except PasswordStrengthError as e:
        raise ValidationFailed(errors=[{"field": "password", "message": str(e)}]) from e
    await db.commit()
    return ok(UserResponse.model_validate(student), "Student created successfully")


@router.put("/students/{student_id}", response_model=ApiResponse[UserResponse])
async def put_student(
    student_id: int,
    body: StudentUpdateRequest,
    user: User = Depends(require_teacher_or_admin),
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[UserResponse]:
    student = await get_student(db, student_id)
    ensure_same_class_or_admin(user, student)
    changes = body.model_dump(exclude_unset=True)
    if "class_id" in changes:
        changes["class_id"] = _teacher_class(user, changes["class_id"])
    student = await update_student(db, student, changes)
    await db.commit()
    return ok(UserResponse.model_validate(student), "Student updated successfully")


@router.delete("/students/{student_id}", response_model=ApiResponse[UserResponse])
async def delete_student(
    student_id: int,
    user: User = Depends(require_teacher_or_admin),
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[UserResponse]:
    """Deactivate a student account."""
    student = await get_student(db, student_id)
    ensure_same_class_or_admin(user, student)
    student = await deactivate_student(db, student)
    await db.commit()
    return ok(UserResponse.model_validate(student), "Student deactivated successfully")
