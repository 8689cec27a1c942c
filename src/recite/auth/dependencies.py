"""FastAPI authentication and authorization dependencies.

``authenticate`` resolves the principal from the bearer credential; the
factories below build role and ownership gates on top of it.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable

from fastapi import Depends, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from recite.auth.jwt import CredentialError, CredentialExpiredError, verify_credential
from recite.auth.service import get_user_by_id
from recite.config import Settings
from recite.dependencies import get_app_settings, get_db
from recite.db.models import User
from recite.errors import Forbidden, Unauthenticated

_bearer = HTTPBearer(auto_error=False)


async def _resolve_principal(
    credentials: HTTPAuthorizationCredentials | None,
    db: AsyncSession,
    settings: Settings,
) -> User:
    if credentials is None or credentials.scheme.lower() != "bearer":
        msg = "Authentication token required"
        raise Unauthenticated(msg, reason="missing")

    try:
        claims = verify_credential(credentials.credentials, settings.jwt_access_audience, settings)
    except CredentialExpiredError as e:
        msg = "Token expired, please log in again"
        raise Unauthenticated(msg, reason=e.reason) from e
    except CredentialError as e:
        msg = "Invalid token"
        raise Unauthenticated(msg, reason=e.reason) from e

    user = await get_user_by_id(db, int(claims["sub"]))
    if user is None:
        msg = "User not found"
        raise Unauthenticated(msg, reason="unknown_user")
    if not user.is_active:
        msg = "User account is deactivated"
        raise Unauthenticated(msg, reason="deactivated")
    return user


async def authenticate(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> User:
    """
    Verify the bearer credential and return the acting ``User``.

    The principal is also attached to ``request.state.user``.
    Raises ``Unauthenticated`` (401) when absent, invalid, expired or deactivated.
    """
    user = await _resolve_principal(credentials, db, settings)
    request.state.user = user
    return user


def require_role(*roles: str) -> Callable[..., Awaitable[User]]:
    """Build a dependency that allows only principals whose role is in ``roles``."""
    allowed = frozenset(roles)

    async def _check(user: User = Depends(authenticate)) -> User:
        if user.role not in allowed:
            raise Forbidden()
        return user

    return _check


require_admin = require_role("admin")
require_teacher_or_admin = require_role("teacher", "admin")


def ensure_owner_or_admin(principal: User, owner_id: int) -> None:
    """Raise ``Forbidden`` unless ``principal`` is an admin or owns the resource."""
    if principal.role == "admin":
        return
    if principal.id != owner_id:
        msg = "Access to this resource is not allowed"
        raise Forbidden(msg)


def require_ownership_or_admin(param: str = "user_id") -> Callable[..., Awaitable[User]]:
    """Build a dependency comparing the ``param`` path parameter with the principal id."""

    async def _check(request: Request, user: User = Depends(authenticate)) -> User:
        raw = request.path_params.get(param)
        try:
            owner_id = int(raw) if raw is not None else None
        except ValueError:
            owner_id = None
        if owner_id is None:
            if user.role == "admin":
                return user
            msg = "Access to this resource is not allowed"
            raise Forbidden(msg)
        ensure_owner_or_admin(user, owner_id)
        return user

    return _check


def ensure_same_class_or_admin(principal: User, student: User) -> None:
    """
    Allow admins, the student themself, and teachers of the student's class.

    A teacher without a class assignment may view any student.
    """
    if principal.role == "admin" or principal.id == student.id:
        return
    if principal.role == "teacher" and (principal.class_id is None or principal.class_id == student.class_id):
        return
    msg = "Access to this resource is not allowed"
    raise Forbidden(msg)
