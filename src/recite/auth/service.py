"""
Authentication business logic.

Handles account creation, credential checks, login metadata and refresh
credential storage/rotation.
"""

from __future__ import annotations

import hashlib
from datetime import datetime, timezone
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError

from recite.auth.jwt import CredentialPair, issue_credentials
from recite.auth.password import (
    check_needs_rehash,
    hash_password,
    validate_password_strength,
    verify_password,
)
from recite.db.models import RefreshToken, User
from recite.errors import Conflict, Forbidden, Unauthenticated

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from recite.config import Settings

logger = structlog.get_logger()


def hash_token(raw_token: str) -> str:
    """SHA-256 hex digest used to store credentials at rest."""
    return hashlib.sha256(raw_token.encode()).hexdigest()


# ---------------------------------------------------------------------------
# User queries
# ---------------------------------------------------------------------------


async def get_user_by_id(db: AsyncSession, user_id: int) -> User | None:
    """Fetch a user by ID."""
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    """Fetch a user by email (case-insensitive)."""
    result = await db.execute(select(User).where(func.lower(User.email) == email.lower().strip()))
    return result.scalar_one_or_none()


# ---------------------------------------------------------------------------
# Registration / login
# ---------------------------------------------------------------------------


async def register_user(
    db: AsyncSession,
    *,
    email: str,
    password: str,
    name: str,
    role: str = "student",
    level: str = "beginner",
    class_id: str | None = None,
    allow_admin: bool = False,
) -> User:
    """
    Create a new account.

    Raises:
        PasswordStrengthError: If the password is too weak.
        Forbidden: If ``admin`` is requested while admin self-registration is disabled.
        Conflict: If the email is already registered.
    """
    validate_password_strength(password)

    if role == "admin" and not allow_admin:
        msg = "Administrator accounts cannot be self-registered"
        raise Forbidden(msg)

    if await get_user_by_email(db, email) is not None:
        msg = "A user with this email already exists"
        raise Conflict(msg)

    user = User(
        email=email.lower().strip(),
        password_hash=hash_password(password),
        name=name,
        role=role,
        level=level,
        class_id=class_id if role == "student" else None,
        is_active=True,
    )
    db.add(user)
    try:
        await db.flush()
    except IntegrityError as e:
        # Lost a race against a concurrent registration of the same email.
        await db.rollback()
        msg = "A user with this email already exists"
        raise Conflict(msg) from e
    logger.info("user_registered", user_id=user.id, role=role)
    return user


async def authenticate_user(db: AsyncSession, email: str, password: str) -> User:
    """
    Check email + password and record the login.

    Raises:
        Unauthenticated: If credentials are invalid or the account is deactivated.
    """
    user = await get_user_by_email(db, email)
    if user is None or not verify_password(password, user.password_hash):
        msg = "Invalid email or password"
        raise Unauthenticated(msg, reason="invalid_credentials")
    if not user.is_active:
        msg = "Account is deactivated"
        raise Unauthenticated(msg, reason="deactivated")

    user.last_login = datetime.now(timezone.utc)

    if check_needs_rehash(user.password_hash):
        user.password_hash = hash_password(password)
        logger.info("password_rehashed", user_id=user.id)

    await db.flush()
    return user


async def update_profile(
    db: AsyncSession,
    user: User,
    *,
    name: str | None = None,
    level: str | None = None,
    avatar_url: str | None = None,
) -> User:
    """Apply the provided profile fields."""
    if name is not None:
        user.name = name
    if level is not None:
        user.level = level
    if avatar_url is not None:
        user.avatar_url = avatar_url
    await db.flush()
    return user


# ---------------------------------------------------------------------------
# Refresh tokens
# ---------------------------------------------------------------------------


async def store_refresh_token(
    db: AsyncSession,
    user_id: int,
    pair: CredentialPair,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> RefreshToken:
    """Store the hash of a freshly issued refresh credential."""
    token = RefreshToken(
        id=pair.refresh_token_id,
        user_id=user_id,
        token_hash=hash_token(pair.refresh_token),
        issued_at=datetime.now(timezone.utc),
        expires_at=pair.refresh_expires_at,
        ip_address=ip_address,
        user_agent=user_agent[:512] if user_agent else None,
    )
    db.add(token)
    await db.flush()
    return token


async def issue_session(
    db: AsyncSession,
    user: User,
    settings: Settings,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> CredentialPair:
    """Issue a credential pair and persist its refresh half."""
    pair = issue_credentials(user, settings)
    await store_refresh_token(db, user.id, pair, ip_address=ip_address, user_agent=user_agent)
    return pair


async def get_refresh_token(db: AsyncSession, token_id: str) -> RefreshToken | None:
    """Look up a refresh token by its JTI."""
    result = await db.execute(select(RefreshToken).where(RefreshToken.id == token_id))
    return result.scalar_one_or_none()


async def rotate_refresh_token(
    db: AsyncSession,
    old_token: RefreshToken,
    user: User,
    settings: Settings,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> CredentialPair:
    """Revoke ``old_token`` and issue a replacement pair."""
    pair = issue_credentials(user, settings)
    old_token.is_revoked = True
    old_token.revoked_at = datetime.now(timezone.utc)
    old_token.replaced_by = pair.refresh_token_id
    await store_refresh_token(db, user.id, pair, ip_address=ip_address, user_agent=user_agent)
    return pair


async def revoke_refresh_token(db: AsyncSession, token_id: str, user_id: int | None = None) -> bool:
    """Revoke a specific refresh token. Returns True if found."""
    token = await get_refresh_token(db, token_id)
    if token is None or (user_id is not None and token.user_id != user_id):
        return False
    token.is_revoked = True
    token.revoked_at = datetime.now(timezone.utc)
    await db.flush()
    return True


async def revoke_all_tokens(db: AsyncSession, user_id: int) -> int:
    """Revoke all refresh tokens for a user. Returns count revoked."""
    stmt = (
        update(RefreshToken)
        .where(RefreshToken.user_id == user_id)
        .where(RefreshToken.is_revoked.is_(False))
        .values(is_revoked=True, revoked_at=datetime.now(timezone.utc))
    )
    result = await db.execute(stmt)
    await db.flush()
    return result.rowcount  # type: ignore[return-value]
