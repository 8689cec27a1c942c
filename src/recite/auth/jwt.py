"""
Signed access/refresh credentials (HS256 JWT).

Every credential carries the principal id, email and role together with
issuer and audience claims. Access and refresh credentials are told apart by
audience, so a refresh credential can never be replayed as an access one.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any

import jwt

if TYPE_CHECKING:
    from recite.config import Settings
    from recite.db.models import User


class CredentialError(Exception):
    """Base class for credential verification failures."""

    reason = "invalid"


class CredentialExpiredError(CredentialError):
    """The credential's ``exp`` is in the past."""

    reason = "expired"


class CredentialNotYetValidError(CredentialError):
    """The credential's ``nbf`` is in the future."""

    reason = "not_yet_valid"


class CredentialMalformedError(CredentialError):
    """Bad signature, wrong issuer/audience, missing claims or undecodable token."""

    reason = "invalid"


@dataclass(frozen=True)
class CredentialPair:
    access_token: str
    refresh_token: str
    refresh_token_id: str
    access_expires_in: int
    refresh_expires_at: datetime


def _encode(claims: dict[str, Any], settings: Settings) -> str:
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def create_access_token(
    user_id: int,
    email: str,
    role: str,
    settings: Settings,
    *,
    now: datetime | None = None,
) -> str:
    """Create a short-lived access credential for the given principal."""
    now = now or datetime.now(timezone.utc)
    claims: dict[str, Any] = {
        "sub": str(user_id),
        "email": email,
        "role": role,
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_access_audience,
        "iat": now,
        "nbf": now,
        "exp": now + timedelta(minutes=settings.jwt_access_token_expire_minutes),
        "type": "access",
    }
    return _encode(claims, settings)


def create_refresh_token(
    user_id: int,
    email: str,
    role: str,
    settings: Settings,
    *,
    token_id: str,
    now: datetime | None = None,
) -> str:
    """
    Create a long-lived refresh credential.

    Args:
        token_id: Unique identifier (JTI) stored server-side for rotation and revocation.
    """
    now = now or datetime.now(timezone.utc)
    claims: dict[str, Any] = {
        "sub": str(user_id),
        "email": email,
        "role": role,
        "jti": token_id,
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_refresh_audience,
        "iat": now,
        "nbf": now,
        "exp": now + timedelta(days=settings.jwt_refresh_token_expire_days),
        "type": "refresh",
    }
    return _encode(claims, settings)


def issue_credentials(user: User, settings: Settings) -> CredentialPair:
    """Issue an access + refresh credential pair for ``user``."""
    now = datetime.now(timezone.utc)
    token_id = str(uuid.uuid4())
    return CredentialPair(
        access_token=create_access_token(user.id, user.email, user.role, settings, now=now),
        refresh_token=create_refresh_token(user.id, user.email, user.role, settings, token_id=token_id, now=now),
        refresh_token_id=token_id,
        access_expires_in=settings.jwt_access_token_expire_minutes * 60,
        refresh_expires_at=now + timedelta(days=settings.jwt_refresh_token_expire_days),
    )


def verify_credential(token: str, expected_audience: str, settings: Settings) -> dict[str, Any]:
    """
    Verify and decode a credential.

    Returns:
        Decoded claims.

    Raises:
        CredentialExpiredError: ``exp`` has passed.
        CredentialNotYetValidError: ``nbf`` is in the future.
        CredentialMalformedError: any other signature or claim failure.
    """
    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            issuer=settings.jwt_issuer,
            audience=expected_audience,
            options={"require": ["exp", "iat", "nbf", "sub", "iss", "aud"]},
        )
    except jwt.ExpiredSignatureError:
        msg = "Token has expired"
        raise CredentialExpiredError(msg) from None
    except jwt.ImmatureSignatureError:
        msg = "Token is not yet valid"
        raise CredentialNotYetValidError(msg) from None
    except jwt.InvalidTokenError as e:
        msg = f"Invalid token: {e}"
        raise CredentialMalformedError(msg) from None

    if not str(payload["sub"]).isdigit():
        msg = "Invalid token: malformed subject"
        raise CredentialMalformedError(msg)
    return payload
