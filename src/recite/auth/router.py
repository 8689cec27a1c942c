"""Authentication router: all /api/auth/* endpoints."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from recite.auth.dependencies import authenticate
from recite.auth.jwt import CredentialError, CredentialExpiredError, CredentialPair, verify_credential
from recite.auth.password import PasswordStrengthError
from recite.auth.schemas import (
    AuthResponse,
    LoginRequest,
    LogoutRequest,
    ProfileResponse,
    ProfileUpdateRequest,
    RefreshRequest,
    RegisterRequest,
    UserResponse,
)
from recite.auth.service import (
    authenticate_user,
    get_refresh_token,
    get_user_by_id,
    hash_token,
    issue_session,
    register_user,
    revoke_all_tokens,
    revoke_refresh_token,
    rotate_refresh_token,
    update_profile,
)
from recite.config import Settings
from recite.db.models import User
from recite.dependencies import client_ip, get_app_settings, get_db
from recite.errors import Unauthenticated, ValidationFailed
from recite.middleware.rate_limit import login_rate_limit, register_rate_limit
from recite.responses import ApiResponse, ok

logger = structlog.get_logger()

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


def _auth_response(user: User, pair: CredentialPair) -> AuthResponse:
    return AuthResponse(
        user=UserResponse.model_validate(user),
        access_token=pair.access_token,
        refresh_token=pair.refresh_token,
        expires_in=pair.access_expires_in,
    )


@router.post(
    "/register",
    status_code=201,
    response_model=ApiResponse[AuthResponse],
    dependencies=[Depends(register_rate_limit)],
)
async def register(
    body: RegisterRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> ApiResponse[AuthResponse]:
    """Create an account and log it in."""
    try:
        user = await register_user(
            db,
            email=body.email,
            password=body.password,
            name=body.name,
            role=body.role,
            level=body.level,
            class_id=body.class_id,
            allow_admin=settings.allow_admin_registration,
        )
    except PasswordStrengthError as e:
        raise ValidationFailed(errors=[{"field": "password", "message": str(e)}]) from e

    pair = await issue_session(
        db, user, settings, ip_address=client_ip(request), user_agent=request.headers.get("user-agent")
    )
    await db.commit()
    return ok(_auth_response(user, pair), "User created successfully")


@router.post(
    "/login",
    response_model=ApiResponse[AuthResponse],
    dependencies=[Depends(login_rate_limit)],
)
async def login(
    body: LoginRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> ApiResponse[AuthResponse]:
    """Log in with email + password."""
    user = await authenticate_user(db, body.email, body.password)
    pair = await issue_session(
        db, user, settings, ip_address=client_ip(request), user_agent=request.headers.get("user-agent")
    )
    await db.commit()
    logger.info("user_logged_in", user_id=user.id)
    return ok(_auth_response(user, pair), "Login successful")


@router.post("/refresh-token", response_model=ApiResponse[AuthResponse])
async def refresh_token(
    body: RefreshRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> ApiResponse[AuthResponse]:
    """Rotate a refresh credential and issue a new pair."""
    try:
        claims = verify_credential(body.refresh_token, settings.jwt_refresh_audience, settings)
    except CredentialExpiredError as e:
        msg = "Refresh token expired"
        raise Unauthenticated(msg, reason=e.reason) from e
    except CredentialError as e:
        msg = "Invalid refresh token"
        raise Unauthenticated(msg, reason=e.reason) from e

    jti = claims.get("jti")
    stored = await get_refresh_token(db, jti) if jti else None
    if stored is None or stored.token_hash != hash_token(body.refresh_token):
        msg = "Invalid refresh token"
        raise Unauthenticated(msg)
    if stored.is_revoked:
        # Reuse of a rotated credential: kill every session of this user.
        await revoke_all_tokens(db, stored.user_id)
        await db.commit()
        logger.warning("refresh_token_reuse", user_id=stored.user_id)
        msg = "Refresh token has been revoked"
        raise Unauthenticated(msg, reason="revoked")

    user = await get_user_by_id(db, stored.user_id)
    if user is None or not user.is_active:
        msg = "User not found or deactivated"
        raise Unauthenticated(msg, reason="deactivated")

    pair = await rotate_refresh_token(
        db,
        stored,
        user,
        settings,
        ip_address=client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )
    await db.commit()
    return ok(_auth_response(user, pair), "Token refreshed successfully")


@router.get("/profile", response_model=ApiResponse[ProfileResponse])
async def get_profile(user: User = Depends(authenticate)) -> ApiResponse[ProfileResponse]:
    """Get own profile."""
    return ok(ProfileResponse(user=UserResponse.model_validate(user)))


@router.put("/profile", response_model=ApiResponse[ProfileResponse])
async def put_profile(
    body: ProfileUpdateRequest,
    user: User = Depends(authenticate),
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[ProfileResponse]:
    """Update name, level or avatar."""
    user = await update_profile(db, user, name=body.name, level=body.level, avatar_url=body.avatar_url)
    await db.commit()
    return ok(ProfileResponse(user=UserResponse.model_validate(user)), "Profile updated successfully")


@router.post("/logout", response_model=ApiResponse[None])
async def logout(
    body: LogoutRequest | None = None,
    user: User = Depends(authenticate),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> ApiResponse[None]:
    """Revoke the supplied refresh credential. Access credentials simply expire."""
    if body is not None and body.refresh_token:
        try:
            claims = verify_credential(body.refresh_token, settings.jwt_refresh_audience, settings)
        except CredentialError:
            pass  # nothing to revoke for an unusable token
        else:
            if claims.get("jti"):
                await revoke_refresh_token(db, claims["jti"], user_id=user.id)
                await db.commit()
    return ok(None, "Logout successful")


@router.post("/logout-all", response_model=ApiResponse[dict[str, int]])
async def logout_all(
    user: User = Depends(authenticate),
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[dict[str, int]]:
    """Revoke all refresh credentials for the current user."""
    count = await revoke_all_tokens(db, user.id)
    await db.commit()
    return ok({"revoked_count": count}, "All sessions revoked")
