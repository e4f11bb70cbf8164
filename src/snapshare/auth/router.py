"""Authentication router: registration, login and password reset endpoints."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from snapshare.auth.dependencies import get_current_account
from snapshare.auth.jwt import create_access_token
from snapshare.auth.schemas import (
    AccountResponse,
    ActivatedAccountResponse,
    ForgotPasswordRequest,
    LoginRequest,
    MessageResponse,
    PendingRegistrationResponse,
    RegisterRequest,
    ResendRegistrationRequest,
    ResetPasswordRequest,
    TokenResponse,
    UpdatePendingEmailRequest,
    UpdatePendingUsernameRequest,
    VerifyRegistrationRequest,
    VerifyResetCodeRequest,
)
from snapshare.auth.service import (
    authenticate,
    check_reset_code,
    reset_password,
    start_password_reset,
)
from snapshare.config import get_settings
from snapshare.database import get_session
from snapshare.db.models import Account
from snapshare.email.service import get_email_service
from snapshare.redis_client import get_optional_redis
from snapshare.registration.promotion import promote_pending
from snapshare.registration.service import (
    change_pending_email,
    change_pending_username,
    resend_registration_code,
    start_registration,
)

logger = structlog.get_logger()

router = APIRouter(prefix="/auth", tags=["Authentication"])


async def _send_code_email(
    redis: Redis | None,
    to: str,
    template_name: str,
    username: str,
    code: str,
    expires_minutes: int,
) -> None:
    """Deliver a one-time code. Failures are logged, never raised."""
    try:
        email_service = get_email_service(redis)
        await email_service.send_template(
            to=to,
            template_name=template_name,
            context={"username": username, "code": code, "expires_minutes": str(expires_minutes)},
        )
    except Exception:
        logger.exception("code_email_failed", to=to, template=template_name)


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------


@router.post("/register", response_model=PendingRegistrationResponse)
async def register(
    body: RegisterRequest,
    db: AsyncSession = Depends(get_session),
    redis: Redis | None = Depends(get_optional_redis),
) -> PendingRegistrationResponse:
    """Start registration: store the pending registration and email a code."""
    pending, code = await start_registration(db, body.email, body.username, body.password)
    await db.commit()

    settings = get_settings()
    await _send_code_email(
        redis, pending.email, "registration_otp", pending.username, code,
        settings.registration_otp_ttl_minutes,
    )
    return PendingRegistrationResponse(
        message="Registration initiated. Please check your email for the verification code.",
        email=pending.email,
        username=pending.username,
    )


@router.post("/verify-registration-otp", response_model=ActivatedAccountResponse, status_code=201)
async def verify_registration_otp(
    body: VerifyRegistrationRequest,
    db: AsyncSession = Depends(get_session),
    redis: Redis | None = Depends(get_optional_redis),
) -> ActivatedAccountResponse:
    """Confirm the emailed code and create the account."""
    account = await promote_pending(db, body.email, body.otp)

    settings = get_settings()
    try:
        email_service = get_email_service(redis)
        await email_service.send_template(
            to=account.email,
            template_name="account_activated",
            context={"username": account.username, "login_url": f"{settings.frontend_base_url}/login"},
        )
    except Exception:
        logger.exception("activation_email_failed", account_id=account.id)

    return ActivatedAccountResponse(
        message="Account verified successfully. You can now log in.",
        user=AccountResponse.model_validate(account),
    )


@router.post("/resend-registration-otp", response_model=MessageResponse)
async def resend_registration_otp(
    body: ResendRegistrationRequest,
    db: AsyncSession = Depends(get_session),
    redis: Redis | None = Depends(get_optional_redis),
) -> MessageResponse:
    """Issue a new registration code. The previous code stops working."""
    pending, code = await resend_registration_code(db, body.email)
    await db.commit()

    settings = get_settings()
    await _send_code_email(
        redis, pending.email, "registration_otp", pending.username, code,
        settings.registration_otp_ttl_minutes,
    )
    return MessageResponse(message="A new verification code has been sent to your email.")


@router.post("/update-pending-email", response_model=PendingRegistrationResponse)
async def update_pending_email(
    body: UpdatePendingEmailRequest,
    db: AsyncSession = Depends(get_session),
    redis: Redis | None = Depends(get_optional_redis),
) -> PendingRegistrationResponse:
    """Move a pending registration to a new email and send a code there."""
    pending, code = await change_pending_email(db, body.current_email, body.new_email)
    await db.commit()

    settings = get_settings()
    await _send_code_email(
        redis, pending.email, "registration_otp", pending.username, code,
        settings.registration_otp_ttl_minutes,
    )
    return PendingRegistrationResponse(
        message="Email updated. Please check your new email for the verification code.",
        email=pending.email,
        username=pending.username,
    )


@router.post("/update-pending-username", response_model=PendingRegistrationResponse)
async def update_pending_username(
    body: UpdatePendingUsernameRequest,
    db: AsyncSession = Depends(get_session),
) -> PendingRegistrationResponse:
    """Rename a pending registration."""
    pending = await change_pending_username(db, body.email, body.new_username)
    await db.commit()
    return PendingRegistrationResponse(
        message="Username updated.",
        email=pending.email,
        username=pending.username,
    )


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------


@router.post("/login", response_model=TokenResponse)
async def login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_session),
    redis: Redis | None = Depends(get_optional_redis),
) -> TokenResponse:
    """Login with username or email + password."""
    account = await authenticate(db, redis, body.username_or_email, body.password)
    await db.commit()

    settings = get_settings()
    return TokenResponse(
        access_token=create_access_token(account.id, account.email),
        expires_in=settings.jwt_access_token_expire_minutes * 60,
        user=AccountResponse.model_validate(account),
    )


@router.get("/me", response_model=AccountResponse)
async def me(account: Account = Depends(get_current_account)) -> AccountResponse:
    return AccountResponse.model_validate(account)


# ---------------------------------------------------------------------------
# Password reset
# ---------------------------------------------------------------------------


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(
    body: ForgotPasswordRequest,
    db: AsyncSession = Depends(get_session),
    redis: Redis | None = Depends(get_optional_redis),
) -> MessageResponse:
    """Request a password reset code. Always returns 200."""
    issued = await start_password_reset(db, body.email)
    if issued is not None:
        account, code = issued
        await db.commit()
        settings = get_settings()
        await _send_code_email(
            redis, account.email, "password_reset_otp", account.username, code,
            settings.password_reset_otp_ttl_minutes,
        )
    return MessageResponse(message="If that email exists, a reset code has been sent.")


@router.post("/verify-reset-code", response_model=MessageResponse)
async def verify_reset_code(
    body: VerifyResetCodeRequest,
    db: AsyncSession = Depends(get_session),
) -> MessageResponse:
    """Check a reset code without consuming it."""
    await check_reset_code(db, body.email, body.code)
    return MessageResponse(message="Reset code is valid.")


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password_endpoint(
    body: ResetPasswordRequest,
    db: AsyncSession = Depends(get_session),
    redis: Redis | None = Depends(get_optional_redis),
) -> MessageResponse:
    """Reset the password with a valid code."""
    account = await reset_password(db, body.email, body.code, body.new_password)
    await db.commit()

    try:
        email_service = get_email_service(redis)
        await email_service.send_template(
            to=account.email,
            template_name="password_changed",
            context={"username": account.username},
        )
    except Exception:
        logger.exception("password_changed_email_failed", account_id=account.id)

    return MessageResponse(message="Password has been reset successfully.")
