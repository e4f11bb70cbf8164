"""
Registration flow: pending registration + registration OTP.

Nothing here creates an account; that happens in ``promotion.promote_pending``
once the emailed code is confirmed.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from snapshare.auth.password import hash_password, validate_password_strength
from snapshare.config import get_settings
from snapshare.db.models import CodePurpose
from snapshare.errors import NotFoundError
from snapshare.otp.service import issue_code, revoke_codes
from snapshare.registration.store import (
    ensure_identity_available,
    get_pending_by_email,
    update_pending,
    upsert_pending,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from snapshare.db.models import PendingRegistration


async def _issue_registration_code(db: AsyncSession, pending: PendingRegistration) -> str:
    settings = get_settings()
    return await issue_code(
        db,
        pending.id,
        CodePurpose.REGISTRATION.value,
        ttl_minutes=settings.registration_otp_ttl_minutes,
    )


async def start_registration(
    db: AsyncSession,
    email: str,
    username: str,
    password: str,
) -> tuple[PendingRegistration, str]:
    """
    Create or replace the pending registration for ``email`` and issue its code.

    Returns (pending, raw_code).

    Raises:
        PasswordStrengthError: Password fails the length rules.
        ConflictError: Email or username already belongs to an activated account.
    """
    validate_password_strength(password)
    await ensure_identity_available(db, email=email, username=username)

    pending = await upsert_pending(db, email, username, hash_password(password))
    code = await _issue_registration_code(db, pending)
    return pending, code


async def resend_registration_code(db: AsyncSession, email: str) -> tuple[PendingRegistration, str]:
    """
    Issue a fresh registration code; the previous one stops verifying.

    Raises:
        NotFoundError: No pending registration for ``email``.
    """
    pending = await get_pending_by_email(db, email)
    if pending is None:
        msg = "Registration not found. Please register again."
        raise NotFoundError(msg)
    code = await _issue_registration_code(db, pending)
    return pending, code


async def change_pending_email(
    db: AsyncSession,
    current_email: str,
    new_email: str,
) -> tuple[PendingRegistration, str]:
    """Move a pending registration to a new email and send a new code there."""
    pending = await update_pending(db, current_email, new_email=new_email)
    await revoke_codes(db, pending.id, CodePurpose.REGISTRATION.value)
    code = await _issue_registration_code(db, pending)
    return pending, code


async def change_pending_username(
    db: AsyncSession,
    email: str,
    new_username: str,
) -> PendingRegistration:
    """Rename a pending registration. The outstanding code stays valid."""
    return await update_pending(db, email, new_username=new_username)
