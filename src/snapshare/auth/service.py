"""
Credential store and login/password-reset business logic.

Accounts are only ever created by ``snapshare.registration.promotion``; this
module reads them, authenticates them, and rotates password hashes.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import func, or_, select

from snapshare.auth.password import (
    check_needs_rehash,
    hash_password,
    validate_password_strength,
    verify_password,
)
from snapshare.config import get_settings
from snapshare.db.models import Account, CodePurpose
from snapshare.errors import (
    AccountLockedError,
    InvalidOrExpiredCodeError,
    NotFoundError,
    UnauthorizedError,
)
from snapshare.otp.service import check_code, issue_code, revoke_codes, verify_code

if TYPE_CHECKING:
    from redis.asyncio import Redis
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


# ---------------------------------------------------------------------------
# Account queries
# ---------------------------------------------------------------------------


async def get_account_by_id(db: AsyncSession, account_id: str) -> Account | None:
    """Fetch an account by id."""
    result = await db.execute(select(Account).where(Account.id == account_id))
    return result.scalar_one_or_none()


async def get_account_by_email(db: AsyncSession, email: str) -> Account | None:
    """Fetch an account by email (case-insensitive)."""
    result = await db.execute(select(Account).where(Account.email == email.strip().lower()))
    return result.scalar_one_or_none()


async def get_account_by_username_or_email(db: AsyncSession, username_or_email: str) -> Account | None:
    """Fetch an account whose username or email matches (case-insensitive)."""
    value = username_or_email.strip().lower()
    result = await db.execute(
        select(Account).where(or_(Account.email == value, func.lower(Account.username) == value))
    )
    return result.scalars().first()


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------


async def authenticate(
    db: AsyncSession,
    redis: Redis | None,
    username_or_email: str,
    password: str,
) -> Account:
    """
    Authenticate with username-or-email + password.

    The same message is used for an unknown account and a wrong password.

    Raises:
        UnauthorizedError: Invalid credentials or inactive account.
        AccountLockedError: Too many failed attempts.
    """
    account = await get_account_by_username_or_email(db, username_or_email)
    if account is None:
        raise UnauthorizedError

    if redis is not None and await check_account_lockout(redis, account.id):
        raise AccountLockedError

    if not verify_password(password, account.password_hash):
        if redis is not None:
            await increment_failed_login(redis, account.id)
        raise UnauthorizedError

    if not account.is_active:
        msg = "Account is not verified. Please complete your registration first."
        raise UnauthorizedError(msg)

    if redis is not None:
        await clear_failed_login(redis, account.id)

    account.last_login = datetime.now(timezone.utc)
    account.login_count = (account.login_count or 0) + 1

    if check_needs_rehash(account.password_hash):
        account.password_hash = hash_password(password)
        logger.info("password_rehashed", account_id=account.id)

    await db.flush()
    logger.info("account_login", account_id=account.id)
    return account


# ---------------------------------------------------------------------------
# Account lockout
# ---------------------------------------------------------------------------


async def check_account_lockout(redis: Redis, account_id: str) -> bool:
    """Check if the account is locked due to too many failed login attempts."""
    settings = get_settings()
    count_str = await redis.get(f"login_attempts:{account_id}")
    if count_str is None:
        return False
    return int(count_str) >= settings.account_lockout_threshold


async def increment_failed_login(redis: Redis, account_id: str) -> int:
    """Increment failed login counter. Returns the new count."""
    settings = get_settings()
    key = f"login_attempts:{account_id}"
    count = await redis.incr(key)
    if count == 1:
        await redis.expire(key, settings.account_lockout_duration_minutes * 60)
    return int(count)


async def clear_failed_login(redis: Redis, account_id: str) -> None:
    """Clear the failed login counter after a successful login."""
    await redis.delete(f"login_attempts:{account_id}")


# ---------------------------------------------------------------------------
# Password reset
# ---------------------------------------------------------------------------


async def start_password_reset(db: AsyncSession, email: str) -> tuple[Account, str] | None:
    """
    Issue a password-reset code for the account with ``email``.

    Returns (account, raw_code), or None when there is no active account, so
    callers can answer identically either way.
    """
    account = await get_account_by_email(db, email)
    if account is None or not account.is_active:
        return None
    settings = get_settings()
    code = await issue_code(
        db,
        account.id,
        CodePurpose.PASSWORD_RESET.value,
        ttl_minutes=settings.password_reset_otp_ttl_minutes,
    )
    return account, code


async def check_reset_code(db: AsyncSession, email: str, code: str) -> Account:
    """
    Check a reset code without consuming it.

    Raises:
        NotFoundError: No account for ``email``.
        InvalidOrExpiredCodeError: Code missing, wrong, or expired.
    """
    account = await get_account_by_email(db, email)
    if account is None:
        msg = "Account not found"
        raise NotFoundError(msg)
    if not await check_code(db, account.id, CodePurpose.PASSWORD_RESET.value, code):
        msg = "Invalid or expired reset code"
        raise InvalidOrExpiredCodeError(msg)
    return account


async def reset_password(db: AsyncSession, email: str, code: str, new_password: str) -> Account:
    """
    Consume a reset code and replace the account's password hash.

    Raises:
        PasswordStrengthError: New password fails the length rules.
        NotFoundError: No account for ``email``.
        InvalidOrExpiredCodeError: Code missing, wrong, or expired.
    """
    validate_password_strength(new_password)

    account = await get_account_by_email(db, email)
    if account is None:
        msg = "Account not found"
        raise NotFoundError(msg)
    if not await verify_code(db, account.id, CodePurpose.PASSWORD_RESET.value, code):
        await db.commit()
        msg = "Invalid or expired reset code"
        raise InvalidOrExpiredCodeError(msg)

    account.password_hash = hash_password(new_password)
    account.updated_at = datetime.now(timezone.utc)
    await revoke_codes(db, account.id, CodePurpose.PASSWORD_RESET.value)
    await db.flush()
    logger.info("password_reset_complete", account_id=account.id)
    return account
