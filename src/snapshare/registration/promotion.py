"""
Account promotion: pending registration + confirmed code -> permanent account.

The unique constraints on ``accounts.email`` and ``accounts.username`` decide
concurrent promotions; the losing insert surfaces as ConflictError and leaves
its pending registration untouched.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING

import structlog
from sqlalchemy.exc import IntegrityError

from snapshare.db.models import Account, CodePurpose
from snapshare.errors import ConflictError, InvalidOrExpiredCodeError, NotFoundError
from snapshare.otp.service import verify_code
from snapshare.registration.store import delete_pending, get_pending_by_email

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


async def promote_pending(
    db: AsyncSession,
    email: str,
    submitted_code: str,
    now: datetime | None = None,
) -> Account:
    """
    Verify the registration code for ``email`` and create the account.

    Raises:
        NotFoundError: No pending registration for ``email``.
        InvalidOrExpiredCodeError: Code missing, wrong, or expired.
        ConflictError: An account with this email or username already exists.
    """
    if now is None:
        now = datetime.now(timezone.utc)

    pending = await get_pending_by_email(db, email)
    if pending is None:
        msg = "Registration not found. Please register again."
        raise NotFoundError(msg)

    if not await verify_code(db, pending.id, CodePurpose.REGISTRATION.value, submitted_code, now=now):
        # Keeps the delete of an expired code when the caller rolls back
        await db.commit()
        raise InvalidOrExpiredCodeError

    pending_email = pending.email

    # Consumed code is durable before the account insert is attempted
    await db.commit()

    account = Account(
        username=pending.username,
        email=pending.email,
        password_hash=pending.password_hash,
        is_active=True,
        activated_at=now,
        created_at=now,
        updated_at=now,
    )
    db.add(account)
    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        logger.info("account_promotion_conflict", email=pending_email)
        msg = "User already exists. Please login instead."
        raise ConflictError(msg) from None

    await delete_pending(db, pending_email)
    await db.commit()
    logger.info("account_promoted", account_id=account.id, username=account.username)
    return account
