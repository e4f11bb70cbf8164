"""
Pending registrations: account data waiting for OTP verification.

Keyed by email. Registering again with the same email overwrites the
username and password hash in place (single upsert statement), so there is
never more than one pending row per email. This module never writes to the
accounts table.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import delete, func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError

from snapshare.db.models import Account, PendingRegistration
from snapshare.errors import ConflictError, NotFoundError

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


def normalize_email(email: str) -> str:
    return email.strip().lower()


async def get_pending_by_email(db: AsyncSession, email: str) -> PendingRegistration | None:
    """Fetch a pending registration by email (case-insensitive)."""
    result = await db.execute(
        select(PendingRegistration)
        .where(PendingRegistration.email == normalize_email(email))
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_pending_by_username(db: AsyncSession, username: str) -> PendingRegistration | None:
    result = await db.execute(
        select(PendingRegistration).where(func.lower(PendingRegistration.username) == username.lower())
    )
    return result.scalars().first()


async def upsert_pending(
    db: AsyncSession,
    email: str,
    username: str,
    password_hash: str,
    now: datetime | None = None,
) -> PendingRegistration:
    """
    Create the pending registration for ``email`` or overwrite the existing one.

    Uses ``INSERT ... ON CONFLICT (email) DO UPDATE`` so two concurrent
    registrations for one email still leave a single row. An existing row
    keeps its id (the OTP subject) and created_at.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    email = normalize_email(email)

    dialect = db.get_bind().dialect.name
    insert = sqlite_insert if dialect == "sqlite" else pg_insert
    stmt = insert(PendingRegistration).values(
        id=str(uuid.uuid4()),
        email=email,
        username=username,
        password_hash=password_hash,
        created_at=now,
        updated_at=now,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=[PendingRegistration.email],
        set_={
            "username": stmt.excluded.username,
            "password_hash": stmt.excluded.password_hash,
            "updated_at": stmt.excluded.updated_at,
        },
    )
    await db.execute(stmt)

    pending = await get_pending_by_email(db, email)
    if pending is None:  # pragma: no cover - the upsert guarantees a row
        msg = "Pending registration vanished after upsert"
        raise RuntimeError(msg)
    logger.info("pending_registration_upserted", pending_id=pending.id, email=email)
    return pending


async def delete_pending(db: AsyncSession, email: str) -> bool:
    """Delete the pending registration for ``email``. Returns True if a row was removed."""
    result = await db.execute(
        delete(PendingRegistration).where(PendingRegistration.email == normalize_email(email))
    )
    return bool(result.rowcount)  # type: ignore[attr-defined]


async def ensure_identity_available(
    db: AsyncSession,
    email: str | None = None,
    username: str | None = None,
) -> None:
    """
    Raise ConflictError if an activated account already uses the email or username.

    This is an early, friendly check; the unique constraints on ``accounts``
    remain the real guard at promotion time.
    """
    if email is not None:
        result = await db.execute(select(Account.id).where(Account.email == normalize_email(email)))
        if result.scalar_one_or_none() is not None:
            msg = "Email address is already registered and verified"
            raise ConflictError(msg)
    if username is not None:
        result = await db.execute(
            select(Account.id).where(func.lower(Account.username) == username.lower())
        )
        if result.scalar_one_or_none() is not None:
            msg = "Username is already taken"
            raise ConflictError(msg)


async def update_pending(
    db: AsyncSession,
    current_email: str,
    *,
    new_email: str | None = None,
    new_username: str | None = None,
    now: datetime | None = None,
) -> PendingRegistration:
    """
    Change the email and/or username of a pending registration.

    Raises:
        NotFoundError: No pending registration for ``current_email``.
        ConflictError: The new value belongs to an account or another pending registration.
    """
    if now is None:
        now = datetime.now(timezone.utc)

    pending = await get_pending_by_email(db, current_email)
    if pending is None:
        msg = "Registration not found. Please register again."
        raise NotFoundError(msg)

    if new_email is not None and normalize_email(new_email) != pending.email:
        new_email = normalize_email(new_email)
        await ensure_identity_available(db, email=new_email)
        other = await get_pending_by_email(db, new_email)
        if other is not None:
            msg = "Email address is already being used in another registration"
            raise ConflictError(msg)
        pending.email = new_email

    if new_username is not None and new_username.lower() != pending.username.lower():
        await ensure_identity_available(db, username=new_username)
        other = await get_pending_by_username(db, new_username)
        if other is not None and other.id != pending.id:
            msg = "Username is already being used in another registration"
            raise ConflictError(msg)
        pending.username = new_username

    pending.updated_at = now
    try:
        await db.flush()
    except IntegrityError as e:
        await db.rollback()
        msg = "Email address is already being used in another registration"
        raise ConflictError(msg) from e
    logger.info("pending_registration_updated", pending_id=pending.id)
    return pending


async def sweep_stale_pending(
    db: AsyncSession,
    max_age: timedelta,
    now: datetime | None = None,
) -> int:
    """Delete pending registrations not touched within ``max_age``. Returns count deleted."""
    if now is None:
        now = datetime.now(timezone.utc)
    result = await db.execute(
        delete(PendingRegistration).where(PendingRegistration.updated_at < now - max_age)
    )
    return result.rowcount or 0  # type: ignore[attr-defined]
