"""
One-time verification codes.

Codes are 6 characters from A-Z0-9, generated with a cryptographic random
source and stored only as a SHA-256 hash. Each (subject, purpose) pair has at
most one live code: issuing deletes any previous code for the pair, and a
successful verification deletes the code it matched.

Expiry is checked when a code is read; ``sweep_expired_codes`` only removes
leftovers.
"""

from __future__ import annotations

import hashlib
import hmac
import secrets
import string
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import delete, select

from snapshare.db.models import VerificationCode

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

CODE_CHARSET = string.ascii_uppercase + string.digits  # A-Z, 0-9
CODE_LENGTH = 6


def generate_code() -> str:
    """Generate a cryptographically random 6-character code."""
    return "".join(secrets.choice(CODE_CHARSET) for _ in range(CODE_LENGTH))


def normalize_code(code: str) -> str:
    """Normalize a submitted code (trim, uppercase) for comparison."""
    return code.strip().upper()


def is_well_formed(code: str) -> bool:
    """True if the (normalized) code has the expected length and alphabet."""
    return len(code) == CODE_LENGTH and all(c in CODE_CHARSET for c in code)


def hash_code(code: str) -> str:
    return hashlib.sha256(code.encode()).hexdigest()


async def _current_code(db: AsyncSession, subject_id: str, purpose: str) -> VerificationCode | None:
    result = await db.execute(
        select(VerificationCode)
        .where(VerificationCode.subject_id == subject_id)
        .where(VerificationCode.purpose == purpose)
        .order_by(VerificationCode.created_at.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def issue_code(
    db: AsyncSession,
    subject_id: str,
    purpose: str,
    ttl_minutes: int,
    now: datetime | None = None,
) -> str:
    """
    Issue a new code for (subject, purpose), invalidating any previous one.

    Returns the raw code to deliver out of band.
    """
    if now is None:
        now = datetime.now(timezone.utc)

    await revoke_codes(db, subject_id, purpose)

    raw_code = generate_code()
    db.add(
        VerificationCode(
            subject_id=subject_id,
            purpose=purpose,
            code_hash=hash_code(raw_code),
            created_at=now,
            expires_at=now + timedelta(minutes=ttl_minutes),
        )
    )
    await db.flush()
    logger.info("otp_issued", subject_id=subject_id, purpose=purpose, ttl_minutes=ttl_minutes)
    return raw_code


async def _consume(db: AsyncSession, record: VerificationCode) -> bool:
    """Delete the code row by id. True only for the caller whose DELETE removed it."""
    result = await db.execute(delete(VerificationCode).where(VerificationCode.id == record.id))
    return result.rowcount == 1  # type: ignore[attr-defined]


async def verify_code(
    db: AsyncSession,
    subject_id: str,
    purpose: str,
    submitted_code: str,
    now: datetime | None = None,
) -> bool:
    """
    Verify and consume a code. Fails closed.

    Returns False when there is no code, when it has expired (the record is
    deleted), when the submitted value is malformed, or when it does not
    match. On a match the record is deleted and True is returned, so a code
    verifies at most once.
    """
    if now is None:
        now = datetime.now(timezone.utc)

    record = await _current_code(db, subject_id, purpose)
    if record is None:
        return False

    if now > record.expires_at:
        await _consume(db, record)
        logger.info("otp_expired", subject_id=subject_id, purpose=purpose)
        return False

    candidate = normalize_code(submitted_code)
    if not is_well_formed(candidate):
        return False
    if not hmac.compare_digest(record.code_hash, hash_code(candidate)):
        logger.info("otp_mismatch", subject_id=subject_id, purpose=purpose)
        return False

    if not await _consume(db, record):
        # A concurrent verification deleted the row first
        logger.info("otp_already_consumed", subject_id=subject_id, purpose=purpose)
        return False
    logger.info("otp_verified", subject_id=subject_id, purpose=purpose)
    return True


async def check_code(
    db: AsyncSession,
    subject_id: str,
    purpose: str,
    submitted_code: str,
    now: datetime | None = None,
) -> bool:
    """Like ``verify_code`` but leaves a valid code in place."""
    if now is None:
        now = datetime.now(timezone.utc)

    record = await _current_code(db, subject_id, purpose)
    if record is None or now > record.expires_at:
        return False
    candidate = normalize_code(submitted_code)
    if not is_well_formed(candidate):
        return False
    return hmac.compare_digest(record.code_hash, hash_code(candidate))


async def revoke_codes(db: AsyncSession, subject_id: str, purpose: str | None = None) -> int:
    """Delete codes for a subject (optionally one purpose only). Returns count deleted."""
    stmt = delete(VerificationCode).where(VerificationCode.subject_id == subject_id)
    if purpose is not None:
        stmt = stmt.where(VerificationCode.purpose == purpose)
    result = await db.execute(stmt)
    return result.rowcount or 0  # type: ignore[attr-defined]


async def sweep_expired_codes(db: AsyncSession, now: datetime | None = None) -> int:
    """Delete every code past its expiry. Idempotent."""
    if now is None:
        now = datetime.now(timezone.utc)
    result = await db.execute(delete(VerificationCode).where(VerificationCode.expires_at < now))
    return result.rowcount or 0  # type: ignore[attr-defined]
