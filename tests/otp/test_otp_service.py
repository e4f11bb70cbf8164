"""Tests for one-time code issuing and verification."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from snapshare.database import get_engine
from snapshare.db.models import VerificationCode
from snapshare.otp.service import (
    CODE_CHARSET,
    _current_code,
    check_code,
    hash_code,
    issue_code,
    revoke_codes,
    sweep_expired_codes,
    verify_code,
)

SUBJECT = "pending-1"
PURPOSE = "registration"


async def _code_count(db: AsyncSession, subject_id: str = SUBJECT) -> int:
    result = await db.execute(
        select(func.count()).select_from(VerificationCode).where(VerificationCode.subject_id == subject_id)
    )
    return result.scalar_one()


class TestIssueCode:
    async def test_returns_six_char_code(self, db_session: AsyncSession):
        code = await issue_code(db_session, SUBJECT, PURPOSE, ttl_minutes=2)
        assert len(code) == 6
        assert all(c in CODE_CHARSET for c in code)

    async def test_only_hash_is_stored(self, db_session: AsyncSession):
        code = await issue_code(db_session, SUBJECT, PURPOSE, ttl_minutes=2)
        record = (await db_session.execute(select(VerificationCode))).scalar_one()
        assert record.code_hash == hash_code(code)
        assert code not in record.code_hash

    async def test_expiry_is_now_plus_ttl(self, db_session: AsyncSession):
        now = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
        await issue_code(db_session, SUBJECT, PURPOSE, ttl_minutes=2, now=now)
        record = (await db_session.execute(select(VerificationCode))).scalar_one()
        assert record.expires_at == now + timedelta(minutes=2)

    async def test_reissue_leaves_single_live_code(self, db_session: AsyncSession):
        await issue_code(db_session, SUBJECT, PURPOSE, ttl_minutes=2)
        await issue_code(db_session, SUBJECT, PURPOSE, ttl_minutes=2)
        await issue_code(db_session, SUBJECT, PURPOSE, ttl_minutes=2)
        assert await _code_count(db_session) == 1

    async def test_reissue_invalidates_previous_code(self, db_session: AsyncSession):
        first = await issue_code(db_session, SUBJECT, PURPOSE, ttl_minutes=2)
        second = await issue_code(db_session, SUBJECT, PURPOSE, ttl_minutes=2)
        if first != second:
            assert await verify_code(db_session, SUBJECT, PURPOSE, first) is False
        assert await verify_code(db_session, SUBJECT, PURPOSE, second) is True

    async def test_purposes_are_independent(self, db_session: AsyncSession):
        reg = await issue_code(db_session, SUBJECT, "registration", ttl_minutes=2)
        await issue_code(db_session, SUBJECT, "password-reset", ttl_minutes=15)
        assert await _code_count(db_session) == 2
        assert await verify_code(db_session, SUBJECT, "registration", reg) is True


class TestVerifyCode:
    async def test_correct_code_verifies_once(self, db_session: AsyncSession):
        code = await issue_code(db_session, SUBJECT, PURPOSE, ttl_minutes=2)
        assert await verify_code(db_session, SUBJECT, PURPOSE, code) is True
        assert await verify_code(db_session, SUBJECT, PURPOSE, code) is False

    async def test_lowercase_and_whitespace_are_normalized(self, db_session: AsyncSession):
        code = await issue_code(db_session, SUBJECT, PURPOSE, ttl_minutes=2)
        assert await verify_code(db_session, SUBJECT, PURPOSE, f"  {code.lower()} ") is True

    async def test_wrong_code_fails_and_keeps_record(self, db_session: AsyncSession):
        code = await issue_code(db_session, SUBJECT, PURPOSE, ttl_minutes=2)
        wrong = "000000" if code != "000000" else "111111"
        assert await verify_code(db_session, SUBJECT, PURPOSE, wrong) is False
        assert await _code_count(db_session) == 1
        assert await verify_code(db_session, SUBJECT, PURPOSE, code) is True

    async def test_malformed_code_fails(self, db_session: AsyncSession):
        await issue_code(db_session, SUBJECT, PURPOSE, ttl_minutes=2)
        assert await verify_code(db_session, SUBJECT, PURPOSE, "") is False
        assert await verify_code(db_session, SUBJECT, PURPOSE, "12345") is False
        assert await verify_code(db_session, SUBJECT, PURPOSE, "ABC-12") is False

    async def test_no_code_fails(self, db_session: AsyncSession):
        assert await verify_code(db_session, "nobody", PURPOSE, "ABC123") is False

    async def test_expired_code_fails_and_is_deleted(self, db_session: AsyncSession):
        issued_at = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
        code = await issue_code(db_session, SUBJECT, PURPOSE, ttl_minutes=2, now=issued_at)
        later = issued_at + timedelta(minutes=2, seconds=1)
        assert await verify_code(db_session, SUBJECT, PURPOSE, code, now=later) is False
        assert await _code_count(db_session) == 0

    async def test_code_valid_until_expiry(self, db_session: AsyncSession):
        issued_at = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
        code = await issue_code(db_session, SUBJECT, PURPOSE, ttl_minutes=2, now=issued_at)
        assert await verify_code(db_session, SUBJECT, PURPOSE, code, now=issued_at + timedelta(minutes=2)) is True

    async def test_code_consumed_by_another_session_does_not_verify(
        self, db_session: AsyncSession, monkeypatch: pytest.MonkeyPatch
    ):
        code = await issue_code(db_session, SUBJECT, PURPOSE, ttl_minutes=2)
        await db_session.commit()
        # Both requests have read the row before either deletes it
        stale = await _current_code(db_session, SUBJECT, PURPOSE)
        await db_session.commit()

        async with AsyncSession(get_engine(), expire_on_commit=False) as other:
            assert await verify_code(other, SUBJECT, PURPOSE, code) is True
            await other.commit()

        monkeypatch.setattr("snapshare.otp.service._current_code", AsyncMock(return_value=stale))
        assert await verify_code(db_session, SUBJECT, PURPOSE, code) is False
        assert await _code_count(db_session) == 0


class TestCheckAndSweep:
    async def test_check_code_does_not_consume(self, db_session: AsyncSession):
        code = await issue_code(db_session, SUBJECT, PURPOSE, ttl_minutes=2)
        assert await check_code(db_session, SUBJECT, PURPOSE, code) is True
        assert await check_code(db_session, SUBJECT, PURPOSE, code) is True
        assert await verify_code(db_session, SUBJECT, PURPOSE, code) is True

    async def test_revoke_codes(self, db_session: AsyncSession):
        await issue_code(db_session, SUBJECT, "registration", ttl_minutes=2)
        await issue_code(db_session, SUBJECT, "password-reset", ttl_minutes=2)
        assert await revoke_codes(db_session, SUBJECT, "registration") == 1
        assert await revoke_codes(db_session, SUBJECT) == 1
        assert await _code_count(db_session) == 0

    async def test_sweep_removes_only_expired(self, db_session: AsyncSession):
        now = datetime.now(timezone.utc)
        await issue_code(db_session, "old", PURPOSE, ttl_minutes=2, now=now - timedelta(minutes=10))
        await issue_code(db_session, "fresh", PURPOSE, ttl_minutes=2, now=now)
        assert await sweep_expired_codes(db_session, now=now) == 1
        assert await _code_count(db_session, "old") == 0
        assert await _code_count(db_session, "fresh") == 1
        assert await sweep_expired_codes(db_session, now=now) == 0
