"""Tests for the maintenance cron jobs."""

from datetime import datetime, timedelta, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from snapshare.db.models import CodePurpose, PendingRegistration, VerificationCode
from snapshare.otp.service import issue_code
from snapshare.registration.store import upsert_pending
from snapshare.workers.maintenance import (
    reconcile_counters_job,
    sweep_expired_codes_job,
    sweep_stale_pending_job,
)
from snapshare.workers.settings import WorkerSettings


class TestSweepJobs:
    async def test_sweep_expired_codes(self, db_session: AsyncSession):
        past = datetime.now(timezone.utc) - timedelta(hours=1)
        await issue_code(db_session, "subject-old", CodePurpose.REGISTRATION.value, ttl_minutes=2, now=past)
        await issue_code(db_session, "subject-new", CodePurpose.REGISTRATION.value, ttl_minutes=2)
        await db_session.commit()

        assert await sweep_expired_codes_job({}) == 1

        remaining = (await db_session.execute(select(VerificationCode.subject_id))).scalars().all()
        assert remaining == ["subject-new"]

    async def test_sweep_expired_codes_nothing_to_do(self):
        assert await sweep_expired_codes_job({}) == 0

    async def test_sweep_stale_pending(self, db_session: AsyncSession):
        long_ago = datetime.now(timezone.utc) - timedelta(days=1)
        await upsert_pending(db_session, "old@example.com", "olduser", "hash", now=long_ago)
        await upsert_pending(db_session, "new@example.com", "newuser", "hash")
        await db_session.commit()

        assert await sweep_stale_pending_job({}) == 1

        emails = (await db_session.execute(select(PendingRegistration.email))).scalars().all()
        assert emails == ["new@example.com"]


class TestReconcileJob:
    async def test_repairs_drifted_counter(self, db_session: AsyncSession, make_account, make_post):
        alice = await make_account("alice")
        post = await make_post(alice, likes_count=5)

        assert await reconcile_counters_job({}) == 1

        await db_session.refresh(post)
        assert post.likes_count == 0

    async def test_consistent_counters_untouched(self, db_session: AsyncSession, make_account, make_post):
        alice = await make_account("alice")
        await make_post(alice)
        assert await reconcile_counters_job({}) == 0


class TestWorkerSettings:
    def test_registers_all_jobs(self):
        names = {f.__name__ for f in WorkerSettings.functions}
        assert names == {"sweep_expired_codes_job", "sweep_stale_pending_job", "reconcile_counters_job"}
        assert len(WorkerSettings.cron_jobs) == 3
