"""arq cron jobs that keep the activation and engagement tables tidy.

Expiry and staleness are enforced at read time; these sweeps only reclaim
rows and repair cached counters.
"""

from __future__ import annotations

from datetime import timedelta

import structlog
from arq.connections import RedisSettings
from arq.cron import cron

from snapshare.config import get_settings
from snapshare.database import close_db, get_session, init_db
from snapshare.engagement.counters import reconcile_counters
from snapshare.otp.service import sweep_expired_codes
from snapshare.registration.store import sweep_stale_pending

logger = structlog.get_logger()


async def startup(ctx: dict) -> None:  # type: ignore[type-arg]
    """Open the database engine for the worker process."""
    settings = get_settings()
    await init_db(settings.database_url)
    logger.info("maintenance_worker_started")


async def shutdown(ctx: dict) -> None:  # type: ignore[type-arg]
    await close_db()
    logger.info("maintenance_worker_stopped")


async def sweep_expired_codes_job(ctx: dict) -> int:  # type: ignore[type-arg]
    """Delete verification codes past their expiry."""
    deleted = 0
    async for session in get_session():
        deleted = await sweep_expired_codes(session)
        await session.commit()
        break
    if deleted:
        logger.info("expired_codes_swept", deleted=deleted)
    return deleted


async def sweep_stale_pending_job(ctx: dict) -> int:  # type: ignore[type-arg]
    """Delete pending registrations left unverified past their lifetime."""
    settings = get_settings()
    max_age = timedelta(minutes=settings.pending_registration_ttl_minutes)
    deleted = 0
    async for session in get_session():
        deleted = await sweep_stale_pending(session, max_age)
        await session.commit()
        break
    if deleted:
        logger.info("stale_pending_registrations_swept", deleted=deleted)
    return deleted


async def reconcile_counters_job(ctx: dict) -> int:  # type: ignore[type-arg]
    """Rewrite cached like/save counters from the ledger."""
    changed = 0
    async for session in get_session():
        changed = await reconcile_counters(session)
        await session.commit()
        break
    return changed


class WorkerSettings:
    """arq worker settings for maintenance sweeps.

    Run with: arq snapshare.workers.settings.WorkerSettings
    """

    functions = [sweep_expired_codes_job, sweep_stale_pending_job, reconcile_counters_job]
    cron_jobs = [
        cron(sweep_expired_codes_job, minute=set(range(0, 60, 5)), run_at_startup=True),
        cron(sweep_stale_pending_job, minute={0, 15, 30, 45}),
        cron(reconcile_counters_job, minute=7),
    ]
    on_startup = startup
    on_shutdown = shutdown
    redis_settings = RedisSettings.from_dsn(get_settings().arq_redis_url)
    max_jobs = 4
