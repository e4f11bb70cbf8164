"""
Engagement ledger: likes and saves.

One row per (kind, actor, target), enforced by a unique constraint. The
ledger is authoritative for counts; cached counters on the target rows are
adjusted afterwards through ``counters.adjust_counter``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError

from snapshare.db.models import Account, EngagementKind, EngagementRecord, TargetType
from snapshare.engagement.counters import adjust_counter
from snapshare.engagement.targets import ensure_engagement_allowed, resolve_target
from snapshare.errors import AlreadyExistsError, NotFoundError

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

_ALREADY_EXISTS = {
    EngagementKind.LIKE: "You have already liked this item",
    EngagementKind.SAVE: "You have already saved this post",
}

_NOT_FOUND = {
    EngagementKind.LIKE: "Like not found",
    EngagementKind.SAVE: "Save not found",
}


@dataclass(frozen=True)
class EngagementStats:
    total_count: int
    actor_has_relation: bool


@dataclass(frozen=True)
class EngagementEntry:
    """A ledger row joined with the actor's username."""

    id: str
    actor_id: str
    username: str
    created_at: datetime


def _match(kind: EngagementKind, target_type: TargetType, target_id: str) -> list:
    return [
        EngagementRecord.kind == kind.value,
        EngagementRecord.target_type == target_type.value,
        EngagementRecord.target_id == target_id,
    ]


async def get_record(
    db: AsyncSession,
    kind: EngagementKind,
    actor_id: str,
    target_type: TargetType,
    target_id: str,
) -> EngagementRecord | None:
    result = await db.execute(
        select(EngagementRecord)
        .where(*_match(kind, target_type, target_id))
        .where(EngagementRecord.actor_id == actor_id)
    )
    return result.scalar_one_or_none()


def _is_duplicate(exc: IntegrityError) -> bool:
    """True when the violated constraint is the one-row-per-relationship unique key."""
    message = str(exc.orig)
    # Postgres names the constraint, SQLite lists the table columns
    return "uq_engagement_records_kind_actor_target" in message or (
        "UNIQUE constraint failed: engagement_records." in message
    )


async def engage(
    db: AsyncSession,
    kind: EngagementKind,
    actor_id: str,
    target_type: TargetType,
    target_id: str,
    now: datetime | None = None,
) -> EngagementRecord:
    """
    Record that ``actor_id`` likes/saves the target.

    Raises:
        NotFoundError: Target does not exist (or the post is not active).
        ForbiddenError: Target does not accept this kind.
        AlreadyExistsError: The actor already has this relationship.
        IntegrityError: Any other constraint failure, such as an unknown actor.
    """
    if now is None:
        now = datetime.now(timezone.utc)

    target = await resolve_target(db, target_type, target_id)
    ensure_engagement_allowed(target, kind)

    if await get_record(db, kind, actor_id, target_type, target_id) is not None:
        raise AlreadyExistsError(_ALREADY_EXISTS[kind])

    record = EngagementRecord(
        kind=kind.value,
        actor_id=actor_id,
        target_type=target_type.value,
        target_id=target_id,
        created_at=now,
    )
    db.add(record)
    try:
        await db.flush()
    except IntegrityError as exc:
        await db.rollback()
        if not _is_duplicate(exc):
            raise
        raise AlreadyExistsError(_ALREADY_EXISTS[kind]) from None  # concurrent duplicate

    await adjust_counter(db, kind, target_type, target_id, +1)
    logger.info(
        "engagement_created",
        kind=kind.value,
        actor_id=actor_id,
        target_type=target_type.value,
        target_id=target_id,
    )
    return record


async def disengage(
    db: AsyncSession,
    kind: EngagementKind,
    actor_id: str,
    target_type: TargetType,
    target_id: str,
) -> None:
    """
    Remove the actor's like/save on the target.

    Raises:
        NotFoundError: There was nothing to remove.
    """
    result = await db.execute(
        delete(EngagementRecord)
        .where(*_match(kind, target_type, target_id))
        .where(EngagementRecord.actor_id == actor_id)
    )
    if not result.rowcount:  # type: ignore[attr-defined]
        raise NotFoundError(_NOT_FOUND[kind])

    await adjust_counter(db, kind, target_type, target_id, -1)
    logger.info(
        "engagement_removed",
        kind=kind.value,
        actor_id=actor_id,
        target_type=target_type.value,
        target_id=target_id,
    )


async def engagement_stats(
    db: AsyncSession,
    kind: EngagementKind,
    target_type: TargetType,
    target_id: str,
    actor_id: str | None = None,
) -> EngagementStats:
    """Count live records for the target straight from the ledger."""
    total = (
        await db.execute(
            select(func.count()).select_from(EngagementRecord).where(*_match(kind, target_type, target_id))
        )
    ).scalar_one()

    has_relation = False
    if actor_id is not None:
        has_relation = await get_record(db, kind, actor_id, target_type, target_id) is not None

    return EngagementStats(total_count=total, actor_has_relation=has_relation)


async def list_for_target(
    db: AsyncSession,
    kind: EngagementKind,
    target_type: TargetType,
    target_id: str,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[EngagementEntry], int]:
    """Who liked/saved the target, newest first, with usernames. Returns (entries, total)."""
    offset = (page - 1) * limit

    total = (
        await db.execute(
            select(func.count()).select_from(EngagementRecord).where(*_match(kind, target_type, target_id))
        )
    ).scalar_one()

    result = await db.execute(
        select(EngagementRecord, Account.username)
        .join(Account, Account.id == EngagementRecord.actor_id)
        .where(*_match(kind, target_type, target_id))
        .order_by(EngagementRecord.created_at.desc(), EngagementRecord.id.desc())
        .offset(offset)
        .limit(limit)
    )
    entries = [
        EngagementEntry(
            id=record.id,
            actor_id=record.actor_id,
            username=username,
            created_at=record.created_at,
        )
        for record, username in result.all()
    ]
    return entries, total


async def list_for_actor(
    db: AsyncSession,
    kind: EngagementKind,
    actor_id: str,
    target_type: TargetType = TargetType.POST,
    page: int = 1,
    limit: int = 10,
) -> tuple[list[EngagementRecord], int]:
    """The actor's own likes/saves of one target type, newest first. Returns (records, total)."""
    offset = (page - 1) * limit
    conditions = [
        EngagementRecord.kind == kind.value,
        EngagementRecord.actor_id == actor_id,
        EngagementRecord.target_type == target_type.value,
    ]

    total = (
        await db.execute(select(func.count()).select_from(EngagementRecord).where(*conditions))
    ).scalar_one()

    result = await db.execute(
        select(EngagementRecord)
        .where(*conditions)
        .order_by(EngagementRecord.created_at.desc(), EngagementRecord.id.desc())
        .offset(offset)
        .limit(limit)
    )
    return list(result.scalars().all()), total


async def delete_for_target(db: AsyncSession, target_type: TargetType, target_id: str) -> int:
    """Drop every like/save pointing at a removed target. Returns count deleted."""
    result = await db.execute(
        delete(EngagementRecord)
        .where(EngagementRecord.target_type == target_type.value)
        .where(EngagementRecord.target_id == target_id)
    )
    deleted = result.rowcount or 0  # type: ignore[attr-defined]
    if deleted:
        logger.info(
            "engagement_target_purged",
            target_type=target_type.value,
            target_id=target_id,
            deleted=deleted,
        )
    return deleted
