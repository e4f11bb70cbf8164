"""
Denormalized engagement counters on target rows.

Counters are a cache of the ledger. They are updated with single atomic
``UPDATE`` statements outside the ledger write, so they may lag briefly;
``reconcile_counters`` rewrites them from the ledger.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from sqlalchemy import case, func, select, update

from snapshare.db.models import Comment, EngagementKind, EngagementRecord, Post, TargetType

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession
    from sqlalchemy.orm import InstrumentedAttribute

logger = structlog.get_logger()

# (kind, target_type) -> counter column
COUNTER_COLUMNS: dict[tuple[EngagementKind, TargetType], InstrumentedAttribute[int]] = {
    (EngagementKind.LIKE, TargetType.POST): Post.likes_count,
    (EngagementKind.SAVE, TargetType.POST): Post.saves_count,
    (EngagementKind.LIKE, TargetType.COMMENT): Comment.likes_count,
}


async def adjust_counter(
    db: AsyncSession,
    kind: EngagementKind,
    target_type: TargetType,
    target_id: str,
    delta: int,
) -> bool:
    """
    Apply ``delta`` to the target's counter in one statement, never going below zero.

    Returns False without touching anything when (kind, target_type) has no
    counter column.
    """
    column = COUNTER_COLUMNS.get((kind, target_type))
    if column is None:
        return False

    model = column.class_
    new_value = case((column + delta < 0, 0), else_=column + delta)
    await db.execute(
        update(model)
        .where(model.id == target_id)
        .values({column.key: new_value})
        .execution_options(synchronize_session=False)
    )
    return True


async def reconcile_counters(db: AsyncSession) -> int:
    """
    Rewrite every counter from the ledger's live record count.

    Returns the number of target rows whose counter changed.
    """
    changed = 0
    for (kind, target_type), column in COUNTER_COLUMNS.items():
        model = column.class_
        ledger_count = (
            select(func.count(EngagementRecord.id))
            .where(EngagementRecord.kind == kind.value)
            .where(EngagementRecord.target_type == target_type.value)
            .where(EngagementRecord.target_id == model.id)
            .correlate(model)
            .scalar_subquery()
        )
        result = await db.execute(
            update(model)
            .where(column != ledger_count)
            .values({column.key: ledger_count})
            .execution_options(synchronize_session=False)
        )
        rows = result.rowcount or 0  # type: ignore[attr-defined]
        if rows:
            logger.info(
                "engagement_counters_reconciled",
                kind=kind.value,
                target_type=target_type.value,
                rows=rows,
            )
        changed += rows
    return changed
