"""Saved posts API."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from snapshare.auth.dependencies import get_current_account, get_optional_account
from snapshare.config import get_settings
from snapshare.database import get_session
from snapshare.db.models import Account, EngagementKind, EngagementRecord, TargetType
from snapshare.engagement.ledger import disengage, engage, engagement_stats, list_for_actor
from snapshare.engagement.schemas import (
    MessageResponse,
    SaveCreatedResponse,
    SavedPostsPage,
    SaveRequest,
    SaveResponse,
    SaveStatsResponse,
)
from snapshare.engagement.targets import resolve_target

router = APIRouter(prefix="/saveposts", tags=["Saved posts"])


def _save_response(record: EngagementRecord) -> SaveResponse:
    return SaveResponse(
        id=record.id,
        user_id=record.actor_id,
        post_id=record.target_id,
        created_at=record.created_at,
    )


@router.post("/save", response_model=SaveCreatedResponse, status_code=201)
async def save_post(
    body: SaveRequest,
    account: Account = Depends(get_current_account),
    db: AsyncSession = Depends(get_session),
) -> SaveCreatedResponse:
    actor_id = account.id
    record = await engage(db, EngagementKind.SAVE, actor_id, TargetType.POST, body.post_id)
    await db.commit()
    return SaveCreatedResponse(message="Post saved successfully", save=_save_response(record))


@router.delete("/unsave/{post_id}", response_model=MessageResponse)
async def unsave_post(
    post_id: str,
    account: Account = Depends(get_current_account),
    db: AsyncSession = Depends(get_session),
) -> MessageResponse:
    await disengage(db, EngagementKind.SAVE, account.id, TargetType.POST, post_id)
    await db.commit()
    return MessageResponse(message="Post unsaved successfully")


@router.get("/stats/{post_id}", response_model=SaveStatsResponse)
async def save_stats(
    post_id: str,
    account: Account | None = Depends(get_optional_account),
    db: AsyncSession = Depends(get_session),
) -> SaveStatsResponse:
    await resolve_target(db, TargetType.POST, post_id)
    stats = await engagement_stats(
        db, EngagementKind.SAVE, TargetType.POST, post_id, actor_id=account.id if account else None
    )
    return SaveStatsResponse(total_saves=stats.total_count, is_saved_by_user=stats.actor_has_relation)


@router.get("/list", response_model=SavedPostsPage)
async def saved_posts(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    account: Account = Depends(get_current_account),
    db: AsyncSession = Depends(get_session),
) -> SavedPostsPage:
    """The caller's saved posts, most recently saved first."""
    limit = min(limit, get_settings().max_page_size)
    records, total = await list_for_actor(
        db, EngagementKind.SAVE, account.id, TargetType.POST, page=page, limit=limit
    )
    return SavedPostsPage(
        saved_posts=[_save_response(r) for r in records],
        total=total,
        page=page,
        limit=limit,
    )
