"""Likes API: like/unlike posts and comments, stats and likers."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from snapshare.auth.dependencies import get_current_account, get_optional_account
from snapshare.config import get_settings
from snapshare.database import get_session
from snapshare.db.models import Account, EngagementKind
from snapshare.engagement.ledger import disengage, engage, engagement_stats, list_for_target
from snapshare.engagement.schemas import (
    LikeCreatedResponse,
    LikeRequest,
    LikerResponse,
    LikeResponse,
    LikersPage,
    LikeStatsResponse,
    MessageResponse,
)
from snapshare.engagement.targets import parse_target_type, resolve_target

router = APIRouter(prefix="/likes", tags=["Likes"])


@router.post("/like", response_model=LikeCreatedResponse, status_code=201)
async def like(
    body: LikeRequest,
    account: Account = Depends(get_current_account),
    db: AsyncSession = Depends(get_session),
) -> LikeCreatedResponse:
    """Like a post or comment."""
    target_type = parse_target_type(body.target_type)
    actor_id = account.id
    record = await engage(db, EngagementKind.LIKE, actor_id, target_type, body.target_id)
    await db.commit()
    return LikeCreatedResponse(
        message="Liked successfully",
        like=LikeResponse(
            id=record.id,
            user_id=record.actor_id,
            target_type=record.target_type,
            target_id=record.target_id,
            created_at=record.created_at,
        ),
    )


@router.delete("/unlike/{target_type}/{target_id}", response_model=MessageResponse)
async def unlike(
    target_type: str,
    target_id: str,
    account: Account = Depends(get_current_account),
    db: AsyncSession = Depends(get_session),
) -> MessageResponse:
    """Remove the caller's like."""
    await disengage(db, EngagementKind.LIKE, account.id, parse_target_type(target_type), target_id)
    await db.commit()
    return MessageResponse(message="Like removed successfully")


@router.get("/stats/{target_type}/{target_id}", response_model=LikeStatsResponse)
async def like_stats(
    target_type: str,
    target_id: str,
    account: Account | None = Depends(get_optional_account),
    db: AsyncSession = Depends(get_session),
) -> LikeStatsResponse:
    """Total likes, plus whether the caller (if authenticated) liked the target."""
    parsed = parse_target_type(target_type)
    await resolve_target(db, parsed, target_id)
    stats = await engagement_stats(
        db, EngagementKind.LIKE, parsed, target_id, actor_id=account.id if account else None
    )
    return LikeStatsResponse(total_likes=stats.total_count, is_liked_by_user=stats.actor_has_relation)


@router.get("/{target_type}/{target_id}", response_model=LikersPage)
async def likers(
    target_type: str,
    target_id: str,
    page: int = Query(1, ge=1),
    limit: int | None = Query(None, ge=1),
    db: AsyncSession = Depends(get_session),
) -> LikersPage:
    """Accounts that liked the target, newest first. ``limit`` is capped at ``max_page_size``."""
    settings = get_settings()
    limit = min(limit or settings.default_page_size, settings.max_page_size)
    entries, total = await list_for_target(
        db, EngagementKind.LIKE, parse_target_type(target_type), target_id, page=page, limit=limit
    )
    return LikersPage(
        likes=[
            LikerResponse(id=e.id, user_id=e.actor_id, username=e.username, created_at=e.created_at)
            for e in entries
        ],
        total=total,
        page=page,
        limit=limit,
    )
