"""Engagement targets: look up posts/comments and check what they allow."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import select

from snapshare.db.models import Comment, EngagementKind, Post, TargetType
from snapshare.errors import ForbiddenError, InputValidationError, NotFoundError

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

Target = Post | Comment

# Kinds each target type can carry at all
SUPPORTED_KINDS: dict[TargetType, frozenset[EngagementKind]] = {
    TargetType.POST: frozenset({EngagementKind.LIKE, EngagementKind.SAVE}),
    TargetType.COMMENT: frozenset({EngagementKind.LIKE}),
}


def parse_target_type(value: str) -> TargetType:
    """Parse a path/body target type, raising InputValidationError on anything unknown."""
    try:
        return TargetType(value.lower())
    except ValueError:
        msg = f"Unsupported target type: {value}"
        raise InputValidationError(msg) from None


async def resolve_target(db: AsyncSession, target_type: TargetType, target_id: str) -> Target:
    """
    Load the target row.

    Posts that are not active (deleted, archived, draft) are reported as missing.
    Deleted comments are returned; ``ensure_engagement_allowed`` rejects them.

    Raises:
        NotFoundError: The target does not exist.
    """
    if target_type is TargetType.POST:
        post = (await db.execute(select(Post).where(Post.id == target_id))).scalar_one_or_none()
        if post is None or post.status != "active":
            msg = "Post not found"
            raise NotFoundError(msg)
        return post

    comment = (await db.execute(select(Comment).where(Comment.id == target_id))).scalar_one_or_none()
    if comment is None:
        msg = "Comment not found"
        raise NotFoundError(msg)
    return comment


def ensure_engagement_allowed(target: Target, kind: EngagementKind) -> None:
    """
    Raise ForbiddenError when ``target`` does not accept ``kind``.

    Posts honour their ``allow_likes`` / ``allow_saves`` flags; comments can
    only be liked, and not once deleted.
    """
    if isinstance(target, Post):
        if kind is EngagementKind.LIKE and not target.allow_likes:
            msg = "Likes are not allowed on this post"
            raise ForbiddenError(msg)
        if kind is EngagementKind.SAVE and not target.allow_saves:
            msg = "Saves are not allowed on this post"
            raise ForbiddenError(msg)
        return

    if kind not in SUPPORTED_KINDS[TargetType.COMMENT]:
        msg = "Only posts can be saved"
        raise ForbiddenError(msg)
    if target.status == "deleted":
        msg = "Cannot like a deleted comment"
        raise ForbiddenError(msg)
