"""Tests for cached engagement counters and their reconciliation."""

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from snapshare.db.models import Comment, EngagementKind, Post, TargetType
from snapshare.engagement.counters import adjust_counter, reconcile_counters
from snapshare.engagement.ledger import disengage, engage


class TestAdjustCounter:
    async def test_increment_and_decrement(self, db_session: AsyncSession, make_account, make_post):
        alice = await make_account("alice")
        post = await make_post(alice)
        assert await adjust_counter(db_session, EngagementKind.LIKE, TargetType.POST, post.id, +1) is True
        assert await adjust_counter(db_session, EngagementKind.LIKE, TargetType.POST, post.id, +1) is True
        assert await adjust_counter(db_session, EngagementKind.LIKE, TargetType.POST, post.id, -1) is True
        await db_session.refresh(post)
        assert post.likes_count == 1

    async def test_never_below_zero(self, db_session: AsyncSession, make_account, make_post):
        alice = await make_account("alice")
        post = await make_post(alice)
        await adjust_counter(db_session, EngagementKind.SAVE, TargetType.POST, post.id, -1)
        await db_session.refresh(post)
        assert post.saves_count == 0

    async def test_unregistered_pair_is_noop(self, db_session: AsyncSession, make_account, make_post, make_comment):
        alice = await make_account("alice")
        post = await make_post(alice)
        comment = await make_comment(post, alice)
        assert await adjust_counter(db_session, EngagementKind.SAVE, TargetType.COMMENT, comment.id, +1) is False


class TestLedgerKeepsCounters:
    async def test_like_unlike_post_counter(self, db_session: AsyncSession, make_account, make_post):
        alice = await make_account("alice")
        bob = await make_account("bob")
        post = await make_post(alice)
        await engage(db_session, EngagementKind.LIKE, alice.id, TargetType.POST, post.id)
        await engage(db_session, EngagementKind.LIKE, bob.id, TargetType.POST, post.id)
        await disengage(db_session, EngagementKind.LIKE, alice.id, TargetType.POST, post.id)
        await db_session.refresh(post)
        assert post.likes_count == 1

    async def test_comment_like_counter(self, db_session: AsyncSession, make_account, make_post, make_comment):
        alice = await make_account("alice")
        post = await make_post(alice)
        comment = await make_comment(post, alice)
        await engage(db_session, EngagementKind.LIKE, alice.id, TargetType.COMMENT, comment.id)
        await db_session.refresh(comment)
        assert comment.likes_count == 1

    async def test_save_counter(self, db_session: AsyncSession, make_account, make_post):
        alice = await make_account("alice")
        post = await make_post(alice)
        await engage(db_session, EngagementKind.SAVE, alice.id, TargetType.POST, post.id)
        await db_session.refresh(post)
        assert post.saves_count == 1
        assert post.likes_count == 0


class TestReconcile:
    async def test_repairs_drifted_counters(self, db_session: AsyncSession, make_account, make_post, make_comment):
        alice = await make_account("alice")
        bob = await make_account("bob")
        post = await make_post(alice)
        comment = await make_comment(post, alice)
        await engage(db_session, EngagementKind.LIKE, alice.id, TargetType.POST, post.id)
        await engage(db_session, EngagementKind.LIKE, bob.id, TargetType.POST, post.id)
        await engage(db_session, EngagementKind.LIKE, bob.id, TargetType.COMMENT, comment.id)

        await db_session.execute(update(Post).where(Post.id == post.id).values(likes_count=7, saves_count=3))
        await db_session.execute(update(Comment).where(Comment.id == comment.id).values(likes_count=0))

        changed = await reconcile_counters(db_session)
        assert changed == 3

        await db_session.refresh(post)
        await db_session.refresh(comment)
        assert post.likes_count == 2
        assert post.saves_count == 0
        assert comment.likes_count == 1

    async def test_nothing_to_repair(self, db_session: AsyncSession, make_account, make_post):
        alice = await make_account("alice")
        post = await make_post(alice)
        await engage(db_session, EngagementKind.LIKE, alice.id, TargetType.POST, post.id)
        assert await reconcile_counters(db_session) == 0
