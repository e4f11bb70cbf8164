"""Initial schema: accounts, pending registrations, verification codes, engagement.

Revision ID: 001_initial_schema
Revises: None
Create Date: 2026-10-19
"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

revision: str = "001_initial_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create all tables."""
    # --- Accounts ---
    op.create_table(
        "accounts",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("username", sa.String(32), nullable=False),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("password_hash", sa.String(256), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default="true", nullable=False),
        sa.Column("activated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_login", sa.DateTime(timezone=True), nullable=True),
        sa.Column("login_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_accounts"),
        sa.UniqueConstraint("username", name="uq_accounts_username"),
        sa.UniqueConstraint("email", name="uq_accounts_email"),
    )

    # --- Pending registrations ---
    op.create_table(
        "pending_registrations",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("username", sa.String(32), nullable=False),
        sa.Column("password_hash", sa.String(256), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_pending_registrations"),
        sa.UniqueConstraint("email", name="uq_pending_registrations_email"),
    )
    op.create_index("ix_pending_registrations_username", "pending_registrations", ["username"])
    op.create_index("ix_pending_registrations_updated_at", "pending_registrations", ["updated_at"])

    # --- Verification codes ---
    op.create_table(
        "verification_codes",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("subject_id", sa.String(36), nullable=False),
        sa.Column("purpose", sa.String(32), nullable=False),
        sa.Column("code_hash", sa.String(64), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_verification_codes"),
    )
    op.create_index("ix_verification_codes_subject_purpose", "verification_codes", ["subject_id", "purpose"])
    op.create_index("ix_verification_codes_expires_at", "verification_codes", ["expires_at"])

    # --- Posts ---
    op.create_table(
        "posts",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("author_id", sa.String(36), nullable=False),
        sa.Column("caption", sa.Text(), nullable=True),
        sa.Column("status", sa.String(16), server_default="active", nullable=False),
        sa.Column("allow_likes", sa.Boolean(), server_default="true", nullable=False),
        sa.Column("allow_saves", sa.Boolean(), server_default="true", nullable=False),
        sa.Column("likes_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column("saves_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_posts"),
        sa.ForeignKeyConstraint(
            ["author_id"], ["accounts.id"], name="fk_posts_author_id_accounts", ondelete="CASCADE"
        ),
        sa.CheckConstraint("status IN ('active', 'deleted', 'archived', 'draft')", name="ck_posts_status"),
    )
    op.create_index("ix_posts_author_id", "posts", ["author_id"])

    # --- Comments ---
    op.create_table(
        "comments",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("post_id", sa.String(36), nullable=False),
        sa.Column("author_id", sa.String(36), nullable=False),
        sa.Column("status", sa.String(16), server_default="active", nullable=False),
        sa.Column("likes_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_comments"),
        sa.ForeignKeyConstraint(["post_id"], ["posts.id"], name="fk_comments_post_id_posts", ondelete="CASCADE"),
        sa.ForeignKeyConstraint(
            ["author_id"], ["accounts.id"], name="fk_comments_author_id_accounts", ondelete="CASCADE"
        ),
        sa.CheckConstraint("status IN ('active', 'deleted')", name="ck_comments_status"),
    )
    op.create_index("ix_comments_post_id", "comments", ["post_id"])

    # --- Engagement ledger ---
    op.create_table(
        "engagement_records",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("kind", sa.String(16), nullable=False),
        sa.Column("actor_id", sa.String(36), nullable=False),
        sa.Column("target_type", sa.String(16), nullable=False),
        sa.Column("target_id", sa.String(36), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_engagement_records"),
        sa.ForeignKeyConstraint(
            ["actor_id"], ["accounts.id"], name="fk_engagement_records_actor_id_accounts", ondelete="CASCADE"
        ),
        sa.UniqueConstraint(
            "kind", "actor_id", "target_type", "target_id",
            name="uq_engagement_records_kind_actor_target",
        ),
        sa.CheckConstraint("kind IN ('like', 'save')", name="ck_engagement_records_kind"),
        sa.CheckConstraint("target_type IN ('post', 'comment')", name="ck_engagement_records_target_type"),
    )
    op.create_index(
        "ix_engagement_records_target",
        "engagement_records",
        ["kind", "target_type", "target_id", "created_at"],
    )
    op.create_index("ix_engagement_records_actor", "engagement_records", ["kind", "actor_id", "created_at"])


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table("engagement_records")
    op.drop_table("comments")
    op.drop_table("posts")
    op.drop_table("verification_codes")
    op.drop_table("pending_registrations")
    op.drop_table("accounts")
