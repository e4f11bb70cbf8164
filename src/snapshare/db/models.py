"""ORM models.

Uniqueness rules that the services depend on (one pending registration per
email, unique account email/username, one engagement per kind/actor/target)
are declared here as database constraints and mirrored in
``alembic/versions/001_initial_schema.py``.
"""

from __future__ import annotations

import enum
import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from snapshare.db.base import Base
from snapshare.db.types import UTCDateTime


def _uuid() -> str:
    return str(uuid.uuid4())


class TargetType(str, enum.Enum):
    """Entities an engagement can point at."""

    POST = "post"
    COMMENT = "comment"


class EngagementKind(str, enum.Enum):
    """Relationship kinds recorded by the engagement ledger."""

    LIKE = "like"
    SAVE = "save"


class CodePurpose(str, enum.Enum):
    """Scopes a verification code to one flow."""

    REGISTRATION = "registration"
    PASSWORD_RESET = "password-reset"


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------


class Account(Base):
    """Permanent, activated user account. Created only by account promotion."""

    __tablename__ = "accounts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    username: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(256), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, server_default="true", nullable=False)
    activated_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    last_login: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    login_count: Mapped[int] = mapped_column(Integer, default=0, server_default="0", nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)


class PendingRegistration(Base):
    """Registration awaiting OTP verification. One row per email."""

    __tablename__ = "pending_registrations"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    username: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String(256), nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, index=True)


class VerificationCode(Base):
    """Short-lived, single-use code scoped to (subject, purpose). Only the hash is stored."""

    __tablename__ = "verification_codes"
    __table_args__ = (
        Index("ix_verification_codes_subject_purpose", "subject_id", "purpose"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    subject_id: Mapped[str] = mapped_column(String(36), nullable=False)
    purpose: Mapped[str] = mapped_column(String(32), nullable=False)
    code_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)


# ---------------------------------------------------------------------------
# Engagement targets
# ---------------------------------------------------------------------------


class Post(Base):
    """Post as seen by the engagement ledger: status, permissions and cached counters."""

    __tablename__ = "posts"
    __table_args__ = (
        CheckConstraint("status IN ('active', 'deleted', 'archived', 'draft')", name="status"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    author_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    caption: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(16), default="active", server_default="active", nullable=False)
    allow_likes: Mapped[bool] = mapped_column(Boolean, default=True, server_default="true", nullable=False)
    allow_saves: Mapped[bool] = mapped_column(Boolean, default=True, server_default="true", nullable=False)
    likes_count: Mapped[int] = mapped_column(Integer, default=0, server_default="0", nullable=False)
    saves_count: Mapped[int] = mapped_column(Integer, default=0, server_default="0", nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)


class Comment(Base):
    """Comment as seen by the engagement ledger. Text lives in the comments service."""

    __tablename__ = "comments"
    __table_args__ = (
        CheckConstraint("status IN ('active', 'deleted')", name="status"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    post_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("posts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    author_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False
    )
    status: Mapped[str] = mapped_column(String(16), default="active", server_default="active", nullable=False)
    likes_count: Mapped[int] = mapped_column(Integer, default=0, server_default="0", nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)


# ---------------------------------------------------------------------------
# Engagement ledger
# ---------------------------------------------------------------------------


class EngagementRecord(Base):
    """One like or save by an actor on a target. The ledger is the source of truth for counts."""

    __tablename__ = "engagement_records"
    __table_args__ = (
        UniqueConstraint(
            "kind", "actor_id", "target_type", "target_id",
            name="uq_engagement_records_kind_actor_target",
        ),
        Index("ix_engagement_records_target", "kind", "target_type", "target_id", "created_at"),
        Index("ix_engagement_records_actor", "kind", "actor_id", "created_at"),
        CheckConstraint("kind IN ('like', 'save')", name="kind"),
        CheckConstraint("target_type IN ('post', 'comment')", name="target_type"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    kind: Mapped[str] = mapped_column(String(16), nullable=False)
    actor_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False
    )
    target_type: Mapped[str] = mapped_column(String(16), nullable=False)
    target_id: Mapped[str] = mapped_column(String(36), nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
