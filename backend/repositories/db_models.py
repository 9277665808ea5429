"""
Database models using SQLAlchemy 2.0 style with Mapped type hints.

Everything hangs off a Project (the tenant). User ids come from the
external identity provider and are stored as plain strings without a
foreign key.
"""

import enum
from datetime import datetime, timezone
from typing import Any, List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.roles import Role, Visibility
from repositories.database import Base


class FeedbackType(str, enum.Enum):
    BUG = "bug"
    FEATURE = "feature"
    GENERAL = "general"


class FeedbackStatus(str, enum.Enum):
    NEW = "new"
    UNDER_REVIEW = "under_review"
    PLANNED = "planned"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    DECLINED = "declined"
    DUPLICATE = "duplicate"

    @property
    def is_resolved(self) -> bool:
        return self in RESOLVED_STATUSES


RESOLVED_STATUSES = frozenset(
    {FeedbackStatus.COMPLETED, FeedbackStatus.DECLINED, FeedbackStatus.DUPLICATE}
)


class Severity(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class InviteStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    EXPIRED = "expired"
    REVOKED = "revoked"


class AttachmentStatus(str, enum.Enum):
    PENDING = "pending"
    UPLOADED = "uploaded"
    FAILED = "failed"


def _utc_now() -> datetime:
    """Return current UTC datetime (timezone-aware)."""
    return datetime.now(timezone.utc)


class Project(Base):
    __tablename__ = "projects"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    slug: Mapped[str] = mapped_column(
        String(50), unique=True, index=True, nullable=False
    )
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    settings: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utc_now)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now, onupdate=_utc_now
    )

    # Relationships
    memberships: Mapped[List["Membership"]] = relationship(
        "Membership", back_populates="project", cascade="all, delete-orphan"
    )
    feedback: Mapped[List["Feedback"]] = relationship(
        "Feedback", back_populates="project", cascade="all, delete-orphan"
    )
    tags: Mapped[List["Tag"]] = relationship(
        "Tag", back_populates="project", cascade="all, delete-orphan"
    )
    sdk_users: Mapped[List["SdkUser"]] = relationship(
        "SdkUser", back_populates="project", cascade="all, delete-orphan"
    )
    sdk_tokens: Mapped[List["SdkToken"]] = relationship(
        "SdkToken", back_populates="project", cascade="all, delete-orphan"
    )
    invites: Mapped[List["Invite"]] = relationship(
        "Invite", back_populates="project", cascade="all, delete-orphan"
    )
    portal_profiles: Mapped[List["PortalUserProfile"]] = relationship(
        "PortalUserProfile", back_populates="project", cascade="all, delete-orphan"
    )


class Membership(Base):
    __tablename__ = "memberships"
    __table_args__ = (
        UniqueConstraint("project_id", "user_id", name="uq_membership_project_user"),
        Index("ix_memberships_user", "user_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    project_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    role: Mapped[Role] = mapped_column(Enum(Role), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utc_now)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now, onupdate=_utc_now
    )

    project: Mapped["Project"] = relationship("Project", back_populates="memberships")


class SdkUser(Base):
    """Identity reported by the mobile/web SDK, scoped to one project."""

    __tablename__ = "sdk_users"
    __table_args__ = (
        UniqueConstraint(
            "project_id", "external_id", name="uq_sdk_user_project_external"
        ),
        Index("ix_sdk_users_linked_user", "linked_user_id"),
        Index("ix_sdk_users_project_email", "project_id", "email"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    project_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    external_id: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    traits: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    # Set once when a portal account with the same verified email shows up
    linked_user_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    first_seen_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now
    )
    last_seen_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now
    )

    project: Mapped["Project"] = relationship("Project", back_populates="sdk_users")
    feedback: Mapped[List["Feedback"]] = relationship(
        "Feedback", back_populates="sdk_user"
    )


class Feedback(Base):
    __tablename__ = "feedback"
    __table_args__ = (
        CheckConstraint(
            "author_id IS NOT NULL OR submitter_email IS NOT NULL "
            "OR submitter_identifier IS NOT NULL OR sdk_user_id IS NOT NULL",
            name="ck_feedback_has_identity",
        ),
        CheckConstraint(
            "canonical_id IS NULL OR canonical_id <> id",
            name="ck_feedback_not_self_canonical",
        ),
        Index("ix_feedback_project_status", "project_id", "status"),
        Index("ix_feedback_project_canonical", "project_id", "canonical_id"),
        Index("ix_feedback_sdk_user", "sdk_user_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    project_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[FeedbackType] = mapped_column(
        Enum(FeedbackType), default=FeedbackType.GENERAL, nullable=False
    )
    status: Mapped[FeedbackStatus] = mapped_column(
        Enum(FeedbackStatus), default=FeedbackStatus.NEW, nullable=False
    )
    severity: Mapped[Optional[Severity]] = mapped_column(Enum(Severity), nullable=True)
    visibility: Mapped[Visibility] = mapped_column(Enum(Visibility), nullable=False)
    source: Mapped[str] = mapped_column(String(50), default="dashboard", nullable=False)
    source_metadata: Mapped[Optional[dict[str, Any]]] = mapped_column(
        JSON, nullable=True
    )

    # Identity channels (at least one is required)
    author_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    submitter_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    submitter_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    submitter_identifier: Mapped[Optional[str]] = mapped_column(
        String(255), nullable=True
    )
    sdk_user_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("sdk_users.id", ondelete="SET NULL"), nullable=True
    )

    assigned_to: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    # Denormalized counters
    vote_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    comment_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Set when this item was merged into another one
    canonical_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("feedback.id", ondelete="SET NULL"), nullable=True
    )

    resolved_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now, index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now, onupdate=_utc_now
    )

    # Relationships
    project: Mapped["Project"] = relationship("Project", back_populates="feedback")
    sdk_user: Mapped[Optional["SdkUser"]] = relationship(
        "SdkUser", back_populates="feedback"
    )
    votes: Mapped[List["Vote"]] = relationship(
        "Vote", back_populates="feedback", cascade="all, delete-orphan"
    )
    portal_votes: Mapped[List["PortalVote"]] = relationship(
        "PortalVote", back_populates="feedback", cascade="all, delete-orphan"
    )
    comments: Mapped[List["Comment"]] = relationship(
        "Comment", back_populates="feedback", cascade="all, delete-orphan"
    )
    feedback_tags: Mapped[List["FeedbackTag"]] = relationship(
        "FeedbackTag", back_populates="feedback", cascade="all, delete-orphan"
    )
    attachments: Mapped[List["Attachment"]] = relationship(
        "Attachment", back_populates="feedback", cascade="all, delete-orphan"
    )
    tags: Mapped[List["Tag"]] = relationship(
        "Tag", secondary="feedback_tags", viewonly=True, order_by="Tag.name"
    )

    @property
    def is_merged(self) -> bool:
        return self.canonical_id is not None


class Attachment(Base):
    """File attached to a feedback item. The bytes live in object storage."""

    __tablename__ = "attachments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    feedback_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("feedback.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    filename: Mapped[str] = mapped_column(String(255), nullable=False)
    content_type: Mapped[str] = mapped_column(String(100), nullable=False)
    size_bytes: Mapped[int] = mapped_column(Integer, nullable=False)
    storage_path: Mapped[str] = mapped_column(String(500), nullable=False)
    status: Mapped[AttachmentStatus] = mapped_column(
        Enum(AttachmentStatus), default=AttachmentStatus.PENDING, nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utc_now)
    uploaded_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    feedback: Mapped["Feedback"] = relationship(
        "Feedback", back_populates="attachments"
    )


class Vote(Base):
    """Team-member vote."""

    __tablename__ = "votes"
    __table_args__ = (
        UniqueConstraint("feedback_id", "user_id", name="uq_vote_feedback_user"),
        Index("ix_votes_user_feedback", "user_id", "feedback_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    feedback_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("feedback.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utc_now)

    feedback: Mapped["Feedback"] = relationship("Feedback", back_populates="votes")


class PortalVote(Base):
    """Community vote cast through the portal."""

    __tablename__ = "portal_votes"
    __table_args__ = (
        UniqueConstraint(
            "feedback_id", "user_id", name="uq_portal_vote_feedback_user"
        ),
        Index("ix_portal_votes_user_feedback", "user_id", "feedback_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    feedback_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("feedback.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utc_now)

    feedback: Mapped["Feedback"] = relationship(
        "Feedback", back_populates="portal_votes"
    )


class Comment(Base):
    __tablename__ = "comments"
    __table_args__ = (
        Index("ix_comments_feedback_created", "feedback_id", "created_at"),
        Index("ix_comments_deleted", "deleted_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    feedback_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("feedback.id", ondelete="CASCADE"), nullable=False
    )
    author_id: Mapped[str] = mapped_column(String(64), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    visibility: Mapped[Visibility] = mapped_column(
        Enum(Visibility), default=Visibility.COMMUNITY, nullable=False
    )
    parent_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("comments.id", ondelete="CASCADE"), nullable=True
    )
    is_edited: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utc_now)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now, onupdate=_utc_now
    )

    # Soft delete
    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    feedback: Mapped["Feedback"] = relationship("Feedback", back_populates="comments")


class Tag(Base):
    __tablename__ = "tags"
    __table_args__ = (
        UniqueConstraint("project_id", "slug", name="uq_tag_project_slug"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    project_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(50), nullable=False)
    slug: Mapped[str] = mapped_column(String(50), nullable=False)
    color: Mapped[str] = mapped_column(String(7), default="#6B7280", nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utc_now)

    project: Mapped["Project"] = relationship("Project", back_populates="tags")
    feedback_tags: Mapped[List["FeedbackTag"]] = relationship(
        "FeedbackTag", back_populates="tag", cascade="all, delete-orphan"
    )


class FeedbackTag(Base):
    __tablename__ = "feedback_tags"
    __table_args__ = (
        UniqueConstraint("feedback_id", "tag_id", name="uq_feedback_tag"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    feedback_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("feedback.id", ondelete="CASCADE"), nullable=False
    )
    tag_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("tags.id", ondelete="CASCADE"), nullable=False
    )

    feedback: Mapped["Feedback"] = relationship(
        "Feedback", back_populates="feedback_tags"
    )
    tag: Mapped["Tag"] = relationship("Tag", back_populates="feedback_tags")


class Invite(Base):
    __tablename__ = "invites"
    __table_args__ = (
        Index("ix_invites_project_email_status", "project_id", "email", "status"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    project_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[Role] = mapped_column(Enum(Role), nullable=False)
    token: Mapped[str] = mapped_column(
        String(64), unique=True, index=True, nullable=False
    )
    status: Mapped[InviteStatus] = mapped_column(
        Enum(InviteStatus), default=InviteStatus.PENDING, nullable=False
    )
    invited_by: Mapped[str] = mapped_column(String(64), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    accepted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utc_now)

    project: Mapped["Project"] = relationship("Project", back_populates="invites")


class SdkToken(Base):
    """Project API key used by the SDK. Only the SHA-256 hash is stored."""

    __tablename__ = "sdk_tokens"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    project_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    token_hash: Mapped[str] = mapped_column(
        String(64), unique=True, index=True, nullable=False
    )
    token_prefix: Mapped[str] = mapped_column(String(12), nullable=False)
    created_by: Mapped[str] = mapped_column(String(64), nullable=False)
    expires_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    last_used_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utc_now)

    project: Mapped["Project"] = relationship("Project", back_populates="sdk_tokens")


class PortalUserProfile(Base):
    """Per-project profile of a community user of the portal."""

    __tablename__ = "portal_user_profiles"
    __table_args__ = (
        UniqueConstraint("project_id", "user_id", name="uq_portal_profile_project_user"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    project_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    display_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    notification_preferences: Mapped[dict[str, Any]] = mapped_column(
        JSON, nullable=False, default=dict
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utc_now)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now, onupdate=_utc_now
    )

    project: Mapped["Project"] = relationship(
        "Project", back_populates="portal_profiles"
    )
