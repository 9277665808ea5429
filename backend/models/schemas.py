from datetime import datetime
from typing import Annotated, Any, Dict, List, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, EmailStr, Field

from models.roles import Role, Visibility, parse_role, parse_visibility
from repositories.db_models import (
    AttachmentStatus,
    FeedbackStatus,
    FeedbackType,
    InviteStatus,
    Severity,
)

HEX_COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"
SLUG_PATTERN = r"^[a-z0-9]+(?:-[a-z0-9]+)*$"

# Request fields: unknown values raise InvalidRoleException / InvalidVisibilityException
RoleInput = Annotated[Role, BeforeValidator(parse_role)]
VisibilityInput = Annotated[Visibility, BeforeValidator(parse_visibility)]


# Authentication
class CurrentUser(BaseModel):
    """Identity taken from a verified access token."""

    id: str
    email: Optional[str] = None
    email_verified: bool = False


# Project Settings
class DefaultVisibilitySettings(BaseModel):
    bug: Visibility = Visibility.TEAM_ONLY
    feature: Visibility = Visibility.COMMUNITY
    general: Visibility = Visibility.TEAM_ONLY


class ProjectNotificationPreferences(BaseModel):
    new_feedback: bool = True
    status_changes: bool = True
    new_comments: bool = True


class ProjectSettings(BaseModel):
    default_visibility: DefaultVisibilitySettings = Field(
        default_factory=DefaultVisibilitySettings
    )
    allow_anonymous_feedback: bool = True
    require_email_for_anonymous: bool = False
    voting_enabled: bool = True
    community_comments_enabled: bool = True
    auto_close_duplicates: bool = True
    notification_preferences: ProjectNotificationPreferences = Field(
        default_factory=ProjectNotificationPreferences
    )

    def visibility_for(self, feedback_type: FeedbackType) -> Visibility:
        """Default visibility for new feedback of the given type."""
        return getattr(self.default_visibility, feedback_type.value)


# Project Schemas
class ProjectCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    slug: Optional[str] = Field(None, max_length=50, pattern=SLUG_PATTERN)
    description: Optional[str] = Field(None, max_length=2000)


class ProjectUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=2000)
    settings: Optional[ProjectSettings] = None


class Project(BaseModel):
    id: int
    name: str
    slug: str
    description: Optional[str] = None
    settings: ProjectSettings
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ProjectWithRole(Project):
    role: Role


# Membership Schemas
class Membership(BaseModel):
    id: int
    project_id: int
    user_id: str
    email: Optional[str] = None
    role: Role
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MembershipRoleUpdate(BaseModel):
    role: RoleInput


# Invite Schemas
class InviteCreate(BaseModel):
    email: EmailStr
    role: RoleInput = Role.MEMBER


class Invite(BaseModel):
    id: int
    project_id: int
    email: str
    role: Role
    status: InviteStatus
    invited_by: str
    expires_at: datetime
    accepted_at: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class InviteWithToken(Invite):
    """Returned once, on creation, so the inviter can share the link."""

    token: str


# Tag Schemas
class TagCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    color: str = Field(default="#6B7280", pattern=HEX_COLOR_PATTERN)


class TagUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    color: Optional[str] = Field(None, pattern=HEX_COLOR_PATTERN)


class TagSummary(BaseModel):
    id: int
    name: str
    slug: str
    color: str

    model_config = ConfigDict(from_attributes=True)


class Tag(TagSummary):
    project_id: int
    created_at: datetime


class TagWithCount(Tag):
    feedback_count: int = 0


# Feedback Schemas
class FeedbackCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1)
    type: FeedbackType = FeedbackType.GENERAL
    severity: Optional[Severity] = None
    visibility: Optional[VisibilityInput] = None
    submitter_email: Optional[EmailStr] = None
    submitter_name: Optional[str] = Field(None, max_length=255)
    submitter_identifier: Optional[str] = Field(None, max_length=255)
    source_metadata: Optional[Dict[str, Any]] = None
    tag_ids: List[int] = []


class FeedbackUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, min_length=1)
    status: Optional[FeedbackStatus] = None
    severity: Optional[Severity] = None
    visibility: Optional[VisibilityInput] = None
    assigned_to: Optional[str] = Field(None, max_length=64)
    tag_ids: Optional[List[int]] = None


class Feedback(BaseModel):
    id: int
    project_id: int
    title: str
    description: str
    type: FeedbackType
    status: FeedbackStatus
    severity: Optional[Severity] = None
    visibility: Visibility
    source: str
    source_metadata: Optional[Dict[str, Any]] = None
    author_id: Optional[str] = None
    submitter_email: Optional[str] = None
    submitter_name: Optional[str] = None
    submitter_identifier: Optional[str] = None
    sdk_user_id: Optional[int] = None
    assigned_to: Optional[str] = None
    vote_count: int
    comment_count: int
    canonical_id: Optional[int] = None
    resolved_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    tags: List[TagSummary] = []
    has_voted: Optional[bool] = None
    # Set when the requested item was merged and this is its canonical item
    redirected_from: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)


class FeedbackList(BaseModel):
    items: List[Feedback]
    total: int
    page: int
    per_page: int
    total_pages: int


# Merge Schemas
class MergeRequest(BaseModel):
    canonical_id: int


class MergeResult(BaseModel):
    source: Feedback
    canonical: Feedback
    votes_moved: int
    votes_dropped: int


# Vote Schemas
class VoteResult(BaseModel):
    feedback_id: int
    vote_count: int
    has_voted: bool


# Comment Schemas
class CommentCreate(BaseModel):
    body: str = Field(..., min_length=1, max_length=10000)
    visibility: VisibilityInput = Visibility.COMMUNITY
    parent_id: Optional[int] = None


class CommentUpdate(BaseModel):
    body: str = Field(..., min_length=1, max_length=10000)


class Comment(BaseModel):
    id: int
    feedback_id: int
    author_id: str
    body: str
    visibility: Visibility
    parent_id: Optional[int] = None
    is_edited: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


# SDK Schemas
class SdkIdentifyRequest(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    name: Optional[str] = Field(None, max_length=255)
    traits: Dict[str, Any] = {}


class SdkUser(BaseModel):
    id: int
    external_id: str
    email: Optional[str] = None
    name: Optional[str] = None
    traits: Dict[str, Any] = {}
    first_seen_at: datetime
    last_seen_at: datetime

    model_config = ConfigDict(from_attributes=True)


class SdkUserList(BaseModel):
    items: List[SdkUser]
    total: int
    page: int
    per_page: int
    total_pages: int


class SdkFeedbackCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1)
    type: FeedbackType = FeedbackType.GENERAL
    severity: Optional[Severity] = None
    user_id: Optional[str] = Field(
        None, max_length=255, description="External identifier of an identified SDK user"
    )
    email: Optional[EmailStr] = None
    name: Optional[str] = Field(None, max_length=255)
    metadata: Optional[Dict[str, Any]] = None


class SdkFeedbackCreated(BaseModel):
    id: int
    title: str
    type: FeedbackType
    status: FeedbackStatus
    visibility: Visibility
    source: str
    sdk_user_id: Optional[int] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class SdkTokenCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    expires_in_days: Optional[int] = Field(None, ge=1, le=3650)


class SdkToken(BaseModel):
    id: int
    project_id: int
    name: str
    token_prefix: str
    created_by: str
    expires_at: Optional[datetime] = None
    last_used_at: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class SdkTokenCreated(SdkToken):
    """The raw token is only ever returned here."""

    token: str


# Attachment Schemas
class AttachmentInit(BaseModel):
    feedback_id: int
    filename: str = Field(..., min_length=1, max_length=255)
    content_type: str = Field(..., min_length=1, max_length=100)
    size_bytes: int = Field(..., ge=1)


class AttachmentUploadInfo(BaseModel):
    attachment_id: int
    upload_url: str


class AttachmentComplete(BaseModel):
    attachment_id: int


class Attachment(BaseModel):
    id: int
    feedback_id: int
    filename: str
    content_type: str
    size_bytes: int
    status: AttachmentStatus
    created_at: datetime
    uploaded_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


# Portal Schemas
class PortalNotificationPreferences(BaseModel):
    status_changes: bool = True
    new_comments_on_my_feedback: bool = True
    new_comments_on_voted_feedback: bool = False
    weekly_digest: bool = False


class PortalProfile(BaseModel):
    id: int
    project_id: int
    user_id: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    notification_preferences: PortalNotificationPreferences
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PortalFeatureRequestCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1)


class PortalFeedback(BaseModel):
    """Feedback as shown to community users on the portal."""

    id: int
    title: str
    description: str
    type: FeedbackType
    status: FeedbackStatus
    vote_count: int
    comment_count: int
    created_at: datetime
    has_voted: bool = False

    model_config = ConfigDict(from_attributes=True)


class PortalFeedbackList(BaseModel):
    items: List[PortalFeedback]
    total: int
    page: int
    per_page: int
    total_pages: int


# Health
class HealthStatus(BaseModel):
    status: str
    database: str
