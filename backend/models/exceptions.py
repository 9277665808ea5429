"""
Domain exceptions for the feedback platform.

Services raise these; the centralized handlers in main.py turn them into
HTTP responses. Every exception carries a stable machine-readable `code`
and a correlation ID so a failure seen by a dashboard user or an SDK
integrator can be traced back to the log line that produced it.

Kinds (the base class decides the HTTP status):
    NotFoundException          404
    PermissionDeniedException  403 (Forbidden)
    AuthenticationException    401 (Unauthorized)
    ConflictException          409
    ValidationException        422 (optionally field-addressable)
    BusinessRuleException      400
    GoneException              410

Idempotent repeats (double vote, double unvote, re-linking) are not
errors and never raise.
"""

from core.correlation import generate_correlation_id, get_correlation_id


class DomainException(Exception):
    """
    Base class for all domain exceptions.

    Attributes:
        message: Human-readable error message.
        code: Stable error code for API clients.
        correlation_id: Unique ID for error tracking (auto-generated if not provided).
    """

    code: str = "domain_error"
    default_message: str = "domain error"

    def __init__(self, message: str | None = None, correlation_id: str | None = None):
        self.message = message or self.default_message
        self.correlation_id = (
            correlation_id or get_correlation_id() or generate_correlation_id()
        )
        super().__init__(self.message)


class NotFoundException(DomainException):
    """Raised when a requested resource is not found."""

    code = "not_found"
    default_message = "resource not found"


class PermissionDeniedException(DomainException):
    """Raised when the caller is authenticated but not allowed."""

    code = "forbidden"
    default_message = "access denied"


class AuthenticationException(DomainException):
    """Raised when there is no valid identity at all."""

    code = "unauthorized"
    default_message = "authentication required"


class ConflictException(DomainException):
    """Raised when an operation conflicts with existing data."""

    code = "conflict"
    default_message = "resource already exists"


class ValidationException(DomainException):
    """
    Raised when input validation fails.

    Attributes:
        fields: Optional mapping of field name to error message.
    """

    code = "validation_error"
    default_message = "validation failed"

    def __init__(
        self,
        message: str | None = None,
        fields: dict[str, str] | None = None,
        correlation_id: str | None = None,
    ):
        super().__init__(message, correlation_id)
        self.fields = dict(fields) if fields else {}

    def has_errors(self) -> bool:
        return bool(self.fields)


class BusinessRuleException(DomainException):
    """Raised when a business rule is violated."""

    code = "business_rule_violation"
    default_message = "operation not allowed"


class GoneException(DomainException):
    """Raised when a resource existed but is no longer usable."""

    code = "gone"
    default_message = "resource is no longer available"


# Not found


class ProjectNotFoundException(NotFoundException):
    code = "project_not_found"
    default_message = "project not found"


class FeedbackNotFoundException(NotFoundException):
    code = "feedback_not_found"
    default_message = "feedback not found"


class CommentNotFoundException(NotFoundException):
    code = "comment_not_found"
    default_message = "comment not found"


class TagNotFoundException(NotFoundException):
    code = "tag_not_found"
    default_message = "tag not found"


class InviteNotFoundException(NotFoundException):
    code = "invite_not_found"
    default_message = "invite not found"


class MemberNotFoundException(NotFoundException):
    code = "member_not_found"
    default_message = "member not found"


class SdkUserNotFoundException(NotFoundException):
    code = "sdk_user_not_found"
    default_message = "SDK user not found"


class SdkTokenNotFoundException(NotFoundException):
    code = "sdk_token_not_found"
    default_message = "SDK token not found"


class AttachmentNotFoundException(NotFoundException):
    code = "attachment_not_found"
    default_message = "attachment not found"


# Authentication


class InvalidTokenException(AuthenticationException):
    code = "invalid_token"
    default_message = "invalid or expired token"


class TokenExpiredException(AuthenticationException):
    code = "token_expired"
    default_message = "token has expired"


class InvalidSdkTokenException(AuthenticationException):
    code = "invalid_sdk_token"
    default_message = "invalid or expired SDK token"


# Authorization


class NoMembershipException(PermissionDeniedException):
    """The caller is not a member of the project."""

    code = "no_membership"
    default_message = "user is not a member of this project"


class InsufficientRoleException(PermissionDeniedException):
    """The caller's role is below the required level."""

    code = "insufficient_role"
    default_message = "your role does not allow this action"


class CannotChangeOwnerRoleException(PermissionDeniedException):
    code = "cannot_change_owner_role"
    default_message = "cannot change the owner's role"


class CannotAssignOwnerRoleException(PermissionDeniedException):
    code = "cannot_assign_owner_role"
    default_message = "ownership cannot be granted through a role change"


class CannotRemoveOwnerException(PermissionDeniedException):
    code = "cannot_remove_owner"
    default_message = "cannot remove the project owner"


class CannotEditOthersCommentException(PermissionDeniedException):
    code = "cannot_edit_comment"
    default_message = "you can only edit your own comments"


class CannotDeleteFeedbackException(PermissionDeniedException):
    code = "cannot_delete_feedback"
    default_message = "only the author or a project admin can delete this feedback"


# Conflicts


class AlreadyMemberException(ConflictException):
    code = "already_member"
    default_message = "user is already a member of this project"


class SlugTakenException(ConflictException):
    code = "slug_taken"
    default_message = "slug is already in use"


class TagAlreadyExistsException(ConflictException):
    code = "tag_exists"
    default_message = "a tag with this name already exists"


class PendingInviteExistsException(ConflictException):
    code = "pending_invite_exists"
    default_message = "a pending invite already exists for this email"


# Validation


class InvalidRoleException(ValidationException):
    code = "invalid_role"
    default_message = "invalid role"


class InvalidVisibilityException(ValidationException):
    code = "invalid_visibility"
    default_message = "invalid visibility"


class MissingIdentityException(ValidationException):
    """Feedback needs an author, a submitter email/identifier or an SDK user."""

    code = "missing_identity"
    default_message = "feedback requires an author or a submitter identity"


class CannotMergeSelfException(ValidationException):
    code = "cannot_merge_self"
    default_message = "cannot merge feedback into itself"


class FeedbackMergedException(ValidationException):
    """The feedback item was merged into another one and is redirect-only."""

    code = "feedback_merged"
    default_message = "feedback has been merged into another item"

    def __init__(self, feedback_id: int, canonical_id: int) -> None:
        super().__init__(
            f"Feedback {feedback_id} has been merged into feedback {canonical_id}"
        )
        self.feedback_id = feedback_id
        self.canonical_id = canonical_id


class InvalidParentCommentException(ValidationException):
    code = "invalid_parent"
    default_message = "parent comment belongs to different feedback"


class InvalidContentTypeException(ValidationException):
    code = "invalid_content_type"
    default_message = "this file type is not allowed"


class AttachmentTooLargeException(ValidationException):
    code = "file_too_large"
    default_message = "file exceeds the maximum attachment size"


# Business rules


class MergeNotAllowedException(BusinessRuleException):
    """Cross-project merges and merges involving already merged items."""

    code = "merge_not_allowed"
    default_message = "these feedback items cannot be merged"


class VotingDisabledException(BusinessRuleException):
    code = "voting_disabled"
    default_message = "voting is disabled for this project"


class CommunityCommentsDisabledException(BusinessRuleException):
    code = "community_comments_disabled"
    default_message = "community comments are disabled for this project"


class AnonymousFeedbackDisabledException(BusinessRuleException):
    code = "anonymous_feedback_disabled"
    default_message = "anonymous feedback is disabled for this project"


class InviteNotPendingException(BusinessRuleException):
    code = "invite_not_pending"
    default_message = "this invite is no longer pending"


class AttachmentNotPendingException(BusinessRuleException):
    code = "attachment_not_pending"
    default_message = "upload already completed or failed"


class UploadMissingException(BusinessRuleException):
    """The client reported an upload that object storage does not have."""

    code = "upload_not_found"
    default_message = "upload was not completed"


# Gone


class InviteExpiredException(GoneException):
    code = "invite_expired"
    default_message = "invite has expired"
