"""
Services layer for business logic.

Each service is a class of static methods taking a database session and
raising domain exceptions from models.exceptions.
"""

from .attachment_service import AttachmentService
from .authorization_service import AuthorizationService
from .comment_service import CommentService
from .feedback_service import FeedbackService
from .invite_service import InviteService
from .merge_service import MergeService
from .portal_service import PortalService
from .project_service import ProjectService
from .sdk_identity_service import SdkIdentityService
from .sdk_token_service import SdkTokenService
from .tag_service import TagService
from .vote_service import VoteService

__all__ = [
    "AttachmentService",
    "AuthorizationService",
    "CommentService",
    "FeedbackService",
    "InviteService",
    "MergeService",
    "PortalService",
    "ProjectService",
    "SdkIdentityService",
    "SdkTokenService",
    "TagService",
    "VoteService",
]
