"""
Repository pattern implementation for data access layer.
"""

from .attachment_repository import AttachmentRepository
from .base import BaseRepository
from .comment_repository import CommentRepository
from .feedback_repository import FeedbackRepository
from .invite_repository import InviteRepository
from .membership_repository import MembershipRepository
from .portal_repository import PortalUserProfileRepository
from .project_repository import ProjectRepository
from .sdk_token_repository import SdkTokenRepository
from .sdk_user_repository import SdkUserRepository
from .tag_repository import TagRepository
from .vote_repository import PortalVoteRepository, VoteRepository

__all__ = [
    "AttachmentRepository",
    "BaseRepository",
    "CommentRepository",
    "FeedbackRepository",
    "InviteRepository",
    "MembershipRepository",
    "PortalUserProfileRepository",
    "PortalVoteRepository",
    "ProjectRepository",
    "SdkTokenRepository",
    "SdkUserRepository",
    "TagRepository",
    "VoteRepository",
]
