"""
Comment service for business logic.
"""

from typing import List, Optional

from loguru import logger
from sqlalchemy.orm import Session

import models.schemas as schemas
import repositories.db_models as db_models
from helpers.time_utils import utc_now
from models.exceptions import (
    CannotEditOthersCommentException,
    CommentNotFoundException,
    CommunityCommentsDisabledException,
    InvalidParentCommentException,
    PermissionDeniedException,
)
from models.roles import (
    Role,
    Visibility,
    is_admin_or_owner,
    is_team_role,
    is_visible_to,
    visible_tiers,
)
from repositories.comment_repository import CommentRepository
from repositories.feedback_repository import FeedbackRepository
from services.feedback_service import FeedbackService
from services.project_service import ProjectService


class CommentService:
    """Service for comment-related business logic."""

    @staticmethod
    def list_comments(
        db: Session,
        project_id: int,
        feedback_id: int,
        role: Role,
        skip: int = 0,
        limit: int = 100,
    ) -> List[db_models.Comment]:
        """
        List comments the role can see, oldest first.

        Raises:
            FeedbackNotFoundException: If the feedback is not in the project
            PermissionDeniedException: If the role cannot see the feedback
        """
        feedback, _ = FeedbackService.get_feedback(db, project_id, feedback_id, role)
        return CommentRepository(db).list_for_feedback(
            feedback.id, visible_tiers(role), skip=skip, limit=limit
        )

    @staticmethod
    def create_comment(
        db: Session,
        project_id: int,
        feedback_id: int,
        author_id: str,
        role: Role,
        data: schemas.CommentCreate,
    ) -> db_models.Comment:
        """
        Add a comment to a feedback item.

        Community users can only post COMMUNITY comments, and only when the
        project allows community comments. Replies must target a comment of
        the same feedback item.

        Args:
            db: Database session
            project_id: Project ID
            feedback_id: Feedback ID (a merged ID redirects to its canonical item)
            author_id: Commenting user
            role: Commenting user's role
            data: Body, visibility and optional parent

        Returns:
            Created comment

        Raises:
            FeedbackNotFoundException: If the feedback is not in the project
            PermissionDeniedException: If the role cannot see the feedback
            CommunityCommentsDisabledException: If community comments are off
            InvalidParentCommentException: If the parent belongs elsewhere
        """
        feedback, _ = FeedbackService.get_feedback(db, project_id, feedback_id, role)
        comment_repo = CommentRepository(db)

        visibility = data.visibility
        if not is_team_role(role):
            if not ProjectService.settings_of(feedback.project).community_comments_enabled:
                raise CommunityCommentsDisabledException()
            visibility = Visibility.COMMUNITY

        parent_id: Optional[int] = None
        if data.parent_id is not None:
            parent = comment_repo.get_active(data.parent_id)
            if parent is None or parent.feedback_id != feedback.id:
                raise InvalidParentCommentException()
            if not is_visible_to(parent.visibility, role):
                raise InvalidParentCommentException()
            parent_id = parent.id

        comment = db_models.Comment(
            feedback_id=feedback.id,
            author_id=author_id,
            body=data.body,
            visibility=visibility,
            parent_id=parent_id,
        )
        comment_repo.add(comment)
        comment_repo.flush()
        FeedbackRepository(db).recount_comments(feedback.id)
        comment_repo.commit()
        comment_repo.refresh(comment)

        logger.info(
            f"Comment {comment.id} added to feedback {feedback.id}",
            extra={"author_id": author_id, "visibility": visibility.value},
        )
        return comment

    @staticmethod
    def _get_comment(
        db: Session, project_id: int, feedback_id: int, comment_id: int
    ) -> db_models.Comment:
        comment = CommentRepository(db).get_active(comment_id)
        if (
            comment is None
            or comment.feedback_id != feedback_id
            or comment.feedback.project_id != project_id
        ):
            raise CommentNotFoundException(f"Comment {comment_id} not found")
        return comment

    @staticmethod
    def update_comment(
        db: Session,
        project_id: int,
        feedback_id: int,
        comment_id: int,
        author_id: str,
        body: str,
    ) -> db_models.Comment:
        """
        Edit a comment. Only its author may do so.

        Raises:
            CommentNotFoundException: If the comment does not exist or is deleted
            CannotEditOthersCommentException: If the caller is not the author
        """
        comment = CommentService._get_comment(db, project_id, feedback_id, comment_id)
        if comment.author_id != author_id:
            raise CannotEditOthersCommentException()

        comment.body = body
        comment.is_edited = True
        return CommentRepository(db).update(comment)

    @staticmethod
    def delete_comment(
        db: Session,
        project_id: int,
        feedback_id: int,
        comment_id: int,
        actor_id: str,
        role: Role,
    ) -> None:
        """
        Soft-delete a comment. Authors delete their own; admins and owners
        delete any.

        Raises:
            CommentNotFoundException: If the comment does not exist or is deleted
            PermissionDeniedException: If the caller may not delete it
        """
        comment = CommentService._get_comment(db, project_id, feedback_id, comment_id)
        if comment.author_id != actor_id and not is_admin_or_owner(role):
            raise PermissionDeniedException("You can only delete your own comments")

        comment.deleted_at = utc_now()
        comment_repo = CommentRepository(db)
        comment_repo.flush()
        FeedbackRepository(db).recount_comments(comment.feedback_id)
        comment_repo.commit()

        logger.info(
            f"Comment {comment_id} deleted",
            extra={"actor_id": actor_id, "feedback_id": comment.feedback_id},
        )
