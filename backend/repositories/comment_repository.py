"""
Comment repository for database operations.
"""

from typing import Optional

from sqlalchemy.orm import Session

import repositories.db_models as db_models
from models.roles import Visibility
from .base import BaseRepository


class CommentRepository(BaseRepository[db_models.Comment]):
    """Repository for Comment entity database operations."""

    def __init__(self, db: Session):
        super().__init__(db_models.Comment, db)

    def get_active(self, comment_id: int) -> Optional[db_models.Comment]:
        """Get a comment unless it has been soft-deleted."""
        return (
            self.db.query(db_models.Comment)
            .filter(
                db_models.Comment.id == comment_id,
                db_models.Comment.deleted_at.is_(None),
            )
            .first()
        )

    def list_for_feedback(
        self,
        feedback_id: int,
        visibilities: list[Visibility],
        skip: int = 0,
        limit: int = 100,
    ) -> list[db_models.Comment]:
        """
        Visible, non-deleted comments of a feedback item, oldest first.

        Args:
            feedback_id: Feedback ID
            visibilities: Visibility tiers the caller may read
            skip: Number of records to skip
            limit: Maximum number of records to return

        Returns:
            List of comments
        """
        return (
            self.db.query(db_models.Comment)
            .filter(
                db_models.Comment.feedback_id == feedback_id,
                db_models.Comment.deleted_at.is_(None),
                db_models.Comment.visibility.in_(visibilities),
            )
            .order_by(db_models.Comment.created_at.asc(), db_models.Comment.id.asc())
            .offset(skip)
            .limit(limit)
            .all()
        )
