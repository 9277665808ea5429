"""
Tag repository for database operations.
"""

from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from repositories.base import BaseRepository
from repositories.db_models import Feedback, FeedbackTag, Tag


class TagRepository(BaseRepository[Tag]):
    """
    Repository for per-project tags.
    """

    def __init__(self, db: Session):
        super().__init__(Tag, db)

    def get_in_project(self, project_id: int, tag_id: int) -> Optional[Tag]:
        return (
            self.db.query(Tag)
            .filter(Tag.id == tag_id, Tag.project_id == project_id)
            .first()
        )

    def get_by_slug(self, project_id: int, slug: str) -> Optional[Tag]:
        return (
            self.db.query(Tag)
            .filter(Tag.project_id == project_id, Tag.slug == slug)
            .first()
        )

    def get_many(self, project_id: int, tag_ids: List[int]) -> List[Tag]:
        """
        Get the tags with the given IDs that belong to the project.

        Args:
            project_id: Project ID
            tag_ids: Requested tag IDs

        Returns:
            Matching tags (foreign or unknown IDs are left out)
        """
        if not tag_ids:
            return []
        return (
            self.db.query(Tag)
            .filter(Tag.project_id == project_id, Tag.id.in_(tag_ids))
            .all()
        )

    def list_with_counts(self, project_id: int) -> List[tuple[Tag, int]]:
        """
        Tags of a project with the number of active feedback items using them.

        Returns:
            List of (tag, feedback_count) tuples ordered by name
        """
        rows = (
            self.db.query(Tag, func.count(Feedback.id).label("feedback_count"))
            .outerjoin(FeedbackTag, FeedbackTag.tag_id == Tag.id)
            .outerjoin(
                Feedback,
                (Feedback.id == FeedbackTag.feedback_id)
                & Feedback.canonical_id.is_(None),
            )
            .filter(Tag.project_id == project_id)
            .group_by(Tag.id)
            .order_by(Tag.name)
            .all()
        )
        return [(tag, count) for tag, count in rows]
