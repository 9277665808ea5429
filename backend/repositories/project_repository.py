"""
Project repository for database operations.
"""

from typing import Optional

from sqlalchemy.orm import Session

import repositories.db_models as db_models
from .base import BaseRepository


class ProjectRepository(BaseRepository[db_models.Project]):
    """Repository for Project (tenant) records."""

    def __init__(self, db: Session):
        super().__init__(db_models.Project, db)

    def get_by_slug(self, slug: str) -> Optional[db_models.Project]:
        return (
            self.db.query(db_models.Project)
            .filter(db_models.Project.slug == slug)
            .first()
        )

    def slug_exists(self, slug: str, exclude_id: Optional[int] = None) -> bool:
        """
        Check whether a slug is taken.

        Args:
            slug: Candidate slug
            exclude_id: Project to ignore (the one being renamed)

        Returns:
            True if another project uses the slug
        """
        query = self.db.query(db_models.Project.id).filter(
            db_models.Project.slug == slug
        )
        if exclude_id is not None:
            query = query.filter(db_models.Project.id != exclude_id)
        return query.first() is not None

    def list_for_user(self, user_id: str) -> list[tuple[db_models.Project, db_models.Membership]]:
        """
        Projects the user belongs to, with the user's membership.

        Returns:
            List of (project, membership) tuples, oldest membership first
        """
        rows = (
            self.db.query(db_models.Project, db_models.Membership)
            .join(
                db_models.Membership,
                db_models.Membership.project_id == db_models.Project.id,
            )
            .filter(db_models.Membership.user_id == user_id)
            .order_by(db_models.Membership.created_at, db_models.Project.id)
            .all()
        )
        return [(project, membership) for project, membership in rows]
