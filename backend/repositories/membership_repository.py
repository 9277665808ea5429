"""
Membership repository for database operations.
"""

from typing import Optional

from sqlalchemy.orm import Session

import repositories.db_models as db_models
from .base import BaseRepository


class MembershipRepository(BaseRepository[db_models.Membership]):
    """Repository for (project, user) -> role records."""

    def __init__(self, db: Session):
        super().__init__(db_models.Membership, db)

    def get_by_project_and_user(
        self, project_id: int, user_id: str
    ) -> Optional[db_models.Membership]:
        """
        Get the membership of a user in a project.

        Args:
            project_id: Project ID
            user_id: External user ID

        Returns:
            Membership if the user belongs to the project, None otherwise
        """
        return (
            self.db.query(db_models.Membership)
            .filter(
                db_models.Membership.project_id == project_id,
                db_models.Membership.user_id == user_id,
            )
            .first()
        )

    def get_in_project(
        self, project_id: int, membership_id: int
    ) -> Optional[db_models.Membership]:
        return (
            self.db.query(db_models.Membership)
            .filter(
                db_models.Membership.id == membership_id,
                db_models.Membership.project_id == project_id,
            )
            .first()
        )

    def list_by_project(self, project_id: int) -> list[db_models.Membership]:
        return (
            self.db.query(db_models.Membership)
            .filter(db_models.Membership.project_id == project_id)
            .order_by(db_models.Membership.created_at, db_models.Membership.id)
            .all()
        )
