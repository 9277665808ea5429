"""
Invite repository for database operations.
"""

from typing import Optional

from sqlalchemy.orm import Session

import repositories.db_models as db_models
from .base import BaseRepository


class InviteRepository(BaseRepository[db_models.Invite]):
    """Repository for project invitations."""

    def __init__(self, db: Session):
        super().__init__(db_models.Invite, db)

    def get_by_token(self, token: str) -> Optional[db_models.Invite]:
        return (
            self.db.query(db_models.Invite)
            .filter(db_models.Invite.token == token)
            .first()
        )

    def get_in_project(
        self, project_id: int, invite_id: int
    ) -> Optional[db_models.Invite]:
        return (
            self.db.query(db_models.Invite)
            .filter(
                db_models.Invite.id == invite_id,
                db_models.Invite.project_id == project_id,
            )
            .first()
        )

    def get_pending_for_email(
        self, project_id: int, email: str
    ) -> Optional[db_models.Invite]:
        """
        Get the pending invite for an email in a project.

        Args:
            project_id: Project ID
            email: Lower-cased invitee email

        Returns:
            Pending invite if one exists, None otherwise
        """
        return (
            self.db.query(db_models.Invite)
            .filter(
                db_models.Invite.project_id == project_id,
                db_models.Invite.email == email,
                db_models.Invite.status == db_models.InviteStatus.PENDING,
            )
            .first()
        )

    def list_by_project(
        self, project_id: int, status: Optional[db_models.InviteStatus] = None
    ) -> list[db_models.Invite]:
        query = self.db.query(db_models.Invite).filter(
            db_models.Invite.project_id == project_id
        )
        if status is not None:
            query = query.filter(db_models.Invite.status == status)
        return query.order_by(db_models.Invite.created_at.desc()).all()
