"""
Portal user profile repository.
"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

import repositories.db_models as db_models
from .base import BaseRepository


class PortalUserProfileRepository(BaseRepository[db_models.PortalUserProfile]):
    def __init__(self, db: Session):
        super().__init__(db_models.PortalUserProfile, db)

    def get_by_project_and_user(
        self, project_id: int, user_id: str
    ) -> Optional[db_models.PortalUserProfile]:
        stmt = select(db_models.PortalUserProfile).where(
            db_models.PortalUserProfile.project_id == project_id,
            db_models.PortalUserProfile.user_id == user_id,
        )
        return self.db.scalars(stmt).first()

    def ensure_exists(
        self,
        project_id: int,
        user_id: str,
        email: Optional[str],
        notification_preferences: dict[str, bool],
    ) -> bool:
        """
        Create the profile on first portal access.

        Returns:
            True if this call created the profile
        """
        return self.insert_ignoring_conflict(
            {
                "project_id": project_id,
                "user_id": user_id,
                "email": email,
                "notification_preferences": notification_preferences,
            },
            ["project_id", "user_id"],
        )
