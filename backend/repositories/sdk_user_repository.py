"""
SDK user repository for database operations.
"""

from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

import repositories.db_models as db_models
from .base import BaseRepository


class SdkUserRepository(BaseRepository[db_models.SdkUser]):
    """Repository for identities reported by the SDK."""

    def __init__(self, db: Session):
        super().__init__(db_models.SdkUser, db)

    def get_by_external_id(
        self, project_id: int, external_id: str, for_update: bool = False
    ) -> Optional[db_models.SdkUser]:
        """
        Get an SDK user by its integrator-supplied identifier.

        Args:
            project_id: Project ID
            external_id: Identifier sent by the SDK
            for_update: Lock the row until the transaction ends

        Returns:
            SdkUser if found, None otherwise
        """
        stmt = select(db_models.SdkUser).where(
            db_models.SdkUser.project_id == project_id,
            db_models.SdkUser.external_id == external_id,
        )
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        return self.db.scalars(stmt).first()

    def ensure_exists(self, project_id: int, external_id: str) -> bool:
        """
        Create the (project, external_id) row if it is missing.

        Returns:
            True if this call created the row
        """
        return self.insert_ignoring_conflict(
            {"project_id": project_id, "external_id": external_id, "traits": {}},
            ["project_id", "external_id"],
        )

    def link_by_email(self, project_id: int, user_id: str, email: str) -> int:
        """
        Claim every unlinked SDK user of the project whose email matches.

        The comparison is case-insensitive. Rows that are already linked are
        never touched, so repeated calls link nothing new.

        Args:
            project_id: Project ID
            user_id: Portal user ID to store in linked_user_id
            email: Verified email of the portal user

        Returns:
            Number of rows linked by this call
        """
        result = self.db.execute(
            update(db_models.SdkUser)
            .where(
                db_models.SdkUser.project_id == project_id,
                db_models.SdkUser.linked_user_id.is_(None),
                db_models.SdkUser.email.is_not(None),
                func.lower(db_models.SdkUser.email) == email.lower(),
            )
            .values(linked_user_id=user_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    def get_in_project(
        self, project_id: int, sdk_user_id: int
    ) -> Optional[db_models.SdkUser]:
        return (
            self.db.query(db_models.SdkUser)
            .filter(
                db_models.SdkUser.id == sdk_user_id,
                db_models.SdkUser.project_id == project_id,
            )
            .first()
        )

    def list_by_project(
        self, project_id: int, skip: int = 0, limit: int = 50
    ) -> tuple[list[db_models.SdkUser], int]:
        """
        Identified users of a project, most recently seen first.

        Returns:
            Tuple of (items, total count)
        """
        query = self.db.query(db_models.SdkUser).filter(
            db_models.SdkUser.project_id == project_id
        )
        total = query.count()
        items = (
            query.order_by(
                db_models.SdkUser.last_seen_at.desc(), db_models.SdkUser.id.desc()
            )
            .offset(skip)
            .limit(limit)
            .all()
        )
        return items, total
