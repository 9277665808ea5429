"""
SDK token repository for database operations.
"""

from typing import Optional

from sqlalchemy.orm import Session

import repositories.db_models as db_models
from .base import BaseRepository


class SdkTokenRepository(BaseRepository[db_models.SdkToken]):
    def __init__(self, db: Session):
        super().__init__(db_models.SdkToken, db)

    def get_by_hash(self, token_hash: str) -> Optional[db_models.SdkToken]:
        return (
            self.db.query(db_models.SdkToken)
            .filter(db_models.SdkToken.token_hash == token_hash)
            .first()
        )

    def get_in_project(
        self, project_id: int, token_id: int
    ) -> Optional[db_models.SdkToken]:
        return (
            self.db.query(db_models.SdkToken)
            .filter(
                db_models.SdkToken.id == token_id,
                db_models.SdkToken.project_id == project_id,
            )
            .first()
        )

    def list_by_project(self, project_id: int) -> list[db_models.SdkToken]:
        return (
            self.db.query(db_models.SdkToken)
            .filter(db_models.SdkToken.project_id == project_id)
            .order_by(db_models.SdkToken.created_at.desc())
            .all()
        )
