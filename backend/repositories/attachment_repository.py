"""
Attachment repository for database operations.
"""

from typing import List, Optional

from sqlalchemy.orm import Session

from repositories.base import BaseRepository
from repositories.db_models import Attachment, AttachmentStatus, Feedback


class AttachmentRepository(BaseRepository[Attachment]):
    """Repository for feedback attachments."""

    def __init__(self, db: Session):
        super().__init__(Attachment, db)

    def get_in_project(
        self, project_id: int, attachment_id: int
    ) -> Optional[Attachment]:
        """Get an attachment only if its feedback belongs to the project."""
        return (
            self.db.query(Attachment)
            .join(Feedback, Feedback.id == Attachment.feedback_id)
            .filter(Attachment.id == attachment_id, Feedback.project_id == project_id)
            .first()
        )

    def list_uploaded(self, feedback_id: int) -> List[Attachment]:
        """Attachments whose upload completed, oldest first."""
        return (
            self.db.query(Attachment)
            .filter(
                Attachment.feedback_id == feedback_id,
                Attachment.status == AttachmentStatus.UPLOADED,
            )
            .order_by(Attachment.created_at.asc(), Attachment.id.asc())
            .all()
        )
