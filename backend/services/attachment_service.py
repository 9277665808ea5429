"""
Attachment service.

Uploads go straight from the client to object storage. This service only
records where a file goes and whether it arrived: init_upload reserves a
storage path in status pending, complete_upload checks the object exists
and flips the status to uploaded (or failed).
"""

import re
import uuid
from pathlib import PurePosixPath
from typing import List, Optional

from loguru import logger
from sqlalchemy.orm import Session

import models.schemas as schemas
import repositories.db_models as db_models
from helpers.time_utils import utc_now
from models.config import settings
from models.exceptions import (
    AttachmentNotFoundException,
    AttachmentNotPendingException,
    AttachmentTooLargeException,
    FeedbackMergedException,
    FeedbackNotFoundException,
    InvalidContentTypeException,
    PermissionDeniedException,
    UploadMissingException,
)
from models.roles import Role, is_visible_to
from repositories.attachment_repository import AttachmentRepository
from repositories.feedback_repository import FeedbackRepository
from services.object_storage import LocalObjectStorage, ObjectStorage

ALLOWED_CONTENT_TYPES = frozenset(
    {
        "image/jpeg",
        "image/png",
        "image/gif",
        "image/webp",
        "image/svg+xml",
        "video/mp4",
        "video/webm",
        "video/quicktime",
        "application/pdf",
        "text/plain",
    }
)

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]")


def storage_filename(filename: str) -> str:
    """Reduce a client filename to one safe path segment."""
    name = PurePosixPath(filename.replace("\\", "/")).name
    name = _UNSAFE_FILENAME_CHARS.sub("_", name).lstrip(".")
    return name or "file"


class AttachmentService:
    """Service for feedback attachments."""

    _storage_cache: Optional[ObjectStorage] = None

    @staticmethod
    def _get_storage() -> ObjectStorage:
        """Get the configured object storage."""
        if AttachmentService._storage_cache is None:
            AttachmentService._storage_cache = LocalObjectStorage(
                settings.ATTACHMENT_STORAGE_DIR, settings.ATTACHMENT_UPLOAD_BASE_URL
            )
        return AttachmentService._storage_cache

    @staticmethod
    def init_upload(
        db: Session, project_id: int, data: schemas.AttachmentInit
    ) -> schemas.AttachmentUploadInfo:
        """
        Reserve a storage path for a new attachment.

        Args:
            db: Database session
            project_id: Project of the SDK token
            data: Target feedback and file description

        Returns:
            AttachmentUploadInfo with the new attachment ID and upload URL

        Raises:
            InvalidContentTypeException: If the content type is not allowed
            AttachmentTooLargeException: If the file is over the size limit
            FeedbackNotFoundException: If the feedback is not in the project
            FeedbackMergedException: If the feedback was merged away
        """
        if data.content_type not in ALLOWED_CONTENT_TYPES:
            raise InvalidContentTypeException(
                f"Content type '{data.content_type}' is not allowed",
                fields={"content_type": "not allowed"},
            )
        if data.size_bytes > settings.ATTACHMENT_MAX_BYTES:
            raise AttachmentTooLargeException(
                "File exceeds the maximum size of "
                f"{settings.ATTACHMENT_MAX_BYTES} bytes",
                fields={"size_bytes": "too large"},
            )

        feedback = FeedbackRepository(db).get_in_project(project_id, data.feedback_id)
        if feedback is None:
            raise FeedbackNotFoundException(f"Feedback {data.feedback_id} not found")
        if feedback.is_merged:
            raise FeedbackMergedException(feedback.id, feedback.canonical_id)

        storage_path = (
            f"projects/{project_id}/feedback/{feedback.id}/"
            f"{uuid.uuid4().hex}/{storage_filename(data.filename)}"
        )
        upload_url = AttachmentService._get_storage().upload_url(
            storage_path, data.content_type
        )

        attachment = AttachmentRepository(db).create(
            db_models.Attachment(
                feedback_id=feedback.id,
                filename=data.filename,
                content_type=data.content_type,
                size_bytes=data.size_bytes,
                storage_path=storage_path,
                status=db_models.AttachmentStatus.PENDING,
            )
        )

        logger.info(
            f"Attachment {attachment.id} pending for feedback {feedback.id}",
            extra={"project_id": project_id, "content_type": data.content_type},
        )

        return schemas.AttachmentUploadInfo(
            attachment_id=attachment.id, upload_url=upload_url
        )

    @staticmethod
    def complete_upload(
        db: Session, project_id: int, attachment_id: int
    ) -> db_models.Attachment:
        """
        Confirm that the client finished uploading.

        An object missing from storage marks the attachment failed.

        Raises:
            AttachmentNotFoundException: If the attachment is not in the project
            AttachmentNotPendingException: If the upload was already completed or failed
            UploadMissingException: If storage has no object at the path
        """
        attachment_repo = AttachmentRepository(db)
        attachment = attachment_repo.get_in_project(project_id, attachment_id)
        if attachment is None:
            raise AttachmentNotFoundException(f"Attachment {attachment_id} not found")
        if attachment.status != db_models.AttachmentStatus.PENDING:
            raise AttachmentNotPendingException()

        if not AttachmentService._get_storage().exists(attachment.storage_path):
            attachment.status = db_models.AttachmentStatus.FAILED
            attachment_repo.update(attachment)
            logger.warning(
                f"Attachment {attachment_id} reported complete "
                "but is missing from storage",
                extra={"project_id": project_id},
            )
            raise UploadMissingException()

        attachment.status = db_models.AttachmentStatus.UPLOADED
        attachment.uploaded_at = utc_now()
        return attachment_repo.update(attachment)

    @staticmethod
    def list_attachments(
        db: Session, project_id: int, feedback_id: int, role: Role
    ) -> List[db_models.Attachment]:
        """
        Uploaded attachments of a feedback item.

        Raises:
            FeedbackNotFoundException: If the feedback is not in the project
            PermissionDeniedException: If the role cannot see the feedback
        """
        feedback = FeedbackRepository(db).get_in_project(project_id, feedback_id)
        if feedback is None:
            raise FeedbackNotFoundException(f"Feedback {feedback_id} not found")
        if not is_visible_to(feedback.visibility, role):
            raise PermissionDeniedException("You cannot view this feedback")
        return AttachmentRepository(db).list_uploaded(feedback.id)
