"""
SDK router: endpoints called from integrators' apps.

Requests authenticate with an X-SDK-Token header instead of a user token.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Header, Request, status
from sqlalchemy.orm import Session

import authentication.auth as auth
import models.schemas as schemas
from helpers.rate_limiter import limiter
from models.config import settings
from repositories.database import get_db
from services.attachment_service import AttachmentService
from services.sdk_identity_service import SdkIdentityService

router = APIRouter(prefix="/sdk", tags=["sdk"])


@router.post("/identify", response_model=schemas.SdkUser)
@limiter.limit(settings.RATE_LIMIT_SDK_IDENTIFY)
def identify(
    request: Request,
    data: schemas.SdkIdentifyRequest,
    db: Session = Depends(get_db),
    project_id: int = Depends(auth.get_sdk_project),
):
    """
    Identify an end user of the integrator's app.

    Repeated calls update the same SDK user; omitted fields keep their
    stored values.
    """
    return SdkIdentityService.identify(
        db,
        project_id,
        data.user_id,
        email=data.email,
        name=data.name,
        traits=data.traits,
    )


@router.post(
    "/feedback",
    response_model=schemas.SdkFeedbackCreated,
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit(settings.RATE_LIMIT_SDK_FEEDBACK)
def submit_feedback(
    request: Request,
    data: schemas.SdkFeedbackCreate,
    x_sdk_source: Optional[str] = Header(None, alias="X-SDK-Source"),
    db: Session = Depends(get_db),
    project_id: int = Depends(auth.get_sdk_project),
):
    """
    Submit feedback from the SDK.

    X-SDK-Source names the platform (ios, android, web...) and becomes part
    of the feedback source.
    """
    return SdkIdentityService.submit_feedback(
        db, project_id, data, platform=x_sdk_source
    )


@router.post(
    "/attachments/init",
    response_model=schemas.AttachmentUploadInfo,
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit(settings.RATE_LIMIT_SDK_FEEDBACK)
def init_attachment_upload(
    request: Request,
    data: schemas.AttachmentInit,
    db: Session = Depends(get_db),
    project_id: int = Depends(auth.get_sdk_project),
):
    """
    Start an attachment upload for a feedback item.

    The client sends the file to upload_url, then calls /attachments/complete.
    """
    return AttachmentService.init_upload(db, project_id, data)


@router.post("/attachments/complete", response_model=schemas.Attachment)
def complete_attachment_upload(
    data: schemas.AttachmentComplete,
    db: Session = Depends(get_db),
    project_id: int = Depends(auth.get_sdk_project),
):
    return AttachmentService.complete_upload(db, project_id, data.attachment_id)
