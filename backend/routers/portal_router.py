"""
Portal router: the community-facing pages of a project.

Every authenticated portal request goes through get_portal_context, which
creates the caller's portal profile and links their SDK identities.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

import authentication.auth as auth
import models.schemas as schemas
from helpers.pagination import Page, get_portal_page_params
from helpers.rate_limiter import limiter
from models.config import settings
from repositories.database import get_db
from services.portal_service import PortalService
from services.sdk_identity_service import SdkIdentityService
from services.vote_service import VoteService

router = APIRouter(prefix="/portal/projects/{project_id}", tags=["portal"])


@router.get("/me", response_model=schemas.PortalProfile)
def get_my_profile(ctx: auth.PortalContext = Depends(auth.get_portal_context)):
    return ctx.profile


@router.put("/me/notifications", response_model=schemas.PortalProfile)
def update_my_notifications(
    preferences: schemas.PortalNotificationPreferences,
    db: Session = Depends(get_db),
    ctx: auth.PortalContext = Depends(auth.get_portal_context),
):
    """Replace the caller's notification preferences for this project."""
    return PortalService.update_notification_preferences(db, ctx.profile, preferences)


@router.get("/my-feedback", response_model=List[schemas.PortalFeedback])
def list_my_feedback(
    db: Session = Depends(get_db),
    ctx: auth.PortalContext = Depends(auth.get_portal_context),
):
    """
    Feedback the caller sent through the integrator's app.

    Includes items sent before the portal account existed, once the SDK
    user's email matches the caller's verified email.
    """
    return SdkIdentityService.get_linked_feedback(db, ctx.user.id, ctx.project.id)


@router.get("/feature-requests", response_model=schemas.PortalFeedbackList)
def list_feature_requests(
    project_id: int,
    page: Page = Depends(get_portal_page_params),
    db: Session = Depends(get_db),
    current_user: Optional[schemas.CurrentUser] = Depends(
        auth.get_current_user_optional
    ),
):
    """
    Public feature requests, most voted first.

    Anonymous callers are welcome; has_voted is then always false.
    """
    user_id = None
    if current_user is not None:
        PortalService.ensure_access(
            db,
            project_id,
            current_user.id,
            current_user.email,
            current_user.email_verified,
        )
        user_id = current_user.id

    return PortalService.list_public_features(
        db, project_id, page=page.page, per_page=page.per_page, user_id=user_id
    )


@router.post(
    "/feature-requests",
    response_model=schemas.PortalFeedback,
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit(settings.RATE_LIMIT_PORTAL_FEEDBACK)
def create_feature_request(
    request: Request,
    data: schemas.PortalFeatureRequestCreate,
    db: Session = Depends(get_db),
    ctx: auth.PortalContext = Depends(auth.get_portal_context),
):
    """Submit a feature request as the signed-in portal user."""
    return PortalService.create_feature_request(db, ctx.project, ctx.user.id, data)


@router.delete(
    "/feature-requests/{feedback_id}", status_code=status.HTTP_204_NO_CONTENT
)
def delete_feature_request(
    feedback_id: int,
    db: Session = Depends(get_db),
    ctx: auth.PortalContext = Depends(auth.get_portal_context),
) -> None:
    """Delete a feature request. Authors and project admins only."""
    PortalService.delete_feature_request(db, ctx.project.id, feedback_id, ctx.user.id)


@router.post(
    "/feature-requests/{feedback_id}/vote", response_model=schemas.VoteResult
)
@limiter.limit(settings.RATE_LIMIT_VOTE)
def vote_feature_request(
    request: Request,
    feedback_id: int,
    db: Session = Depends(get_db),
    ctx: auth.PortalContext = Depends(auth.get_portal_context),
):
    return VoteService.portal_vote(db, ctx.project.id, feedback_id, ctx.user.id)


@router.delete(
    "/feature-requests/{feedback_id}/vote", response_model=schemas.VoteResult
)
@limiter.limit(settings.RATE_LIMIT_VOTE)
def unvote_feature_request(
    request: Request,
    feedback_id: int,
    db: Session = Depends(get_db),
    ctx: auth.PortalContext = Depends(auth.get_portal_context),
):
    return VoteService.portal_unvote(db, ctx.project.id, feedback_id, ctx.user.id)
