"""
Feedback router: the team dashboard's view of a project's feedback.
"""

from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

import authentication.auth as auth
import models.schemas as schemas
import repositories.db_models as db_models
from helpers.pagination import Page, get_page_params
from models.roles import Role, Visibility, is_team_role
from repositories.database import get_db
from services.attachment_service import AttachmentService
from services.feedback_service import FeedbackService
from services.merge_service import MergeService
from services.sdk_identity_service import SdkIdentityService
from services.vote_service import VoteService

router = APIRouter(prefix="/projects/{project_id}/feedback", tags=["feedback"])


@router.post("", response_model=schemas.Feedback, status_code=status.HTTP_201_CREATED)
def create_feedback(
    data: schemas.FeedbackCreate,
    db: Session = Depends(get_db),
    ctx: auth.ProjectContext = Depends(auth.require_project_role(Role.MEMBER)),
):
    """Create feedback from the dashboard. The caller is the author."""
    return FeedbackService.create_feedback(
        db,
        ctx.project,
        title=data.title,
        description=data.description,
        type=data.type,
        severity=data.severity,
        visibility=data.visibility,
        source="dashboard",
        source_metadata=data.source_metadata,
        author_id=ctx.user.id,
        submitter_email=data.submitter_email,
        submitter_name=data.submitter_name,
        submitter_identifier=data.submitter_identifier,
        tag_ids=data.tag_ids,
    )


@router.get("", response_model=schemas.FeedbackList)
def list_feedback(
    type: Optional[db_models.FeedbackType] = None,
    feedback_status: Optional[db_models.FeedbackStatus] = Query(None, alias="status"),
    visibility: Optional[Visibility] = None,
    assigned_to: Optional[str] = None,
    tag_id: Optional[int] = None,
    search: Optional[str] = Query(None, max_length=200),
    sort_by: Literal["created_at", "updated_at", "vote_count"] = "created_at",
    order: Literal["asc", "desc"] = "desc",
    page: Page = Depends(get_page_params),
    db: Session = Depends(get_db),
    ctx: auth.ProjectContext = Depends(auth.get_project_role_optional),
):
    """
    List active feedback.

    Merged items are never listed. Non-members only see community items.
    """
    return FeedbackService.list_feedback(
        db,
        ctx.project_id,
        ctx.role,
        page=page.page,
        per_page=page.per_page,
        type=type,
        status=feedback_status,
        visibility=visibility,
        assigned_to=assigned_to,
        tag_id=tag_id,
        search=search,
        sort_by=sort_by,
        sort_desc=order == "desc",
        voter_id=ctx.user.id if is_team_role(ctx.role) else None,
    )


@router.get("/{feedback_id}", response_model=schemas.Feedback)
def get_feedback(
    feedback_id: int,
    db: Session = Depends(get_db),
    ctx: auth.ProjectContext = Depends(auth.get_project_role_optional),
):
    """
    Get one feedback item.

    A merged item answers with its canonical item; redirected_from then
    holds the requested ID.
    """
    feedback, redirected_from = FeedbackService.get_feedback(
        db, ctx.project_id, feedback_id, ctx.role
    )
    result = schemas.Feedback.model_validate(feedback)
    result.redirected_from = redirected_from
    if is_team_role(ctx.role):
        result.has_voted = VoteService.has_voted(db, feedback.id, ctx.user.id)
    return result


@router.patch("/{feedback_id}", response_model=schemas.Feedback)
def update_feedback(
    feedback_id: int,
    data: schemas.FeedbackUpdate,
    db: Session = Depends(get_db),
    ctx: auth.ProjectContext = Depends(auth.require_project_role(Role.MEMBER)),
):
    """Triage a feedback item: status, severity, visibility, assignee, tags."""
    return FeedbackService.update_feedback(
        db, ctx.project_id, feedback_id, data, actor_id=ctx.user.id
    )


@router.post("/{feedback_id}/merge", response_model=schemas.MergeResult)
def merge_feedback(
    feedback_id: int,
    data: schemas.MergeRequest,
    db: Session = Depends(get_db),
    ctx: auth.ProjectContext = Depends(auth.require_project_role(Role.MEMBER)),
):
    """
    Merge this item into data.canonical_id.

    Team votes move to the canonical item without double counting users
    who voted on both.
    """
    return MergeService.merge(
        db, ctx.project_id, feedback_id, data.canonical_id, actor_id=ctx.user.id
    )


@router.get("/{feedback_id}/duplicates", response_model=List[schemas.Feedback])
def list_duplicates(
    feedback_id: int,
    db: Session = Depends(get_db),
    ctx: auth.ProjectContext = Depends(auth.get_project_role_optional),
):
    """Items that were merged into this one."""
    return MergeService.list_duplicates(db, ctx.project_id, feedback_id, ctx.role)


@router.get("/{feedback_id}/attachments", response_model=List[schemas.Attachment])
def list_attachments(
    feedback_id: int,
    db: Session = Depends(get_db),
    ctx: auth.ProjectContext = Depends(auth.get_project_role_optional),
):
    """Attachments whose upload completed."""
    return AttachmentService.list_attachments(db, ctx.project_id, feedback_id, ctx.role)


identified_users_router = APIRouter(
    prefix="/projects/{project_id}/users", tags=["identified users"]
)


@identified_users_router.get("", response_model=schemas.SdkUserList)
def list_identified_users(
    page: Page = Depends(get_page_params),
    db: Session = Depends(get_db),
    ctx: auth.ProjectContext = Depends(auth.require_project_role(Role.VIEWER)),
):
    """Users identified through the SDK, most recently seen first."""
    items, total = SdkIdentityService.list_sdk_users(
        db, ctx.project_id, skip=page.skip, limit=page.per_page
    )
    return schemas.SdkUserList(
        items=[schemas.SdkUser.model_validate(item) for item in items],
        total=total,
        page=page.page,
        per_page=page.per_page,
        total_pages=page.total_pages(total),
    )


@identified_users_router.get(
    "/{sdk_user_id}/feedback", response_model=List[schemas.Feedback]
)
def list_identified_user_feedback(
    sdk_user_id: int,
    db: Session = Depends(get_db),
    ctx: auth.ProjectContext = Depends(auth.require_project_role(Role.VIEWER)),
):
    return SdkIdentityService.list_sdk_user_feedback(
        db, ctx.project_id, sdk_user_id, ctx.role
    )
