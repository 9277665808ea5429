from typing import List

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

import authentication.auth as auth
import models.schemas as schemas
from helpers.rate_limiter import limiter
from models.config import settings
from repositories.database import get_db
from services.comment_service import CommentService

router = APIRouter(
    prefix="/projects/{project_id}/feedback/{feedback_id}/comments",
    tags=["comments"],
)


@router.get("", response_model=List[schemas.Comment])
def list_comments(
    feedback_id: int,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=200),
    db: Session = Depends(get_db),
    ctx: auth.ProjectContext = Depends(auth.get_project_role_optional),
):
    """
    List comments on a feedback item, oldest first.

    Deleted comments and comments the caller may not see are left out.
    """
    return CommentService.list_comments(
        db, ctx.project_id, feedback_id, ctx.role, skip=skip, limit=limit
    )


@router.post("", response_model=schemas.Comment, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.RATE_LIMIT_COMMENT)
def create_comment(
    request: Request,
    feedback_id: int,
    data: schemas.CommentCreate,
    db: Session = Depends(get_db),
    ctx: auth.ProjectContext = Depends(auth.get_project_role_optional),
):
    """
    Comment on a feedback item.

    Non-members may comment when the project allows community comments;
    their comments are always public.
    """
    return CommentService.create_comment(
        db, ctx.project_id, feedback_id, ctx.user.id, ctx.role, data
    )


@router.patch("/{comment_id}", response_model=schemas.Comment)
def update_comment(
    feedback_id: int,
    comment_id: int,
    data: schemas.CommentUpdate,
    db: Session = Depends(get_db),
    ctx: auth.ProjectContext = Depends(auth.get_project_role_optional),
):
    """Edit a comment. Authors only."""
    return CommentService.update_comment(
        db, ctx.project_id, feedback_id, comment_id, ctx.user.id, data.body
    )


@router.delete("/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_comment(
    feedback_id: int,
    comment_id: int,
    db: Session = Depends(get_db),
    ctx: auth.ProjectContext = Depends(auth.get_project_role_optional),
) -> None:
    """Delete a comment. Authors, admins and owners may delete."""
    CommentService.delete_comment(
        db, ctx.project_id, feedback_id, comment_id, ctx.user.id, ctx.role
    )
