"""
Tags router for per-project feedback labels.
"""

from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

import authentication.auth as auth
import models.schemas as schemas
from models.roles import Role
from repositories.database import get_db
from services.tag_service import TagService

router = APIRouter(prefix="/projects/{project_id}/tags", tags=["tags"])


@router.get("", response_model=List[schemas.TagWithCount])
def list_tags(
    db: Session = Depends(get_db),
    ctx: auth.ProjectContext = Depends(auth.require_project_role(Role.VIEWER)),
):
    """List tags with the number of feedback items carrying each."""
    return TagService.list_tags(db, ctx.project_id)


@router.post("", response_model=schemas.Tag, status_code=status.HTTP_201_CREATED)
def create_tag(
    data: schemas.TagCreate,
    db: Session = Depends(get_db),
    ctx: auth.ProjectContext = Depends(auth.require_project_role(Role.MEMBER)),
):
    """
    Create a tag. The slug is derived from the name.

    Domain exceptions are caught by centralized exception handlers.
    """
    return TagService.create_tag(db, ctx.project_id, data)


@router.get("/{tag_id}", response_model=schemas.Tag)
def get_tag(
    tag_id: int,
    db: Session = Depends(get_db),
    ctx: auth.ProjectContext = Depends(auth.require_project_role(Role.VIEWER)),
):
    return TagService.get_tag(db, ctx.project_id, tag_id)


@router.patch("/{tag_id}", response_model=schemas.Tag)
def update_tag(
    tag_id: int,
    data: schemas.TagUpdate,
    db: Session = Depends(get_db),
    ctx: auth.ProjectContext = Depends(auth.require_project_role(Role.MEMBER)),
):
    return TagService.update_tag(db, ctx.project_id, tag_id, data)


@router.delete("/{tag_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_tag(
    tag_id: int,
    db: Session = Depends(get_db),
    ctx: auth.ProjectContext = Depends(auth.require_project_role(Role.MEMBER)),
) -> None:
    """Delete a tag and detach it from all feedback."""
    TagService.delete_tag(db, ctx.project_id, tag_id)
