"""
Projects router: create, list and administer projects.
"""

from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

import authentication.auth as auth
import models.schemas as schemas
from models.roles import Role
from repositories.database import get_db
from services.authorization_service import AuthorizationService
from services.project_service import ProjectService

router = APIRouter(prefix="/projects", tags=["projects"])


@router.post("", response_model=schemas.Project, status_code=status.HTTP_201_CREATED)
def create_project(
    data: schemas.ProjectCreate,
    db: Session = Depends(get_db),
    current_user: schemas.CurrentUser = Depends(auth.get_current_user),
):
    """
    Create a project. The caller becomes its owner.

    The slug is derived from the name when omitted.
    """
    return ProjectService.create_project(
        db, data, owner_id=current_user.id, owner_email=current_user.email
    )


@router.get("", response_model=List[schemas.ProjectWithRole])
def list_my_projects(
    db: Session = Depends(get_db),
    current_user: schemas.CurrentUser = Depends(auth.get_current_user),
):
    """List projects the caller is a member of, with the caller's role."""
    return [
        schemas.ProjectWithRole(
            **schemas.Project.model_validate(project).model_dump(),
            role=membership.role,
        )
        for project, membership in AuthorizationService.list_user_projects(
            db, current_user.id
        )
    ]


@router.get("/{project_id}", response_model=schemas.ProjectWithRole)
def get_project(
    ctx: auth.ProjectContext = Depends(auth.require_project_role(Role.VIEWER)),
):
    return schemas.ProjectWithRole(
        **schemas.Project.model_validate(ctx.project).model_dump(), role=ctx.role
    )


@router.patch("/{project_id}", response_model=schemas.Project)
def update_project(
    data: schemas.ProjectUpdate,
    db: Session = Depends(get_db),
    ctx: auth.ProjectContext = Depends(auth.require_project_role(Role.ADMIN)),
):
    """Update name, description or settings. Admin or owner only."""
    return ProjectService.update_project(db, ctx.project_id, data)


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_project(
    db: Session = Depends(get_db),
    ctx: auth.ProjectContext = Depends(auth.require_project_role(Role.OWNER)),
) -> None:
    """Delete a project and everything in it. Owner only."""
    ProjectService.delete_project(db, ctx.project_id, actor_id=ctx.user.id)
