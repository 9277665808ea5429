"""
Members router: project membership and role management.

Role rules live in AuthorizationService; these endpoints only resolve the
caller and hand over.
"""

from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

import authentication.auth as auth
import models.schemas as schemas
from models.roles import Role
from repositories.database import get_db
from services.authorization_service import AuthorizationService

router = APIRouter(prefix="/projects/{project_id}/members", tags=["members"])


@router.get("", response_model=List[schemas.Membership])
def list_members(
    db: Session = Depends(get_db),
    ctx: auth.ProjectContext = Depends(auth.require_project_role(Role.VIEWER)),
):
    return AuthorizationService.list_members(db, ctx.project_id)


@router.patch("/{membership_id}", response_model=schemas.Membership)
def update_member_role(
    membership_id: int,
    data: schemas.MembershipRoleUpdate,
    db: Session = Depends(get_db),
    ctx: auth.ProjectContext = Depends(auth.require_project_role(Role.VIEWER)),
):
    """
    Change a member's role.

    The owner's role cannot change, nobody can be made owner, and the caller
    must rank strictly above the role being granted.
    """
    return AuthorizationService.update_role(
        db, ctx.project_id, membership_id, data.role, actor_id=ctx.user.id
    )


@router.delete("/{membership_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_member(
    membership_id: int,
    db: Session = Depends(get_db),
    ctx: auth.ProjectContext = Depends(auth.require_project_role(Role.VIEWER)),
) -> None:
    """Remove a member. Any member may remove themselves."""
    AuthorizationService.remove_member(
        db, ctx.project_id, membership_id, actor_id=ctx.user.id
    )
