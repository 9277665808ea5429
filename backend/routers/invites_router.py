"""
Invites router: invite people to a project by email and accept invites.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

import authentication.auth as auth
import models.schemas as schemas
import repositories.db_models as db_models
from models.roles import Role
from repositories.database import get_db
from services.invite_service import InviteService

router = APIRouter(tags=["invites"])


@router.post(
    "/projects/{project_id}/invites",
    response_model=schemas.InviteWithToken,
    status_code=status.HTTP_201_CREATED,
)
def create_invite(
    data: schemas.InviteCreate,
    db: Session = Depends(get_db),
    ctx: auth.ProjectContext = Depends(auth.require_project_role(Role.ADMIN)),
):
    """
    Invite an email address to the project.

    The token is only returned here; share it with the invitee.
    """
    return InviteService.create_invite(
        db, ctx.project_id, data.email, data.role, inviter_id=ctx.user.id
    )


@router.get("/projects/{project_id}/invites", response_model=List[schemas.Invite])
def list_invites(
    invite_status: Optional[db_models.InviteStatus] = Query(None, alias="status"),
    db: Session = Depends(get_db),
    ctx: auth.ProjectContext = Depends(auth.require_project_role(Role.ADMIN)),
):
    return InviteService.list_invites(db, ctx.project_id, invite_status)


@router.delete(
    "/projects/{project_id}/invites/{invite_id}", response_model=schemas.Invite
)
def revoke_invite(
    invite_id: int,
    db: Session = Depends(get_db),
    ctx: auth.ProjectContext = Depends(auth.require_project_role(Role.ADMIN)),
):
    """Revoke a pending invite."""
    return InviteService.revoke_invite(
        db, ctx.project_id, invite_id, actor_id=ctx.user.id
    )


@router.post("/invites/{token}/accept", response_model=schemas.Membership)
def accept_invite(
    token: str,
    db: Session = Depends(get_db),
    current_user: schemas.CurrentUser = Depends(auth.get_current_user),
):
    """
    Accept an invite and join its project.

    Expired invites answer 410; accepted or revoked ones answer 400.
    """
    return InviteService.accept_invite(
        db, token, user_id=current_user.id, email=current_user.email
    )
