from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

import authentication.auth as auth
import models.schemas as schemas
from models.roles import Role
from repositories.database import get_db
from services.sdk_token_service import SdkTokenService

router = APIRouter(prefix="/projects/{project_id}/sdk-tokens", tags=["sdk tokens"])


@router.post(
    "", response_model=schemas.SdkTokenCreated, status_code=status.HTTP_201_CREATED
)
def create_sdk_token(
    data: schemas.SdkTokenCreate,
    db: Session = Depends(get_db),
    ctx: auth.ProjectContext = Depends(auth.require_project_role(Role.ADMIN)),
):
    """
    Create an SDK token.

    The raw token is returned once; only its hash is stored.
    """
    return SdkTokenService.create_token(
        db,
        ctx.project_id,
        data.name,
        created_by=ctx.user.id,
        expires_in_days=data.expires_in_days,
    )


@router.get("", response_model=List[schemas.SdkToken])
def list_sdk_tokens(
    db: Session = Depends(get_db),
    ctx: auth.ProjectContext = Depends(auth.require_project_role(Role.ADMIN)),
):
    return SdkTokenService.list_tokens(db, ctx.project_id)


@router.delete("/{token_id}", status_code=status.HTTP_204_NO_CONTENT)
def revoke_sdk_token(
    token_id: int,
    db: Session = Depends(get_db),
    ctx: auth.ProjectContext = Depends(auth.require_project_role(Role.ADMIN)),
) -> None:
    SdkTokenService.revoke_token(db, ctx.project_id, token_id, actor_id=ctx.user.id)
