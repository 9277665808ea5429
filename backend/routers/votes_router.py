from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

import authentication.auth as auth
import models.schemas as schemas
from helpers.rate_limiter import limiter
from models.config import settings
from models.roles import Role
from repositories.database import get_db
from services.vote_service import VoteService

router = APIRouter(
    prefix="/projects/{project_id}/feedback/{feedback_id}/vote", tags=["votes"]
)


@router.post("", response_model=schemas.VoteResult)
@limiter.limit(settings.RATE_LIMIT_VOTE)
def vote(
    request: Request,
    feedback_id: int,
    db: Session = Depends(get_db),
    ctx: auth.ProjectContext = Depends(auth.require_project_role(Role.VIEWER)),
):
    """
    Vote on a feedback item as a team member.

    Voting twice is not an error: the second call returns the current count
    with has_voted true.
    """
    return VoteService.vote(db, ctx.project_id, feedback_id, ctx.user.id)


@router.delete("", response_model=schemas.VoteResult)
@limiter.limit(settings.RATE_LIMIT_VOTE)
def unvote(
    request: Request,
    feedback_id: int,
    db: Session = Depends(get_db),
    ctx: auth.ProjectContext = Depends(auth.require_project_role(Role.VIEWER)),
):
    """Remove the caller's team vote. Removing a missing vote is a no-op."""
    return VoteService.unvote(db, ctx.project_id, feedback_id, ctx.user.id)
