"""
Invite service for business logic.
"""

import secrets
from typing import List, Optional

from loguru import logger
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

import repositories.db_models as db_models
from helpers.time_utils import days_from_now, is_past, utc_now
from models.config import settings
from models.exceptions import (
    AlreadyMemberException,
    CannotAssignOwnerRoleException,
    InsufficientRoleException,
    InviteExpiredException,
    InviteNotFoundException,
    InviteNotPendingException,
    PendingInviteExistsException,
)
from models.roles import Role, can_manage_role
from repositories.invite_repository import InviteRepository
from repositories.membership_repository import MembershipRepository
from services.authorization_service import AuthorizationService

INVITE_TOKEN_BYTES = 32


class InviteService:
    """Service for project invitations."""

    @staticmethod
    def generate_token() -> str:
        """Return a 64-character hex invite token."""
        return secrets.token_hex(INVITE_TOKEN_BYTES)

    @staticmethod
    def create_invite(
        db: Session, project_id: int, email: str, role: Role, inviter_id: str
    ) -> db_models.Invite:
        """
        Invite someone to a project by email.

        Args:
            db: Database session
            project_id: Project ID
            email: Invitee email (stored lower-cased)
            role: Role granted on acceptance; never owner
            inviter_id: Inviting user (must be able to grant the role)

        Returns:
            Created invite, including its token

        Raises:
            CannotAssignOwnerRoleException: If role is owner
            NoMembershipException: If the inviter is not a member
            InsufficientRoleException: If the inviter cannot grant the role
            PendingInviteExistsException: If a pending invite exists for the email
        """
        if role == Role.OWNER:
            raise CannotAssignOwnerRoleException(
                "Invites cannot grant the owner role"
            )

        inviter = AuthorizationService.check_access(db, project_id, inviter_id, Role.ADMIN)
        if not can_manage_role(inviter.role, role):
            raise InsufficientRoleException(
                f"A {inviter.role.value} cannot invite a {role.value}"
            )

        invite_repo = InviteRepository(db)
        normalized_email = email.strip().lower()

        existing = invite_repo.get_pending_for_email(project_id, normalized_email)
        if existing is not None:
            if not is_past(existing.expires_at):
                raise PendingInviteExistsException()
            existing.status = db_models.InviteStatus.EXPIRED
            invite_repo.flush()

        invite = db_models.Invite(
            project_id=project_id,
            email=normalized_email,
            role=role,
            token=InviteService.generate_token(),
            status=db_models.InviteStatus.PENDING,
            invited_by=inviter_id,
            expires_at=days_from_now(settings.INVITE_EXPIRY_DAYS),
        )
        invite = invite_repo.create(invite)

        logger.info(
            f"Invite {invite.id} created for project {project_id} with role {role.value}",
            extra={"inviter_id": inviter_id},
        )
        return invite

    @staticmethod
    def list_invites(
        db: Session, project_id: int, status: Optional[db_models.InviteStatus] = None
    ) -> List[db_models.Invite]:
        return InviteRepository(db).list_by_project(project_id, status)

    @staticmethod
    def accept_invite(
        db: Session, token: str, user_id: str, email: Optional[str] = None
    ) -> db_models.Membership:
        """
        Accept an invite and join its project.

        If the user is already a member, the invite is marked accepted and
        the existing membership is returned unchanged.

        Args:
            db: Database session
            token: Invite token
            user_id: Accepting user
            email: Accepting user's email, kept on the membership

        Returns:
            The (new or existing) membership

        Raises:
            InviteNotFoundException: If the token is unknown
            InviteExpiredException: If the invite has expired
            InviteNotPendingException: If it was already accepted or revoked
        """
        invite_repo = InviteRepository(db)
        membership_repo = MembershipRepository(db)

        invite = invite_repo.get_by_token(token)
        if invite is None:
            raise InviteNotFoundException()

        if invite.status == db_models.InviteStatus.PENDING and is_past(invite.expires_at):
            invite.status = db_models.InviteStatus.EXPIRED
            invite_repo.commit()
        if invite.status == db_models.InviteStatus.EXPIRED:
            raise InviteExpiredException()
        if invite.status != db_models.InviteStatus.PENDING:
            raise InviteNotPendingException()

        membership = membership_repo.get_by_project_and_user(invite.project_id, user_id)
        if membership is None:
            membership = db_models.Membership(
                project_id=invite.project_id,
                user_id=user_id,
                email=email or invite.email,
                role=invite.role,
            )
            membership_repo.add(membership)

        invite.status = db_models.InviteStatus.ACCEPTED
        invite.accepted_at = utc_now()

        try:
            invite_repo.commit()
        except IntegrityError:
            invite_repo.rollback()
            raise AlreadyMemberException()

        membership_repo.refresh(membership)
        logger.info(
            f"Invite {invite.id} accepted by {user_id}",
            extra={"project_id": invite.project_id, "role": membership.role.value},
        )
        return membership

    @staticmethod
    def revoke_invite(
        db: Session, project_id: int, invite_id: int, actor_id: str
    ) -> db_models.Invite:
        """
        Revoke a pending invite.

        Raises:
            InviteNotFoundException: If the invite is not in the project
            InviteNotPendingException: If it is no longer pending
        """
        invite_repo = InviteRepository(db)
        invite = invite_repo.get_in_project(project_id, invite_id)
        if invite is None:
            raise InviteNotFoundException()
        if invite.status != db_models.InviteStatus.PENDING:
            raise InviteNotPendingException()

        invite.status = db_models.InviteStatus.REVOKED
        invite = invite_repo.update(invite)
        logger.info(f"Invite {invite_id} revoked", extra={"actor_id": actor_id})
        return invite
