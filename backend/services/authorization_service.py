"""
Authorization gate.

Resolves (project, user) to a role and enforces the membership rules for
role changes and removals. Every mutating endpoint goes through here; the
rules below are the privilege boundary of the whole system.
"""

from typing import List, Optional

from loguru import logger
from sqlalchemy.orm import Session

import repositories.db_models as db_models
from models.exceptions import (
    CannotAssignOwnerRoleException,
    CannotChangeOwnerRoleException,
    CannotRemoveOwnerException,
    InsufficientRoleException,
    MemberNotFoundException,
    NoMembershipException,
)
from models.roles import (
    Role,
    can_manage_role,
    has_at_least,
    is_admin_or_owner,
    level,
)
from repositories.membership_repository import MembershipRepository
from repositories.project_repository import ProjectRepository


class AuthorizationService:
    """Membership lookups and role-change rules."""

    @staticmethod
    def get_membership(
        db: Session, project_id: int, user_id: str
    ) -> Optional[db_models.Membership]:
        """
        Get a user's membership in a project.

        Absence is a normal result ("not a member"), not an error.
        """
        return MembershipRepository(db).get_by_project_and_user(project_id, user_id)

    @staticmethod
    def get_user_role(db: Session, project_id: int, user_id: str) -> Role:
        """
        Resolve the effective role of a user in a project.

        Returns:
            The membership role, or Role.COMMUNITY for non-members
        """
        membership = AuthorizationService.get_membership(db, project_id, user_id)
        return membership.role if membership else Role.COMMUNITY

    @staticmethod
    def check_access(
        db: Session, project_id: int, user_id: str, required_role: Role
    ) -> db_models.Membership:
        """
        Require a membership with at least the given role.

        Args:
            db: Database session
            project_id: Project ID
            user_id: External user ID
            required_role: Minimum role

        Returns:
            The caller's membership

        Raises:
            NoMembershipException: If the user is not a member
            InsufficientRoleException: If the role is below required_role
        """
        membership = AuthorizationService.get_membership(db, project_id, user_id)
        if membership is None:
            raise NoMembershipException()
        if not has_at_least(membership.role, required_role):
            raise InsufficientRoleException(
                f"This action requires the {required_role.value} role or higher"
            )
        return membership

    @staticmethod
    def list_members(db: Session, project_id: int) -> List[db_models.Membership]:
        return MembershipRepository(db).list_by_project(project_id)

    @staticmethod
    def list_user_projects(
        db: Session, user_id: str
    ) -> List[tuple[db_models.Project, db_models.Membership]]:
        """Projects the user belongs to, paired with the user's membership."""
        return ProjectRepository(db).list_for_user(user_id)

    @staticmethod
    def update_role(
        db: Session,
        project_id: int,
        membership_id: int,
        new_role: Role,
        actor_id: str,
    ) -> db_models.Membership:
        """
        Change the role of a member.

        Rules, checked in order:
            - the owner's membership can never be changed
            - nobody can be made owner this way
            - the actor must be a member, admin or owner, and rank strictly
              above the role being granted

        Args:
            db: Database session
            project_id: Project ID
            membership_id: Membership being changed
            new_role: Role to grant
            actor_id: User performing the change

        Returns:
            Updated membership

        Raises:
            MemberNotFoundException: If the membership is not in the project
            CannotChangeOwnerRoleException: If the target is the owner
            CannotAssignOwnerRoleException: If new_role is owner
            NoMembershipException: If the actor is not a member
            InsufficientRoleException: If the actor may not grant new_role
        """
        membership_repo = MembershipRepository(db)

        target = membership_repo.get_in_project(project_id, membership_id)
        if target is None:
            raise MemberNotFoundException(f"Member {membership_id} not found")

        if target.role == Role.OWNER:
            raise CannotChangeOwnerRoleException()

        if new_role == Role.OWNER:
            raise CannotAssignOwnerRoleException()

        actor = membership_repo.get_by_project_and_user(project_id, actor_id)
        if actor is None:
            raise NoMembershipException()

        if not can_manage_role(actor.role, new_role):
            raise InsufficientRoleException(
                f"Role {actor.role.value} cannot grant the {new_role.value} role"
            )

        previous_role = target.role
        target.role = new_role
        membership_repo.update(target)

        logger.info(
            f"Role of member {target.user_id} in project {project_id} changed "
            f"from {previous_role.value} to {new_role.value}",
            extra={"actor_id": actor_id, "project_id": project_id},
        )
        return target

    @staticmethod
    def remove_member(
        db: Session, project_id: int, membership_id: int, actor_id: str
    ) -> None:
        """
        Remove a member from a project.

        A member can always remove themselves. Removing someone else requires
        admin or owner, and only members of a strictly lower role. The owner
        can never be removed.

        Raises:
            MemberNotFoundException: If the membership is not in the project
            CannotRemoveOwnerException: If the target is the owner
            NoMembershipException: If the actor is not a member
            InsufficientRoleException: If the actor may not remove the target
        """
        membership_repo = MembershipRepository(db)

        target = membership_repo.get_in_project(project_id, membership_id)
        if target is None:
            raise MemberNotFoundException(f"Member {membership_id} not found")

        if target.role == Role.OWNER:
            raise CannotRemoveOwnerException()

        actor = membership_repo.get_by_project_and_user(project_id, actor_id)
        if actor is None:
            raise NoMembershipException()

        if actor.id != target.id:
            if not is_admin_or_owner(actor.role):
                raise InsufficientRoleException(
                    "Only admins and owners can remove other members"
                )
            if level(actor.role) <= level(target.role):
                raise InsufficientRoleException(
                    f"Role {actor.role.value} cannot remove "
                    f"a member with role {target.role.value}"
                )

        removed_user_id = target.user_id
        self_removal = actor.id == target.id
        membership_repo.delete(target)

        logger.info(
            f"Member {removed_user_id} removed from project {project_id}",
            extra={
                "actor_id": actor_id,
                "project_id": project_id,
                "self_removal": self_removal,
            },
        )
