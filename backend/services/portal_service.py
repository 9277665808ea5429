"""
Portal service: the community-facing surface of a project.
"""

from typing import Optional

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

import models.schemas as schemas
import repositories.db_models as db_models
from models.exceptions import (
    CannotDeleteFeedbackException,
    FeedbackNotFoundException,
    NotFoundException,
)
from models.roles import Visibility, is_admin_or_owner, is_visible_to
from repositories.feedback_repository import FeedbackRepository
from repositories.portal_repository import PortalUserProfileRepository
from services.authorization_service import AuthorizationService
from services.feedback_service import FeedbackService
from services.project_service import ProjectService
from services.sdk_identity_service import SdkIdentityService
from services.vote_service import VoteService


class PortalService:
    """Portal profiles, access-time SDK linking and community feature requests."""

    @staticmethod
    def ensure_access(
        db: Session,
        project_id: int,
        user_id: str,
        email: Optional[str],
        email_verified: bool,
    ) -> db_models.PortalUserProfile:
        """
        Prepare a portal request for an authenticated user.

        Creates the user's portal profile on first access, then links SDK
        users that share the verified email. A failed link is logged and
        does not block the request.

        Args:
            db: Database session
            project_id: Project ID
            user_id: Authenticated user
            email: Email claim of the access token
            email_verified: Whether the identity provider verified the email

        Returns:
            The user's portal profile

        Raises:
            ProjectNotFoundException: If project not found
        """
        ProjectService.get_project(db, project_id)
        profile_repo = PortalUserProfileRepository(db)

        if profile_repo.ensure_exists(
            project_id,
            user_id,
            email,
            schemas.PortalNotificationPreferences().model_dump(),
        ):
            logger.info(f"Portal profile created for {user_id} in project {project_id}")
        profile_repo.commit()

        if email and email_verified:
            try:
                SdkIdentityService.link_sdk_users_by_email(db, user_id, project_id, email)
            except SQLAlchemyError as e:
                db.rollback()
                logger.error(
                    f"Failed to link SDK users for portal user {user_id}: {e}",
                    extra={"project_id": project_id},
                )

        profile = profile_repo.get_by_project_and_user(project_id, user_id)
        if profile is None:
            raise NotFoundException("Portal profile not found")
        return profile

    @staticmethod
    def update_notification_preferences(
        db: Session,
        profile: db_models.PortalUserProfile,
        preferences: schemas.PortalNotificationPreferences,
    ) -> db_models.PortalUserProfile:
        profile.notification_preferences = preferences.model_dump()
        return PortalUserProfileRepository(db).update(profile)

    @staticmethod
    def list_public_features(
        db: Session,
        project_id: int,
        page: int = 1,
        per_page: int = 20,
        user_id: Optional[str] = None,
    ) -> schemas.PortalFeedbackList:
        """
        Public feature requests of a project, most voted first.

        Args:
            db: Database session
            project_id: Project ID
            page: Page number (1-based)
            per_page: Items per page
            user_id: Portal user for has_voted; anonymous callers get False

        Returns:
            PortalFeedbackList page

        Raises:
            ProjectNotFoundException: If project not found
        """
        ProjectService.get_project(db, project_id)
        items, total = FeedbackRepository(db).list_public_features(
            project_id, skip=(page - 1) * per_page, limit=per_page
        )

        voted: set[int] = set()
        if user_id is not None:
            voted = VoteService.get_voted_feedback_ids(
                db, user_id, [item.id for item in items], portal=True
            )

        results = []
        for item in items:
            result = schemas.PortalFeedback.model_validate(item)
            result.has_voted = item.id in voted
            results.append(result)

        return schemas.PortalFeedbackList(
            items=results,
            total=total,
            page=page,
            per_page=per_page,
            total_pages=(total + per_page - 1) // per_page,
        )

    @staticmethod
    def create_feature_request(
        db: Session,
        project: db_models.Project,
        user_id: str,
        data: schemas.PortalFeatureRequestCreate,
    ) -> schemas.PortalFeedback:
        """
        Submit a feature request from the portal.

        The item is a community-visible feature authored by the portal user.
        """
        feedback = FeedbackService.create_feedback(
            db,
            project,
            title=data.title,
            description=data.description,
            type=db_models.FeedbackType.FEATURE,
            visibility=Visibility.COMMUNITY,
            source="portal",
            author_id=user_id,
        )
        return schemas.PortalFeedback.model_validate(feedback)

    @staticmethod
    def delete_feature_request(
        db: Session, project_id: int, feedback_id: int, user_id: str
    ) -> None:
        """
        Delete a feature request.

        Allowed for its author and for project admins and owners.

        Raises:
            FeedbackNotFoundException: If the item is not in the project, or
                is team-only and the caller is not on the team
            CannotDeleteFeedbackException: If the caller may not delete it
        """
        feedback_repo = FeedbackRepository(db)
        feedback = feedback_repo.get_in_project(project_id, feedback_id)
        if feedback is None:
            raise FeedbackNotFoundException(f"Feedback {feedback_id} not found")

        role = AuthorizationService.get_user_role(db, project_id, user_id)
        if not is_visible_to(feedback.visibility, role):
            raise FeedbackNotFoundException(f"Feedback {feedback_id} not found")
        if feedback.author_id != user_id and not is_admin_or_owner(role):
            raise CannotDeleteFeedbackException()

        feedback_repo.delete_with_dependents(feedback)

        logger.info(
            f"Feedback {feedback_id} deleted from the portal by {user_id}",
            extra={"project_id": project_id},
        )
