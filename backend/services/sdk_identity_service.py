"""
SDK identity linker.

The SDK identifies end users with an integrator-supplied ID long before
they ever log in to the portal. When a portal user with a verified email
shows up, every unlinked SDK user of the project with the same email is
claimed for them, so their earlier submissions become visible under
"my feedback". A claim is permanent and never reassigned.
"""

import re
from typing import Any, List, Optional

from loguru import logger
from sqlalchemy.orm import Session

import models.schemas as schemas
import repositories.db_models as db_models
from helpers.time_utils import utc_now
from models.exceptions import SdkUserNotFoundException
from models.roles import Role, visible_tiers
from repositories.feedback_repository import FeedbackRepository
from repositories.sdk_user_repository import SdkUserRepository
from services.feedback_service import FeedbackService
from services.project_service import ProjectService
from services.vote_service import VoteService

_PLATFORM_RE = re.compile(r"[^a-z0-9]+")


def sdk_source(platform: Optional[str]) -> str:
    """
    Source label for SDK submissions ("sdk", or "sdk-ios" for platform "iOS").
    """
    if not platform:
        return "sdk"
    normalized = _PLATFORM_RE.sub("-", platform.lower()).strip("-")[:40]
    return f"sdk-{normalized}" if normalized else "sdk"


class SdkIdentityService:
    """SDK user identification, linking and linked-feedback lookups."""

    @staticmethod
    def identify(
        db: Session,
        project_id: int,
        external_id: str,
        email: Optional[str] = None,
        name: Optional[str] = None,
        traits: Optional[dict[str, Any]] = None,
    ) -> db_models.SdkUser:
        """
        Upsert an SDK user.

        Concurrent identify calls for the same (project, external_id) end up
        on one row. A null email or name keeps the stored value; traits are
        merged key by key.

        Args:
            db: Database session
            project_id: Project resolved from the SDK token
            external_id: Integrator's user identifier
            email: Optional email
            name: Optional display name
            traits: Optional custom attributes

        Returns:
            The SDK user
        """
        sdk_user_repo = SdkUserRepository(db)

        created = sdk_user_repo.ensure_exists(project_id, external_id)
        sdk_user = sdk_user_repo.get_by_external_id(
            project_id, external_id, for_update=True
        )

        if email is not None:
            sdk_user.email = email
        if name is not None:
            sdk_user.name = name
        if traits:
            sdk_user.traits = {**(sdk_user.traits or {}), **traits}
        sdk_user.last_seen_at = utc_now()

        sdk_user_repo.commit()
        sdk_user_repo.refresh(sdk_user)

        if created:
            logger.info(
                f"SDK user {sdk_user.id} identified in project {project_id}",
                extra={"has_email": sdk_user.email is not None},
            )
        return sdk_user

    @staticmethod
    def link_sdk_users_by_email(
        db: Session, portal_user_id: str, project_id: int, email: str
    ) -> int:
        """
        Link every unlinked SDK user with this email to the portal user.

        Safe to call on every portal request: once all matches are linked it
        finds nothing and returns 0.

        Args:
            db: Database session
            portal_user_id: Authenticated portal user
            project_id: Project ID
            email: Portal user's verified email (matched case-insensitively)

        Returns:
            Number of SDK users linked by this call
        """
        if not email:
            return 0

        linked = SdkUserRepository(db).link_by_email(project_id, portal_user_id, email)
        db.commit()

        if linked:
            logger.info(
                f"Linked {linked} SDK user(s) to portal user {portal_user_id}",
                extra={"project_id": project_id},
            )
        return linked

    @staticmethod
    def get_linked_feedback(
        db: Session, portal_user_id: str, project_id: int
    ) -> List[schemas.PortalFeedback]:
        """
        Feedback submitted through SDK users linked to the portal user.

        Includes feedback sent before the portal account existed. Merged
        items are left out; has_voted reflects portal votes.

        Returns:
            Feedback, newest first
        """
        items = FeedbackRepository(db).list_linked_to_user(project_id, portal_user_id)
        voted = VoteService.get_voted_feedback_ids(
            db, portal_user_id, [item.id for item in items], portal=True
        )

        results = []
        for item in items:
            result = schemas.PortalFeedback.model_validate(item)
            result.has_voted = item.id in voted
            results.append(result)
        return results

    @staticmethod
    def submit_feedback(
        db: Session,
        project_id: int,
        data: schemas.SdkFeedbackCreate,
        platform: Optional[str] = None,
    ) -> db_models.Feedback:
        """
        Create feedback sent by the SDK.

        When data.user_id is set, the SDK user is identified first and the
        feedback is attached to it.

        Raises:
            ProjectNotFoundException: If the token's project no longer exists
            MissingIdentityException: If neither user_id nor email is given
        """
        project = ProjectService.get_project(db, project_id)

        sdk_user_id = None
        if data.user_id:
            sdk_user = SdkIdentityService.identify(
                db, project_id, data.user_id, email=data.email, name=data.name
            )
            sdk_user_id = sdk_user.id

        return FeedbackService.create_feedback(
            db,
            project,
            title=data.title,
            description=data.description,
            type=data.type,
            severity=data.severity,
            source=sdk_source(platform),
            source_metadata=data.metadata,
            submitter_email=data.email,
            submitter_name=data.name,
            submitter_identifier=data.user_id,
            sdk_user_id=sdk_user_id,
        )

    @staticmethod
    def list_sdk_users(
        db: Session, project_id: int, skip: int = 0, limit: int = 50
    ) -> tuple[List[db_models.SdkUser], int]:
        return SdkUserRepository(db).list_by_project(project_id, skip, limit)

    @staticmethod
    def list_sdk_user_feedback(
        db: Session, project_id: int, sdk_user_id: int, role: Role
    ) -> List[db_models.Feedback]:
        """
        Active feedback of one identified user, filtered by what the role sees.

        Raises:
            SdkUserNotFoundException: If the SDK user is not in the project
        """
        if SdkUserRepository(db).get_in_project(project_id, sdk_user_id) is None:
            raise SdkUserNotFoundException()
        return FeedbackRepository(db).list_by_sdk_user(
            project_id, sdk_user_id, visible_tiers(role)
        )
