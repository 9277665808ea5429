"""
Feedback service for business logic.

Covers the feedback lifecycle: creation with identity and visibility rules,
role-aware reads with merge redirects, filtered listing and triage updates.
"""

from typing import Any, Optional

from loguru import logger
from sqlalchemy.orm import Session

import models.schemas as schemas
import repositories.db_models as db_models
from helpers.time_utils import utc_now
from models.exceptions import (
    AnonymousFeedbackDisabledException,
    FeedbackNotFoundException,
    MissingIdentityException,
    PermissionDeniedException,
    ValidationException,
)
from models.roles import Role, Visibility, is_visible_to, visible_tiers
from repositories.feedback_repository import FeedbackRepository
from repositories.tag_repository import TagRepository
from services.project_service import ProjectService
from services.vote_service import VoteService


class FeedbackService:
    """Service for feedback-related business logic."""

    @staticmethod
    def _resolve_tag_ids(db: Session, project_id: int, tag_ids: list[int]) -> list[int]:
        """
        Check that every requested tag belongs to the project.

        Raises:
            ValidationException: If a tag is unknown or foreign
        """
        unique_ids = sorted(set(tag_ids))
        found = {tag.id for tag in TagRepository(db).get_many(project_id, unique_ids)}
        missing = [tag_id for tag_id in unique_ids if tag_id not in found]
        if missing:
            raise ValidationException(
                f"Unknown tags: {missing}", fields={"tag_ids": "unknown tag"}
            )
        return unique_ids

    @staticmethod
    def create_feedback(
        db: Session,
        project: db_models.Project,
        title: str,
        description: str,
        type: db_models.FeedbackType = db_models.FeedbackType.GENERAL,
        severity: Optional[db_models.Severity] = None,
        visibility: Optional[Visibility] = None,
        source: str = "dashboard",
        source_metadata: Optional[dict[str, Any]] = None,
        author_id: Optional[str] = None,
        submitter_email: Optional[str] = None,
        submitter_name: Optional[str] = None,
        submitter_identifier: Optional[str] = None,
        sdk_user_id: Optional[int] = None,
        tag_ids: Optional[list[int]] = None,
    ) -> db_models.Feedback:
        """
        Create a feedback item.

        Args:
            db: Database session
            project: Owning project
            title: Title (1-200 characters)
            description: Body text
            type: bug, feature or general
            severity: Optional severity
            visibility: Explicit visibility; project default for the type if None
            source: dashboard, portal, sdk or sdk-<platform>
            source_metadata: Free-form client context (device, app version...)
            author_id: Authenticated author, if any
            submitter_email: Anonymous submitter email
            submitter_name: Anonymous submitter display name
            submitter_identifier: Anonymous submitter identifier
            sdk_user_id: SDK user that submitted the item
            tag_ids: Tags to attach

        Returns:
            Created feedback

        Raises:
            MissingIdentityException: If no identity channel is provided
            AnonymousFeedbackDisabledException: If anonymous feedback is off
            ValidationException: If an email is required but missing, or a tag is unknown
        """
        project_settings = ProjectService.settings_of(project)

        if not any((author_id, submitter_email, submitter_identifier, sdk_user_id)):
            raise MissingIdentityException()

        if author_id is None:
            if not project_settings.allow_anonymous_feedback:
                raise AnonymousFeedbackDisabledException()
            if project_settings.require_email_for_anonymous and not submitter_email:
                raise ValidationException(
                    "An email address is required for anonymous feedback",
                    fields={"email": "required"},
                )

        feedback = db_models.Feedback(
            project_id=project.id,
            title=title.strip(),
            description=description,
            type=type,
            status=db_models.FeedbackStatus.NEW,
            severity=severity,
            visibility=visibility or project_settings.visibility_for(type),
            source=source,
            source_metadata=source_metadata,
            author_id=author_id,
            submitter_email=submitter_email,
            submitter_name=submitter_name,
            submitter_identifier=submitter_identifier,
            sdk_user_id=sdk_user_id,
        )
        if tag_ids:
            for tag_id in FeedbackService._resolve_tag_ids(db, project.id, tag_ids):
                feedback.feedback_tags.append(db_models.FeedbackTag(tag_id=tag_id))

        feedback = FeedbackRepository(db).create(feedback)

        logger.info(
            f"Feedback {feedback.id} created in project {project.id} via {source}",
            extra={"type": type.value, "visibility": feedback.visibility.value},
        )
        return feedback

    @staticmethod
    def get_feedback(
        db: Session, project_id: int, feedback_id: int, role: Role
    ) -> tuple[db_models.Feedback, Optional[int]]:
        """
        Get a feedback item as seen by a role.

        A merged item is redirect-only: the canonical item is returned
        instead, together with the ID that was asked for.

        Args:
            db: Database session
            project_id: Project ID
            feedback_id: Requested feedback ID
            role: Caller's role in the project

        Returns:
            Tuple of (feedback, redirected_from); redirected_from is None
            unless a merge redirect happened

        Raises:
            FeedbackNotFoundException: If the item is not in the project
            PermissionDeniedException: If the role cannot see the item
        """
        feedback_repo = FeedbackRepository(db)

        feedback = feedback_repo.get_in_project(project_id, feedback_id)
        if feedback is None:
            raise FeedbackNotFoundException(f"Feedback {feedback_id} not found")

        redirected_from = None
        if feedback.is_merged:
            canonical = feedback_repo.get_in_project(project_id, feedback.canonical_id)
            if canonical is None:
                raise FeedbackNotFoundException(f"Feedback {feedback_id} not found")
            redirected_from = feedback.id
            feedback = canonical

        if not is_visible_to(feedback.visibility, role):
            raise PermissionDeniedException("You cannot view this feedback")

        return feedback, redirected_from

    @staticmethod
    def list_feedback(
        db: Session,
        project_id: int,
        role: Role,
        page: int = 1,
        per_page: int = 50,
        type: Optional[db_models.FeedbackType] = None,
        status: Optional[db_models.FeedbackStatus] = None,
        visibility: Optional[Visibility] = None,
        assigned_to: Optional[str] = None,
        tag_id: Optional[int] = None,
        search: Optional[str] = None,
        sort_by: str = "created_at",
        sort_desc: bool = True,
        voter_id: Optional[str] = None,
    ) -> schemas.FeedbackList:
        """
        List active feedback visible to a role.

        Merged items never appear. When voter_id is given, each item carries
        has_voted from one batch lookup of team votes.

        Returns:
            FeedbackList page
        """
        items, total = FeedbackRepository(db).list_filtered(
            project_id=project_id,
            visibilities=visible_tiers(role),
            type=type,
            status=status,
            visibility=visibility,
            assigned_to=assigned_to,
            tag_id=tag_id,
            search=search.strip() if search else None,
            sort_by=sort_by,
            sort_desc=sort_desc,
            skip=(page - 1) * per_page,
            limit=per_page,
        )

        voted: set[int] = set()
        if voter_id is not None:
            voted = VoteService.get_voted_feedback_ids(
                db, voter_id, [item.id for item in items]
            )

        results = []
        for item in items:
            result = schemas.Feedback.model_validate(item)
            if voter_id is not None:
                result.has_voted = item.id in voted
            results.append(result)

        return schemas.FeedbackList(
            items=results,
            total=total,
            page=page,
            per_page=per_page,
            total_pages=(total + per_page - 1) // per_page,
        )

    @staticmethod
    def update_feedback(
        db: Session,
        project_id: int,
        feedback_id: int,
        data: schemas.FeedbackUpdate,
        actor_id: str,
    ) -> db_models.Feedback:
        """
        Triage update: title, description, status, severity, visibility,
        assignee and tags.

        Entering a resolved status stamps resolved_at; leaving it clears it.
        Setting status to duplicate does not merge anything.

        Raises:
            FeedbackNotFoundException: If the item is not in the project
            ValidationException: If a tag is unknown
        """
        feedback_repo = FeedbackRepository(db)
        feedback = feedback_repo.get_in_project(project_id, feedback_id)
        if feedback is None:
            raise FeedbackNotFoundException(f"Feedback {feedback_id} not found")

        changes = data.model_dump(exclude_unset=True)

        if "title" in changes and data.title is not None:
            feedback.title = data.title.strip()
        if "description" in changes and data.description is not None:
            feedback.description = data.description
        if "severity" in changes:
            feedback.severity = data.severity
        if "visibility" in changes and data.visibility is not None:
            feedback.visibility = data.visibility
        if "assigned_to" in changes:
            feedback.assigned_to = data.assigned_to
        if "status" in changes and data.status is not None:
            previous_status = feedback.status
            feedback.status = data.status
            if data.status.is_resolved and not previous_status.is_resolved:
                feedback.resolved_at = utc_now()
            elif not data.status.is_resolved:
                feedback.resolved_at = None
        if "tag_ids" in changes and data.tag_ids is not None:
            tag_ids = FeedbackService._resolve_tag_ids(db, project_id, data.tag_ids)
            feedback_repo.set_tags(feedback, tag_ids)

        feedback = feedback_repo.update(feedback)

        logger.info(
            f"Feedback {feedback_id} updated",
            extra={"actor_id": actor_id, "fields": sorted(changes)},
        )
        return feedback
