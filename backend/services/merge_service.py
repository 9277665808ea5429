"""
Merge engine.

Collapses a duplicate feedback item (the source) into a canonical item.
Merges are single-hop: a source points at a canonical item that is itself
not merged, and merged items can be neither merged again nor merged into.
"""

from loguru import logger
from sqlalchemy.orm import Session

import models.schemas as schemas
import repositories.db_models as db_models
from helpers.time_utils import utc_now
from models.exceptions import (
    CannotMergeSelfException,
    FeedbackNotFoundException,
    MergeNotAllowedException,
    PermissionDeniedException,
)
from models.roles import Role, is_visible_to, visible_tiers
from repositories.feedback_repository import FeedbackRepository
from repositories.vote_repository import VoteRepository
from services.project_service import ProjectService


class MergeService:
    """Service for merging duplicate feedback."""

    @staticmethod
    def merge(
        db: Session,
        project_id: int,
        source_id: int,
        canonical_id: int,
        actor_id: str,
    ) -> schemas.MergeResult:
        """
        Merge source into canonical in one transaction.

        Steps:
            1. lock both rows (lower id first, so concurrent merges of the
               same pair cannot deadlock)
            2. point source.canonical_id at the canonical item
            3. move source team votes to the canonical item, dropping those
               whose user already voted there
            4. recount both items
            5. close the source as duplicate if the project auto-closes
               duplicates

        Args:
            db: Database session
            project_id: Project both items must belong to
            source_id: Duplicate being merged away
            canonical_id: Item that absorbs it
            actor_id: User performing the merge

        Returns:
            MergeResult with both items and the vote transfer counts

        Raises:
            CannotMergeSelfException: If source_id == canonical_id
            FeedbackNotFoundException: If either item is not in the project
            MergeNotAllowedException: If either item is already merged
        """
        if source_id == canonical_id:
            raise CannotMergeSelfException()

        feedback_repo = FeedbackRepository(db)
        locked = {
            feedback_id: feedback_repo.get_for_update(feedback_id)
            for feedback_id in sorted((source_id, canonical_id))
        }
        source = locked[source_id]
        canonical = locked[canonical_id]

        for feedback_id, feedback in ((source_id, source), (canonical_id, canonical)):
            if feedback is None or feedback.project_id != project_id:
                db.rollback()
                raise FeedbackNotFoundException(f"Feedback {feedback_id} not found")

        if source.is_merged:
            db.rollback()
            raise MergeNotAllowedException(
                f"Feedback {source_id} is already merged into {source.canonical_id}"
            )
        if canonical.is_merged:
            db.rollback()
            raise MergeNotAllowedException(
                f"Feedback {canonical_id} is merged into {canonical.canonical_id} "
                "and cannot be a merge target"
            )

        try:
            source.canonical_id = canonical.id

            project_settings = ProjectService.settings_of(source.project)
            if project_settings.auto_close_duplicates:
                source.status = db_models.FeedbackStatus.DUPLICATE
                if source.resolved_at is None:
                    source.resolved_at = utc_now()
            db.flush()

            moved, dropped = VoteRepository(db).transfer_votes(source.id, canonical.id)
            feedback_repo.recount_votes(canonical.id)
            feedback_repo.recount_votes(source.id)
            db.commit()
        except Exception:
            db.rollback()
            raise

        db.refresh(source)
        db.refresh(canonical)

        logger.info(
            f"Feedback {source_id} merged into {canonical_id} "
            f"({moved} votes moved, {dropped} duplicate votes dropped)",
            extra={"actor_id": actor_id, "project_id": project_id},
        )

        return schemas.MergeResult(
            source=schemas.Feedback.model_validate(source),
            canonical=schemas.Feedback.model_validate(canonical),
            votes_moved=moved,
            votes_dropped=dropped,
        )

    @staticmethod
    def list_duplicates(
        db: Session, project_id: int, feedback_id: int, role: Role
    ) -> list[db_models.Feedback]:
        """
        List the items merged into a canonical item.

        Raises:
            FeedbackNotFoundException: If the item is not in the project
            MergeNotAllowedException: If the item is itself merged
            PermissionDeniedException: If the role cannot see the item
        """
        feedback = FeedbackRepository(db).get_in_project(project_id, feedback_id)
        if feedback is None:
            raise FeedbackNotFoundException(f"Feedback {feedback_id} not found")
        if feedback.is_merged:
            raise MergeNotAllowedException(
                f"Feedback {feedback_id} is merged into {feedback.canonical_id} "
                "and has no duplicates of its own"
            )
        if not is_visible_to(feedback.visibility, role):
            raise PermissionDeniedException("You cannot view this feedback")

        return FeedbackRepository(db).list_merged_into(feedback.id, visible_tiers(role))
