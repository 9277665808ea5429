"""
Vote aggregator.

Team votes and portal votes are stored in two tables and summed into
Feedback.vote_count. Every change to either table locks the feedback row,
applies a conflict-tolerant insert or a delete, and rewrites the counter
from the rows in the same transaction. The counter is never incremented
or decremented in place.
"""

from typing import Callable

from loguru import logger
from sqlalchemy.orm import Session

import models.schemas as schemas
import repositories.db_models as db_models
from models.exceptions import (
    FeedbackMergedException,
    FeedbackNotFoundException,
    PermissionDeniedException,
    VotingDisabledException,
)
from models.roles import Visibility
from repositories.feedback_repository import FeedbackRepository
from repositories.vote_repository import (
    PortalVoteRepository,
    VoteRepository,
    VoteTableRepository,
)
from services.project_service import ProjectService


class VoteService:
    """Service for vote-related business logic."""

    @staticmethod
    def _lock_votable_feedback(
        db: Session, project_id: int, feedback_id: int
    ) -> db_models.Feedback:
        feedback = FeedbackRepository(db).get_for_update(feedback_id)
        if feedback is None or feedback.project_id != project_id:
            db.rollback()
            raise FeedbackNotFoundException(f"Feedback {feedback_id} not found")
        if feedback.is_merged:
            db.rollback()
            raise FeedbackMergedException(feedback.id, feedback.canonical_id)
        return feedback

    @staticmethod
    def _apply(
        db: Session,
        feedback: db_models.Feedback,
        user_id: str,
        change: Callable[[int, str], bool],
        kind: str,
    ) -> bool:
        """Run one vote-table mutation and recount if it changed anything."""
        changed = change(feedback.id, user_id)
        if changed:
            vote_count = FeedbackRepository(db).recount_votes(feedback.id)
            logger.debug(
                f"{kind} on feedback {feedback.id} by {user_id}, vote_count={vote_count}"
            )
        db.commit()
        return changed

    @staticmethod
    def _result(
        db: Session, feedback_id: int, repo: VoteTableRepository, user_id: str
    ) -> schemas.VoteResult:
        feedback = FeedbackRepository(db).get_by_id(feedback_id)
        db.refresh(feedback)
        return schemas.VoteResult(
            feedback_id=feedback_id,
            vote_count=feedback.vote_count,
            has_voted=repo.exists(feedback_id, user_id),
        )

    @staticmethod
    def vote(
        db: Session, project_id: int, feedback_id: int, user_id: str
    ) -> schemas.VoteResult:
        """
        Cast a team vote. Voting twice is a no-op that reports has_voted=True.

        Args:
            db: Database session
            project_id: Project ID
            feedback_id: Feedback ID
            user_id: Voting team member

        Returns:
            Current vote state

        Raises:
            FeedbackNotFoundException: If feedback is not in the project
            FeedbackMergedException: If feedback was merged into another item
        """
        feedback = VoteService._lock_votable_feedback(db, project_id, feedback_id)
        vote_repo = VoteRepository(db)
        VoteService._apply(db, feedback, user_id, vote_repo.insert_if_absent, "vote")
        return VoteService._result(db, feedback_id, vote_repo, user_id)

    @staticmethod
    def unvote(
        db: Session, project_id: int, feedback_id: int, user_id: str
    ) -> schemas.VoteResult:
        """
        Withdraw a team vote. Withdrawing a vote that does not exist is a
        no-op that reports has_voted=False.

        Raises:
            FeedbackNotFoundException: If feedback is not in the project
            FeedbackMergedException: If feedback was merged into another item
        """
        feedback = VoteService._lock_votable_feedback(db, project_id, feedback_id)
        vote_repo = VoteRepository(db)
        VoteService._apply(
            db, feedback, user_id, vote_repo.delete_by_feedback_and_user, "unvote"
        )
        return VoteService._result(db, feedback_id, vote_repo, user_id)

    @staticmethod
    def _check_portal_votable(db: Session, feedback: db_models.Feedback) -> None:
        project_settings = ProjectService.settings_of(feedback.project)
        if not project_settings.voting_enabled:
            db.rollback()
            raise VotingDisabledException()
        if feedback.visibility != Visibility.COMMUNITY:
            db.rollback()
            raise PermissionDeniedException("This feedback is not public")

    @staticmethod
    def portal_vote(
        db: Session, project_id: int, feedback_id: int, user_id: str
    ) -> schemas.VoteResult:
        """
        Cast a community vote from the portal.

        Raises:
            FeedbackNotFoundException: If feedback is not in the project
            FeedbackMergedException: If feedback was merged into another item
            VotingDisabledException: If the project turned voting off
            PermissionDeniedException: If the feedback is team-only
        """
        feedback = VoteService._lock_votable_feedback(db, project_id, feedback_id)
        VoteService._check_portal_votable(db, feedback)
        portal_repo = PortalVoteRepository(db)
        VoteService._apply(
            db, feedback, user_id, portal_repo.insert_if_absent, "portal vote"
        )
        return VoteService._result(db, feedback_id, portal_repo, user_id)

    @staticmethod
    def portal_unvote(
        db: Session, project_id: int, feedback_id: int, user_id: str
    ) -> schemas.VoteResult:
        """Withdraw a community vote. Idempotent like unvote."""
        feedback = VoteService._lock_votable_feedback(db, project_id, feedback_id)
        VoteService._check_portal_votable(db, feedback)
        portal_repo = PortalVoteRepository(db)
        VoteService._apply(
            db,
            feedback,
            user_id,
            portal_repo.delete_by_feedback_and_user,
            "portal unvote",
        )
        return VoteService._result(db, feedback_id, portal_repo, user_id)

    @staticmethod
    def has_voted(
        db: Session, feedback_id: int, user_id: str, portal: bool = False
    ) -> bool:
        repo = PortalVoteRepository(db) if portal else VoteRepository(db)
        return repo.exists(feedback_id, user_id)

    @staticmethod
    def get_voted_feedback_ids(
        db: Session, user_id: str, feedback_ids: list[int], portal: bool = False
    ) -> set[int]:
        """
        Batch has-voted lookup for list views.

        Args:
            db: Database session
            user_id: User ID
            feedback_ids: Feedback IDs on the current page
            portal: Look at portal votes instead of team votes

        Returns:
            IDs the user voted on; anything absent was not voted on
        """
        repo = PortalVoteRepository(db) if portal else VoteRepository(db)
        return repo.get_voted_feedback_ids(user_id, feedback_ids)

    @staticmethod
    def recount(db: Session, feedback_id: int) -> int:
        """
        Rewrite vote_count from the vote tables and commit.

        Raises:
            FeedbackNotFoundException: If feedback does not exist
        """
        feedback_repo = FeedbackRepository(db)
        if feedback_repo.get_for_update(feedback_id) is None:
            db.rollback()
            raise FeedbackNotFoundException(f"Feedback {feedback_id} not found")
        vote_count = feedback_repo.recount_votes(feedback_id)
        db.commit()
        return vote_count
