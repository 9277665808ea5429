"""
Vote repositories for database operations.

Team votes and portal votes live in separate tables with the same shape:
one row per (feedback, user), enforced by a unique constraint.
"""

from typing import Generic, Optional, TypeVar

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

import repositories.db_models as db_models
from .base import BaseRepository

VoteModel = TypeVar("VoteModel", db_models.Vote, db_models.PortalVote)


class VoteTableRepository(BaseRepository[VoteModel], Generic[VoteModel]):
    """Operations shared by both vote tables. Nothing here commits."""

    def get_by_feedback_and_user(
        self, feedback_id: int, user_id: str
    ) -> Optional[VoteModel]:
        return (
            self.db.query(self.model)
            .filter(self.model.feedback_id == feedback_id, self.model.user_id == user_id)
            .first()
        )

    def exists(self, feedback_id: int, user_id: str) -> bool:
        return self.get_by_feedback_and_user(feedback_id, user_id) is not None

    def insert_if_absent(self, feedback_id: int, user_id: str) -> bool:
        """
        Insert a vote row, tolerating a concurrent or earlier identical vote.

        Returns:
            True if a new row was inserted
        """
        return self.insert_ignoring_conflict(
            {"feedback_id": feedback_id, "user_id": user_id},
            ["feedback_id", "user_id"],
        )

    def delete_by_feedback_and_user(self, feedback_id: int, user_id: str) -> bool:
        """
        Delete a vote row.

        Returns:
            True if a row was deleted, False if there was none
        """
        result = self.db.execute(
            delete(self.model).where(
                self.model.feedback_id == feedback_id, self.model.user_id == user_id
            )
        )
        return bool(result.rowcount)

    def count_for_feedback(self, feedback_id: int) -> int:
        return (
            self.db.query(self.model)
            .filter(self.model.feedback_id == feedback_id)
            .count()
        )

    def get_voted_feedback_ids(self, user_id: str, feedback_ids: list[int]) -> set[int]:
        """
        Batch lookup of which feedback items a user has voted on.

        Args:
            user_id: User ID
            feedback_ids: Candidate feedback IDs

        Returns:
            Set of feedback IDs with a vote from the user; absent means no vote
        """
        if not feedback_ids:
            return set()
        rows = self.db.execute(
            select(self.model.feedback_id).where(
                self.model.user_id == user_id,
                self.model.feedback_id.in_(feedback_ids),
            )
        )
        return {row[0] for row in rows}


class VoteRepository(VoteTableRepository[db_models.Vote]):
    """Repository for team-member votes."""

    def __init__(self, db: Session):
        super().__init__(db_models.Vote, db)

    def transfer_votes(self, source_id: int, canonical_id: int) -> tuple[int, int]:
        """
        Move team votes from a merged item to its canonical item.

        Rows whose user already voted on the canonical item are dropped so
        the (feedback, user) pair stays unique.

        Args:
            source_id: Feedback being merged away
            canonical_id: Feedback that absorbs the votes

        Returns:
            Tuple of (moved, dropped) row counts
        """
        canonical_voters = select(db_models.Vote.user_id).where(
            db_models.Vote.feedback_id == canonical_id
        )
        dropped = self.db.execute(
            delete(db_models.Vote)
            .where(
                db_models.Vote.feedback_id == source_id,
                db_models.Vote.user_id.in_(canonical_voters),
            )
            .execution_options(synchronize_session=False)
        ).rowcount
        moved = self.db.execute(
            update(db_models.Vote)
            .where(db_models.Vote.feedback_id == source_id)
            .values(feedback_id=canonical_id)
            .execution_options(synchronize_session=False)
        ).rowcount
        return moved or 0, dropped or 0


class PortalVoteRepository(VoteTableRepository[db_models.PortalVote]):
    """Repository for community votes cast through the portal."""

    def __init__(self, db: Session):
        super().__init__(db_models.PortalVote, db)
