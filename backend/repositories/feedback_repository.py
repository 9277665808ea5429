"""
Feedback repository for database operations.
"""

from typing import Optional

from sqlalchemy import func, or_, select, update
from sqlalchemy.orm import Session, selectinload

import repositories.db_models as db_models
from models.roles import Visibility
from .base import BaseRepository

SORT_COLUMNS = {
    "created_at": db_models.Feedback.created_at,
    "updated_at": db_models.Feedback.updated_at,
    "vote_count": db_models.Feedback.vote_count,
}


class FeedbackRepository(BaseRepository[db_models.Feedback]):
    """Repository for Feedback entity database operations."""

    def __init__(self, db: Session):
        super().__init__(db_models.Feedback, db)

    def get_in_project(
        self, project_id: int, feedback_id: int
    ) -> Optional[db_models.Feedback]:
        """
        Get a feedback item only if it belongs to the project.

        Merged items are returned too; callers decide how to redirect.
        """
        return (
            self.db.query(db_models.Feedback)
            .options(selectinload(db_models.Feedback.tags))
            .filter(
                db_models.Feedback.id == feedback_id,
                db_models.Feedback.project_id == project_id,
            )
            .first()
        )

    def list_filtered(
        self,
        project_id: int,
        visibilities: list[Visibility],
        type: Optional[db_models.FeedbackType] = None,
        status: Optional[db_models.FeedbackStatus] = None,
        visibility: Optional[Visibility] = None,
        assigned_to: Optional[str] = None,
        tag_id: Optional[int] = None,
        search: Optional[str] = None,
        sort_by: str = "created_at",
        sort_desc: bool = True,
        skip: int = 0,
        limit: int = 50,
    ) -> tuple[list[db_models.Feedback], int]:
        """
        List active (non-merged) feedback of a project.

        Args:
            project_id: Project ID
            visibilities: Visibility tiers the caller may read
            type: Optional type filter
            status: Optional status filter
            visibility: Optional visibility filter (intersected with visibilities)
            assigned_to: Optional assignee user ID
            tag_id: Optional tag filter
            search: Case-insensitive substring on title and description
            sort_by: created_at, updated_at or vote_count
            sort_desc: Descending order when True
            skip: Number of records to skip
            limit: Maximum number of records to return

        Returns:
            Tuple of (items, total matching count)
        """
        query = self.db.query(db_models.Feedback).filter(
            db_models.Feedback.project_id == project_id,
            db_models.Feedback.canonical_id.is_(None),
            db_models.Feedback.visibility.in_(visibilities),
        )

        if type is not None:
            query = query.filter(db_models.Feedback.type == type)
        if status is not None:
            query = query.filter(db_models.Feedback.status == status)
        if visibility is not None:
            query = query.filter(db_models.Feedback.visibility == visibility)
        if assigned_to is not None:
            query = query.filter(db_models.Feedback.assigned_to == assigned_to)
        if tag_id is not None:
            query = query.filter(
                db_models.Feedback.id.in_(
                    select(db_models.FeedbackTag.feedback_id).where(
                        db_models.FeedbackTag.tag_id == tag_id
                    )
                )
            )
        if search:
            pattern = f"%{search.lower()}%"
            query = query.filter(
                or_(
                    func.lower(db_models.Feedback.title).like(pattern),
                    func.lower(db_models.Feedback.description).like(pattern),
                )
            )

        total = query.count()

        column = SORT_COLUMNS.get(sort_by, db_models.Feedback.created_at)
        order = column.desc() if sort_desc else column.asc()
        tiebreak = (
            db_models.Feedback.id.desc() if sort_desc else db_models.Feedback.id.asc()
        )
        items = (
            query.options(selectinload(db_models.Feedback.tags))
            .order_by(order, tiebreak)
            .offset(skip)
            .limit(limit)
            .all()
        )
        return items, total

    def list_public_features(
        self, project_id: int, skip: int = 0, limit: int = 20
    ) -> tuple[list[db_models.Feedback], int]:
        """
        Feature requests shown on the community portal, most voted first.

        Returns:
            Tuple of (items, total count)
        """
        query = self.db.query(db_models.Feedback).filter(
            db_models.Feedback.project_id == project_id,
            db_models.Feedback.type == db_models.FeedbackType.FEATURE,
            db_models.Feedback.visibility == Visibility.COMMUNITY,
            db_models.Feedback.canonical_id.is_(None),
        )
        total = query.count()
        items = (
            query.order_by(
                db_models.Feedback.vote_count.desc(),
                db_models.Feedback.created_at.desc(),
                db_models.Feedback.id.desc(),
            )
            .offset(skip)
            .limit(limit)
            .all()
        )
        return items, total

    def list_linked_to_user(
        self, project_id: int, user_id: str
    ) -> list[db_models.Feedback]:
        """
        Active feedback submitted through SDK users linked to a portal user.

        Args:
            project_id: Project ID
            user_id: Portal user ID stored in sdk_users.linked_user_id

        Returns:
            Feedback items, newest first
        """
        linked_sdk_users = select(db_models.SdkUser.id).where(
            db_models.SdkUser.project_id == project_id,
            db_models.SdkUser.linked_user_id == user_id,
        )
        return (
            self.db.query(db_models.Feedback)
            .filter(
                db_models.Feedback.project_id == project_id,
                db_models.Feedback.canonical_id.is_(None),
                db_models.Feedback.sdk_user_id.in_(linked_sdk_users),
            )
            .order_by(db_models.Feedback.created_at.desc(), db_models.Feedback.id.desc())
            .all()
        )

    def recount_votes(self, feedback_id: int) -> int:
        """
        Recompute vote_count from both vote tables in a single statement.

        vote_count = count(team votes) + count(portal votes). The write is
        not committed; the caller owns the transaction.

        Args:
            feedback_id: Feedback ID

        Returns:
            The new vote count
        """
        team_votes = (
            select(func.count(db_models.Vote.id))
            .where(db_models.Vote.feedback_id == feedback_id)
            .scalar_subquery()
        )
        portal_votes = (
            select(func.count(db_models.PortalVote.id))
            .where(db_models.PortalVote.feedback_id == feedback_id)
            .scalar_subquery()
        )
        self.db.execute(
            update(db_models.Feedback)
            .where(db_models.Feedback.id == feedback_id)
            .values(vote_count=team_votes + portal_votes)
            .execution_options(synchronize_session=False)
        )
        return (
            self.db.scalar(
                select(db_models.Feedback.vote_count).where(
                    db_models.Feedback.id == feedback_id
                )
            )
            or 0
        )

    def recount_comments(self, feedback_id: int) -> int:
        """
        Recompute comment_count from non-deleted comments.

        Returns:
            The new comment count
        """
        live_comments = (
            select(func.count(db_models.Comment.id))
            .where(
                db_models.Comment.feedback_id == feedback_id,
                db_models.Comment.deleted_at.is_(None),
            )
            .scalar_subquery()
        )
        self.db.execute(
            update(db_models.Feedback)
            .where(db_models.Feedback.id == feedback_id)
            .values(comment_count=live_comments)
            .execution_options(synchronize_session=False)
        )
        return (
            self.db.scalar(
                select(db_models.Feedback.comment_count).where(
                    db_models.Feedback.id == feedback_id
                )
            )
            or 0
        )

    def set_tags(self, feedback: db_models.Feedback, tag_ids: list[int]) -> None:
        """
        Replace the tag set of a feedback item (no commit).

        Args:
            feedback: Feedback entity
            tag_ids: IDs of the tags to keep, already validated for the project
        """
        wanted = set(tag_ids)
        for link in list(feedback.feedback_tags):
            if link.tag_id in wanted:
                wanted.discard(link.tag_id)
            else:
                feedback.feedback_tags.remove(link)
        for tag_id in sorted(wanted):
            feedback.feedback_tags.append(db_models.FeedbackTag(tag_id=tag_id))

    def list_by_sdk_user(
        self, project_id: int, sdk_user_id: int, visibilities: list[Visibility]
    ) -> list[db_models.Feedback]:
        """Active feedback submitted by one SDK user, newest first."""
        return (
            self.db.query(db_models.Feedback)
            .filter(
                db_models.Feedback.project_id == project_id,
                db_models.Feedback.sdk_user_id == sdk_user_id,
                db_models.Feedback.canonical_id.is_(None),
                db_models.Feedback.visibility.in_(visibilities),
            )
            .order_by(db_models.Feedback.created_at.desc(), db_models.Feedback.id.desc())
            .all()
        )

    def list_merged_into(
        self, canonical_id: int, visibilities: list[Visibility]
    ) -> list[db_models.Feedback]:
        """Items merged into a canonical item, oldest merge source first."""
        return (
            self.db.query(db_models.Feedback)
            .filter(
                db_models.Feedback.canonical_id == canonical_id,
                db_models.Feedback.visibility.in_(visibilities),
            )
            .order_by(db_models.Feedback.created_at.asc(), db_models.Feedback.id.asc())
            .all()
        )

    def delete_with_dependents(self, feedback: db_models.Feedback) -> None:
        """
        Delete a feedback item and commit.

        Votes, comments and tag links go with it. Items merged into it are
        unmerged, matching ON DELETE SET NULL on canonical_id.
        """
        self.db.execute(
            update(db_models.Feedback)
            .where(db_models.Feedback.canonical_id == feedback.id)
            .values(canonical_id=None)
            .execution_options(synchronize_session=False)
        )
        self.db.delete(feedback)
        self.db.commit()
