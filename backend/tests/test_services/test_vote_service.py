"""Tests for VoteService: team votes, portal votes and the vote counter."""

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest
from sqlalchemy.orm import sessionmaker

import repositories.db_models as db_models
from conftest import ADMIN_ID, MEMBER_ID, VIEWER_ID, make_feedback, make_project
from models.exceptions import (
    FeedbackMergedException,
    FeedbackNotFoundException,
    PermissionDeniedException,
    VotingDisabledException,
)
from models.roles import Visibility
from repositories.database import Base, create_db_engine
from services.merge_service import MergeService
from services.vote_service import VoteService


def stored_vote_rows(db, feedback_id: int) -> int:
    team = db.query(db_models.Vote).filter(db_models.Vote.feedback_id == feedback_id)
    portal = db.query(db_models.PortalVote).filter(
        db_models.PortalVote.feedback_id == feedback_id
    )
    return team.count() + portal.count()


def stored_vote_count(db, feedback_id: int) -> int:
    feedback = db.get(db_models.Feedback, feedback_id)
    db.refresh(feedback)
    return feedback.vote_count


class TestTeamVotes:
    def test_vote_creates_row_and_counts(self, db_session, project, feature):
        result = VoteService.vote(db_session, project.id, feature.id, MEMBER_ID)

        assert result.has_voted is True
        assert result.vote_count == 1
        assert stored_vote_count(db_session, feature.id) == 1

    def test_double_vote_is_idempotent(self, db_session, project, feature):
        VoteService.vote(db_session, project.id, feature.id, MEMBER_ID)
        result = VoteService.vote(db_session, project.id, feature.id, MEMBER_ID)

        assert result.has_voted is True
        assert result.vote_count == 1
        assert stored_vote_rows(db_session, feature.id) == 1

    def test_unvote_removes_vote(self, db_session, project, feature):
        VoteService.vote(db_session, project.id, feature.id, MEMBER_ID)
        result = VoteService.unvote(db_session, project.id, feature.id, MEMBER_ID)

        assert result.has_voted is False
        assert result.vote_count == 0

    def test_unvote_without_vote_is_noop(self, db_session, project, feature):
        result = VoteService.unvote(db_session, project.id, feature.id, MEMBER_ID)

        assert result.has_voted is False
        assert result.vote_count == 0

    def test_team_only_feedback_accepts_team_votes(self, db_session, project):
        bug = make_feedback(
            db_session,
            project,
            type=db_models.FeedbackType.BUG,
            visibility=Visibility.TEAM_ONLY,
        )
        result = VoteService.vote(db_session, project.id, bug.id, VIEWER_ID)
        assert result.vote_count == 1

    def test_feedback_from_other_project_is_not_found(self, db_session, project):
        other = make_project(db_session, name="Other", owner_id="someone-else")
        foreign = make_feedback(db_session, other)

        with pytest.raises(FeedbackNotFoundException):
            VoteService.vote(db_session, project.id, foreign.id, MEMBER_ID)

    def test_unknown_feedback_is_not_found(self, db_session, project):
        with pytest.raises(FeedbackNotFoundException):
            VoteService.vote(db_session, project.id, 4242, MEMBER_ID)

    def test_voting_on_merged_item_is_rejected(self, db_session, project, feature):
        canonical = make_feedback(db_session, project, title="Night theme")
        MergeService.merge(db_session, project.id, feature.id, canonical.id, MEMBER_ID)

        with pytest.raises(FeedbackMergedException) as exc_info:
            VoteService.vote(db_session, project.id, feature.id, VIEWER_ID)

        assert exc_info.value.canonical_id == canonical.id
        with pytest.raises(FeedbackMergedException):
            VoteService.unvote(db_session, project.id, feature.id, VIEWER_ID)


class TestPortalVotes:
    def test_portal_vote_counts(self, db_session, project, feature):
        result = VoteService.portal_vote(db_session, project.id, feature.id, "fan-1")

        assert result.has_voted is True
        assert result.vote_count == 1

    def test_portal_double_vote_is_idempotent(self, db_session, project, feature):
        VoteService.portal_vote(db_session, project.id, feature.id, "fan-1")
        result = VoteService.portal_vote(db_session, project.id, feature.id, "fan-1")

        assert result.vote_count == 1

    def test_portal_unvote(self, db_session, project, feature):
        VoteService.portal_vote(db_session, project.id, feature.id, "fan-1")
        result = VoteService.portal_unvote(db_session, project.id, feature.id, "fan-1")

        assert result.has_voted is False
        assert result.vote_count == 0

    def test_team_only_feedback_rejects_portal_votes(self, db_session, project):
        internal = make_feedback(db_session, project, visibility=Visibility.TEAM_ONLY)

        with pytest.raises(PermissionDeniedException):
            VoteService.portal_vote(db_session, project.id, internal.id, "fan-1")
        assert stored_vote_rows(db_session, internal.id) == 0

    def test_disabled_voting_rejects_portal_votes(self, db_session):
        project = make_project(db_session, voting_enabled=False)
        feedback = make_feedback(db_session, project)

        with pytest.raises(VotingDisabledException):
            VoteService.portal_vote(db_session, project.id, feedback.id, "fan-1")

    def test_disabled_voting_still_allows_team_votes(self, db_session):
        project = make_project(db_session, voting_enabled=False)
        feedback = make_feedback(db_session, project)

        result = VoteService.vote(db_session, project.id, feedback.id, "user-owner")
        assert result.vote_count == 1


class TestVoteCounter:
    def test_counter_sums_both_tables(self, db_session, project, feature):
        VoteService.vote(db_session, project.id, feature.id, MEMBER_ID)
        VoteService.vote(db_session, project.id, feature.id, ADMIN_ID)
        VoteService.portal_vote(db_session, project.id, feature.id, "fan-1")

        assert stored_vote_count(db_session, feature.id) == 3
        assert stored_vote_rows(db_session, feature.id) == 3

    def test_same_user_in_both_tables_counts_twice(self, db_session, project, feature):
        VoteService.vote(db_session, project.id, feature.id, MEMBER_ID)
        result = VoteService.portal_vote(db_session, project.id, feature.id, MEMBER_ID)

        assert result.vote_count == 2

    def test_counter_matches_rows_after_mixed_sequence(
        self, db_session, project, feature
    ):
        VoteService.vote(db_session, project.id, feature.id, MEMBER_ID)
        VoteService.portal_vote(db_session, project.id, feature.id, "fan-1")
        VoteService.portal_vote(db_session, project.id, feature.id, "fan-2")
        VoteService.unvote(db_session, project.id, feature.id, MEMBER_ID)
        VoteService.portal_vote(db_session, project.id, feature.id, "fan-1")
        VoteService.portal_unvote(db_session, project.id, feature.id, "fan-3")

        assert stored_vote_count(db_session, feature.id) == stored_vote_rows(
            db_session, feature.id
        )
        assert stored_vote_count(db_session, feature.id) == 2

    def test_recount_repairs_drifted_counter(self, db_session, project, feature):
        VoteService.vote(db_session, project.id, feature.id, MEMBER_ID)
        feature.vote_count = 99
        db_session.commit()

        assert VoteService.recount(db_session, feature.id) == 1
        assert stored_vote_count(db_session, feature.id) == 1

    def test_recount_unknown_feedback(self, db_session, project):
        with pytest.raises(FeedbackNotFoundException):
            VoteService.recount(db_session, 4242)


class TestHasVoted:
    def test_has_voted_per_table(self, db_session, project, feature):
        VoteService.vote(db_session, project.id, feature.id, MEMBER_ID)

        assert VoteService.has_voted(db_session, feature.id, MEMBER_ID) is True
        assert (
            VoteService.has_voted(db_session, feature.id, MEMBER_ID, portal=True)
            is False
        )

    def test_batch_lookup(self, db_session, project, feature):
        other = make_feedback(db_session, project, title="Offline mode")
        VoteService.vote(db_session, project.id, feature.id, MEMBER_ID)

        voted = VoteService.get_voted_feedback_ids(
            db_session, MEMBER_ID, [feature.id, other.id]
        )
        assert voted == {feature.id}

    def test_batch_lookup_with_no_ids(self, db_session, project):
        assert VoteService.get_voted_feedback_ids(db_session, MEMBER_ID, []) == set()


class TestConcurrentVotes:
    """Duplicate requests racing on separate connections."""

    @pytest.fixture
    def file_sessions(self, tmp_path):
        engine = create_db_engine(f"sqlite:///{tmp_path / 'votes.db'}")
        Base.metadata.create_all(bind=engine)
        yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
        engine.dispose()

    def test_duplicate_votes_count_once(self, file_sessions):
        setup = file_sessions()
        try:
            project = make_project(setup)
            feedback = make_feedback(setup, project, title="Dark mode")
            project_id, feedback_id = project.id, feedback.id
        finally:
            setup.close()

        workers = 8
        barrier = threading.Barrier(workers)

        def cast_vote() -> int:
            session = file_sessions()
            try:
                barrier.wait()
                return VoteService.vote(session, project_id, feedback_id, MEMBER_ID).vote_count
            finally:
                session.close()

        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [pool.submit(cast_vote) for _ in range(workers)]
            results = [future.result() for future in futures]

        assert results == [1] * workers
        check = file_sessions()
        try:
            assert stored_vote_count(check, feedback_id) == 1
            assert stored_vote_rows(check, feedback_id) == 1
        finally:
            check.close()
