"""Tests for PortalService."""

import pytest

import models.schemas as schemas
import repositories.db_models as db_models
from conftest import ADMIN_ID, MEMBER_ID, make_feedback, make_sdk_user
from models.exceptions import (
    CannotDeleteFeedbackException,
    FeedbackNotFoundException,
    ProjectNotFoundException,
)
from models.roles import Role, Visibility
from services.comment_service import CommentService
from services.merge_service import MergeService
from services.portal_service import PortalService
from services.vote_service import VoteService

PORTAL_USER = "portal-alice"


class TestEnsureAccess:
    def test_first_access_creates_profile(self, db_session, project):
        profile = PortalService.ensure_access(
            db_session, project.id, PORTAL_USER, "alice@example.com", True
        )

        assert profile.user_id == PORTAL_USER
        assert profile.email == "alice@example.com"
        assert profile.notification_preferences == (
            schemas.PortalNotificationPreferences().model_dump()
        )

    def test_repeated_access_reuses_profile(self, db_session, project):
        first = PortalService.ensure_access(
            db_session, project.id, PORTAL_USER, "alice@example.com", True
        )
        second = PortalService.ensure_access(
            db_session, project.id, PORTAL_USER, "alice@example.com", True
        )

        assert first.id == second.id
        assert db_session.query(db_models.PortalUserProfile).count() == 1

    def test_links_sdk_users_on_access(self, db_session, project):
        sdk_user = make_sdk_user(db_session, project)

        PortalService.ensure_access(
            db_session, project.id, PORTAL_USER, "alice@example.com", True
        )

        db_session.refresh(sdk_user)
        assert sdk_user.linked_user_id == PORTAL_USER

    def test_unknown_project(self, db_session):
        with pytest.raises(ProjectNotFoundException):
            PortalService.ensure_access(db_session, 4242, PORTAL_USER, None, False)

    def test_update_notification_preferences(self, db_session, project):
        profile = PortalService.ensure_access(
            db_session, project.id, PORTAL_USER, None, False
        )
        preferences = schemas.PortalNotificationPreferences(
            status_changes=False, weekly_digest=True
        )

        updated = PortalService.update_notification_preferences(
            db_session, profile, preferences
        )

        assert updated.notification_preferences["status_changes"] is False
        assert updated.notification_preferences["weekly_digest"] is True


class TestPublicFeatures:
    def test_only_public_active_features(self, db_session, project, feature):
        make_feedback(db_session, project, type=db_models.FeedbackType.BUG)
        make_feedback(
            db_session, project, title="Secret roadmap", visibility=Visibility.TEAM_ONLY
        )
        duplicate = make_feedback(db_session, project, title="Dark theme")
        MergeService.merge(
            db_session, project.id, duplicate.id, feature.id, "user-member"
        )

        result = PortalService.list_public_features(db_session, project.id)

        assert [item.id for item in result.items] == [feature.id]
        assert result.total == 1

    def test_most_voted_first(self, db_session, project, feature):
        popular = make_feedback(db_session, project, title="Widgets")
        VoteService.portal_vote(db_session, project.id, popular.id, "fan-1")
        VoteService.portal_vote(db_session, project.id, popular.id, "fan-2")
        VoteService.portal_vote(db_session, project.id, feature.id, "fan-1")

        result = PortalService.list_public_features(db_session, project.id)

        assert [(i.id, i.vote_count) for i in result.items] == [
            (popular.id, 2),
            (feature.id, 1),
        ]

    def test_has_voted_uses_portal_votes(self, db_session, project, feature):
        VoteService.portal_vote(db_session, project.id, feature.id, PORTAL_USER)

        mine = PortalService.list_public_features(
            db_session, project.id, user_id=PORTAL_USER
        )
        anonymous = PortalService.list_public_features(db_session, project.id)

        assert mine.items[0].has_voted is True
        assert anonymous.items[0].has_voted is False

    def test_pagination(self, db_session, project):
        for n in range(3):
            make_feedback(db_session, project, title=f"Idea {n}")

        result = PortalService.list_public_features(
            db_session, project.id, page=2, per_page=2
        )
        assert result.total == 3
        assert result.total_pages == 2
        assert len(result.items) == 1


class TestFeatureRequestSubmission:
    def submit(self, db_session, project, title: str = "Offline mode"):
        return PortalService.create_feature_request(
            db_session,
            project,
            PORTAL_USER,
            schemas.PortalFeatureRequestCreate(title=title, description="Please"),
        )

    def test_created_as_community_feature(self, db_session, project):
        created = self.submit(db_session, project)

        stored = db_session.get(db_models.Feedback, created.id)
        assert stored.type == db_models.FeedbackType.FEATURE
        assert stored.visibility == Visibility.COMMUNITY
        assert stored.source == "portal"
        assert stored.author_id == PORTAL_USER

    def test_author_delete_removes_votes_and_comments(self, db_session, project):
        created = self.submit(db_session, project)
        VoteService.portal_vote(db_session, project.id, created.id, PORTAL_USER)
        CommentService.create_comment(
            db_session,
            project.id,
            created.id,
            MEMBER_ID,
            Role.MEMBER,
            schemas.CommentCreate(body="Planned for Q3"),
        )

        PortalService.delete_feature_request(
            db_session, project.id, created.id, PORTAL_USER
        )

        assert db_session.get(db_models.Feedback, created.id) is None
        assert db_session.query(db_models.PortalVote).count() == 0
        assert db_session.query(db_models.Comment).count() == 0

    def test_deleting_canonical_unmerges_duplicates(self, db_session, project):
        created = self.submit(db_session, project)
        duplicate = make_feedback(db_session, project, title="Work offline")
        MergeService.merge(db_session, project.id, duplicate.id, created.id, MEMBER_ID)

        PortalService.delete_feature_request(
            db_session, project.id, created.id, PORTAL_USER
        )

        db_session.refresh(duplicate)
        assert duplicate.canonical_id is None

    def test_admin_may_delete(self, db_session, project):
        created = self.submit(db_session, project)

        PortalService.delete_feature_request(db_session, project.id, created.id, ADMIN_ID)

        assert db_session.get(db_models.Feedback, created.id) is None

    def test_member_may_not_delete_others(self, db_session, project):
        created = self.submit(db_session, project)

        with pytest.raises(CannotDeleteFeedbackException):
            PortalService.delete_feature_request(
                db_session, project.id, created.id, MEMBER_ID
            )

    def test_unknown_item(self, db_session, project):
        with pytest.raises(FeedbackNotFoundException):
            PortalService.delete_feature_request(
                db_session, project.id, 4242, PORTAL_USER
            )
