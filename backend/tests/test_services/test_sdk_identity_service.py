"""Tests for SDK identification and portal linking."""

import pytest

import models.schemas as schemas
import repositories.db_models as db_models
from conftest import MEMBER_ID, make_feedback, make_project, make_sdk_user
from models.exceptions import MissingIdentityException, SdkUserNotFoundException
from models.roles import Role, Visibility
from services.portal_service import PortalService
from services.sdk_identity_service import SdkIdentityService, sdk_source


class TestSdkSource:
    @pytest.mark.parametrize(
        "platform, expected",
        [
            (None, "sdk"),
            ("", "sdk"),
            ("iOS", "sdk-ios"),
            ("React Native", "sdk-react-native"),
            ("!!!", "sdk"),
        ],
    )
    def test_source_label(self, platform, expected):
        assert sdk_source(platform) == expected


class TestIdentify:
    def test_first_identify_creates_user(self, db_session, project):
        sdk_user = SdkIdentityService.identify(
            db_session, project.id, "alice-ios", email="alice@example.com", name="Alice"
        )

        assert sdk_user.id is not None
        assert sdk_user.external_id == "alice-ios"
        assert sdk_user.email == "alice@example.com"
        assert sdk_user.linked_user_id is None

    def test_identify_is_an_upsert(self, db_session, project):
        first = SdkIdentityService.identify(db_session, project.id, "alice-ios")
        second = SdkIdentityService.identify(db_session, project.id, "alice-ios")

        assert first.id == second.id
        assert db_session.query(db_models.SdkUser).count() == 1

    def test_null_fields_keep_stored_values(self, db_session, project):
        SdkIdentityService.identify(
            db_session, project.id, "alice-ios", email="alice@example.com", name="Alice"
        )
        sdk_user = SdkIdentityService.identify(db_session, project.id, "alice-ios")

        assert sdk_user.email == "alice@example.com"
        assert sdk_user.name == "Alice"

    def test_new_values_overwrite(self, db_session, project):
        SdkIdentityService.identify(
            db_session, project.id, "alice-ios", email="alice@example.com"
        )
        sdk_user = SdkIdentityService.identify(
            db_session, project.id, "alice-ios", email="alice@work.example"
        )
        assert sdk_user.email == "alice@work.example"

    def test_traits_are_merged(self, db_session, project):
        SdkIdentityService.identify(
            db_session, project.id, "alice-ios", traits={"plan": "free", "seats": 1}
        )
        sdk_user = SdkIdentityService.identify(
            db_session, project.id, "alice-ios", traits={"plan": "pro"}
        )
        assert sdk_user.traits == {"plan": "pro", "seats": 1}

    def test_same_external_id_in_two_projects(self, db_session, project):
        other = make_project(db_session, name="Other", owner_id="someone-else")

        first = SdkIdentityService.identify(db_session, project.id, "alice-ios")
        second = SdkIdentityService.identify(db_session, other.id, "alice-ios")

        assert first.id != second.id


class TestLinking:
    def test_links_matching_email_case_insensitively(self, db_session, project):
        make_sdk_user(db_session, project, email="Alice@Example.com")

        linked = SdkIdentityService.link_sdk_users_by_email(
            db_session, "portal-alice", project.id, "alice@example.com"
        )

        assert linked == 1
        sdk_user = db_session.query(db_models.SdkUser).one()
        db_session.refresh(sdk_user)
        assert sdk_user.linked_user_id == "portal-alice"

    def test_links_every_match(self, db_session, project):
        make_sdk_user(db_session, project, external_id="alice-ios")
        make_sdk_user(db_session, project, external_id="alice-android")
        make_sdk_user(db_session, project, external_id="bob", email="bob@example.com")

        linked = SdkIdentityService.link_sdk_users_by_email(
            db_session, "portal-alice", project.id, "alice@example.com"
        )
        assert linked == 2

    def test_linking_twice_links_nothing_new(self, db_session, project):
        make_sdk_user(db_session, project)
        SdkIdentityService.link_sdk_users_by_email(
            db_session, "portal-alice", project.id, "alice@example.com"
        )

        assert (
            SdkIdentityService.link_sdk_users_by_email(
                db_session, "portal-alice", project.id, "alice@example.com"
            )
            == 0
        )

    def test_existing_link_is_never_reassigned(self, db_session, project):
        sdk_user = make_sdk_user(db_session, project)
        SdkIdentityService.link_sdk_users_by_email(
            db_session, "portal-alice", project.id, "alice@example.com"
        )

        linked = SdkIdentityService.link_sdk_users_by_email(
            db_session, "portal-impostor", project.id, "alice@example.com"
        )

        assert linked == 0
        db_session.refresh(sdk_user)
        assert sdk_user.linked_user_id == "portal-alice"

    def test_other_projects_are_untouched(self, db_session, project):
        other = make_project(db_session, name="Other", owner_id="someone-else")
        foreign = make_sdk_user(db_session, other)

        SdkIdentityService.link_sdk_users_by_email(
            db_session, "portal-alice", project.id, "alice@example.com"
        )

        db_session.refresh(foreign)
        assert foreign.linked_user_id is None

    def test_empty_email_links_nothing(self, db_session, project):
        make_sdk_user(db_session, project)
        assert (
            SdkIdentityService.link_sdk_users_by_email(
                db_session, "portal-alice", project.id, ""
            )
            == 0
        )


class TestSubmitFeedback:
    def test_submit_with_user_id_identifies_first(self, db_session, project):
        feedback = SdkIdentityService.submit_feedback(
            db_session,
            project.id,
            schemas.SdkFeedbackCreate(
                title="App freezes",
                description="On the settings screen",
                type=db_models.FeedbackType.BUG,
                user_id="alice-ios",
                email="alice@example.com",
            ),
            platform="iOS",
        )

        assert feedback.source == "sdk-ios"
        assert feedback.sdk_user is not None
        assert feedback.sdk_user.external_id == "alice-ios"
        assert feedback.author_id is None
        assert feedback.visibility == Visibility.TEAM_ONLY

    def test_submit_with_email_only(self, db_session, project):
        feedback = SdkIdentityService.submit_feedback(
            db_session,
            project.id,
            schemas.SdkFeedbackCreate(
                title="Love it", description="Great app", email="fan@example.com"
            ),
        )

        assert feedback.source == "sdk"
        assert feedback.sdk_user_id is None
        assert feedback.submitter_email == "fan@example.com"

    def test_submit_without_identity_is_rejected(self, db_session, project):
        with pytest.raises(MissingIdentityException):
            SdkIdentityService.submit_feedback(
                db_session,
                project.id,
                schemas.SdkFeedbackCreate(title="Hello", description="Anyone?"),
            )


class TestIdentifiedUsers:
    def test_list_sdk_users(self, db_session, project):
        make_sdk_user(db_session, project, external_id="alice-ios")
        make_sdk_user(db_session, project, external_id="bob", email=None)

        items, total = SdkIdentityService.list_sdk_users(db_session, project.id)

        assert total == 2
        assert {item.external_id for item in items} == {"alice-ios", "bob"}

    def test_sdk_user_feedback_respects_visibility(self, db_session, project):
        sdk_user = make_sdk_user(db_session, project)
        make_feedback(
            db_session,
            project,
            title="Public idea",
            author_id=None,
            sdk_user_id=sdk_user.id,
        )
        make_feedback(
            db_session,
            project,
            title="Private bug",
            visibility=Visibility.TEAM_ONLY,
            author_id=None,
            sdk_user_id=sdk_user.id,
        )

        team_view = SdkIdentityService.list_sdk_user_feedback(
            db_session, project.id, sdk_user.id, Role.VIEWER
        )
        community_view = SdkIdentityService.list_sdk_user_feedback(
            db_session, project.id, sdk_user.id, Role.COMMUNITY
        )

        assert len(team_view) == 2
        assert [item.title for item in community_view] == ["Public idea"]

    def test_unknown_sdk_user(self, db_session, project):
        with pytest.raises(SdkUserNotFoundException):
            SdkIdentityService.list_sdk_user_feedback(
                db_session, project.id, 4242, Role.MEMBER
            )


class TestPortalLinkingScenario:
    """SDK feedback sent before signup shows up under the portal user's feedback."""

    def test_feedback_sent_before_signup_appears_after_login(
        self, db_session, project
    ):
        SdkIdentityService.identify(
            db_session, project.id, "alice-ios", email="alice@example.com"
        )
        feedback = SdkIdentityService.submit_feedback(
            db_session,
            project.id,
            schemas.SdkFeedbackCreate(
                title="Export to CSV",
                description="Would help a lot",
                type=db_models.FeedbackType.FEATURE,
                user_id="alice-ios",
            ),
            platform="ios",
        )

        assert SdkIdentityService.get_linked_feedback(
            db_session, "portal-alice", project.id
        ) == []

        PortalService.ensure_access(
            db_session,
            project.id,
            "portal-alice",
            "ALICE@example.com",
            email_verified=True,
        )

        linked = SdkIdentityService.get_linked_feedback(
            db_session, "portal-alice", project.id
        )
        assert [item.id for item in linked] == [feedback.id]
        assert linked[0].has_voted is False

    def test_unverified_email_does_not_link(self, db_session, project):
        sdk_user = make_sdk_user(db_session, project)

        PortalService.ensure_access(
            db_session,
            project.id,
            "portal-alice",
            "alice@example.com",
            email_verified=False,
        )

        db_session.refresh(sdk_user)
        assert sdk_user.linked_user_id is None

    def test_team_author_feedback_is_not_linked(self, db_session, project):
        make_sdk_user(db_session, project)
        make_feedback(db_session, project, author_id=MEMBER_ID)

        PortalService.ensure_access(
            db_session, project.id, "portal-alice", "alice@example.com", True
        )

        assert (
            SdkIdentityService.get_linked_feedback(
                db_session, "portal-alice", project.id
            )
            == []
        )
