"""Integration tests for the dashboard feedback endpoints."""

from conftest import MEMBER_ID, auth_headers_for, make_feedback
from models.roles import Visibility


def feedback_url(project, suffix: str = "") -> str:
    return f"/api/projects/{project.id}/feedback{suffix}"


class TestCreateFeedbackApi:
    def test_member_creates_bug(self, client, project, member_headers):
        response = client.post(
            feedback_url(project),
            json={"title": "Crash on login", "description": "Tap login twice", "type": "bug"},
            headers=member_headers,
        )

        assert response.status_code == 201
        body = response.json()
        assert body["author_id"] == MEMBER_ID
        assert body["visibility"] == "TEAM_ONLY"
        assert body["source"] == "dashboard"
        assert body["vote_count"] == 0

    def test_viewer_cannot_create(self, client, project, viewer_headers):
        response = client.post(
            feedback_url(project),
            json={"title": "Idea", "description": "Something"},
            headers=viewer_headers,
        )
        assert response.status_code == 403

    def test_request_validation(self, client, project, member_headers):
        response = client.post(
            feedback_url(project),
            json={"title": "", "description": "Something"},
            headers=member_headers,
        )
        assert response.status_code == 422

    def test_unknown_tag_has_field_errors(self, client, project, member_headers):
        response = client.post(
            feedback_url(project),
            json={"title": "Idea", "description": "Something", "tag_ids": [999]},
            headers=member_headers,
        )

        assert response.status_code == 422
        body = response.json()
        assert body["code"] == "validation_error"
        assert body["fields"] == {"tag_ids": "unknown tag"}
        assert len(body["correlation_id"]) == 8


class TestReadFeedbackApi:
    def test_outsider_sees_only_community_items(
        self, client, db_session, project, feature, outsider_headers
    ):
        make_feedback(db_session, project, title="Internal", visibility=Visibility.TEAM_ONLY)

        response = client.get(feedback_url(project), headers=outsider_headers)

        assert response.status_code == 200
        body = response.json()
        assert [item["id"] for item in body["items"]] == [feature.id]
        assert body["items"][0]["has_voted"] is None

    def test_team_sees_everything_with_has_voted(
        self, client, db_session, project, feature, member_headers
    ):
        make_feedback(db_session, project, title="Internal", visibility=Visibility.TEAM_ONLY)
        client.post(feedback_url(project, f"/{feature.id}/vote"), headers=member_headers)

        response = client.get(feedback_url(project), headers=member_headers)

        body = response.json()
        assert body["total"] == 2
        voted = {item["id"]: item["has_voted"] for item in body["items"]}
        assert voted[feature.id] is True

    def test_team_only_item_is_forbidden_for_outsider(
        self, client, db_session, project, outsider_headers
    ):
        internal = make_feedback(db_session, project, visibility=Visibility.TEAM_ONLY)

        response = client.get(
            feedback_url(project, f"/{internal.id}"), headers=outsider_headers
        )
        assert response.status_code == 403

    def test_list_filters_and_sorting(
        self, client, db_session, project, feature, member_headers
    ):
        popular = make_feedback(db_session, project, title="Widgets")
        client.post(feedback_url(project, f"/{popular.id}/vote"), headers=member_headers)

        response = client.get(
            feedback_url(project),
            params={"type": "feature", "status": "new", "sort_by": "vote_count"},
            headers=member_headers,
        )
        assert [item["id"] for item in response.json()["items"]] == [
            popular.id,
            feature.id,
        ]

        response = client.get(
            feedback_url(project),
            params={"sort_by": "vote_count", "order": "asc"},
            headers=member_headers,
        )
        assert response.json()["items"][0]["id"] == feature.id

    def test_invalid_sort_is_rejected(self, client, project, member_headers):
        response = client.get(
            feedback_url(project), params={"sort_by": "title"}, headers=member_headers
        )
        assert response.status_code == 422

    def test_requires_authentication(self, client, project):
        response = client.get(feedback_url(project))
        assert response.status_code == 401


class TestTriageApi:
    def test_update_status_and_assignee(self, client, project, feature, member_headers):
        response = client.patch(
            feedback_url(project, f"/{feature.id}"),
            json={"status": "planned", "assigned_to": MEMBER_ID, "severity": "high"},
            headers=member_headers,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "planned"
        assert body["assigned_to"] == MEMBER_ID
        assert body["severity"] == "high"

    def test_viewer_cannot_triage(self, client, project, feature, viewer_headers):
        response = client.patch(
            feedback_url(project, f"/{feature.id}"),
            json={"status": "planned"},
            headers=viewer_headers,
        )
        assert response.status_code == 403


class TestMergeApi:
    def test_merge_then_get_redirects(
        self, client, db_session, project, feature, member_headers, viewer_headers
    ):
        duplicate = make_feedback(db_session, project, title="Dark theme")
        client.post(feedback_url(project, f"/{duplicate.id}/vote"), headers=viewer_headers)

        response = client.post(
            feedback_url(project, f"/{duplicate.id}/merge"),
            json={"canonical_id": feature.id},
            headers=member_headers,
        )
        assert response.status_code == 200
        body = response.json()
        assert body["votes_moved"] == 1
        assert body["canonical"]["vote_count"] == 1
        assert body["source"]["status"] == "duplicate"

        response = client.get(
            feedback_url(project, f"/{duplicate.id}"), headers=viewer_headers
        )
        assert response.status_code == 200
        assert response.json()["id"] == feature.id
        assert response.json()["redirected_from"] == duplicate.id
        assert response.json()["has_voted"] is True

    def test_self_merge(self, client, project, feature, member_headers):
        response = client.post(
            feedback_url(project, f"/{feature.id}/merge"),
            json={"canonical_id": feature.id},
            headers=member_headers,
        )
        assert response.status_code == 422
        assert response.json()["code"] == "cannot_merge_self"

    def test_merge_chain_is_rejected(
        self, client, db_session, project, feature, member_headers
    ):
        first = make_feedback(db_session, project, title="A")
        second = make_feedback(db_session, project, title="B")
        client.post(
            feedback_url(project, f"/{first.id}/merge"),
            json={"canonical_id": feature.id},
            headers=member_headers,
        )

        response = client.post(
            feedback_url(project, f"/{second.id}/merge"),
            json={"canonical_id": first.id},
            headers=member_headers,
        )
        assert response.status_code == 400
        assert response.json()["code"] == "merge_not_allowed"

    def test_list_duplicates(
        self, client, db_session, project, feature, member_headers, outsider_headers
    ):
        duplicate = make_feedback(db_session, project, title="Dark theme")
        client.post(
            feedback_url(project, f"/{duplicate.id}/merge"),
            json={"canonical_id": feature.id},
            headers=member_headers,
        )

        response = client.get(
            feedback_url(project, f"/{feature.id}/duplicates"), headers=outsider_headers
        )

        assert response.status_code == 200
        assert [item["id"] for item in response.json()] == [duplicate.id]
        assert response.json()[0]["canonical_id"] == feature.id


class TestIdentifiedUsersApi:
    def test_list_users_and_their_feedback(
        self, client, db_session, project, viewer_headers
    ):
        from conftest import make_sdk_user

        sdk_user = make_sdk_user(db_session, project)
        make_feedback(db_session, project, author_id=None, sdk_user_id=sdk_user.id)

        response = client.get(f"/api/projects/{project.id}/users", headers=viewer_headers)
        assert response.status_code == 200
        assert response.json()["total"] == 1
        assert response.json()["items"][0]["external_id"] == "alice-ios"

        response = client.get(
            f"/api/projects/{project.id}/users/{sdk_user.id}/feedback",
            headers=viewer_headers,
        )
        assert len(response.json()) == 1

    def test_outsider_cannot_list_users(self, client, project):
        response = client.get(
            f"/api/projects/{project.id}/users",
            headers=auth_headers_for("user-outsider"),
        )
        assert response.status_code == 403
