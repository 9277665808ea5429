"""Integration tests for comments and tags."""

from conftest import auth_headers_for


def comments_url(project, feedback, suffix: str = "") -> str:
    return f"/api/projects/{project.id}/feedback/{feedback.id}/comments{suffix}"


class TestCommentsApi:
    def test_internal_note_is_hidden_from_community(
        self, client, project, feature, member_headers, outsider_headers
    ):
        client.post(
            comments_url(project, feature),
            json={"body": "Looks like a dupe of #12", "visibility": "TEAM_ONLY"},
            headers=member_headers,
        )
        response = client.post(
            comments_url(project, feature),
            json={"body": "+1 from me"},
            headers=outsider_headers,
        )
        assert response.status_code == 201

        community = client.get(comments_url(project, feature), headers=outsider_headers)
        team = client.get(comments_url(project, feature), headers=member_headers)

        assert [c["body"] for c in community.json()] == ["+1 from me"]
        assert len(team.json()) == 2

    def test_unknown_visibility_is_rejected(self, client, project, feature, member_headers):
        response = client.post(
            comments_url(project, feature),
            json={"body": "Hello", "visibility": "PUBLIC"},
            headers=member_headers,
        )

        assert response.status_code == 422
        assert response.json()["code"] == "invalid_visibility"
        assert response.json()["fields"] == {
            "visibility": "must be TEAM_ONLY or COMMUNITY"
        }

    def test_comment_count_tracks_comments(
        self, client, project, feature, member_headers
    ):
        created = client.post(
            comments_url(project, feature), json={"body": "First"}, headers=member_headers
        ).json()
        client.delete(
            comments_url(project, feature, f"/{created['id']}"), headers=member_headers
        )

        response = client.get(
            f"/api/projects/{project.id}/feedback/{feature.id}", headers=member_headers
        )
        assert response.json()["comment_count"] == 0

    def test_only_author_edits(
        self, client, project, feature, member_headers, admin_headers
    ):
        created = client.post(
            comments_url(project, feature), json={"body": "Draft"}, headers=member_headers
        ).json()

        response = client.patch(
            comments_url(project, feature, f"/{created['id']}"),
            json={"body": "Edited by admin"},
            headers=admin_headers,
        )
        assert response.status_code == 403
        assert response.json()["code"] == "cannot_edit_comment"

        response = client.patch(
            comments_url(project, feature, f"/{created['id']}"),
            json={"body": "Final"},
            headers=member_headers,
        )
        assert response.json()["is_edited"] is True

    def test_community_comments_disabled(
        self, client, project, feature, owner_headers, outsider_headers
    ):
        settings = client.get(
            f"/api/projects/{project.id}", headers=owner_headers
        ).json()["settings"]
        settings["community_comments_enabled"] = False
        client.patch(
            f"/api/projects/{project.id}",
            json={"settings": settings},
            headers=owner_headers,
        )

        response = client.post(
            comments_url(project, feature),
            json={"body": "Hello"},
            headers=outsider_headers,
        )
        assert response.status_code == 400
        assert response.json()["code"] == "community_comments_disabled"


class TestTagsApi:
    def test_tag_lifecycle(self, client, project, feature, member_headers):
        response = client.post(
            f"/api/projects/{project.id}/tags",
            json={"name": "Mobile", "color": "#10B981"},
            headers=member_headers,
        )
        assert response.status_code == 201
        tag = response.json()
        assert tag["slug"] == "mobile"

        client.patch(
            f"/api/projects/{project.id}/feedback/{feature.id}",
            json={"tag_ids": [tag["id"]]},
            headers=member_headers,
        )
        listing = client.get(f"/api/projects/{project.id}/tags", headers=member_headers)
        assert listing.json()[0]["feedback_count"] == 1

        response = client.get(
            f"/api/projects/{project.id}/feedback",
            params={"tag_id": tag["id"]},
            headers=member_headers,
        )
        assert [i["id"] for i in response.json()["items"]] == [feature.id]

        response = client.delete(
            f"/api/projects/{project.id}/tags/{tag['id']}", headers=member_headers
        )
        assert response.status_code == 204

    def test_viewer_cannot_create_tags(self, client, project, viewer_headers):
        response = client.post(
            f"/api/projects/{project.id}/tags",
            json={"name": "Mobile"},
            headers=viewer_headers,
        )
        assert response.status_code == 403

    def test_bad_color(self, client, project, member_headers):
        response = client.post(
            f"/api/projects/{project.id}/tags",
            json={"name": "Mobile", "color": "green"},
            headers=member_headers,
        )
        assert response.status_code == 422

    def test_outsider_cannot_list_tags(self, client, project):
        response = client.get(
            f"/api/projects/{project.id}/tags", headers=auth_headers_for("stranger")
        )
        assert response.status_code == 403
