"""Integration tests for projects, members and invites."""

from conftest import (
    ADMIN_ID,
    MEMBER_ID,
    OWNER_ID,
    VIEWER_ID,
    auth_headers_for,
)


class TestProjectsApi:
    def test_create_and_list_projects(self, client):
        headers = auth_headers_for("user-new", email="new@example.com")

        response = client.post(
            "/api/projects", json={"name": "Acme Mobile"}, headers=headers
        )
        assert response.status_code == 201
        project = response.json()
        assert project["slug"] == "acme-mobile"
        assert project["settings"]["voting_enabled"] is True

        response = client.get("/api/projects", headers=headers)
        assert response.status_code == 200
        assert [(p["id"], p["role"]) for p in response.json()] == [
            (project["id"], "owner")
        ]

    def test_create_requires_authentication(self, client):
        response = client.post("/api/projects", json={"name": "Acme"})

        assert response.status_code == 401
        assert response.json()["code"] == "unauthorized"
        assert response.headers["WWW-Authenticate"] == "Bearer"

    def test_duplicate_slug_conflicts(self, client, project, owner_headers):
        response = client.post(
            "/api/projects", json={"name": "Acme App"}, headers=owner_headers
        )
        assert response.status_code == 409
        assert response.json()["code"] == "slug_taken"

    def test_get_project_with_role(self, client, project, viewer_headers):
        response = client.get(f"/api/projects/{project.id}", headers=viewer_headers)

        assert response.status_code == 200
        assert response.json()["role"] == "viewer"

    def test_outsider_cannot_read_project(self, client, project, outsider_headers):
        response = client.get(f"/api/projects/{project.id}", headers=outsider_headers)

        assert response.status_code == 403
        assert response.json()["code"] == "no_membership"

    def test_unknown_project(self, client, owner_headers):
        response = client.get("/api/projects/4242", headers=owner_headers)

        assert response.status_code == 404
        assert response.json()["code"] == "project_not_found"

    def test_admin_updates_settings(self, client, project, admin_headers):
        response = client.patch(
            f"/api/projects/{project.id}",
            json={"settings": {"voting_enabled": False}},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json()["settings"]["voting_enabled"] is False

    def test_member_cannot_update_project(self, client, project, member_headers):
        response = client.patch(
            f"/api/projects/{project.id}",
            json={"name": "Hijacked"},
            headers=member_headers,
        )
        assert response.status_code == 403
        assert response.json()["code"] == "insufficient_role"

    def test_only_owner_deletes(self, client, project, admin_headers, owner_headers):
        response = client.delete(f"/api/projects/{project.id}", headers=admin_headers)
        assert response.status_code == 403

        response = client.delete(f"/api/projects/{project.id}", headers=owner_headers)
        assert response.status_code == 204

        response = client.get(f"/api/projects/{project.id}", headers=owner_headers)
        assert response.status_code == 404


class TestMembersApi:
    def test_list_members(self, client, project, viewer_headers):
        response = client.get(
            f"/api/projects/{project.id}/members", headers=viewer_headers
        )

        assert response.status_code == 200
        roles = {m["user_id"]: m["role"] for m in response.json()}
        assert roles == {
            OWNER_ID: "owner",
            ADMIN_ID: "admin",
            MEMBER_ID: "member",
            VIEWER_ID: "viewer",
        }

    def test_admin_promotes_viewer_to_member(
        self, client, project, memberships, admin_headers
    ):
        response = client.patch(
            f"/api/projects/{project.id}/members/{memberships[VIEWER_ID].id}",
            json={"role": "member"},
            headers=admin_headers,
        )
        assert response.status_code == 200
        assert response.json()["role"] == "member"

    def test_admin_cannot_grant_admin(self, client, project, memberships, admin_headers):
        response = client.patch(
            f"/api/projects/{project.id}/members/{memberships[VIEWER_ID].id}",
            json={"role": "admin"},
            headers=admin_headers,
        )
        assert response.status_code == 403
        assert response.json()["code"] == "insufficient_role"

    def test_owner_role_is_fixed(self, client, project, memberships, owner_headers):
        response = client.patch(
            f"/api/projects/{project.id}/members/{memberships[OWNER_ID].id}",
            json={"role": "admin"},
            headers=owner_headers,
        )
        assert response.status_code == 403
        assert response.json()["code"] == "cannot_change_owner_role"

    def test_unknown_role_is_rejected(self, client, project, memberships, owner_headers):
        response = client.patch(
            f"/api/projects/{project.id}/members/{memberships[VIEWER_ID].id}",
            json={"role": "superuser"},
            headers=owner_headers,
        )
        assert response.status_code == 422
        assert response.json()["code"] == "invalid_role"
        assert "role" in response.json()["fields"]

    def test_viewer_leaves_project(self, client, project, memberships, viewer_headers):
        response = client.delete(
            f"/api/projects/{project.id}/members/{memberships[VIEWER_ID].id}",
            headers=viewer_headers,
        )
        assert response.status_code == 204

        response = client.get(f"/api/projects/{project.id}", headers=viewer_headers)
        assert response.status_code == 403

    def test_owner_cannot_be_removed(self, client, project, memberships, owner_headers):
        response = client.delete(
            f"/api/projects/{project.id}/members/{memberships[OWNER_ID].id}",
            headers=owner_headers,
        )
        assert response.status_code == 403
        assert response.json()["code"] == "cannot_remove_owner"


class TestInvitesApi:
    def test_invite_and_accept(self, client, project, admin_headers):
        response = client.post(
            f"/api/projects/{project.id}/invites",
            json={"email": "dev@example.com", "role": "member"},
            headers=admin_headers,
        )
        assert response.status_code == 201
        token = response.json()["token"]

        dev_headers = auth_headers_for("user-dev", email="dev@example.com")
        response = client.post(f"/api/invites/{token}/accept", headers=dev_headers)
        assert response.status_code == 200
        assert response.json()["role"] == "member"

        response = client.get(f"/api/projects/{project.id}", headers=dev_headers)
        assert response.json()["role"] == "member"

        response = client.post(f"/api/invites/{token}/accept", headers=dev_headers)
        assert response.status_code == 400
        assert response.json()["code"] == "invite_not_pending"

    def test_invite_listing_hides_tokens(self, client, project, admin_headers):
        client.post(
            f"/api/projects/{project.id}/invites",
            json={"email": "dev@example.com"},
            headers=admin_headers,
        )

        response = client.get(
            f"/api/projects/{project.id}/invites",
            params={"status": "pending"},
            headers=admin_headers,
        )
        assert response.status_code == 200
        invites = response.json()
        assert len(invites) == 1
        assert "token" not in invites[0]

    def test_pending_invite_conflict(self, client, project, admin_headers):
        payload = {"email": "dev@example.com", "role": "viewer"}
        client.post(
            f"/api/projects/{project.id}/invites", json=payload, headers=admin_headers
        )
        response = client.post(
            f"/api/projects/{project.id}/invites", json=payload, headers=admin_headers
        )
        assert response.status_code == 409
        assert response.json()["code"] == "pending_invite_exists"

    def test_member_cannot_invite(self, client, project, member_headers):
        response = client.post(
            f"/api/projects/{project.id}/invites",
            json={"email": "dev@example.com", "role": "viewer"},
            headers=member_headers,
        )
        assert response.status_code == 403

    def test_revoke_invite(self, client, project, admin_headers):
        invite = client.post(
            f"/api/projects/{project.id}/invites",
            json={"email": "dev@example.com"},
            headers=admin_headers,
        ).json()

        response = client.delete(
            f"/api/projects/{project.id}/invites/{invite['id']}", headers=admin_headers
        )
        assert response.status_code == 200
        assert response.json()["status"] == "revoked"

        response = client.post(
            f"/api/invites/{invite['token']}/accept",
            headers=auth_headers_for("user-dev"),
        )
        assert response.status_code == 400

    def test_unknown_invite_token(self, client, project):
        response = client.post(
            "/api/invites/deadbeef/accept", headers=auth_headers_for("user-dev")
        )
        assert response.status_code == 404
        assert response.json()["code"] == "invite_not_found"
