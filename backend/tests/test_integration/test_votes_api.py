"""Integration tests for team voting."""

from conftest import make_feedback
from services.merge_service import MergeService


def vote_url(project, feedback) -> str:
    return f"/api/projects/{project.id}/feedback/{feedback.id}/vote"


class TestVotesApi:
    def test_double_vote_is_idempotent(self, client, project, feature, member_headers):
        first = client.post(vote_url(project, feature), headers=member_headers)
        second = client.post(vote_url(project, feature), headers=member_headers)

        assert first.status_code == 200
        assert second.status_code == 200
        assert first.json() == second.json()
        assert second.json() == {
            "feedback_id": feature.id,
            "vote_count": 1,
            "has_voted": True,
        }

    def test_unvote_twice(self, client, project, feature, member_headers):
        client.post(vote_url(project, feature), headers=member_headers)

        first = client.delete(vote_url(project, feature), headers=member_headers)
        second = client.delete(vote_url(project, feature), headers=member_headers)

        assert first.json()["vote_count"] == 0
        assert second.status_code == 200
        assert second.json()["has_voted"] is False

    def test_votes_from_several_members(
        self, client, project, feature, member_headers, viewer_headers, admin_headers
    ):
        for headers in (member_headers, viewer_headers, admin_headers):
            response = client.post(vote_url(project, feature), headers=headers)
        assert response.json()["vote_count"] == 3

    def test_outsider_cannot_team_vote(self, client, project, feature, outsider_headers):
        response = client.post(vote_url(project, feature), headers=outsider_headers)

        assert response.status_code == 403
        assert response.json()["code"] == "no_membership"

    def test_vote_on_merged_item(
        self, client, db_session, project, feature, member_headers
    ):
        duplicate = make_feedback(db_session, project, title="Dark theme")
        MergeService.merge(db_session, project.id, duplicate.id, feature.id, "user-member")

        response = client.post(vote_url(project, duplicate), headers=member_headers)

        assert response.status_code == 422
        assert response.json()["code"] == "feedback_merged"

    def test_vote_on_unknown_feedback(self, client, project, member_headers):
        response = client.post(
            f"/api/projects/{project.id}/feedback/4242/vote", headers=member_headers
        )
        assert response.status_code == 404
        assert response.json()["code"] == "feedback_not_found"
