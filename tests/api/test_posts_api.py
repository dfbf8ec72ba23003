# tests/api/test_posts_api.py
"""Tests for the post workflow endpoints."""

from social_desk.models import PostStatus
from tests.helpers import ADMIN_UID, EDITOR_UID, MP4_BYTES, OTHER_EDITOR_UID, PNG_BYTES


def _create(client, headers, **fields):
    data = {
        "title": "Launch day",
        "content": "We open at 9am.",
        "scheduledDate": "2030-05-01T09:00:00Z",
        "platforms": ["instagram", "tiktok"],
    }
    data.update(fields)
    return client.post(
        "/api/posts",
        headers=headers,
        data=data,
        files=[
            ("files", ("front.png", PNG_BYTES, "image/png")),
            ("files", ("teaser.mp4", MP4_BYTES, "video/mp4")),
        ],
    )


class TestCreate:
    def test_create_post(self, client, auth_headers, store):
        response = _create(client, auth_headers(EDITOR_UID), link="https://example.com/launch")

        assert response.status_code == 201
        post = response.json()
        assert post["status"] == "pending"
        assert post["uploadedBy"]["uid"] == EDITOR_UID
        assert post["platforms"] == ["instagram", "tiktok"]
        assert post["link"] == "https://example.com/launch"
        assert post["scheduledDate"].startswith("2030-05-01T09:00:00")
        assert [item["originalName"] for item in post["files"]] == ["front.png", "teaser.mp4"]
        assert post["allowedActions"] == ["edit", "delete"]
        assert sorted(store.list_files(post["id"])) == sorted(
            item["filename"] for item in post["files"]
        )

    def test_epoch_milliseconds_are_accepted(self, client, auth_headers):
        response = _create(client, auth_headers(EDITOR_UID), scheduledDate="1893456000000")

        assert response.status_code == 201
        assert response.json()["scheduledDate"].startswith("2030-01-01")

    def test_requires_platform(self, client, auth_headers):
        response = _create(client, auth_headers(EDITOR_UID), platforms=[])

        assert response.status_code == 400
        assert response.json()["success"] is False

    def test_rejects_unknown_platform(self, client, auth_headers):
        response = _create(client, auth_headers(EDITOR_UID), platforms=["myspace"])

        assert response.status_code == 400

    def test_bad_file_rolls_back(self, client, auth_headers, store):
        response = client.post(
            "/api/posts",
            headers=auth_headers(EDITOR_UID),
            data={
                "title": "Launch day",
                "content": "We open at 9am.",
                "scheduledDate": "2030-05-01T09:00:00Z",
                "platforms": ["instagram"],
            },
            files=[
                ("files", ("front.png", PNG_BYTES, "image/png")),
                ("files", ("notes.txt", b"hello", "text/plain")),
            ],
        )

        assert response.status_code == 400
        assert [path for path in store.root.iterdir() if path != store.staging_dir] == []
        assert client.get("/api/posts", headers=auth_headers(EDITOR_UID)).json() == []


class TestRead:
    def test_list_newest_first_with_filters(self, client, auth_headers, make_post):
        older = make_post(title="Brunch menu")
        newer = make_post(title="Holiday hours", status=PostStatus.AUTHORIZED)

        everything = client.get("/api/posts", headers=auth_headers(EDITOR_UID)).json()
        assert [post["id"] for post in everything] == [newer.id, older.id]

        searched = client.get(
            "/api/posts",
            params={"search": "BRUNCH"},
            headers=auth_headers(EDITOR_UID),
        ).json()
        assert [post["id"] for post in searched] == [older.id]

        authorized = client.get(
            "/api/posts",
            params={"status": "authorized"},
            headers=auth_headers(EDITOR_UID),
        ).json()
        assert [post["id"] for post in authorized] == [newer.id]

    def test_get_post_reports_allowed_actions(self, client, auth_headers, make_post):
        post = make_post()

        body = client.get(f"/api/posts/{post.id}", headers=auth_headers(ADMIN_UID)).json()

        assert body["allowedActions"] == ["approve", "request_changes", "edit", "delete"]
        assert body["version"] == 1

    def test_get_unknown_post(self, client, auth_headers):
        response = client.get("/api/posts/missing", headers=auth_headers(EDITOR_UID))

        assert response.status_code == 404
        assert response.json() == {"success": False, "error": "Post not found"}


class TestWorkflow:
    def test_full_review_cycle(self, client, auth_headers, make_post, store):
        post = make_post(filenames=("a.png", "b.png"))
        admin = auth_headers(ADMIN_UID)
        editor = auth_headers(EDITOR_UID)

        response = client.post(
            f"/api/posts/{post.id}/request-changes",
            headers=admin,
            json={"message": "Brighter photo please"},
        )
        assert response.status_code == 200
        assert response.json()["post"]["status"] == "changes_requested"
        assert response.json()["post"]["changeRequests"][0]["message"] == "Brighter photo please"

        response = client.patch(
            f"/api/posts/{post.id}",
            headers=editor,
            json={"title": "Launch day (updated)"},
        )
        assert response.status_code == 200
        edited = response.json()["post"]
        assert edited["status"] == "pending"
        assert edited["edits"][-1]["changes"] == 'Title: "Spring launch" → "Launch day (updated)"'

        response = client.post(f"/api/posts/{post.id}/approve", headers=admin)
        assert response.status_code == 200
        approved = response.json()["post"]
        assert approved["status"] == "authorized"
        assert approved["authorizedBy"]["uid"] == ADMIN_UID

        response = client.post(f"/api/posts/{post.id}/mark-posted", headers=admin)
        assert response.status_code == 200
        body = response.json()
        assert body["post"]["status"] == "posted"
        assert body["post"]["postedBy"]["uid"] == ADMIN_UID
        assert len(body["post"]["files"]) == 2
        assert body["warnings"] == []
        assert not (store.root / post.id).exists()

    def test_resubmit_endpoint(self, client, auth_headers, make_post):
        post = make_post(status=PostStatus.CHANGES_REQUESTED)

        response = client.post(f"/api/posts/{post.id}/resubmit", headers=auth_headers(EDITOR_UID))

        assert response.status_code == 200
        assert response.json()["post"]["status"] == "pending"

    def test_editor_cannot_approve(self, client, auth_headers, make_post):
        post = make_post()

        response = client.post(f"/api/posts/{post.id}/approve", headers=auth_headers(EDITOR_UID))

        assert response.status_code == 403
        assert response.json()["success"] is False

    def test_permission_checked_before_transition(self, client, auth_headers, make_post):
        post = make_post(status=PostStatus.POSTED)

        response = client.post(f"/api/posts/{post.id}/approve", headers=auth_headers(EDITOR_UID))

        assert response.status_code == 403

    def test_invalid_transition_is_conflict(self, client, auth_headers, make_post):
        post = make_post(status=PostStatus.PENDING)

        response = client.post(f"/api/posts/{post.id}/mark-posted", headers=auth_headers(ADMIN_UID))

        assert response.status_code == 409

    def test_request_changes_needs_message(self, client, auth_headers, make_post):
        post = make_post()

        response = client.post(
            f"/api/posts/{post.id}/request-changes",
            headers=auth_headers(ADMIN_UID),
            json={"message": "  "},
        )

        assert response.status_code == 400

    def test_if_match_mismatch_is_conflict(self, client, auth_headers, make_post):
        post = make_post()
        headers = {**auth_headers(ADMIN_UID), "If-Match": '"7"'}

        response = client.post(f"/api/posts/{post.id}/approve", headers=headers)

        assert response.status_code == 409

    def test_if_match_current_version(self, client, auth_headers, make_post):
        post = make_post()
        version = post.version
        headers = {**auth_headers(ADMIN_UID), "If-Match": str(version)}

        response = client.post(f"/api/posts/{post.id}/approve", headers=headers)

        assert response.status_code == 200
        assert response.json()["post"]["version"] == version + 1

    def test_unparseable_if_match(self, client, auth_headers, make_post):
        post = make_post()
        headers = {**auth_headers(ADMIN_UID), "If-Match": "abc"}

        response = client.post(f"/api/posts/{post.id}/approve", headers=headers)

        assert response.status_code == 400

    def test_edit_validation_error_shape(self, client, auth_headers, make_post):
        post = make_post()

        response = client.patch(
            f"/api/posts/{post.id}",
            headers=auth_headers(EDITOR_UID),
            json={"title": ""},
        )

        assert response.status_code == 400
        assert response.json()["success"] is False


class TestDelete:
    def test_owner_deletes_pending_post(self, client, auth_headers, make_post, store):
        post = make_post(filenames=("a.png", "b.png"))

        response = client.delete(f"/api/posts/{post.id}", headers=auth_headers(EDITOR_UID))

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "message": "Post deleted successfully",
            "warnings": [],
        }
        assert not (store.root / post.id).exists()
        assert client.get(f"/api/posts/{post.id}", headers=auth_headers(EDITOR_UID)).status_code == 404

    def test_owner_cannot_delete_authorized_post(self, client, auth_headers, make_post):
        post = make_post(status=PostStatus.AUTHORIZED)

        response = client.delete(f"/api/posts/{post.id}", headers=auth_headers(EDITOR_UID))

        assert response.status_code == 403

    def test_other_editor_cannot_delete(self, client, auth_headers, make_post):
        post = make_post()

        response = client.delete(f"/api/posts/{post.id}", headers=auth_headers(OTHER_EDITOR_UID))

        assert response.status_code == 403

    def test_delete_failures_become_warnings(self, client, auth_headers, make_post, store, mocker):
        post = make_post(filenames=("a.png", "b.png"))
        mocker.patch.object(store, "delete", side_effect=OSError("read-only filesystem"))

        response = client.delete(f"/api/posts/{post.id}", headers=auth_headers(ADMIN_UID))

        assert response.status_code == 200
        assert len(response.json()["warnings"]) == 2


class TestDashboard:
    def test_dashboard_lanes_and_stats(self, client, auth_headers, make_post):
        make_post(status=PostStatus.PENDING, title="Brunch")
        make_post(status=PostStatus.AUTHORIZED, title="Dinner")
        make_post(status=PostStatus.POSTED, title="Lunch")

        body = client.get("/api/dashboard", headers=auth_headers(ADMIN_UID)).json()

        lanes = {lane["status"]: lane for lane in body["lanes"]}
        assert [lane["title"] for lane in body["lanes"]] == [
            "Pending",
            "Authorized",
            "Changes Requested",
            "Posted",
        ]
        assert lanes["pending"]["count"] == 1
        assert lanes["posted"]["count"] == 1
        assert body["stats"]["pendingCount"] == 1
        assert body["stats"]["authorizedCount"] == 1
        assert body["stats"]["nextScheduled"] is not None
        assert body["session"]["capabilities"]["isAdmin"] is True

    def test_dashboard_search_narrows_lanes_only(self, client, auth_headers, make_post):
        make_post(status=PostStatus.PENDING, title="Brunch")
        make_post(status=PostStatus.PENDING, title="Dinner")

        body = client.get(
            "/api/dashboard",
            params={"search": "brunch"},
            headers=auth_headers(EDITOR_UID),
        ).json()

        lanes = {lane["status"]: lane for lane in body["lanes"]}
        assert [post["title"] for post in lanes["pending"]["posts"]] == ["Brunch"]
        assert body["stats"]["pendingCount"] == 2
        assert body["stats"]["authorizedCount"] is None
