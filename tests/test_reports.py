import pytest


@pytest.fixture
def content(db):
    db.seed("community_posts", {"id": "post-1", "title": "t", "content": "c", "user_id": "u2", "is_deleted": False})
    db.seed("post_comments", {"id": "comment-1", "content": "c", "user_id": "u2", "is_deleted": False})


def test_report_post(client, db, content):
    resp = client.post("/api/v1/community/reports", json={
        "reporter_id": "u1", "post_id": "post-1", "reason": "spam", "description": "  ads  ",
    })
    assert resp.status_code == 201, resp.text
    report_id = resp.json()["report_id"]
    report = db.rows("post_reports")[0]
    assert report["id"] == report_id
    assert report["description"] == "ads"
    assert report["status"] == "pending"
    assert "is_flagged" not in db.rows("community_posts")[0]


def test_serious_report_flags_comment(client, db, content):
    resp = client.post("/api/v1/community/reports", json={
        "reported_by": "u1", "comment_id": "comment-1", "reason": "self_harm",
    })
    assert resp.status_code == 201, resp.text
    assert db.rows("post_comments")[0]["is_flagged"] is True


def test_duplicate_report(client, content):
    payload = {"reporter_id": "u1", "post_id": "post-1", "reason": "harassment"}
    assert client.post("/api/v1/community/reports", json=payload).status_code == 201
    resp = client.post("/api/v1/community/reports", json=payload)
    assert resp.status_code == 409
    other_reason = client.post("/api/v1/community/reports", json={**payload, "reason": "spam"})
    assert other_reason.status_code == 201


def test_report_validation(client, content):
    bad_reason = client.post("/api/v1/community/reports", json={"reporter_id": "u1", "post_id": "post-1", "reason": "boring"})
    assert bad_reason.status_code == 400
    no_target = client.post("/api/v1/community/reports", json={"reporter_id": "u1", "reason": "spam"})
    assert no_target.status_code == 400
    missing = client.post("/api/v1/community/reports", json={"reporter_id": "u1", "comment_id": "gone", "reason": "spam"})
    assert missing.status_code == 404
    assert missing.json() == {"error": "Comment not found"}


def test_moderation_queue_is_admin_only(client, login):
    login("u1")
    assert client.get("/api/v1/community/reports").status_code == 403


def test_moderation_queue(client, db, login, content):
    db.seed("admin_users", {"user_id": "mod"})
    db.seed("post_reports",
            {"reported_by": "u1", "post_id": "post-1", "reason": "spam", "status": "pending"},
            {"reported_by": "u3", "comment_id": "comment-1", "reason": "harassment", "status": "pending"},
            {"reported_by": "u4", "post_id": "post-1", "reason": "spam", "status": "resolved"})
    login("mod")

    pending = client.get("/api/v1/community/reports")
    assert pending.status_code == 200, pending.text
    body = pending.json()
    assert body["total_count"] == 2
    assert body["reports"][0]["reason"] == "harassment"
    assert body["reports"][0]["post_comments"]["id"] == "comment-1"
    assert body["reports"][1]["community_posts"]["title"] == "t"

    everything = client.get("/api/v1/community/reports", params={"status": "all", "reason": "spam"}).json()
    assert everything["total_count"] == 2
