from datetime import datetime, timedelta, timezone

import pytest

from app.main import app
from app.modules.circles.routes import get_circle_service
from app.modules.circles.service import CircleService
from app.modules.notifications.service import NotificationService


class StubSms:
    def __init__(self):
        self.sent = []

    def send(self, phone, message):
        self.sent.append((phone, message))
        return {"text_id": "txt-1", "quota_remaining": 5}


@pytest.fixture
def sms(db):
    stub = StubSms()
    app.dependency_overrides[get_circle_service] = lambda: CircleService(db, NotificationService(db, stub))
    return stub


@pytest.fixture
def circle(db):
    db.seed("circles", {"id": "circle-1", "name": "night-owls", "display_name": "Night Owls",
                        "created_by": "owner", "member_count": 1})
    db.seed("circle_memberships", {"circle_id": "circle-1", "user_id": "owner", "role": "admin"})
    return "circle-1"


def test_list_circles_pages_from_rpc(client, db):
    db.rpc_handlers["get_discoverable_circles"] = lambda params: [
        {"id": "a", "name": "a", "total_count": 45},
        {"id": "b", "name": "b", "total_count": 45},
    ]
    resp = client.get("/api/v1/community/circles", params={"page": 2, "limit": 20, "user_id": "u1"})
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["total_count"] == 45
    assert body["has_next_page"] is True
    name, params = db.rpc_calls[0]
    assert params["offset_count"] == 20
    assert params["requesting_user_id"] == "u1"


def test_list_circles_caps_page_size(client, db):
    resp = client.get("/api/v1/community/circles", params={"limit": 500})
    assert resp.status_code == 200, resp.text
    assert resp.json()["limit"] == 50
    assert db.rpc_calls[0][1]["requesting_user_id"] == "anonymous_user"


def test_create_circle_makes_creator_admin(client, db):
    resp = client.post("/api/v1/community/circles", json={
        "user_id": "u1", "name": "grief_support", "display_name": "Grief Support",
    })
    assert resp.status_code == 201, resp.text
    circle = resp.json()
    assert circle["member_count"] == 1
    membership = db.rows("circle_memberships")[0]
    assert (membership["user_id"], membership["role"]) == ("u1", "admin")


def test_create_circle_validates_name(client):
    resp = client.post("/api/v1/community/circles", json={
        "user_id": "u1", "name": "Grief Support", "display_name": "Grief Support",
    })
    assert resp.status_code == 400


def test_create_circle_duplicate_name(client, circle):
    resp = client.post("/api/v1/community/circles", json={
        "user_id": "u1", "name": "night-owls", "display_name": "Owls",
    })
    assert resp.status_code == 409


def test_create_circle_rolls_back_without_membership(client, db):
    db.fail("circle_memberships", "insert")
    resp = client.post("/api/v1/community/circles", json={
        "user_id": "u1", "name": "grief_support", "display_name": "Grief Support",
    })
    assert resp.status_code == 500
    assert db.rows("circles") == []


def test_join_and_leave(client, db, circle):
    joined = client.post(f"/api/v1/community/circles/{circle}/join", json={"user_id": "u1"})
    assert joined.status_code == 201, joined.text
    assert db.rows("circles")[0]["member_count"] == 2
    again = client.post(f"/api/v1/community/circles/{circle}/join", json={"user_id": "u1"})
    assert again.status_code == 409

    left = client.delete(f"/api/v1/community/circles/{circle}/join", params={"user_id": "u1"})
    assert left.status_code == 200, left.text
    assert db.rows("circles")[0]["member_count"] == 1


def test_join_unknown_circle(client):
    resp = client.post("/api/v1/community/circles/missing/join", json={"user_id": "u1"})
    assert resp.status_code == 404


def test_sole_admin_cannot_leave(client, circle):
    resp = client.delete(f"/api/v1/community/circles/{circle}/join", params={"user_id": "owner"})
    assert resp.status_code == 400


def test_join_request_flow(client, db, circle, sms):
    created = client.post(f"/api/v1/community/circles/{circle}/join-request", json={
        "userId": "u1", "message": "Hi", "notificationPhone": "+15551230000",
    })
    assert created.status_code == 200, created.text
    request_id = created.json()["joinRequest"]["id"]

    duplicate = client.post(f"/api/v1/community/circles/{circle}/join-request", json={"userId": "u1"})
    assert duplicate.status_code == 400

    forbidden = client.get(f"/api/v1/community/circles/{circle}/join-requests", params={"user_id": "u1"})
    assert forbidden.status_code == 403
    pending = client.get(f"/api/v1/community/circles/{circle}/join-requests", params={"user_id": "owner"})
    assert [r["id"] for r in pending.json()["requests"]] == [request_id]

    reviewed = client.put(f"/api/v1/community/circles/{circle}/join-requests", json={
        "userId": "owner", "requestId": request_id, "decision": "approved",
        "adminResponse": "Welcome!", "notificationMethod": "sms",
    })
    assert reviewed.status_code == 200, reviewed.text
    assert reviewed.json()["joinRequest"]["status"] == "approved"
    assert any(m["user_id"] == "u1" for m in db.rows("circle_memberships"))
    assert db.rows("circles")[0]["member_count"] == 2
    phone, text = sms.sent[0]
    assert phone == "+15551230000"
    assert "Night Owls" in text and "Welcome!" in text
    assert db.rows("admin_notification_log")[0]["notification_method"] == "sms"

    own = client.get(f"/api/v1/community/circles/{circle}/join-request", params={"user_id": "u1"})
    assert own.json()["request"]["status"] == "approved"


def test_rejected_request_can_be_renewed(client, db, circle, sms):
    db.seed("circle_join_requests", {"circle_id": circle, "requester_id": "u1", "status": "rejected"})
    resp = client.post(f"/api/v1/community/circles/{circle}/join-request", json={"userId": "u1"})
    assert resp.status_code == 200, resp.text
    rows = db.rows("circle_join_requests")
    assert len(rows) == 1
    assert rows[0]["status"] == "pending"


def test_review_unknown_request(client, circle, sms):
    resp = client.put(f"/api/v1/community/circles/{circle}/join-requests", json={
        "userId": "owner", "requestId": "missing", "decision": "rejected",
    })
    assert resp.status_code == 404


def test_access_link_limits(client, db, circle, sms):
    past = (datetime.now(timezone.utc) - timedelta(days=1)).isoformat()
    db.seed(
        "circle_access_links",
        {"id": "l1", "access_token": "expired", "is_active": True, "expires_at": past},
        {"id": "l2", "access_token": "used-up", "is_active": True, "max_uses": 1, "usage_count": 1},
        {"id": "l3", "access_token": "good", "is_active": True, "max_uses": 5, "usage_count": 0},
    )
    url = f"/api/v1/community/circles/{circle}/join-request"
    assert client.post(url, json={"userId": "u1", "accessToken": "nope"}).status_code == 400
    assert client.post(url, json={"userId": "u1", "accessToken": "expired"}).status_code == 400
    assert client.post(url, json={"userId": "u1", "accessToken": "used-up"}).status_code == 400
    assert client.post(url, json={"userId": "u1", "accessToken": "good"}).status_code == 200
    link = next(row for row in db.rows("circle_access_links") if row["id"] == "l3")
    assert link["usage_count"] == 1
