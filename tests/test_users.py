def test_profile_without_display_name(client):
    resp = client.get("/api/v1/users/profile", params={"user_id": "u1"})
    assert resp.status_code == 200, resp.text
    assert resp.json() == {"user_id": "u1", "display_name": None, "has_display_name": False}


def test_profile_requires_user_id(client):
    resp = client.get("/api/v1/users/profile")
    assert resp.status_code == 400
    assert "user_id" in resp.json()["error"]


def test_set_display_name_keeps_other_profile_keys(client, db):
    db.seed("user_profiles", {"user_id": "u1", "profile_data": {"timezone": "UTC"}})
    resp = client.post("/api/v1/users/profile", json={"user_id": "u1", "display_name": "  River  "})
    assert resp.status_code == 200, resp.text
    assert resp.json()["display_name"] == "River"
    rows = db.rows("user_profiles")
    assert len(rows) == 1
    assert rows[0]["profile_data"] == {"timezone": "UTC", "display_name": "River"}

    profile = client.get("/api/v1/users/profile", params={"user_id": "u1"}).json()
    assert profile["has_display_name"] is True


def test_display_name_length_bounds(client):
    short = client.post("/api/v1/users/profile", json={"user_id": "u1", "display_name": "A"})
    assert short.status_code == 400
    long = client.post("/api/v1/users/profile", json={"user_id": "u1", "display_name": "x" * 51})
    assert long.status_code == 400


def test_display_name_must_be_unique(client, db):
    db.seed("user_profiles", {"user_id": "u2", "profile_data": {"display_name": "River"}})
    resp = client.post("/api/v1/users/profile", json={"user_id": "u1", "display_name": "River"})
    assert resp.status_code == 409
    assert resp.json() == {"error": "Display name is already taken"}


def test_user_can_keep_own_display_name(client, db):
    db.seed("user_profiles", {"user_id": "u1", "profile_data": {"display_name": "River"}})
    resp = client.post("/api/v1/users/profile", json={"user_id": "u1", "display_name": "River"})
    assert resp.status_code == 200, resp.text
