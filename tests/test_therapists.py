def _seed_therapists(db):
    db.seed(
        "s2_therapist_profiles",
        {"id": "t1", "user_id": "prov-1", "full_name": "Dana Reyes", "title": "LCSW", "is_active": True,
         "primary_location": "Austin, TX", "languages_spoken": ["English", "Spanish"], "gender_identity": "female"},
        {"id": "t2", "user_id": "prov-2", "full_name": "Sam Park", "title": "Other", "other_title": "Art Therapist",
         "is_active": True, "primary_location": "Denver, CO", "languages_spoken": ["English"]},
        {"id": "t3", "user_id": "prov-3", "full_name": "Inactive Person", "is_active": False},
    )
    db.seed(
        "s2_complete_profiles",
        {"therapist_profile_id": "t1", "user_id": "prov-1", "is_active": True,
         "mental_health_specialties": ["Anxiety", "Trauma"], "personal_statement": "Hello"},
    )


def test_browse_lists_active_newest_first(client, db):
    _seed_therapists(db)
    resp = client.get("/api/v1/therapists/search")
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["total"] == 2
    assert [t["id"] for t in body["therapists"]] == ["t2", "t1"]


def test_search_by_text_and_language(client, db):
    _seed_therapists(db)
    by_name = client.get("/api/v1/therapists/search", params={"q": "dana"}).json()
    assert [t["id"] for t in by_name["therapists"]] == ["t1"]
    by_language = client.get("/api/v1/therapists/search", params={"language": "Spanish"}).json()
    assert [t["id"] for t in by_language["therapists"]] == ["t1"]


def test_search_by_specialty_uses_complete_profile(client, db):
    _seed_therapists(db)
    body = client.get("/api/v1/therapists/search", params={"specialty": "Trauma"}).json()
    assert [t["id"] for t in body["therapists"]] == ["t1"]
    assert body["therapists"][0]["personalStatement"] == "Hello"


def test_detailed_uses_other_title(client, db):
    _seed_therapists(db)
    resp = client.post("/api/v1/therapists/detailed", json={"therapistId": "t2"})
    assert resp.status_code == 200, resp.text
    therapist = resp.json()["therapist"]
    assert therapist["title"] == "Art Therapist"
    assert therapist["fullName"] == "Sam Park"
    assert "personalStatement" not in therapist


def test_detailed_not_found(client, db):
    resp = client.post("/api/v1/therapists/detailed", json={"therapistId": "nope"})
    assert resp.status_code == 404
    assert resp.json() == {"error": "Therapist not found"}


def test_provider_preferences_default_from_contacts(client, db):
    db.seed("s2_therapist_profiles", {"user_id": "prov-1", "phone_number": "+15553334444", "email_address": "d@x.com"})
    resp = client.get("/api/v1/therapists/notification-preferences", params={"user_id": "prov-1"})
    assert resp.status_code == 200, resp.text
    assert resp.json() == {"phone": "+15553334444", "emailNotifications": True, "smsNotifications": True}


def test_provider_preferences_update(client, db):
    db.seed("s2_therapist_profiles", {"id": "t1", "user_id": "prov-1"})
    resp = client.post("/api/v1/therapists/notification-preferences", json={
        "user_id": "prov-1", "phone": "+15559990000", "smsNotifications": True, "emailNotifications": False,
    })
    assert resp.status_code == 200, resp.text
    profile = db.rows("s2_therapist_profiles")[0]
    assert profile["notification_phone"] == "+15559990000"
    assert profile["sms_notifications"] is True
    assert profile["email_notifications"] is False


def test_provider_preferences_unknown_provider(client):
    resp = client.get("/api/v1/therapists/notification-preferences", params={"user_id": "ghost"})
    assert resp.status_code == 404


def test_admin_listing(client, db, login):
    _seed_therapists(db)
    db.seed("s2_license_verifications", {"user_id": "prov-1", "is_active": True, "license_number": "L-1"})
    db.seed("admin_users", {"user_id": "admin-1"})
    login("admin-1")
    resp = client.get("/api/v1/therapists/admin")
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["total"] == 3
    by_id = {t["profile"]["id"]: t for t in body["therapists"]}
    assert by_id["t1"]["is_complete"] is True
    assert by_id["t1"]["license_verification"]["license_number"] == "L-1"
    assert by_id["t2"]["is_complete"] is False


def test_admin_listing_forbidden_for_provider(client, db, login):
    _seed_therapists(db)
    login("prov-1")
    assert client.get("/api/v1/therapists/admin").status_code == 403


STATEMENT = (
    "I help adults navigate anxiety and life transitions with warmth and practical tools. "
    "Sessions focus on building skills you can use between appointments."
)


def _complete_profile_body(user_id="new-prov", **overrides):
    body = {
        "userId": user_id,
        "personalStatement": STATEMENT,
        "mentalHealthSpecialties": ["Anxiety"],
        "treatmentApproaches": ["CBT"],
        "ageRangesTreated": ["Adults (18-64)"],
        "practiceDetails": {"practiceType": "Private practice", "sessionLength": "50 minutes"},
        "insuranceInformation": {"acceptsInsurance": True, "insurancePlans": ["Aetna"]},
        "lgbtqAffirming": True,
    }
    body.update(overrides)
    return body


def _basic_profile_body(user_id="new-prov", **overrides):
    body = {
        "userId": user_id,
        "fullName": "Jordan Lee",
        "title": "LPC",
        "degrees": ["MA"],
        "primaryLocation": "Portland, OR",
        "offersOnline": True,
        "phoneNumber": "",
    }
    body.update(overrides)
    return body


def test_onboarding_profile_create_and_update(client, db, login):
    login("new-prov")
    resp = client.post("/api/v1/therapists/profile", json=_basic_profile_body())
    assert resp.status_code == 200, resp.text
    profile = resp.json()["profile"]
    assert profile["fullName"] == "Jordan Lee"
    assert profile["completionStatus"] == "profile_complete"
    assert profile["phoneNumber"] is None

    resp = client.post("/api/v1/therapists/profile", json=_basic_profile_body(primaryLocation="Salem, OR"))
    assert resp.status_code == 200, resp.text
    assert len(db.rows("s2_therapist_profiles")) == 1
    fetched = client.get("/api/v1/therapists/profile", params={"user_id": "new-prov"}).json()
    assert fetched["profile"]["primaryLocation"] == "Salem, OR"


def test_onboarding_profile_missing_returns_null(client, db, login):
    login("someone")
    body = client.get("/api/v1/therapists/profile", params={"user_id": "someone"}).json()
    assert body == {"success": True, "profile": None}


def test_onboarding_profile_requires_degrees(client, db, login):
    login("new-prov")
    resp = client.post("/api/v1/therapists/profile", json=_basic_profile_body(degrees=[]))
    assert resp.status_code == 400
    assert resp.json()["error"].startswith("degrees")


def test_onboarding_profile_for_someone_else_forbidden(client, db, login):
    login("intruder")
    resp = client.post("/api/v1/therapists/profile", json=_basic_profile_body())
    assert resp.status_code == 403
    assert db.rows("s2_therapist_profiles") == []


def test_complete_profile_requires_basic_profile(client, db, login):
    login("new-prov")
    resp = client.post("/api/v1/therapists/complete-profile", json=_complete_profile_body())
    assert resp.status_code == 400
    assert resp.json()["error"] == "Therapist profile must be created before complete profile"


def test_complete_profile_statement_too_short(client, db, login):
    login("new-prov")
    resp = client.post("/api/v1/therapists/complete-profile", json=_complete_profile_body(personalStatement="Hi"))
    assert resp.status_code == 400
    assert resp.json()["error"].startswith("personalStatement")


def test_complete_profile_create_then_update(client, db, login):
    login("new-prov")
    client.post("/api/v1/therapists/profile", json=_basic_profile_body())
    therapist_id = db.rows("s2_therapist_profiles")[0]["id"]

    resp = client.post("/api/v1/therapists/complete-profile", json=_complete_profile_body())
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["therapistProfileId"] == therapist_id
    complete = body["completeProfile"]
    assert complete["practiceDetails"]["practiceType"] == "Private practice"
    assert complete["insuranceInformation"] == {
        "acceptsInsurance": True, "insurancePlans": ["Aetna"], "outOfNetworkSupported": False
    }
    assert complete["lgbtqAffirming"] is True
    assert "practiceType" not in complete

    resp = client.post(
        "/api/v1/therapists/complete-profile",
        json=_complete_profile_body(treatmentApproaches=["DBT"], otherTreatmentApproach="Somatic")
    )
    assert resp.status_code == 200, resp.text
    assert len(db.rows("s2_complete_profiles")) == 1

    fetched = client.get("/api/v1/therapists/complete-profile", params={"user_id": "new-prov"}).json()
    assert fetched["completeProfile"]["treatmentApproaches"] == ["DBT"]
    assert fetched["completeProfile"]["otherTreatmentApproach"] == "Somatic"
