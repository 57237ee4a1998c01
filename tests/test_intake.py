import pytest

from app.main import app
from app.config.settings import settings
from app.integrations.errors import ExternalServiceError
from app.integrations.openai_client import get_openai_service


class StubTranscriber:
    def __init__(self, error=None):
        self.error = error
        self.calls = []

    def transcribe(self, audio, filename="audio.webm"):
        self.calls.append(audio)
        if self.error:
            raise self.error
        return {"text": "I have been feeling anxious.", "duration": 42.5, "language": "en"}


@pytest.fixture
def transcriber(db):
    stub = StubTranscriber()
    app.dependency_overrides[get_openai_service] = lambda: stub
    return stub


@pytest.fixture
def provider(db, login):
    db.seed("s2_therapist_profiles", {"id": "tp1", "user_id": "prov-1"})
    return login("prov-1")


def _seed_recording(db, combined=True):
    bucket = db.storage.from_(settings.audio_bucket)
    db.seed("v18_audio_chunks", {
        "conversation_id": "c1", "intake_id": "intake-1", "chunk_index": 0, "speaker": "patient",
        "storage_path": "v18-voice-recordings/c1/patient/chunk-000.webm", "status": "uploaded",
    })
    bucket.upload("v18-voice-recordings/c1/patient/chunk-000.webm", b"raw")
    if combined:
        bucket.upload("v18-voice-recordings/c1/combined-1700000000000.webm", b"combined")
    return bucket


def test_preferences_fall_back_to_patient_phone(client, db):
    db.seed("patient_intake", {"id": "i1", "user_id": "u1", "sms_notifications": True})
    db.seed("patient_details", {"user_id": "u1", "phone": "+15550001111"})
    resp = client.get("/api/v1/intake/notification-preferences", params={"user_id": "u1"})
    assert resp.status_code == 200, resp.text
    assert resp.json() == {"phone": "+15550001111", "emailNotifications": False, "smsNotifications": True}


def test_preferences_update_latest_intake(client, db):
    db.seed("patient_intake", {"id": "old", "user_id": "u1"})
    db.seed("patient_intake", {"id": "new", "user_id": "u1"})
    resp = client.post("/api/v1/intake/notification-preferences", json={
        "user_id": "u1", "phone": "+15550002222", "emailNotifications": True, "smsNotifications": True,
    })
    assert resp.status_code == 200, resp.text
    rows = {r["id"]: r for r in db.rows("patient_intake")}
    assert rows["new"]["notification_phone"] == "+15550002222"
    assert "notification_phone" not in rows["old"]


def test_sms_requires_phone(client, db):
    resp = client.post("/api/v1/intake/notification-preferences", json={
        "user_id": "u1", "smsNotifications": True,
    })
    assert resp.status_code == 400


def test_preferences_without_intake(client):
    resp = client.post("/api/v1/intake/notification-preferences", json={"user_id": "u1", "phone": "+1555"})
    assert resp.status_code == 404


def test_audio_requires_provider(client, login):
    login("patient-1")
    resp = client.get("/api/v1/intake/audio", params={"intake_id": "intake-1"})
    assert resp.status_code == 403


def test_audio_returns_latest_combined(client, db, provider):
    _seed_recording(db)
    resp = client.get("/api/v1/intake/audio", params={"intake_id": "intake-1"})
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["status"] == "ready"
    assert body["storage_path"] == "v18-voice-recordings/c1/combined-1700000000000.webm"
    assert body["audio_url"].endswith("?token=signed")


def test_audio_combines_on_demand(client, db, provider):
    bucket = _seed_recording(db, combined=False)
    resp = client.get("/api/v1/intake/audio", params={"intake_id": "intake-1"})
    assert resp.status_code == 200, resp.text
    assert bucket.files[resp.json()["storage_path"]] == b"raw"


def test_audio_reports_pending_job(client, db, provider):
    _seed_recording(db, combined=False)
    db.seed("audio_combination_jobs", {"conversation_id": "c1", "speaker": "patient", "status": "processing"})
    resp = client.get("/api/v1/intake/audio", params={"intake_id": "intake-1"})
    assert resp.json()["status"] == "processing"


def test_audio_unknown_intake(client, provider):
    resp = client.get("/api/v1/intake/audio", params={"intake_id": "missing"})
    assert resp.status_code == 404


def test_transcribe_stores_transcript(client, db, provider, transcriber):
    _seed_recording(db)
    resp = client.post("/api/v1/intake/transcribe", json={"intake_id": "intake-1"})
    assert resp.status_code == 200, resp.text
    assert resp.json()["transcript"] == "I have been feeling anxious."
    assert transcriber.calls == [b"combined"]
    row = db.rows("patient_intake_transcripts")[0]
    assert row["status"] == "completed"
    assert row["audio_duration_seconds"] == 42.5

    again = client.post("/api/v1/intake/transcribe", json={"intake_id": "intake-1"})
    assert again.json()["status"] == "completed"
    assert len(transcriber.calls) == 1


def test_transcribe_failure_marks_job(client, db, provider, transcriber):
    _seed_recording(db)
    transcriber.error = ExternalServiceError("OpenAI", "invalid file format", 400)
    resp = client.post("/api/v1/intake/transcribe", json={"intake_id": "intake-1"})
    assert resp.status_code == 500
    row = db.rows("patient_intake_transcripts")[0]
    assert row["status"] == "failed"
    assert "invalid file format" in row["error_message"]


def test_transcribe_without_combined_audio(client, db, provider, transcriber):
    _seed_recording(db, combined=False)
    resp = client.post("/api/v1/intake/transcribe", json={"intake_id": "intake-1"})
    assert resp.status_code == 404


def test_unexpected_error_does_not_leave_job_processing(client, db, provider, transcriber):
    _seed_recording(db)
    transcriber.error = RuntimeError("connection reset")
    resp = client.post("/api/v1/intake/transcribe", json={"intake_id": "intake-1"})
    assert resp.status_code == 500
    row = db.rows("patient_intake_transcripts")[0]
    assert row["status"] == "failed"
    assert row["error_message"] == "connection reset"

    transcriber.error = None
    retry = client.post("/api/v1/intake/transcribe", json={"intake_id": "intake-1"})
    assert retry.status_code == 200, retry.text
    assert retry.json()["status"] == "completed"
