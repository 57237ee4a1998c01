import json

import pytest

from app.main import app
from app.integrations.errors import ExternalServiceError
from app.integrations.openai_client import get_openai_service, parse_json_reply
from app.modules.moderation.service import determine_priority, keyword_flags


class StubOpenAI:
    def __init__(self, flagged=False, categories=None, flags=None, moderation_error=None):
        self.flagged = flagged
        self.categories = categories or {}
        self.flags = flags or []
        self.moderation_error = moderation_error
        self.chats = []

    def moderate(self, text):
        if self.moderation_error:
            raise self.moderation_error
        return {"flagged": self.flagged, "categories": self.categories}

    def chat(self, messages, model=None, temperature=0.3, max_tokens=None):
        self.chats.append((messages, model))
        return "```json\n" + json.dumps({"flags": self.flags}) + "\n```"


@pytest.fixture
def openai_stub(db):
    def _install(**kwargs):
        stub = StubOpenAI(**kwargs)
        app.dependency_overrides[get_openai_service] = lambda: stub
        return stub
    return _install


def _moderate(client, content, content_type="post", user_id="user-1"):
    return client.post("/api/v1/community/moderation", json={
        "content": content,
        "content_type": content_type,
        "content_id": "content-1",
        "user_id": user_id,
    })


def test_clean_post_is_approved(client, db, openai_stub):
    stub = openai_stub()
    resp = _moderate(client, "Sharing a recipe I enjoyed with my family")
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["decision"] == "approved"
    assert body["requires_review"] is False
    assert body["priority"] == "standard"
    assert body["toxicity_score"] == 0.1
    assert body["moderation_details"] == {"flagged": False, "categories": {}}
    assert db.rpc_names() == ["store_content_moderation_result"]
    assert len(stub.chats) == 1


def test_crisis_keywords_escalate(client, db, openai_stub):
    stub = openai_stub()
    resp = _moderate(client, "I want to end my life tonight", content_type="comment")
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["decision"] == "flagged"
    assert body["priority"] == "immediate"
    assert body["mental_health_flags"] == ["suicide_ideation", "crisis_escalation"]
    assert db.rpc_names() == [
        "store_content_moderation_result",
        "store_crisis_detection",
        "update_user_safety_tracking",
        "add_to_clinical_review_queue",
    ]
    stored = dict(db.rpc_calls)["store_content_moderation_result"]
    assert stored["target_comment_id"] == "content-1"
    assert stored["target_post_id"] is None
    assert dict(db.rpc_calls)["update_user_safety_tracking"]["risk_level"] == "crisis"
    assert stub.chats == []


def test_self_harm_is_urgent_without_review_queue(client, db, openai_stub):
    openai_stub()
    body = _moderate(client, "I hurt myself again last week").json()
    assert body["priority"] == "urgent"
    assert body["requires_review"] is True
    assert "add_to_clinical_review_queue" not in db.rpc_names()
    assert dict(db.rpc_calls)["update_user_safety_tracking"]["risk_level"] == "high"


def test_anonymous_content_skips_user_tracking(client, db, openai_stub):
    openai_stub()
    body = _moderate(client, "I feel suicidal", user_id=None).json()
    assert body["priority"] == "immediate"
    assert "store_crisis_detection" not in db.rpc_names()
    assert "add_to_clinical_review_queue" in db.rpc_names()


def test_model_flags_used_when_keywords_miss(client, db, openai_stub):
    openai_stub(flags=["severe_depression", "made_up_flag"])
    body = _moderate(client, "Nothing has felt worth it in months").json()
    assert body["mental_health_flags"] == ["severe_depression"]
    assert body["decision"] == "flagged"
    assert body["priority"] == "standard"
    assert "store_crisis_detection" not in db.rpc_names()


def test_moderation_outage_falls_back_to_keywords(client, db, openai_stub):
    openai_stub(moderation_error=ExternalServiceError("OpenAI", "timeout"))
    resp = _moderate(client, "Sharing a recipe I enjoyed with my family")
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["decision"] == "approved"
    assert body["moderation_details"] is None


def test_openai_flagged_content_needs_review(client, db, openai_stub):
    openai_stub(flagged=True, categories={"violence": True})
    body = _moderate(client, "Some angry words about a neighbour").json()
    assert body["requires_review"] is True
    assert body["toxicity_score"] == 0.8
    assert body["priority"] == "urgent"


def test_invalid_content_type(client, db, openai_stub):
    openai_stub()
    resp = _moderate(client, "hello", content_type="message")
    assert resp.status_code == 400


def test_keyword_flags_are_case_insensitive():
    assert keyword_flags("Thinking about SUICIDE") == ["suicide_ideation"]
    assert keyword_flags("a calm afternoon walk") == []


def test_determine_priority():
    assert determine_priority(["crisis_escalation"], None) == "immediate"
    assert determine_priority(["eating_disorder"], None) == "urgent"
    assert determine_priority([], {"flagged": True, "categories": {"violence": True}}) == "urgent"
    assert determine_priority(["severe_depression"], None) == "standard"


def test_parse_json_reply_strips_fences():
    assert parse_json_reply('```json\n{"flags": ["self_harm"]}\n```') == {"flags": ["self_harm"]}
    assert parse_json_reply(' {"flags": []} ') == {"flags": []}
