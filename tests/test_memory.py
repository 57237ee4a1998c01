import json

import pytest

from app.main import app
from app.integrations.openai_client import get_openai_service
from app.modules.memory.service import (
    EXTRACTION_SYSTEM_PROMPT, EXTRACTION_USER_PROMPT, MERGE_SYSTEM_PROMPT, MERGE_USER_PROMPT, SUMMARY_PROMPT,
    group_conversations, is_quality_conversation, merge_insights
)

PROMPT_TEXT = {
    EXTRACTION_SYSTEM_PROMPT: "extract-system",
    EXTRACTION_USER_PROMPT: "extract-user",
    MERGE_SYSTEM_PROMPT: "merge-system",
    MERGE_USER_PROMPT: "merge-user",
    SUMMARY_PROMPT: "summary-prompt",
}


class StubOpenAI:
    def __init__(self, merge_reply="not json"):
        self.merge_reply = merge_reply
        self.calls = []

    def chat(self, messages, model=None, temperature=0.3, max_tokens=None):
        first = messages[0]["content"]
        self.calls.append(first.split("\n")[0])
        if first == "extract-system":
            text = messages[1]["content"]
            topic = ["rest more"] if "sleep" in text else ["set boundaries at work"]
            return "```json\n" + json.dumps({"goals": topic, "preferences": {"tone": "gentle"}}) + "\n```"
        if first == "merge-system":
            return self.merge_reply
        if first.startswith("summary-prompt"):
            return "  Speak gently and check in about sleep.  "
        raise AssertionError(f"unexpected prompt: {first}")


def _messages(conversation_id, topic, count=3):
    rows = []
    for i in range(count):
        rows.append({
            "id": conversation_id, "created_at": f"2026-02-0{count}T00:00:00+00:00",
            "message_id": f"{conversation_id}-u{i}", "message_role": "user",
            "message_content": f"I keep thinking about {topic} and how it affects the rest of my week, honestly.",
        })
        rows.append({
            "id": conversation_id, "created_at": f"2026-02-0{count}T00:00:00+00:00",
            "message_id": f"{conversation_id}-a{i}", "message_role": "assistant",
            "message_content": "That sounds hard. Tell me more.",
        })
    return rows


@pytest.fixture
def memory_db(db):
    db.seed("conversations", {"id": "conv-1", "human_id": "user-1"}, {"id": "conv-2", "human_id": "user-1"})
    for category, content in PROMPT_TEXT.items():
        prompt = db.seed("prompts", {"category": category, "is_active": True})[0]
        db.seed("prompt_versions", {"prompt_id": prompt["id"], "content": content})
    messages = {"conv-1": _messages("conv-1", "sleep"), "conv-2": _messages("conv-2", "work")}
    db.rpc_handlers["get_user_conversations_for_memory"] = lambda params: [{"id": "conv-1"}, {"id": "conv-2"}]
    db.rpc_handlers["get_user_conversations_with_messages_for_memory"] = lambda params: [
        row for conversation_id in params["conversation_ids"] for row in messages[conversation_id]
    ]
    return db


@pytest.fixture
def openai_stub(db):
    stub = StubOpenAI()
    app.dependency_overrides[get_openai_service] = lambda: stub
    return stub


def _seed_job(db, **fields):
    job = {"user_id": "user-1", "status": "pending", "job_type": "memory_processing", "batch_offset": 0,
           "batch_size": 10, "total_conversations": 2, "processed_conversations": 0, "progress_percentage": 0}
    job.update(fields)
    return db.seed("v16_memory_jobs", job)[0]


def test_create_job_processes_first_batch(client, memory_db, openai_stub, login):
    login("user-1")
    resp = client.post("/api/v1/memory-jobs", json={"userId": "user-1"})
    assert resp.status_code == 200, resp.text
    job = resp.json()["job"]
    assert job["status"] == "pending"
    assert job["totalConversations"] == 2

    stored = memory_db.rows("v16_memory_jobs")[0]
    assert stored["status"] == "completed"
    assert stored["progress_percentage"] == 100
    assert stored["processing_details"]["conversationsProcessed"] == 2
    assert stored["error_message"] is None

    analyses = memory_db.rows("v16_conversation_analyses")
    assert sorted(a["conversation_id"] for a in analyses) == ["conv-1", "conv-2"]
    assert {a["processing_status"] for a in analyses} == {"completed"}

    profile = memory_db.rows("user_profiles")[0]
    assert sorted(profile["profile_data"]["goals"]) == ["rest more", "set boundaries at work"]
    assert profile["profile_data"]["preferences"] == {"tone": "gentle"}
    assert profile["ai_instructions_summary"] == "Speak gently and check in about sleep."
    assert profile["conversation_count"] == 2
    assert profile["message_count"] == 12
    assert profile["version"] == 2
    assert "merge-system" not in openai_stub.calls


def test_status_includes_memory_when_complete(client, memory_db, openai_stub, login):
    login("user-1")
    job_id = client.post("/api/v1/memory-jobs", json={"userId": "user-1"}).json()["job"]["id"]
    resp = client.get("/api/v1/memory-jobs/status", params={"jobId": job_id})
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["job"]["status"] == "completed"
    assert body["memory"]["ai_instructions_summary"] == "Speak gently and check in about sleep."


def test_status_of_someone_elses_job_forbidden(client, memory_db, login):
    job = _seed_job(memory_db)
    login("user-2")
    assert client.get("/api/v1/memory-jobs/status", params={"jobId": job["id"]}).status_code == 403


def test_status_unknown_job(client, db, login):
    login("user-1")
    resp = client.get("/api/v1/memory-jobs/status", params={"jobId": "nope"})
    assert resp.status_code == 404
    assert resp.json()["error"] == "Job not found"


def test_create_job_for_another_user_forbidden(client, memory_db, openai_stub, login):
    login("user-2")
    assert client.post("/api/v1/memory-jobs", json={"userId": "user-1"}).status_code == 403
    assert memory_db.rows("v16_memory_jobs") == []


def test_already_analyzed_conversations_are_not_counted(client, memory_db, openai_stub, login):
    memory_db.seed("v16_conversation_analyses", {"user_id": "user-1", "conversation_id": "conv-1"})
    login("user-1")
    job = client.post("/api/v1/memory-jobs", json={"userId": "user-1"}).json()["job"]
    assert job["totalConversations"] == 1
    analysed = [a["conversation_id"] for a in memory_db.rows("v16_conversation_analyses")]
    assert sorted(analysed) == ["conv-1", "conv-2"]


def test_existing_profile_is_merged(client, memory_db, openai_stub, login):
    memory_db.seed("user_profiles", {
        "user_id": "user-1", "profile_data": {"goals": ["journal daily"], "mood": "low"},
        "version": 3, "conversation_count": 4, "message_count": 40,
    })
    login("user-1")
    client.post("/api/v1/memory-jobs", json={"userId": "user-1"})

    profile = memory_db.rows("user_profiles")[0]
    # the stub merge reply is not JSON, so the key-wise merge applies
    assert profile["profile_data"]["goals"][0] == "journal daily"
    assert len(profile["profile_data"]["goals"]) == 3
    assert profile["profile_data"]["mood"] == "low"
    assert profile["conversation_count"] == 6
    assert profile["version"] == 5
    assert "merge-system" in openai_stub.calls


def test_model_merge_reply_replaces_profile(client, memory_db, openai_stub, login):
    openai_stub.merge_reply = json.dumps({"goals": ["consolidated"]})
    memory_db.seed("user_profiles", {"user_id": "user-1", "profile_data": {"goals": ["journal daily"]}})
    login("user-1")
    client.post("/api/v1/memory-jobs", json={"userId": "user-1"})
    assert memory_db.rows("user_profiles")[0]["profile_data"] == {"goals": ["consolidated"]}


def test_short_conversations_are_marked_skipped(client, db, openai_stub, login):
    db.seed("conversations", {"id": "conv-1", "human_id": "user-1"})
    db.rpc_handlers["get_user_conversations_for_memory"] = lambda params: [{"id": "conv-1"}]
    db.rpc_handlers["get_user_conversations_with_messages_for_memory"] = lambda params: _messages("conv-1", "sleep", 1)
    login("user-1")
    client.post("/api/v1/memory-jobs", json={"userId": "user-1"})

    job = db.rows("v16_memory_jobs")[0]
    assert job["status"] == "completed"
    assert job["processing_details"]["conversationsMarkedAsSkipped"] == 1
    analysis = db.rows("v16_conversation_analyses")[0]
    assert analysis["analysis_result"] == {"skipped": True, "reason": "insufficient_quality"}
    assert db.rows("user_profiles")[0]["user_id"] == "user-1"
    assert openai_stub.calls == []


def test_no_conversations_completes_immediately(client, db, openai_stub, login):
    login("user-1")
    client.post("/api/v1/memory-jobs", json={"userId": "user-1"})
    job = db.rows("v16_memory_jobs")[0]
    assert job["status"] == "completed"
    assert job["processing_details"] == {"message": "No conversations to process"}


def test_process_marks_job_failed_on_missing_prompt(client, db, openai_stub, login):
    db.rpc_handlers["get_user_conversations_for_memory"] = lambda params: [{"id": "conv-1"}]
    db.rpc_handlers["get_user_conversations_with_messages_for_memory"] = lambda params: _messages("conv-1", "sleep")
    job = _seed_job(db)
    db.seed("admin_users", {"user_id": "admin-1"})
    login("admin-1")

    resp = client.post("/api/v1/memory-jobs/process", json={"jobId": job["id"]})
    assert resp.status_code == 500
    stored = db.rows("v16_memory_jobs")[0]
    assert stored["status"] == "failed"
    assert stored["error_message"] == f"Could not find active prompt for category: {EXTRACTION_SYSTEM_PROMPT}"


def test_process_is_admin_only(client, memory_db, login):
    job = _seed_job(memory_db)
    login("user-1")
    assert client.post("/api/v1/memory-jobs/process", json={"jobId": job["id"]}).status_code == 403


def test_process_finished_job_is_a_no_op(client, memory_db, login):
    job = _seed_job(memory_db, status="completed")
    memory_db.seed("admin_users", {"user_id": "admin-1"})
    login("admin-1")
    body = client.post("/api/v1/memory-jobs/process", json={"jobId": job["id"]}).json()
    assert body == {"success": True, "message": "Job is already completed"}


def test_group_conversations_and_quality_bar():
    conversations = group_conversations(_messages("a", "sleep", 1) + _messages("b", "work"))
    assert [c["id"] for c in conversations] == ["b", "a"]
    assert len(conversations[0]["messages"]) == 6
    assert is_quality_conversation(conversations[0]) is True
    assert is_quality_conversation(conversations[1]) is False


def test_merge_insights():
    merged = merge_insights(
        [{"goals": ["b"], "preferences": {"tone": "warm"}, "mood": "ok"}],
        {"goals": ["a"], "preferences": {"pace": "slow"}, "mood": "low"}
    )
    assert merged == {"goals": ["a", "b"], "preferences": {"pace": "slow", "tone": "warm"}, "mood": "ok"}
