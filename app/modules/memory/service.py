import json
import logging
import math
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import HTTPException
from supabase import Client

from app.config.models_config import get_model
from app.database.supabase_client import first_row
from app.integrations.errors import ExternalServiceError
from app.integrations.openai_client import OpenAIService, parse_json_reply
from app.modules.usage.service import round_half_up

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 10
HISTORY_DAYS = 365
MAX_CONVERSATION_TOKENS = 6000

# a conversation is worth analysing only with enough back-and-forth from the user
MIN_MESSAGES = 6
MIN_USER_MESSAGES = 3
MIN_USER_CHARS = 200

EXTRACTION_SYSTEM_PROMPT = "v16_what_ai_remembers_extraction_system"
EXTRACTION_USER_PROMPT = "v16_what_ai_remembers_extraction_user"
MERGE_SYSTEM_PROMPT = "v16_what_ai_remembers_profile_merge_system"
MERGE_USER_PROMPT = "v16_what_ai_remembers_profile_merge_user"
SUMMARY_PROMPT = "v16_ai_summary_prompt"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def job_view(job: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": job["id"],
        "userId": job.get("user_id"),
        "status": job.get("status"),
        "jobType": job.get("job_type"),
        "totalConversations": job.get("total_conversations"),
        "processedConversations": job.get("processed_conversations"),
        "progressPercentage": job.get("progress_percentage"),
        "batchOffset": job.get("batch_offset"),
        "batchSize": job.get("batch_size"),
        "createdAt": job.get("created_at"),
        "updatedAt": job.get("updated_at"),
        "startedAt": job.get("started_at"),
        "completedAt": job.get("completed_at"),
        "errorMessage": job.get("error_message"),
        "processingDetails": job.get("processing_details"),
    }


def group_conversations(rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Fold one-row-per-message results into conversations, newest first"""
    conversations: Dict[str, Dict[str, Any]] = {}
    for row in rows:
        conversation = conversations.setdefault(row["id"], {
            "id": row["id"],
            "created_at": row.get("created_at"),
            "messages": [],
        })
        if row.get("message_id"):
            conversation["messages"].append({
                "id": row["message_id"],
                "content": row.get("message_content") or "",
                "role": row.get("message_role"),
                "created_at": row.get("message_created_at"),
            })
    return sorted(conversations.values(), key=lambda c: c.get("created_at") or "", reverse=True)


def is_quality_conversation(conversation: Dict[str, Any]) -> bool:
    messages = conversation["messages"]
    user_messages = [m for m in messages if m["role"] == "user"]
    user_chars = len(" ".join(m["content"] for m in user_messages))
    return len(messages) >= MIN_MESSAGES and len(user_messages) >= MIN_USER_MESSAGES and user_chars >= MIN_USER_CHARS


def merge_insights(insights: List[Dict[str, Any]], base: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Lists accumulate, objects merge key by key, scalars take the latest value"""
    merged: Dict[str, Any] = dict(base or {})
    for insight in insights:
        for key, value in insight.items():
            if isinstance(value, list):
                merged[key] = list(merged.get(key) or []) + value
            elif isinstance(value, dict):
                merged[key] = {**(merged.get(key) or {}), **value}
            else:
                merged[key] = value
    return merged


class MemoryService:
    def __init__(self, supabase: Client, openai_service: OpenAIService):
        self.supabase = supabase
        self.openai = openai_service

    def _get_job(self, job_id: str) -> Dict[str, Any]:
        job = first_row(self.supabase.table("v16_memory_jobs")
                        .select("*")
                        .eq("id", job_id)
                        .limit(1)
                        .execute())
        if not job:
            raise HTTPException(status_code=404, detail="Job not found")
        return job

    def _update_job(self, job_id: str, **fields) -> None:
        fields.setdefault("updated_at", _now())
        self.supabase.table("v16_memory_jobs")\
            .update(fields)\
            .eq("id", job_id)\
            .execute()

    def _processed_conversation_ids(self, user_id: str) -> set:
        rows = self.supabase.table("v16_conversation_analyses")\
            .select("conversation_id")\
            .eq("user_id", user_id)\
            .execute().data or []
        return {row["conversation_id"] for row in rows}

    def _get_prompt(self, category: str) -> str:
        """Latest version of the newest active prompt in a category"""
        prompt = first_row(self.supabase.table("prompts")
                           .select("id")
                           .eq("category", category)
                           .eq("is_active", True)
                           .order("created_at", desc=True)
                           .limit(1)
                           .execute())
        if not prompt:
            raise LookupError(f"Could not find active prompt for category: {category}")
        version = first_row(self.supabase.table("prompt_versions")
                            .select("content")
                            .eq("prompt_id", prompt["id"])
                            .order("created_at", desc=True)
                            .limit(1)
                            .execute())
        if not version or not version.get("content"):
            raise LookupError(f"No versions found for prompt in category: {category}")
        return version["content"]

    def create_job(self, user_id: str) -> Dict[str, Any]:
        try:
            conversations = self.supabase.table("conversations")\
                .select("id, created_at")\
                .eq("human_id", user_id)\
                .order("created_at", desc=True)\
                .execute().data or []
            processed = self._processed_conversation_ids(user_id)
            unprocessed = len([c for c in conversations if c["id"] not in processed])

            result = self.supabase.table("v16_memory_jobs").insert({
                "user_id": user_id,
                "status": "pending",
                "job_type": "memory_processing",
                "batch_offset": 0,
                "batch_size": DEFAULT_BATCH_SIZE,
                "total_conversations": unprocessed,
                "processed_conversations": 0,
                "progress_percentage": 0
            }).execute()
            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create job")
            job = result.data[0]
            logger.info(f"Memory job {job['id']} created for {user_id} ({unprocessed} unprocessed conversations)")
            return {
                "success": True,
                "job": {
                    "id": job["id"],
                    "status": job["status"],
                    "totalConversations": unprocessed,
                    "processedConversations": 0,
                    "progressPercentage": 0,
                    "createdAt": job.get("created_at"),
                }
            }
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to create memory job: {str(e)}")

    def get_status(self, job_id: str) -> Dict[str, Any]:
        try:
            job = self._get_job(job_id)
            response: Dict[str, Any] = {"success": True, "job": job_view(job)}
            if job.get("status") == "completed":
                profile = first_row(self.supabase.table("user_profiles")
                                    .select("profile_data, ai_instructions_summary, version, updated_at")
                                    .eq("user_id", job["user_id"])
                                    .limit(1)
                                    .execute())
                if profile:
                    response["memory"] = profile
            return response
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to fetch job status: {str(e)}")

    def run_job(self, job_id: str) -> None:
        """Background entry point; outcomes are recorded on the job row"""
        try:
            self.process_job(job_id)
        except HTTPException as e:
            logger.error(f"Memory job {job_id} failed: {e.detail}")

    def process_job(self, job_id: str) -> Dict[str, Any]:
        job = self._get_job(job_id)
        if job.get("status") != "pending":
            return {"success": True, "message": f"Job is already {job.get('status')}"}

        self._update_job(job_id, status="processing", started_at=_now())
        try:
            return self._process(job)
        except Exception as e:
            logger.error(f"Memory job {job_id} failed: {e}")
            self._update_job(job_id, status="failed", error_message=str(e))
            raise HTTPException(status_code=500, detail=f"Memory processing failed: {str(e)}")

    def _process(self, job: Dict[str, Any]) -> Dict[str, Any]:
        job_id, user_id = job["id"], job["user_id"]
        all_conversations = self.supabase.rpc("get_user_conversations_for_memory", {
            "target_user_id": user_id,
            "days_limit": HISTORY_DAYS
        }).execute().data or []
        processed = self._processed_conversation_ids(user_id)
        batch = [c["id"] for c in all_conversations if c["id"] not in processed]
        batch = batch[:job.get("batch_size") or DEFAULT_BATCH_SIZE]

        if not batch:
            self._update_job(
                job_id, status="completed", progress_percentage=100, completed_at=_now(),
                processing_details={"message": "No conversations to process"}
            )
            return {"success": True, "message": "No conversations to process"}

        rows = self.supabase.rpc("get_user_conversations_with_messages_for_memory", {
            "target_user_id": user_id,
            "conversation_ids": batch
        }).execute().data or []
        quality = [c for c in group_conversations(rows) if is_quality_conversation(c)]
        logger.info(f"Memory job {job_id}: {len(quality)} of {len(batch)} conversations pass the quality bar")

        examined = (job.get("processed_conversations") or 0) + len(batch)
        total = job.get("total_conversations") or 0
        self._update_job(
            job_id,
            processed_conversations=examined,
            progress_percentage=min(round_half_up(examined / total * 100), 100) if total else 100
        )

        if not quality:
            return self._skip_batch(job_id, user_id, batch)

        insights, stats = self._extract(job_id, user_id, quality)
        profile = self._save_profile(job_id, user_id, quality, insights)
        if insights:
            self._refresh_summary(user_id, profile.get("profile_data") or {})

        warnings = None
        if stats["duplicate"] or stats["failed"]:
            warnings = f"Completed with warnings: {stats['duplicate']} duplicates, {stats['failed']} failed"
        finished = _now()
        self._update_job(
            job_id,
            status="completed",
            progress_percentage=100,
            completed_at=finished,
            updated_at=finished,
            conversations_skipped=stats["skipped"],
            conversations_failed=stats["failed"],
            total_tokens_processed=stats["tokens"],
            error_message=warnings,
            processing_details={
                "conversationsExamined": len(quality),
                "conversationsProcessed": stats["processed"],
                "conversationsSkipped": stats["skipped"],
                "conversationsDuplicate": stats["duplicate"],
                "conversationsFailed": stats["failed"],
                "profileId": profile.get("id"),
                "profileVersion": profile.get("version"),
                "profileUpdated": stats["processed"] > 0,
            }
        )
        return {
            "success": True,
            "processed": len(quality),
            "profileId": profile.get("id"),
            "profileVersion": profile.get("version"),
            "isComplete": True,
            "progressPercentage": 100,
        }

    def _skip_batch(self, job_id: str, user_id: str, batch: List[str]) -> Dict[str, Any]:
        """Record every examined conversation so the next job moves past them"""
        self.supabase.table("v16_conversation_analyses").insert([
            {
                "user_id": user_id,
                "conversation_id": conversation_id,
                "analysis_result": {"skipped": True, "reason": "insufficient_quality"},
                "processing_status": "skipped",
                "skip_reason": "insufficient_quality",
                "extracted_at": _now()
            }
            for conversation_id in batch
        ]).execute()
        self.supabase.table("user_profiles")\
            .upsert({"user_id": user_id, "updated_at": _now()}, on_conflict="user_id")\
            .execute()
        self._update_job(
            job_id, status="completed", completed_at=_now(),
            processing_details={
                "message": "Completed - no quality conversations in this batch, but tracked as examined",
                "conversationsExamined": len(batch),
                "qualityConversationsFound": 0,
                "conversationsMarkedAsSkipped": len(batch),
            }
        )
        return {
            "success": True,
            "message": "No quality conversations in this batch, but marked as examined",
            "isComplete": True,
            "skippedConversations": len(batch),
        }

    def _extract(self, job_id: str, user_id: str, conversations: List[Dict[str, Any]]):
        system_prompt = self._get_prompt(EXTRACTION_SYSTEM_PROMPT)
        user_prompt = self._get_prompt(EXTRACTION_USER_PROMPT)
        insights: List[Dict[str, Any]] = []
        stats = {"processed": 0, "skipped": 0, "failed": 0, "duplicate": 0, "tokens": 0}

        for index, conversation in enumerate(conversations, start=1):
            messages = conversation["messages"]
            text = "\n".join(f"{m['role']}: {m['content']}" for m in messages)
            tokens = math.ceil(len(text) / 4)
            started = time.monotonic()
            skip_reason, error_details = None, None

            if tokens > MAX_CONVERSATION_TOKENS:
                analysis = {"skipped": True, "reason": "too_long", "estimated_tokens": tokens}
                status, skip_reason = "skipped", "too_long"
            else:
                try:
                    reply = self.openai.chat([
                        {"role": "system", "content": system_prompt},
                        {"role": "user", "content": f"{user_prompt}\n\nConversation:\n{text}"}
                    ], model=get_model("memory"))
                    analysis = parse_json_reply(reply)
                    if not isinstance(analysis, dict):
                        raise ValueError("Extraction reply is not a JSON object")
                    if analysis.get("skipped") or analysis.get("skip"):
                        status, skip_reason = "skipped", analysis.get("reason") or "insufficient_quality"
                    else:
                        status = "completed"
                        insights.append(analysis)
                        stats["tokens"] += tokens
                except (ExternalServiceError, ValueError) as e:
                    message = e.message if isinstance(e, ExternalServiceError) else str(e)
                    analysis = {"skipped": True, "reason": "processing_error", "error": message}
                    status, error_details = "failed", {"error": message, "step": "extraction"}
            stats[{"completed": "processed", "skipped": "skipped", "failed": "failed"}[status]] += 1
            duration_ms = int((time.monotonic() - started) * 1000)

            metadata = {"model": get_model("memory"), "processing_duration_ms": duration_ms, "job_id": job_id}
            existing = first_row(self.supabase.table("v16_conversation_analyses")
                                 .select("id")
                                 .eq("conversation_id", conversation["id"])
                                 .limit(1)
                                 .execute())
            if existing:
                stats["duplicate"] += 1
                self.supabase.table("v16_conversation_analyses")\
                    .update({"extraction_metadata": {
                        **metadata, "duplicate_processing_attempt": True, "duplicate_attempt_at": _now()
                    }})\
                    .eq("id", existing["id"])\
                    .execute()
            else:
                self.supabase.table("v16_conversation_analyses").insert({
                    "user_id": user_id,
                    "conversation_id": conversation["id"],
                    "analysis_result": analysis,
                    "extracted_at": _now(),
                    "message_count": len(messages),
                    "total_tokens": tokens,
                    "processing_status": status,
                    "error_details": error_details,
                    "extraction_metadata": metadata,
                    "quality_score": {"completed": 8, "skipped": 3}.get(status, 0),
                    "skip_reason": skip_reason,
                    "processing_duration_ms": duration_ms
                }).execute()

            self._update_job(
                job_id,
                processed_conversations=index,
                progress_percentage=round_half_up(index / len(conversations) * 100),
                processing_details={
                    "currentStep": f"Processing conversation {index}/{len(conversations)}",
                    "conversationsProcessed": stats["processed"],
                    "conversationsSkipped": stats["skipped"],
                    "conversationsFailed": stats["failed"],
                    "conversationsDuplicate": stats["duplicate"],
                }
            )
        return insights, stats

    def _merge_with_profile(self, existing_data: Dict[str, Any], new_memory: Dict[str, Any]) -> Dict[str, Any]:
        """Model-assisted merge of new memory into the stored profile; falls back to a key-wise merge"""
        try:
            system_prompt = self._get_prompt(MERGE_SYSTEM_PROMPT)
            user_prompt = self._get_prompt(MERGE_USER_PROMPT)
            reply = self.openai.chat([
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": (
                    f"{user_prompt}\n\nExisting Profile:\n{json_block(existing_data)}"
                    f"\n\nNew Memory Data:\n{json_block(new_memory)}"
                )}
            ], model=get_model("memory"))
            merged = parse_json_reply(reply)
            if isinstance(merged, dict):
                return merged
            logger.warning("Profile merge reply is not a JSON object; merging key by key")
        except (ExternalServiceError, LookupError, ValueError) as e:
            logger.warning(f"Profile merge unavailable, merging key by key: {e}")
        return merge_insights([new_memory], existing_data)

    def _save_profile(
        self,
        job_id: str,
        user_id: str,
        conversations: List[Dict[str, Any]],
        insights: List[Dict[str, Any]]
    ) -> Dict[str, Any]:
        existing = first_row(self.supabase.table("user_profiles")
                             .select("*")
                             .eq("user_id", user_id)
                             .limit(1)
                             .execute()) or {}
        existing_data = existing.get("profile_data") or {}
        profile_data = existing_data
        if insights:
            new_memory = merge_insights(insights)
            profile_data = self._merge_with_profile(existing_data, new_memory) if existing_data else new_memory
        self._update_job(job_id, processing_details={"currentStep": "Saving unified user profile..."})

        message_count = sum(len(c["messages"]) for c in conversations)
        result = self.supabase.table("user_profiles").upsert({
            "user_id": user_id,
            "profile_data": profile_data,
            "conversation_count": (existing.get("conversation_count") or 0) + len(conversations),
            "message_count": (existing.get("message_count") or 0) + message_count,
            "version": (existing.get("version") or 0) + 1,
            "updated_at": _now()
        }, on_conflict="user_id").execute()
        if not result.data:
            raise RuntimeError("Failed to save unified user profile")
        return result.data[0]

    def _refresh_summary(self, user_id: str, profile_data: Dict[str, Any]) -> None:
        """Regenerate the instruction summary injected into specialist prompts; failures are logged"""
        try:
            prompt = self._get_prompt(SUMMARY_PROMPT)
            summary = self.openai.chat([{"role": "user", "content": (
                f"{prompt}\n\nUSER PROFILE DATA TO SUMMARIZE:\n{json_block(profile_data)}"
                "\n\nGenerate an AI instruction summary (up to 5 sentences) based on this user profile data."
            )}], model=get_model("memory"), max_tokens=1000).strip()
            profile = first_row(self.supabase.table("user_profiles")
                                .select("version")
                                .eq("user_id", user_id)
                                .limit(1)
                                .execute()) or {}
            self.supabase.table("user_profiles").update({
                "ai_instructions_summary": summary,
                "version": (profile.get("version") or 0) + 1,
                "updated_at": _now()
            }).eq("user_id", user_id).execute()
            logger.info(f"AI instruction summary refreshed for {user_id} ({len(summary)} chars)")
        except (ExternalServiceError, LookupError) as e:
            logger.error(f"AI summary generation failed for {user_id}: {e}")


def json_block(data: Dict[str, Any]) -> str:
    return json.dumps(data, indent=2)
