import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import HTTPException
from supabase import Client

from app.database.supabase_client import first_row
from app.modules.conversations.schemas import (
    SaveMessageRequest, StartSessionRequest, EndSessionRequest,
    StartSessionResponse, SpecialistSession, SessionPrompt, ResumedConversation
)

logger = logging.getLogger(__name__)

SESSION_PROVIDER = "eleven-labs"
RESUME_MARKER = "Resuming conversation from"
DEFAULT_SPECIALIST = "triage"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _is_real_summary(summary: Optional[str]) -> bool:
    return bool(summary and summary.strip() and RESUME_MARKER not in summary)


def build_specialist_prompt(
    base_prompt: str,
    specialist_type: str,
    context_summary: Optional[str],
    memory: Optional[str] = None
) -> str:
    """Extend a specialist prompt with the triage handoff context and user memory"""
    content = base_prompt or ""
    if _is_real_summary(context_summary):
        content += (
            f"\n\n=== NEW SPECIALIST SESSION ===\n"
            f"You are now the {specialist_type} specialist taking over from the triage AI. "
            f"This is a fresh start for you - introduce yourself as the specialist and acknowledge the handoff."
            f"\n\nIMPORTANT CONTEXT FROM TRIAGE AI:\n{context_summary}\n\n"
            f"Based on this context, provide focused and relevant support for the user's specific needs. "
            f"Reference their situation naturally in your responses."
        )
    if memory and memory.strip():
        content += (
            f"\n\n=== WHAT YOU REMEMBER ABOUT THIS USER ===\n{memory.strip()}\n"
            f"Use this naturally; do not recite it back verbatim."
        )
    return content


class ConversationService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _get_conversation(self, conversation_id: str, columns: str = "*") -> Dict[str, Any]:
        conversation = first_row(self.supabase.table("conversations")
                                 .select(columns)
                                 .eq("id", conversation_id)
                                 .limit(1)
                                 .execute())
        if not conversation:
            raise HTTPException(status_code=404, detail="Conversation not found")
        return conversation

    def save_message(self, data: SaveMessageRequest) -> Dict[str, Any]:
        try:
            conversation_id = data.conversation_id
            if not conversation_id:
                created = self.supabase.table("conversations").insert({
                    "human_id": data.user_id,
                    "is_active": True
                }).execute()
                if not created.data:
                    raise HTTPException(status_code=500, detail="Failed to create conversation for message")
                conversation_id = created.data[0]["id"]
                logger.info(f"Created conversation {conversation_id} for user {data.user_id}")

            message = data.message
            row = {
                "conversation_id": conversation_id,
                "role": message.role,
                "content": message.text,
                "metadata": {
                    "isFinal": message.is_final,
                    "bookId": data.book_id,
                    "original_id": message.id,
                    "specialist": data.specialist or message.specialist or "ai_preview",
                },
            }
            if message.timestamp:
                row["created_at"] = message.timestamp
            result = self.supabase.table("messages").insert(row).execute()
            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to save message to database")
            return {
                "success": True,
                "conversationId": conversation_id,
                "messageId": result.data[0].get("id"),
                "originalMessageId": message.id,
            }
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to save message: {str(e)}")

    def _latest_context_summary(self, conversation_id: str) -> Optional[str]:
        result = self.supabase.rpc(
            "get_latest_context_summary_for_conversation",
            {"target_conversation_id": conversation_id}
        ).execute()
        rows = result.data or []
        if not rows:
            return None
        return (rows[0].get("routing_metadata") or {}).get("context_summary")

    def _user_memory(self, user_id: str) -> Optional[str]:
        try:
            profile = first_row(self.supabase.table("user_profiles")
                                .select("ai_instructions_summary")
                                .eq("user_id", user_id)
                                .limit(1)
                                .execute())
            return (profile or {}).get("ai_instructions_summary")
        except Exception as e:
            logger.warning(f"Could not load memory for user {user_id}, continuing without it: {e}")
            return None

    def start_specialist_session(self, data: StartSessionRequest) -> StartSessionResponse:
        """Hand a conversation to a specialist prompt"""
        correlation_id = uuid.uuid4().hex[:12]
        logger.info(
            f"[handoff {correlation_id}] start specialist={data.specialist_type} "
            f"conversation={data.conversation_id} agent={data.agent_id}"
        )
        try:
            context_summary = data.context_summary
            if data.conversation_id and not _is_real_summary(context_summary):
                stored = self._latest_context_summary(data.conversation_id)
                if stored:
                    context_summary = stored

            if data.conversation_id:
                conversation = self._get_conversation(
                    data.conversation_id, "id, specialist_history, metadata"
                )
                history = list(conversation.get("specialist_history") or [])
                history.append({
                    "specialist": data.specialist_type,
                    "started_at": _now(),
                    "context_summary": context_summary or None,
                    "provider": SESSION_PROVIDER,
                })
                metadata = dict(conversation.get("metadata") or {})
                metadata["provider"] = SESSION_PROVIDER
                self.supabase.table("conversations")\
                    .update({
                        "current_specialist": data.specialist_type,
                        "specialist_history": history,
                        "metadata": metadata,
                        "last_activity_at": _now(),
                    })\
                    .eq("id", data.conversation_id)\
                    .execute()

            prompt = first_row(self.supabase.table("ai_prompts")
                               .select("*")
                               .eq("prompt_type", data.specialist_type)
                               .eq("is_active", True)
                               .limit(1)
                               .execute())
            if not prompt:
                raise HTTPException(
                    status_code=500,
                    detail=f"Failed to load specialist prompt: no active prompt for {data.specialist_type}"
                )

            memory = self._user_memory(data.user_id) if data.user_id else None
            content = build_specialist_prompt(
                prompt.get("prompt_content") or "", data.specialist_type, context_summary, memory
            )
            logger.info(f"[handoff {correlation_id}] prompt ready ({len(content)} chars)")

            return StartSessionResponse(
                provider=SESSION_PROVIDER,
                session=SpecialistSession(
                    specialistType=data.specialist_type,
                    conversationId=data.conversation_id,
                    agentId=data.agent_id,
                    prompt=SessionPrompt(
                        id=prompt.get("id"),
                        type=prompt.get("prompt_type") or data.specialist_type,
                        content=content,
                        voice_settings=prompt.get("voice_settings"),
                        metadata={**(prompt.get("metadata") or {}), "provider": SESSION_PROVIDER},
                    ),
                    contextSummary=context_summary,
                ),
            )
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"[handoff {correlation_id}] start failed: {e}")
            raise HTTPException(status_code=500, detail=f"Failed to start specialist session: {str(e)}")

    def end_specialist_session(self, data: EndSessionRequest) -> Dict[str, Any]:
        try:
            conversation = self._get_conversation(data.conversation_id, "id, specialist_history, metadata")
            ended_at = _now()
            history = [dict(entry) for entry in (conversation.get("specialist_history") or [])]
            if history:
                history[-1]["ended_at"] = ended_at
                if data.reason:
                    history[-1]["end_reason"] = data.reason
            metadata = dict(conversation.get("metadata") or {})
            metadata["last_session_end"] = ended_at
            self.supabase.table("conversations")\
                .update({
                    "current_specialist": None,
                    "specialist_history": history,
                    "metadata": metadata,
                })\
                .eq("id", data.conversation_id)\
                .execute()

            if data.context_summary:
                try:
                    self.supabase.table("messages").insert({
                        "conversation_id": data.conversation_id,
                        "role": "system",
                        "content": f"Session ended. Context summary: {data.context_summary}",
                        "routing_metadata": {
                            "type": "session_end",
                            "provider": SESSION_PROVIDER,
                            "specialist": data.specialist_type,
                            "reason": data.reason,
                            "context_summary": data.context_summary,
                            "timestamp": ended_at,
                        },
                    }).execute()
                except Exception as e:
                    logger.error(f"Failed to save context summary for {data.conversation_id}: {e}")

            return {
                "success": True,
                "provider": SESSION_PROVIDER,
                "conversationId": data.conversation_id,
                "contextSummary": data.context_summary,
                "endedAt": ended_at,
            }
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to end session: {str(e)}")

    def resume_conversation(self, user_id: str, conversation_id: str) -> Dict[str, Any]:
        try:
            conversation = first_row(self.supabase.table("conversations")
                                     .select("id, current_specialist, specialist_history, created_at, last_activity_at")
                                     .eq("id", conversation_id)
                                     .eq("human_id", user_id)
                                     .limit(1)
                                     .execute())
            if not conversation:
                raise HTTPException(status_code=404, detail="Conversation not found or access denied")

            messages = self.supabase.rpc(
                "get_conversation_messages_for_memory",
                {"target_conversation_id": conversation_id}
            ).execute()

            self.supabase.table("conversations")\
                .update({"last_activity_at": _now()})\
                .eq("id", conversation_id)\
                .execute()

            resumed = ResumedConversation(
                id=conversation["id"],
                currentSpecialist=conversation.get("current_specialist") or DEFAULT_SPECIALIST,
                specialistHistory=conversation.get("specialist_history") or [],
                createdAt=conversation.get("created_at"),
                lastActivityAt=conversation.get("last_activity_at"),
                messages=messages.data or [],
            )
            return {"success": True, "conversation": resumed.model_dump()}
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to resume conversation: {str(e)}")

    def generate_access_code(self, conversation_id: str, user_id: str) -> Dict[str, Any]:
        """Create a new intake session with a unique access code for this conversation"""
        try:
            code_result = self.supabase.rpc("generate_unique_access_code", {}).execute()
            access_code = code_result.data
            if isinstance(access_code, list):
                access_code = access_code[0] if access_code else None
            if not access_code:
                raise HTTPException(status_code=500, detail="Failed to generate access code")

            details = first_row(self.supabase.table("patient_details")
                                .select("id, phone, email")
                                .eq("user_id", user_id)
                                .limit(1)
                                .execute())
            self.supabase.table("intake_sessions").insert({
                # NULL for first-time users, set for returning users
                "patient_details_id": details["id"] if details else None,
                "user_id": user_id,
                "access_code": access_code,
                "conversation_id": conversation_id,
                "status": "pending",
                "phone": details.get("phone") if details else None,
                "email": details.get("email") if details else None,
            }).execute()
            logger.info(
                f"Access code issued for conversation {conversation_id} "
                f"(returning user: {bool(details)})"
            )
            return {"success": True, "accessCode": access_code}
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to create intake session: {str(e)}")
