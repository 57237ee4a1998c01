import logging
from typing import Any, Dict, Optional

from fastapi import HTTPException

from app.config.settings import settings
from app.config.models_config import (
    get_model, REALTIME_DEFAULTS, ELEVENLABS_VOICE_DEFAULTS,
    ELEVENLABS_MODEL_FAMILY_DEFAULT, ELEVENLABS_LANGUAGE_DEFAULT
)
from app.integrations.elevenlabs import ElevenLabsClient
from app.integrations.errors import ExternalServiceError
from app.integrations.openai_client import OpenAIService
from app.modules.voice.schemas import RealtimeSessionRequest, VoiceSettingsUpdate

logger = logging.getLogger(__name__)

INSTRUCTION_PREVIEW_CHARS = 500


def summarize_agent(agent: Dict[str, Any]) -> Dict[str, Any]:
    """Flatten an ElevenLabs agent document into the fields the admin UI shows"""
    config = agent.get("conversation_config") or {}
    prompt = (config.get("agent") or {}).get("prompt") or {}
    tts = config.get("tts") or {}
    llm = config.get("llm") or {}
    instructions = prompt.get("prompt") or ""
    tool_ids = prompt.get("tool_ids") or []
    knowledge_base = prompt.get("knowledge_base") or []
    return {
        "agentId": agent.get("agent_id"),
        "name": agent.get("name"),
        "status": agent.get("status") or "unknown",
        "created_at": agent.get("created_at"),
        "updated_at": agent.get("updated_at"),
        "hasInstructions": bool(instructions),
        "instructionLength": len(instructions),
        "instructionPreview": instructions[:INSTRUCTION_PREVIEW_CHARS] or "NO INSTRUCTIONS FOUND",
        "firstMessage": prompt.get("first_message") or "not set",
        "voiceId": tts.get("voice_id") or "not configured",
        "voiceModel": tts.get("model_id") or "not configured",
        "voiceSettings": {
            "stability": tts.get("stability"),
            "similarity_boost": tts.get("similarity_boost"),
            "style": tts.get("style"),
            "use_speaker_boost": tts.get("use_speaker_boost"),
        },
        "llmModel": llm.get("model") or "not configured",
        "llmTemperature": llm.get("temperature") if llm.get("temperature") is not None else "not configured",
        "toolIds": tool_ids,
        "totalTools": len(tool_ids),
        "hasTools": bool(tool_ids),
        "hasKnowledgeBase": bool(knowledge_base),
        "knowledgeBaseCount": len(knowledge_base),
        "tags": agent.get("tags") or [],
    }


def _upstream_error(e: ExternalServiceError) -> HTTPException:
    return HTTPException(status_code=e.status_code, detail=f"{e.service} API error: {e.message}")


class VoiceService:
    def __init__(self, elevenlabs: ElevenLabsClient, openai_service: OpenAIService):
        self.elevenlabs = elevenlabs
        self.openai = openai_service

    def create_realtime_session(self, data: RealtimeSessionRequest) -> Dict[str, Any]:
        payload = {
            "model": get_model("realtime"),
            "voice": data.voice or REALTIME_DEFAULTS["voice"],
            "modalities": REALTIME_DEFAULTS["modalities"],
            "instructions": data.instructions or "",
            "tool_choice": data.tool_choice or REALTIME_DEFAULTS["tool_choice"],
            "tools": data.tools or [],
        }
        try:
            session = self.openai.create_realtime_session(payload)
            logger.info(f"Realtime session created (voice={payload['voice']}, tools={len(payload['tools'])})")
            return session
        except ExternalServiceError as e:
            raise _upstream_error(e)

    def get_agent_details(self, agent_id: Optional[str]) -> Dict[str, Any]:
        agent_id = agent_id or settings.elevenlabs_agent_id
        if not agent_id:
            raise HTTPException(status_code=400, detail="No agent ID provided")
        try:
            agent = self.elevenlabs.get_agent(agent_id)
        except ExternalServiceError as e:
            raise _upstream_error(e)
        details = summarize_agent(agent)
        return {"success": True, "agent": details, "toolIds": details["toolIds"]}

    def get_voice_settings(self, agent_id: str) -> Dict[str, Any]:
        try:
            agent = self.elevenlabs.get_agent(agent_id)
        except ExternalServiceError as e:
            raise _upstream_error(e)
        return {
            "success": True,
            "voice_settings": agent.get("voice_settings") or dict(ELEVENLABS_VOICE_DEFAULTS),
            "model_family": agent.get("model_family") or ELEVENLABS_MODEL_FAMILY_DEFAULT,
            "language": agent.get("language") or ELEVENLABS_LANGUAGE_DEFAULT,
        }

    def update_voice_settings(self, data: VoiceSettingsUpdate) -> Dict[str, Any]:
        tts = data.voice_settings.model_dump()
        if data.model_family and data.model_family != ELEVENLABS_MODEL_FAMILY_DEFAULT:
            tts["model_id"] = data.model_family
        if data.language:
            tts["language"] = data.language
        try:
            agent = self.elevenlabs.update_agent(data.agent_id, {"conversation_config": {"tts": tts}})
        except ExternalServiceError as e:
            raise _upstream_error(e)
        logger.info(f"Voice settings updated for agent {data.agent_id}")
        return {"success": True, "agent": agent}
