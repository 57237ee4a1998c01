from fastapi import APIRouter, Depends, Query
from app.integrations.elevenlabs import ElevenLabsClient, get_elevenlabs_client
from app.integrations.openai_client import OpenAIService, get_openai_service
from app.modules.voice.schemas import RealtimeSessionRequest, VoiceSettingsUpdate, VoiceSettingsResponse
from app.modules.voice.service import VoiceService
from typing import Optional

router = APIRouter(prefix="/voice", tags=["voice"])


def get_voice_service(
    elevenlabs: ElevenLabsClient = Depends(get_elevenlabs_client),
    openai_service: OpenAIService = Depends(get_openai_service)
) -> VoiceService:
    return VoiceService(elevenlabs, openai_service)


@router.post("/realtime-session")
async def create_realtime_session(
    body: RealtimeSessionRequest,
    service: VoiceService = Depends(get_voice_service)
):
    """Mint an ephemeral OpenAI Realtime session for the browser"""
    return service.create_realtime_session(body)


@router.get("/agents/details")
async def get_agent_details(
    agentId: Optional[str] = None,
    service: VoiceService = Depends(get_voice_service)
):
    return service.get_agent_details(agentId)


@router.get("/settings", response_model=VoiceSettingsResponse)
async def get_voice_settings(
    agent_id: str = Query(..., min_length=1),
    service: VoiceService = Depends(get_voice_service)
):
    return service.get_voice_settings(agent_id)


@router.put("/settings")
async def update_voice_settings(
    body: VoiceSettingsUpdate,
    service: VoiceService = Depends(get_voice_service)
):
    """Patch the agent's TTS config"""
    return service.update_voice_settings(body)
