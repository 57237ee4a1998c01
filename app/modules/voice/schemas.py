from pydantic import BaseModel
from typing import Any, Dict, List, Optional


class RealtimeSessionRequest(BaseModel):
    voice: Optional[str] = None
    instructions: Optional[str] = None
    tools: Optional[List[Dict[str, Any]]] = None
    tool_choice: Optional[str] = None


class VoiceSettings(BaseModel):
    speed: float = 1.0
    stability: float = 0.5
    similarity_boost: float = 0.75
    style: float = 0
    use_speaker_boost: bool = False


class VoiceSettingsUpdate(BaseModel):
    agent_id: str
    voice_settings: VoiceSettings
    model_family: Optional[str] = None
    language: Optional[str] = None


class VoiceSettingsResponse(BaseModel):
    success: bool = True
    voice_settings: Dict[str, Any]
    model_family: str
    language: str
