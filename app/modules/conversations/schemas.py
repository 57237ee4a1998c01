from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class ChatMessage(_CamelModel):
    id: Optional[str] = None
    role: str
    text: str
    timestamp: Optional[str] = None
    is_final: bool = Field(True, alias="isFinal")
    specialist: Optional[str] = None


class SaveMessageRequest(_CamelModel):
    user_id: str = Field(..., alias="userId", min_length=1)
    book_id: str = Field(..., alias="bookId", min_length=1)
    message: ChatMessage
    conversation_id: Optional[str] = Field(None, alias="conversationId")
    specialist: Optional[str] = None


class StartSessionRequest(_CamelModel):
    specialist_type: str = Field(..., alias="specialistType", min_length=1)
    agent_id: str = Field(..., alias="agentId", min_length=1)
    conversation_id: Optional[str] = Field(None, alias="conversationId")
    context_summary: Optional[str] = Field(None, alias="contextSummary")
    user_id: Optional[str] = Field(None, alias="userId")


class EndSessionRequest(_CamelModel):
    conversation_id: str = Field(..., alias="conversationId", min_length=1)
    specialist_type: Optional[str] = Field(None, alias="specialistType")
    context_summary: Optional[str] = Field(None, alias="contextSummary")
    reason: Optional[str] = None


class ResumeRequest(_CamelModel):
    user_id: str = Field(..., alias="userId", min_length=1)
    conversation_id: str = Field(..., alias="conversationId", min_length=1)


class AccessCodeRequest(_CamelModel):
    conversation_id: str = Field(..., alias="conversationId", min_length=1)
    user_id: str = Field(..., alias="userId", min_length=1)


class SessionPrompt(BaseModel):
    id: Optional[str] = None
    type: str
    content: str
    voice_settings: Optional[Dict[str, Any]] = None
    metadata: Dict[str, Any] = {}


class SpecialistSession(BaseModel):
    specialistType: str
    conversationId: Optional[str] = None
    agentId: str
    prompt: SessionPrompt
    contextSummary: Optional[str] = None


class StartSessionResponse(BaseModel):
    success: bool = True
    provider: str
    session: SpecialistSession


class ResumedConversation(BaseModel):
    id: str
    currentSpecialist: str
    specialistHistory: List[Dict[str, Any]] = []
    createdAt: Optional[str] = None
    lastActivityAt: Optional[str] = None
    messages: List[Dict[str, Any]] = []
