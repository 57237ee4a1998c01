from pydantic import BaseModel, Field
from typing import List, Optional


class AudioMessage(BaseModel):
    id: str
    senderType: str
    audioUrl: Optional[str] = None
    durationSeconds: Optional[float] = None
    readAt: Optional[str] = None
    createdAt: Optional[str] = None


class MessageThread(BaseModel):
    patientUserId: Optional[str] = None
    providerUserId: Optional[str] = None
    providerName: Optional[str] = None
    intakeId: Optional[str] = None
    accessCode: Optional[str] = None
    messages: List[AudioMessage] = []


class ThreadsResponse(BaseModel):
    success: bool = True
    conversations: List[MessageThread]


class ProviderMarkRead(BaseModel):
    messageId: str = Field(..., min_length=1)
    providerUserId: str = Field(..., min_length=1)


class PatientMarkRead(BaseModel):
    messageId: str = Field(..., min_length=1)
    patientUserId: str = Field(..., min_length=1)
