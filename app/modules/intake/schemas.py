from pydantic import BaseModel, ConfigDict, Field
from typing import Literal, Optional


class NotificationPreferences(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    phone: Optional[str] = None
    email_notifications: bool = Field(False, alias="emailNotifications")
    sms_notifications: bool = Field(False, alias="smsNotifications")


class NotificationPreferencesUpdate(NotificationPreferences):
    user_id: str = Field(..., min_length=1)


class TranscribeRequest(BaseModel):
    intake_id: str = Field(..., min_length=1)
    conversation_id: Optional[str] = None
    combined_audio_path: Optional[str] = None
    speaker: Literal["patient", "ai"] = "patient"
