from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Literal, Optional


class CircleCreate(BaseModel):
    user_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    display_name: str = Field(..., min_length=1)
    description: Optional[str] = None
    rules: List[str] = []
    icon_url: Optional[str] = None
    banner_url: Optional[str] = None
    is_private: bool = False
    requires_approval: bool = False


class CirclesResponse(BaseModel):
    circles: List[Dict[str, Any]]
    total_count: int
    page: int
    limit: int
    has_next_page: bool


class JoinCircle(BaseModel):
    user_id: str = Field(..., min_length=1)


class JoinRequestCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., min_length=1, alias="userId")
    message: Optional[str] = None
    notification_email: Optional[str] = Field(None, alias="notificationEmail")
    notification_phone: Optional[str] = Field(None, alias="notificationPhone")
    access_token: Optional[str] = Field(None, alias="accessToken")


class JoinRequestDecision(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., min_length=1, alias="userId")
    request_id: str = Field(..., min_length=1, alias="requestId")
    decision: Literal["approved", "rejected"]
    admin_response: Optional[str] = Field(None, alias="adminResponse")
    notification_method: Optional[str] = Field(None, alias="notificationMethod")
    admin_notes: Optional[str] = Field(None, alias="adminNotes")
