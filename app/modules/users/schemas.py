from pydantic import BaseModel
from typing import Optional


class DisplayNameUpdate(BaseModel):
    user_id: str
    display_name: str


class ProfileResponse(BaseModel):
    user_id: str
    display_name: Optional[str] = None
    has_display_name: bool = False

    class Config:
        from_attributes = True
