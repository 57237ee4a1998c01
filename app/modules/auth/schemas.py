from pydantic import BaseModel
from typing import Optional


class CurrentUserResponse(BaseModel):
    user_id: str
    email: Optional[str] = None
    phone_number: Optional[str] = None
    role: str


class RoleResponse(BaseModel):
    user_id: str
    role: str


class GrantAdminRequest(BaseModel):
    user_id: str
