from fastapi import APIRouter, Depends, Query
from app.database.supabase_client import get_supabase
from app.modules.users.schemas import DisplayNameUpdate, ProfileResponse
from app.modules.users.service import UserService
from supabase import Client

router = APIRouter(prefix="/users", tags=["users"])


def get_user_service(supabase: Client = Depends(get_supabase)) -> UserService:
    return UserService(supabase)


@router.get("/profile", response_model=ProfileResponse)
async def get_profile(
    user_id: str = Query(..., min_length=1),
    service: UserService = Depends(get_user_service)
):
    """Get display name state for a user"""
    return service.get_profile(user_id)


@router.post("/profile")
async def set_display_name(
    body: DisplayNameUpdate,
    service: UserService = Depends(get_user_service)
):
    """Set the community display name"""
    return service.set_display_name(body.user_id, body.display_name)
