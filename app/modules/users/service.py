from datetime import datetime, timezone
from typing import Optional
from supabase import Client
from fastapi import HTTPException
from app.database.supabase_client import first_row
from app.modules.users.schemas import ProfileResponse

DISPLAY_NAME_MIN = 2
DISPLAY_NAME_MAX = 50


def get_display_name(supabase: Client, user_id: str) -> Optional[str]:
    """Display name from user_profiles.profile_data, or None"""
    profile = first_row(supabase.table("user_profiles")
                        .select("profile_data")
                        .eq("user_id", user_id)
                        .limit(1)
                        .execute())
    if not profile:
        return None
    return (profile.get("profile_data") or {}).get("display_name") or None


class UserService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def get_profile(self, user_id: str) -> ProfileResponse:
        try:
            display_name = get_display_name(self.supabase, user_id)
            return ProfileResponse(
                user_id=user_id,
                display_name=display_name,
                has_display_name=bool(display_name)
            )
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to fetch user profile: {str(e)}")

    def set_display_name(self, user_id: str, display_name: str) -> dict:
        """Set display name; keeps every other profile_data key"""
        name = (display_name or "").strip()
        if not user_id or not name:
            raise HTTPException(status_code=400, detail="User ID and display name required")
        if len(name) < DISPLAY_NAME_MIN or len(name) > DISPLAY_NAME_MAX:
            raise HTTPException(
                status_code=400,
                detail=f"Display name must be between {DISPLAY_NAME_MIN} and {DISPLAY_NAME_MAX} characters"
            )
        try:
            taken = self.supabase.table("user_profiles")\
                .select("user_id")\
                .eq("profile_data->>display_name", name)\
                .neq("user_id", user_id)\
                .execute()
            if taken.data:
                raise HTTPException(status_code=409, detail="Display name is already taken")

            existing = first_row(self.supabase.table("user_profiles")
                                 .select("profile_data")
                                 .eq("user_id", user_id)
                                 .limit(1)
                                 .execute())
            profile_data = dict((existing or {}).get("profile_data") or {})
            profile_data["display_name"] = name

            self.supabase.table("user_profiles").upsert({
                "user_id": user_id,
                "profile_data": profile_data,
                "updated_at": datetime.now(timezone.utc).isoformat()
            }, on_conflict="user_id").execute()

            return {"success": True, "user_id": user_id, "display_name": name}
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to update display name: {str(e)}")
