"""
Core dependencies for route protection and role checking
"""

from fastapi import Depends, HTTPException, Request, Security, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from app.database.supabase_client import get_supabase
from app.modules.auth.service import AuthService, resolve_user_role, ROLE_ADMIN
from supabase import Client
from typing import Any, Dict, Optional
import logging

logger = logging.getLogger(__name__)

security = HTTPBearer()


def _get_request_cache(request: Request) -> Dict[str, Any]:
    """Return request-scoped cache for access data (role)."""
    if not hasattr(request.state, "access_cache"):
        request.state.access_cache = {}
    return request.state.access_cache


def get_auth_service(supabase: Client = Depends(get_supabase)) -> AuthService:
    return AuthService(supabase)


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Security(security),
    auth_service: AuthService = Depends(get_auth_service)
) -> dict:
    """Verify the Firebase ID token and return the caller"""
    return auth_service.verify_token(credentials.credentials)


def get_user_role(user_id: str, supabase: Client, cache: Optional[Dict[str, Any]] = None) -> str:
    """Resolve role once per request when a cache is provided"""
    if cache is not None and "role" in cache:
        return cache["role"]
    try:
        role = resolve_user_role(user_id, supabase)
    except Exception as e:
        logger.error(f"Error resolving role for {user_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to resolve user role"
        )
    if cache is not None:
        cache["role"] = role
    return role


def require_role(*allowed_roles: str):
    """Factory function to create role check dependency"""
    def check_role(
        request: Request,
        user_data: dict = Depends(get_current_user),
        supabase: Client = Depends(get_supabase)
    ) -> dict:
        role = get_user_role(user_data["id"], supabase, _get_request_cache(request))
        if role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Insufficient role. Required: {', '.join(allowed_roles)}"
            )
        return {**user_data, "role": role}
    return check_role


def ensure_self_or_admin(user_data: dict, target_user_id: str) -> None:
    """Providers and patients may only act on their own records; admins on any"""
    if user_data.get("role") == ROLE_ADMIN:
        return
    if user_data["id"] != target_user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only access your own records"
        )


def check_circle_admin(circle_id: str, user_id: str, supabase: Client) -> None:
    """Raise 403 unless the user is an admin member of the circle"""
    member_result = supabase.table("circle_memberships")\
        .select("role")\
        .eq("circle_id", circle_id)\
        .eq("user_id", user_id)\
        .limit(1)\
        .execute()
    if not member_result.data or member_result.data[0].get("role") != "admin":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only circle admins can perform this action"
        )


def is_circle_member(circle_id: str, user_id: str, supabase: Client) -> bool:
    member_result = supabase.table("circle_memberships")\
        .select("id")\
        .eq("circle_id", circle_id)\
        .eq("user_id", user_id)\
        .limit(1)\
        .execute()
    return bool(member_result.data)
