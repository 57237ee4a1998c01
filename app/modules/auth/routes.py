from fastapi import APIRouter, Depends, Request
from app.database.supabase_client import get_supabase
from app.modules.auth.schemas import CurrentUserResponse, RoleResponse, GrantAdminRequest
from app.modules.auth.service import AuthService, ROLE_ADMIN
from app.core.dependencies import (
    get_auth_service, get_current_user, get_user_role, require_role, _get_request_cache
)
from supabase import Client
from typing import Dict

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/me", response_model=CurrentUserResponse)
async def get_me(
    request: Request,
    current_user: Dict = Depends(get_current_user),
    supabase: Client = Depends(get_supabase)
):
    """Current Firebase user and resolved role (for frontend routing)"""
    role = get_user_role(current_user["id"], supabase, _get_request_cache(request))
    return CurrentUserResponse(
        user_id=current_user["id"],
        email=current_user.get("email"),
        phone_number=current_user.get("phone_number"),
        role=role
    )


@router.get("/role", response_model=RoleResponse)
async def get_role(
    current_user: Dict = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service)
):
    return RoleResponse(user_id=current_user["id"], role=service.get_user_role(current_user["id"]))


@router.post("/admins", status_code=201)
async def grant_admin(
    body: GrantAdminRequest,
    current_user: Dict = Depends(require_role(ROLE_ADMIN)),
    service: AuthService = Depends(get_auth_service)
):
    """Grant admin role to a user (admins only)"""
    record = service.grant_admin(body.user_id, current_user["id"])
    return {"success": True, "admin": record}
