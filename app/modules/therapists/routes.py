from fastapi import APIRouter, Depends, Query
from app.database.supabase_client import get_supabase
from app.modules.auth.service import ROLE_ADMIN, ROLE_PROVIDER, ROLE_PATIENT
from app.modules.therapists.schemas import (
    TherapistSearchResponse, DetailedRequest,
    ProviderNotificationPreferences, ProviderNotificationPreferencesUpdate,
    TherapistProfileRequest, CompleteProfileRequest
)
from app.modules.therapists.service import TherapistService
from app.core.dependencies import require_role, ensure_self_or_admin
from supabase import Client
from typing import Dict, Optional

router = APIRouter(prefix="/therapists", tags=["therapists"])


def get_therapist_service(supabase: Client = Depends(get_supabase)) -> TherapistService:
    return TherapistService(supabase)


@router.get("/search", response_model=TherapistSearchResponse)
async def search_therapists(
    q: Optional[str] = None,
    specialty: Optional[str] = None,
    title: Optional[str] = None,
    gender: Optional[str] = None,
    experience: Optional[str] = None,
    language: Optional[str] = None,
    location: Optional[str] = None,
    service: TherapistService = Depends(get_therapist_service)
):
    """Search active therapists; no filters returns the 20 newest"""
    return service.search(q, specialty, title, gender, experience, language, location)


@router.post("/detailed")
async def get_detailed(
    body: DetailedRequest,
    service: TherapistService = Depends(get_therapist_service)
):
    return service.get_detailed(body.therapistId)


@router.get(
    "/notification-preferences",
    response_model=ProviderNotificationPreferences,
    response_model_by_alias=True
)
async def get_notification_preferences(
    user_id: str = Query(..., min_length=1),
    service: TherapistService = Depends(get_therapist_service)
):
    return service.get_notification_preferences(user_id)


@router.post("/notification-preferences")
async def update_notification_preferences(
    body: ProviderNotificationPreferencesUpdate,
    service: TherapistService = Depends(get_therapist_service)
):
    return service.update_notification_preferences(body)


@router.get("/admin")
async def list_therapists_for_admin(
    current_user: Dict = Depends(require_role(ROLE_ADMIN)),
    service: TherapistService = Depends(get_therapist_service)
):
    """All therapist profiles with completion status (admins only)"""
    return service.list_for_admin()


any_signed_in_user = require_role(ROLE_ADMIN, ROLE_PROVIDER, ROLE_PATIENT)


@router.get("/profile")
async def get_profile(
    user_id: str = Query(..., min_length=1),
    current_user: Dict = Depends(any_signed_in_user),
    service: TherapistService = Depends(get_therapist_service)
):
    ensure_self_or_admin(current_user, user_id)
    return service.get_profile(user_id)


@router.post("/profile")
async def save_profile(
    body: TherapistProfileRequest,
    current_user: Dict = Depends(any_signed_in_user),
    service: TherapistService = Depends(get_therapist_service)
):
    """Onboarding step one; creating the profile makes the user a provider"""
    ensure_self_or_admin(current_user, body.userId)
    return service.save_profile(body)


@router.get("/complete-profile")
async def get_complete_profile(
    user_id: str = Query(..., min_length=1),
    current_user: Dict = Depends(any_signed_in_user),
    service: TherapistService = Depends(get_therapist_service)
):
    ensure_self_or_admin(current_user, user_id)
    return service.get_complete_profile(user_id)


@router.post("/complete-profile")
async def save_complete_profile(
    body: CompleteProfileRequest,
    current_user: Dict = Depends(any_signed_in_user),
    service: TherapistService = Depends(get_therapist_service)
):
    ensure_self_or_admin(current_user, body.userId)
    return service.save_complete_profile(body)
