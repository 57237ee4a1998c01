from fastapi import APIRouter, Depends, Query
from app.database.supabase_client import get_supabase
from app.integrations.openai_client import OpenAIService, get_openai_service
from app.modules.auth.service import ROLE_ADMIN, ROLE_PROVIDER
from app.modules.intake.schemas import NotificationPreferences, NotificationPreferencesUpdate, TranscribeRequest
from app.modules.intake.service import IntakeService
from app.core.dependencies import require_role
from supabase import Client
from typing import Dict, Literal

router = APIRouter(prefix="/intake", tags=["intake"])


def get_intake_service(supabase: Client = Depends(get_supabase)) -> IntakeService:
    return IntakeService(supabase)


@router.get("/notification-preferences", response_model=NotificationPreferences, response_model_by_alias=True)
async def get_notification_preferences(
    user_id: str = Query(..., min_length=1),
    service: IntakeService = Depends(get_intake_service)
):
    return service.get_notification_preferences(user_id)


@router.post("/notification-preferences")
async def update_notification_preferences(
    body: NotificationPreferencesUpdate,
    service: IntakeService = Depends(get_intake_service)
):
    """Update SMS/email opt-in on the latest intake"""
    return service.update_notification_preferences(body)


@router.get("/audio")
async def get_intake_audio(
    intake_id: str = Query(..., min_length=1),
    speaker: Literal["patient", "ai"] = "patient",
    current_user: Dict = Depends(require_role(ROLE_PROVIDER, ROLE_ADMIN)),
    service: IntakeService = Depends(get_intake_service)
):
    """Provider playback of an intake recording"""
    return service.get_intake_audio(intake_id, speaker)


@router.post("/transcribe")
async def transcribe_intake(
    body: TranscribeRequest,
    current_user: Dict = Depends(require_role(ROLE_PROVIDER, ROLE_ADMIN)),
    service: IntakeService = Depends(get_intake_service),
    openai_service: OpenAIService = Depends(get_openai_service)
):
    return service.transcribe_intake(body, openai_service)
