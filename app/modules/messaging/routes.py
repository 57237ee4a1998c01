from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from app.database.supabase_client import get_supabase
from app.modules.auth.service import ROLE_ADMIN, ROLE_PROVIDER
from app.modules.messaging.schemas import ThreadsResponse, ProviderMarkRead, PatientMarkRead
from app.modules.messaging.service import MessagingService, SENDER_PROVIDER, SENDER_PATIENT
from app.modules.notifications.service import NotificationService
from app.core.dependencies import require_role, get_current_user, ensure_self_or_admin
from supabase import Client
from typing import Dict, Optional

router = APIRouter(prefix="/messages", tags=["messages"])


def get_notification_service(supabase: Client = Depends(get_supabase)) -> NotificationService:
    return NotificationService(supabase)


def get_messaging_service(
    supabase: Client = Depends(get_supabase),
    notifications: NotificationService = Depends(get_notification_service)
) -> MessagingService:
    return MessagingService(supabase, notifications)


@router.get("/provider", response_model=ThreadsResponse)
async def list_provider_threads(
    provider_user_id: str = Query(..., min_length=1),
    current_user: Dict = Depends(require_role(ROLE_PROVIDER, ROLE_ADMIN)),
    service: MessagingService = Depends(get_messaging_service)
):
    """Patient conversations for a provider dashboard"""
    ensure_self_or_admin(current_user, provider_user_id)
    return service.list_threads(SENDER_PROVIDER, provider_user_id)


@router.post("/provider/read")
async def provider_mark_read(
    body: ProviderMarkRead,
    current_user: Dict = Depends(require_role(ROLE_PROVIDER, ROLE_ADMIN)),
    service: MessagingService = Depends(get_messaging_service)
):
    ensure_self_or_admin(current_user, body.providerUserId)
    return service.mark_read(SENDER_PROVIDER, body.messageId, body.providerUserId)


@router.post("/provider/reply")
async def provider_reply(
    audio: UploadFile = File(...),
    accessCode: str = Form(...),
    providerUserId: str = Form(...),
    patientUserId: str = Form(...),
    intakeId: Optional[str] = Form(None),
    durationSeconds: Optional[float] = Form(None),
    mimeType: Optional[str] = Form(None),
    fileName: Optional[str] = Form(None),
    current_user: Dict = Depends(require_role(ROLE_PROVIDER, ROLE_ADMIN)),
    service: MessagingService = Depends(get_messaging_service)
):
    """Send a voice message to a patient and text them about it"""
    ensure_self_or_admin(current_user, providerUserId)
    content = await audio.read()
    return service.send_reply(
        SENDER_PROVIDER, content, accessCode, providerUserId, patientUserId,
        intake_id=intakeId,
        duration_seconds=durationSeconds,
        mime_type=mimeType or audio.content_type,
        file_name=fileName or audio.filename
    )


@router.get("/patient", response_model=ThreadsResponse)
async def list_patient_threads(
    patient_user_id: str = Query(..., min_length=1),
    current_user: Dict = Depends(get_current_user),
    service: MessagingService = Depends(get_messaging_service)
):
    ensure_self_or_admin(current_user, patient_user_id)
    return service.list_threads(SENDER_PATIENT, patient_user_id)


@router.post("/patient/read")
async def patient_mark_read(
    body: PatientMarkRead,
    current_user: Dict = Depends(get_current_user),
    service: MessagingService = Depends(get_messaging_service)
):
    ensure_self_or_admin(current_user, body.patientUserId)
    return service.mark_read(SENDER_PATIENT, body.messageId, body.patientUserId)


@router.post("/patient/reply")
async def patient_reply(
    audio: UploadFile = File(...),
    accessCode: str = Form(...),
    providerUserId: str = Form(...),
    patientUserId: str = Form(...),
    intakeId: Optional[str] = Form(None),
    durationSeconds: Optional[float] = Form(None),
    mimeType: Optional[str] = Form(None),
    fileName: Optional[str] = Form(None),
    current_user: Dict = Depends(get_current_user),
    service: MessagingService = Depends(get_messaging_service)
):
    """Patient voice reply; the provider gets a patient_replied text"""
    ensure_self_or_admin(current_user, patientUserId)
    content = await audio.read()
    return service.send_reply(
        SENDER_PATIENT, content, accessCode, providerUserId, patientUserId,
        intake_id=intakeId,
        duration_seconds=durationSeconds,
        mime_type=mimeType or audio.content_type,
        file_name=fileName or audio.filename
    )
