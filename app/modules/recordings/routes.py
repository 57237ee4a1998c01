from fastapi import APIRouter, Depends, File, Form, UploadFile
from app.database.supabase_client import get_supabase
from app.modules.auth.service import ROLE_ADMIN
from app.modules.recordings.schemas import CombineRequest
from app.modules.recordings.service import RecordingService
from app.core.dependencies import require_role
from supabase import Client
from typing import Dict, Optional

router = APIRouter(prefix="/recordings", tags=["recordings"])


def get_recording_service(supabase: Client = Depends(get_supabase)) -> RecordingService:
    return RecordingService(supabase)


@router.post("/chunks")
async def upload_chunk(
    audio: UploadFile = File(...),
    conversation_id: str = Form(...),
    chunk_index: int = Form(...),
    speaker: str = Form("patient"),
    user_id: Optional[str] = Form(None),
    intake_id: Optional[str] = Form(None),
    service: RecordingService = Depends(get_recording_service)
):
    """Store one chunk of a live voice recording"""
    content = await audio.read()
    return service.upload_chunk(
        conversation_id=conversation_id,
        chunk_index=chunk_index,
        speaker=speaker,
        content=content,
        mime_type=audio.content_type,
        user_id=user_id,
        intake_id=intake_id
    )


@router.post("/combine")
async def combine_chunks(
    body: CombineRequest,
    service: RecordingService = Depends(get_recording_service)
):
    return service.combine_chunks(body.conversation_id, body.speaker)


@router.get("")
async def list_recordings(
    conversation_id: Optional[str] = None,
    current_user: Dict = Depends(require_role(ROLE_ADMIN)),
    service: RecordingService = Depends(get_recording_service)
):
    """Admin review of recorded conversations"""
    return service.list_recordings(conversation_id)
