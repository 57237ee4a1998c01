from fastapi import APIRouter, Depends
from app.database.supabase_client import get_supabase
from app.modules.conversations.schemas import (
    SaveMessageRequest, StartSessionRequest, EndSessionRequest,
    ResumeRequest, AccessCodeRequest, StartSessionResponse
)
from app.modules.conversations.service import ConversationService
from supabase import Client

router = APIRouter(prefix="/conversations", tags=["conversations"])


def get_conversation_service(supabase: Client = Depends(get_supabase)) -> ConversationService:
    return ConversationService(supabase)


@router.post("/save-message")
async def save_message(
    body: SaveMessageRequest,
    service: ConversationService = Depends(get_conversation_service)
):
    """Persist a user or AI message; creates the conversation when none is given"""
    return service.save_message(body)


@router.post("/start-session", response_model=StartSessionResponse)
async def start_session(
    body: StartSessionRequest,
    service: ConversationService = Depends(get_conversation_service)
):
    """Start a specialist session after a triage handoff"""
    return service.start_specialist_session(body)


@router.post("/end-session")
async def end_session(
    body: EndSessionRequest,
    service: ConversationService = Depends(get_conversation_service)
):
    return service.end_specialist_session(body)


@router.post("/resume")
async def resume_conversation(
    body: ResumeRequest,
    service: ConversationService = Depends(get_conversation_service)
):
    return service.resume_conversation(body.user_id, body.conversation_id)


@router.post("/access-code")
async def generate_access_code(
    body: AccessCodeRequest,
    service: ConversationService = Depends(get_conversation_service)
):
    """Issue the access code a patient shares with providers"""
    return service.generate_access_code(body.conversation_id, body.user_id)
