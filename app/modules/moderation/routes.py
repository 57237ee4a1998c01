from fastapi import APIRouter, Depends
from app.database.supabase_client import get_supabase
from app.integrations.openai_client import OpenAIService, get_openai_service
from app.modules.moderation.schemas import ModerationRequest, ModerationResult
from app.modules.moderation.service import ModerationService
from supabase import Client

router = APIRouter(prefix="/community/moderation", tags=["moderation"])


def get_moderation_service(
    supabase: Client = Depends(get_supabase),
    openai_service: OpenAIService = Depends(get_openai_service)
) -> ModerationService:
    return ModerationService(supabase, openai_service)


@router.post("", response_model=ModerationResult)
async def analyze_content(
    body: ModerationRequest,
    service: ModerationService = Depends(get_moderation_service)
):
    """Screen a post or comment; crisis signals are escalated for clinical review"""
    return service.analyze(body)
