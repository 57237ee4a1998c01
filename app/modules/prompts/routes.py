from fastapi import APIRouter, Depends
from app.database.supabase_client import get_supabase
from app.modules.auth.service import ROLE_ADMIN
from app.modules.prompts.schemas import AIPromptUpsert
from app.modules.prompts.service import PromptService
from app.core.dependencies import require_role
from supabase import Client
from typing import Dict, Optional

router = APIRouter(prefix="/admin/ai-prompts", tags=["prompts"])


def get_prompt_service(supabase: Client = Depends(get_supabase)) -> PromptService:
    return PromptService(supabase)


@router.get("")
async def get_prompts(
    type: Optional[str] = None,
    current_user: Dict = Depends(require_role(ROLE_ADMIN)),
    service: PromptService = Depends(get_prompt_service)
):
    """Active AI prompts, or the one prompt of `type`"""
    return service.get_prompts(type)


@router.post("")
async def save_prompt(
    body: AIPromptUpsert,
    current_user: Dict = Depends(require_role(ROLE_ADMIN)),
    service: PromptService = Depends(get_prompt_service)
):
    return service.save_prompt(body)
