from fastapi import APIRouter, BackgroundTasks, Depends, Query
from app.core.dependencies import require_role, ensure_self_or_admin
from app.database.supabase_client import get_supabase
from app.integrations.openai_client import OpenAIService, get_openai_service
from app.modules.auth.service import ROLE_ADMIN, ROLE_PROVIDER, ROLE_PATIENT
from app.modules.memory.schemas import CreateMemoryJobRequest, ProcessMemoryJobRequest
from app.modules.memory.service import MemoryService
from supabase import Client
from typing import Dict

router = APIRouter(prefix="/memory-jobs", tags=["memory"])


def get_memory_service(
    supabase: Client = Depends(get_supabase),
    openai_service: OpenAIService = Depends(get_openai_service)
) -> MemoryService:
    return MemoryService(supabase, openai_service)


@router.post("")
async def create_memory_job(
    body: CreateMemoryJobRequest,
    background_tasks: BackgroundTasks,
    current_user: Dict = Depends(require_role(ROLE_ADMIN, ROLE_PROVIDER, ROLE_PATIENT)),
    service: MemoryService = Depends(get_memory_service)
):
    """Queue a memory job; the first batch is processed after the response is sent"""
    ensure_self_or_admin(current_user, body.userId)
    result = service.create_job(body.userId)
    background_tasks.add_task(service.run_job, result["job"]["id"])
    return result


@router.post("/process")
async def process_memory_job(
    body: ProcessMemoryJobRequest,
    current_user: Dict = Depends(require_role(ROLE_ADMIN)),
    service: MemoryService = Depends(get_memory_service)
):
    return service.process_job(body.jobId)


@router.get("/status")
async def get_memory_job_status(
    jobId: str = Query(..., min_length=1),
    current_user: Dict = Depends(require_role(ROLE_ADMIN, ROLE_PROVIDER, ROLE_PATIENT)),
    service: MemoryService = Depends(get_memory_service)
):
    status = service.get_status(jobId)
    ensure_self_or_admin(current_user, status["job"]["userId"])
    return status
