from fastapi import APIRouter, Depends, Query, Request
from app.database.supabase_client import get_supabase
from app.modules.auth.service import ROLE_ADMIN
from app.modules.usage.schemas import StartSessionRequest, EndSessionRequest, UsageEventRequest, UsageStats
from app.modules.usage.service import UsageService, client_ip
from app.core.dependencies import require_role
from supabase import Client

router = APIRouter(prefix="/usage", tags=["usage"])
admin_router = APIRouter(prefix="/admin", tags=["usage"])


def get_usage_service(supabase: Client = Depends(get_supabase)) -> UsageService:
    return UsageService(supabase)


@router.post("/start-session")
async def start_session(
    body: StartSessionRequest,
    request: Request,
    service: UsageService = Depends(get_usage_service)
):
    ip_address = client_ip(request.headers.get("x-forwarded-for"), request.headers.get("x-real-ip"))
    return service.start_session(body, ip_address)


@router.post("/end-session")
async def end_session(
    body: EndSessionRequest,
    service: UsageService = Depends(get_usage_service)
):
    return service.end_session(body)


@router.post("/events")
async def record_event(
    body: UsageEventRequest,
    service: UsageService = Depends(get_usage_service)
):
    return service.record_event(body)


@admin_router.get("/usage-stats", response_model=UsageStats)
async def usage_stats(
    days: int = Query(7, ge=0),
    current_user: dict = Depends(require_role(ROLE_ADMIN)),
    service: UsageService = Depends(get_usage_service)
):
    """Aggregated usage for the admin dashboard"""
    return service.get_stats(days)
