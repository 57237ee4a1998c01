from fastapi import APIRouter, Depends, Query, status
from app.database.supabase_client import get_supabase
from app.modules.auth.service import ROLE_ADMIN
from app.modules.reports.schemas import ReportCreate, ReportCreated, ReportsPage
from app.modules.reports.service import ReportService
from app.core.dependencies import require_role
from supabase import Client
from typing import Optional

router = APIRouter(prefix="/community/reports", tags=["reports"])


def get_report_service(supabase: Client = Depends(get_supabase)) -> ReportService:
    return ReportService(supabase)


@router.post("", response_model=ReportCreated, status_code=status.HTTP_201_CREATED)
async def create_report(
    report: ReportCreate,
    service: ReportService = Depends(get_report_service)
):
    return service.create_report(report)


@router.get("", response_model=ReportsPage)
async def list_reports(
    report_status: str = Query("pending", alias="status"),
    reason: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1),
    current_user: dict = Depends(require_role(ROLE_ADMIN)),
    service: ReportService = Depends(get_report_service)
):
    """Moderation queue (admin only)"""
    return service.list_reports(report_status, reason, page, limit)
