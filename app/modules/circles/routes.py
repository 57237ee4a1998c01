from fastapi import APIRouter, Depends, Query, status
from app.database.supabase_client import get_supabase
from app.modules.circles.schemas import (
    CircleCreate, CirclesResponse, JoinCircle, JoinRequestCreate, JoinRequestDecision
)
from app.modules.circles.service import CircleService
from app.modules.notifications.service import NotificationService
from supabase import Client
from typing import Optional

router = APIRouter(prefix="/community/circles", tags=["circles"])


def get_circle_service(supabase: Client = Depends(get_supabase)) -> CircleService:
    return CircleService(supabase, NotificationService(supabase))


@router.get("", response_model=CirclesResponse)
async def list_circles(
    user_id: Optional[str] = None,
    search: Optional[str] = None,
    filter_private: Optional[bool] = None,
    sort_by: str = "members",
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1),
    service: CircleService = Depends(get_circle_service)
):
    return service.list_circles(user_id, search, filter_private, sort_by, page, limit)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_circle(
    circle: CircleCreate,
    service: CircleService = Depends(get_circle_service)
):
    """Create a circle; the creator becomes its admin"""
    return service.create_circle(circle)


@router.post("/{circle_id}/join", status_code=status.HTTP_201_CREATED)
async def join_circle(
    circle_id: str,
    body: JoinCircle,
    service: CircleService = Depends(get_circle_service)
):
    return service.join(circle_id, body.user_id)


@router.delete("/{circle_id}/join")
async def leave_circle(
    circle_id: str,
    user_id: str = Query(..., min_length=1),
    service: CircleService = Depends(get_circle_service)
):
    return service.leave(circle_id, user_id)


@router.get("/{circle_id}/join-request")
async def get_join_request(
    circle_id: str,
    user_id: str = Query(..., min_length=1),
    service: CircleService = Depends(get_circle_service)
):
    return service.get_join_request(circle_id, user_id)


@router.post("/{circle_id}/join-request")
async def request_to_join(
    circle_id: str,
    body: JoinRequestCreate,
    service: CircleService = Depends(get_circle_service)
):
    return service.request_to_join(circle_id, body)


@router.get("/{circle_id}/join-requests")
async def list_join_requests(
    circle_id: str,
    user_id: str = Query(..., min_length=1),
    status: str = "pending",
    service: CircleService = Depends(get_circle_service)
):
    """Join requests for circle admins"""
    return service.list_join_requests(circle_id, user_id, status)


@router.put("/{circle_id}/join-requests")
async def review_join_request(
    circle_id: str,
    body: JoinRequestDecision,
    service: CircleService = Depends(get_circle_service)
):
    return service.review_join_request(circle_id, body)
