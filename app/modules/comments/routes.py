from fastapi import APIRouter, Depends, Query, status
from app.database.supabase_client import get_supabase
from app.modules.comments.schemas import CommentCreate, CommentUpdate
from app.modules.comments.service import CommentService
from supabase import Client
from typing import Optional

router = APIRouter(prefix="/community/comments", tags=["comments"])


def get_comment_service(supabase: Client = Depends(get_supabase)) -> CommentService:
    return CommentService(supabase)


@router.get("")
async def list_comments(
    post_id: str = Query(..., min_length=1),
    limit: int = Query(50, ge=1),
    parent_id: Optional[str] = None,
    service: CommentService = Depends(get_comment_service)
):
    return service.list_comments(post_id, limit, parent_id)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_comment(
    comment: CommentCreate,
    service: CommentService = Depends(get_comment_service)
):
    return service.create_comment(comment)


@router.get("/{comment_id}")
async def get_comment(
    comment_id: str,
    service: CommentService = Depends(get_comment_service)
):
    return service.get_comment(comment_id)


@router.put("/{comment_id}")
async def update_comment(
    comment_id: str,
    comment: CommentUpdate,
    service: CommentService = Depends(get_comment_service)
):
    return service.update_comment(comment_id, comment)


@router.delete("/{comment_id}")
async def delete_comment(
    comment_id: str,
    user_id: str = Query(..., min_length=1),
    reason: str = "User deleted",
    service: CommentService = Depends(get_comment_service)
):
    return service.delete_comment(comment_id, user_id, reason)
