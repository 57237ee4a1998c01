from fastapi import APIRouter, Depends, Query, status
from app.database.supabase_client import get_supabase
from app.modules.posts.schemas import PostCreate, PostUpdate, PostsResponse
from app.modules.posts.service import PostService
from supabase import Client
from typing import Optional

router = APIRouter(prefix="/community/posts", tags=["posts"])
circle_router = APIRouter(prefix="/community/circles", tags=["posts"])


def get_post_service(supabase: Client = Depends(get_supabase)) -> PostService:
    return PostService(supabase)


@router.get("", response_model=PostsResponse)
async def list_posts(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    sort_by: str = "hot",
    filter: str = "all",
    tags: Optional[str] = None,
    user_id: Optional[str] = None,
    circle_id: Optional[str] = None,
    requesting_user_id: Optional[str] = None,
    service: PostService = Depends(get_post_service)
):
    """Community feed"""
    tag_list = [t for t in tags.split(",") if t] if tags else []
    return service.list_posts(page, limit, sort_by, filter, tag_list, user_id, circle_id, requesting_user_id)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_post(
    post: PostCreate,
    service: PostService = Depends(get_post_service)
):
    return service.create_post(post)


@router.get("/{post_id}")
async def get_post(
    post_id: str,
    service: PostService = Depends(get_post_service)
):
    return service.get_post(post_id)


@router.put("/{post_id}")
async def update_post(
    post_id: str,
    post: PostUpdate,
    service: PostService = Depends(get_post_service)
):
    return service.update_post(post_id, post)


@router.delete("/{post_id}")
async def delete_post(
    post_id: str,
    user_id: str = Query(..., min_length=1),
    reason: str = "User deleted",
    service: PostService = Depends(get_post_service)
):
    return service.delete_post(post_id, user_id, reason)


@circle_router.get("/{circle_id}/posts", response_model=PostsResponse)
async def list_circle_posts(
    circle_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1),
    sort_by: str = "hot",
    filter: str = "all",
    time_range: str = "all",
    tags: Optional[str] = None,
    requesting_user_id: Optional[str] = None,
    service: PostService = Depends(get_post_service)
):
    tag_list = [t for t in tags.split(",") if t] if tags else []
    return service.list_circle_posts(
        circle_id, page, limit, sort_by, filter, time_range, tag_list, requesting_user_id
    )
