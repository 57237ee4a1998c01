from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional


class PostCreate(BaseModel):
    user_id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
    post_type: str = Field(..., min_length=1)
    tags: List[str] = []
    audio_url: Optional[str] = None
    audio_duration: Optional[float] = None
    circle_id: Optional[str] = None
    is_anonymous: bool = False


class PostUpdate(BaseModel):
    user_id: str = Field(..., min_length=1)
    title: Optional[str] = None
    content: Optional[str] = None
    tags: Optional[Any] = None


class PostsResponse(BaseModel):
    posts: List[Dict[str, Any]]
    total_count: int
    page: int
    limit: int
    has_next_page: bool
