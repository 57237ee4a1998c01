from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


class CommentCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., min_length=1)
    post_id: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
    parent_comment_id: Optional[str] = Field(None, alias="parent_id")
    is_anonymous: bool = False


class CommentUpdate(BaseModel):
    user_id: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
