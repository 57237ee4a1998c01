from pydantic import BaseModel, Field
from typing import Optional


class VoteRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    post_id: Optional[str] = None
    comment_id: Optional[str] = None
    vote_type: str = Field(..., min_length=1)


class ReactionRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    post_id: Optional[str] = None
    comment_id: Optional[str] = None
    reaction_type: Optional[str] = None
