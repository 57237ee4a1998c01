from pydantic import BaseModel, Field
from typing import Any, Dict, List, Literal, Optional


class ModerationRequest(BaseModel):
    content: str = Field(..., min_length=1)
    content_type: Literal["post", "comment"]
    content_id: str = Field(..., min_length=1)
    user_id: Optional[str] = None


class ModerationDetails(BaseModel):
    flagged: bool
    categories: Dict[str, Any] = {}


class ModerationResult(BaseModel):
    decision: str
    requires_review: bool
    priority: str
    toxicity_score: float
    mental_health_flags: List[str]
    moderation_details: Optional[ModerationDetails] = None
