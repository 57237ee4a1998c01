from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional


class KnowledgeQuery(BaseModel):
    query: str = ""
    namespace: Optional[str] = None
    top_k: int = Field(5, ge=1, le=50)


class KnowledgeMatch(BaseModel):
    id: str
    score: float
    metadata: Dict[str, Any] = {}


class KnowledgeResponse(BaseModel):
    success: bool = True
    matches: List[KnowledgeMatch]
