from pydantic import BaseModel
from typing import Literal, Optional


class CombineRequest(BaseModel):
    conversation_id: str
    speaker: Optional[Literal["patient", "ai"]] = None
