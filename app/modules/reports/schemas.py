from pydantic import AliasChoices, BaseModel, Field
from typing import Any, Dict, List, Optional


class ReportCreate(BaseModel):
    reporter_id: str = Field(..., min_length=1, validation_alias=AliasChoices("reporter_id", "reported_by"))
    post_id: Optional[str] = None
    comment_id: Optional[str] = None
    reason: str = Field(..., min_length=1)
    description: Optional[str] = None


class ReportCreated(BaseModel):
    message: str
    report_id: str


class ReportsPage(BaseModel):
    reports: List[Dict[str, Any]]
    total_count: int
    page: int
    limit: int
