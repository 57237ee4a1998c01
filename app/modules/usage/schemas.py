from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional


class StartSessionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: Optional[str] = Field(None, alias="userId")
    anonymous_id: Optional[str] = Field(None, alias="anonymousId")
    page_url: Optional[str] = Field(None, alias="pageUrl")
    user_agent: Optional[str] = Field(None, alias="userAgent")
    referrer: Optional[str] = None
    timestamp: Optional[str] = None


class EndSessionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: Optional[str] = Field(None, alias="sessionId")
    page_views: int = Field(0, alias="pageViews")
    session_duration: float = Field(0, alias="sessionDuration")
    timestamp: Optional[str] = None


class UsageEventRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: Optional[str] = Field(None, alias="sessionId")
    user_id: Optional[str] = Field(None, alias="userId")
    anonymous_id: Optional[str] = Field(None, alias="anonymousId")
    event_type: str = Field(..., min_length=1, alias="eventType")
    page_path: Optional[str] = Field(None, alias="pagePath")
    event_data: Dict[str, Any] = Field(default_factory=dict, alias="eventData")
    timestamp: Optional[str] = None


class DailyStat(BaseModel):
    date: str
    sessions: int
    pageViews: int
    uniqueUsers: int


class TopPage(BaseModel):
    path: str
    views: int


class UserActivity(BaseModel):
    newUsersToday: int
    activeUsersToday: int
    returningUsers: int


class UsageStats(BaseModel):
    totalUsers: int
    authenticatedUsers: int
    anonymousUsers: int
    totalSessions: int
    totalPageViews: int
    averageSessionDuration: int
    dailyStats: List[DailyStat]
    topPages: List[TopPage]
    userActivity: UserActivity
