import logging
import math
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Tuple

from fastapi import HTTPException
from supabase import Client

from app.database.supabase_client import first_row
from app.modules.usage.schemas import (
    StartSessionRequest, EndSessionRequest, UsageEventRequest,
    UsageStats, DailyStat, TopPage, UserActivity
)

logger = logging.getLogger(__name__)

TOP_PAGES = 10


def _now() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: str) -> datetime:
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def stats_window(days: int, now: Optional[datetime] = None) -> Tuple[datetime, datetime]:
    """days=0 is today, days=1 is yesterday, otherwise the last N days up to now"""
    now = now or _now()
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    if days == 0:
        return midnight, midnight + timedelta(days=1) - timedelta(microseconds=1)
    if days == 1:
        return midnight - timedelta(days=1), midnight - timedelta(microseconds=1)
    return now - timedelta(days=days), now


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def client_ip(forwarded_for: Optional[str], real_ip: Optional[str]) -> str:
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    return real_ip or "unknown"


class UsageService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    @staticmethod
    def _identity(user_id: Optional[str], anonymous_id: Optional[str]) -> Tuple[str, str]:
        return ("user_id", user_id) if user_id else ("anonymous_id", anonymous_id)

    def start_session(self, data: StartSessionRequest, ip_address: str) -> Dict[str, Any]:
        if not data.user_id and not data.anonymous_id:
            raise HTTPException(status_code=400, detail="Either userId or anonymousId is required")
        timestamp = data.timestamp or _now().isoformat()
        try:
            result = self.supabase.table("usage_sessions").insert({
                "user_id": data.user_id,
                "anonymous_id": data.anonymous_id,
                "session_start": timestamp,
                "user_agent": data.user_agent,
                "ip_address": ip_address,
                "referrer": data.referrer or None,
                "page_views": 0,
                "metadata": {
                    "created_from": "web_app",
                    "page_url": data.page_url,
                    "user_agent_parsed": data.user_agent
                }
            }).execute()
            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create session")
            session_id = result.data[0]["id"]

            column, identity = self._identity(data.user_id, data.anonymous_id)
            existing = first_row(self.supabase.table("user_usage_summary")
                                 .select("first_visit, total_sessions, total_page_views, total_time_spent_minutes")
                                 .eq(column, identity)
                                 .limit(1)
                                 .execute())
            existing = existing or {}
            self.supabase.table("user_usage_summary").upsert({
                "user_id": data.user_id,
                "anonymous_id": data.anonymous_id,
                "first_visit": existing.get("first_visit") or timestamp,
                "last_visit": timestamp,
                "total_sessions": (existing.get("total_sessions") or 0) + 1,
                "total_page_views": existing.get("total_page_views") or 0,
                "total_time_spent_minutes": existing.get("total_time_spent_minutes") or 0
            }, on_conflict=column).execute()

            logger.info(f"Usage session {session_id} started ({column})")
            return {"sessionId": session_id, "success": True}
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to start session: {str(e)}")

    def end_session(self, data: EndSessionRequest) -> Dict[str, bool]:
        """Close a session and fold its page views and duration into the visitor summary"""
        if not data.session_id:
            raise HTTPException(status_code=400, detail="sessionId is required")
        timestamp = data.timestamp or _now().isoformat()
        try:
            session = first_row(self.supabase.table("usage_sessions")
                                .select("user_id, anonymous_id")
                                .eq("id", data.session_id)
                                .limit(1)
                                .execute())
            if not session:
                raise HTTPException(status_code=404, detail="Session not found")

            self.supabase.table("usage_sessions").update({
                "session_end": timestamp,
                "page_views": data.page_views
            }).eq("id", data.session_id).execute()

            column, identity = self._identity(session.get("user_id"), session.get("anonymous_id"))
            summary = first_row(self.supabase.table("user_usage_summary")
                                .select("total_page_views, total_time_spent_minutes")
                                .eq(column, identity)
                                .limit(1)
                                .execute())
            if not summary:
                raise HTTPException(status_code=500, detail="Failed to fetch user summary")

            # sessions were already counted at start
            self.supabase.table("user_usage_summary").update({
                "last_visit": timestamp,
                "total_page_views": (summary.get("total_page_views") or 0) + data.page_views,
                "total_time_spent_minutes": (summary.get("total_time_spent_minutes") or 0)
                + round_half_up(data.session_duration / 60000),
                "updated_at": timestamp
            }).eq(column, identity).execute()
            return {"success": True}
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to end session: {str(e)}")

    def record_event(self, data: UsageEventRequest) -> Dict[str, Any]:
        try:
            result = self.supabase.table("usage_events").insert({
                "session_id": data.session_id,
                "user_id": data.user_id,
                "anonymous_id": data.anonymous_id,
                "event_type": data.event_type,
                "page_path": data.page_path,
                "event_data": data.event_data,
                "timestamp": data.timestamp or _now().isoformat()
            }).execute()
            return {"success": True, "eventId": result.data[0]["id"] if result.data else None}
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to record event: {str(e)}")

    def get_stats(self, days: int = 7, now: Optional[datetime] = None) -> UsageStats:
        now = now or _now()
        start, end = stats_window(days, now)
        try:
            sessions = self.supabase.table("usage_sessions")\
                .select("session_start, session_end, page_views, user_id, anonymous_id")\
                .gte("session_start", start.isoformat())\
                .lte("session_start", end.isoformat())\
                .order("session_start")\
                .execute().data or []

            visitors, authenticated, anonymous = set(), set(), set()
            total_page_views = 0
            total_minutes = 0.0
            daily: Dict[str, Dict[str, Any]] = {}
            for session in sessions:
                visitor = session.get("user_id") or session.get("anonymous_id")
                if visitor:
                    visitors.add(visitor)
                if session.get("user_id"):
                    authenticated.add(session["user_id"])
                if session.get("anonymous_id"):
                    anonymous.add(session["anonymous_id"])
                page_views = session.get("page_views") or 0
                total_page_views += page_views

                started = parse_timestamp(session["session_start"])
                if session.get("session_end"):
                    total_minutes += (parse_timestamp(session["session_end"]) - started).total_seconds() / 60

                day = daily.setdefault(started.date().isoformat(), {"sessions": 0, "pageViews": 0, "users": set()})
                day["sessions"] += 1
                day["pageViews"] += page_views
                day["users"].add(visitor)

            events = self.supabase.table("usage_events")\
                .select("page_path")\
                .eq("event_type", "page_view")\
                .gte("timestamp", start.isoformat())\
                .not_.is_("page_path", "null")\
                .execute().data or []
            page_counts = Counter(e.get("page_path") or "unknown" for e in events)

            return UsageStats(
                totalUsers=len(visitors),
                authenticatedUsers=len(authenticated),
                anonymousUsers=len(anonymous),
                totalSessions=len(sessions),
                totalPageViews=total_page_views,
                averageSessionDuration=round_half_up(total_minutes / len(sessions)) if sessions else 0,
                dailyStats=[
                    DailyStat(date=date, sessions=d["sessions"], pageViews=d["pageViews"], uniqueUsers=len(d["users"]))
                    for date, d in daily.items()
                ],
                topPages=[TopPage(path=path, views=views) for path, views in page_counts.most_common(TOP_PAGES)],
                userActivity=self._user_activity(now)
            )
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to fetch usage statistics: {str(e)}")

    def _user_activity(self, now: datetime) -> UserActivity:
        midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
        summaries = self.supabase.table("user_usage_summary")\
            .select("user_id, anonymous_id, first_visit")\
            .execute().data or []
        today_sessions = self.supabase.table("usage_sessions")\
            .select("user_id, anonymous_id")\
            .gte("session_start", midnight.isoformat())\
            .execute().data or []
        active_today = {s.get("user_id") or s.get("anonymous_id") for s in today_sessions}

        new_today = 0
        returning = 0
        for summary in summaries:
            if not summary.get("first_visit"):
                continue
            first_visit = parse_timestamp(summary["first_visit"])
            if first_visit >= midnight:
                new_today += 1
            elif (summary.get("user_id") or summary.get("anonymous_id")) in active_today:
                returning += 1
        return UserActivity(newUsersToday=new_today, activeUsersToday=len(active_today), returningUsers=returning)
