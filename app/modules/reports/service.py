import logging
from typing import Any, Dict, List, Optional

from fastapi import HTTPException
from supabase import Client

from app.modules.engagement.service import resolve_target
from app.modules.reports.schemas import ReportCreate, ReportCreated, ReportsPage

logger = logging.getLogger(__name__)

REPORT_REASONS = (
    "spam",
    "harassment",
    "hate_speech",
    "misinformation",
    "inappropriate_content",
    "self_harm",
    "violence",
    "other",
)
# Reasons that flag the content for review immediately
SERIOUS_REASONS = ("self_harm", "violence", "hate_speech")
MAX_PAGE_SIZE = 100

_TARGET_TABLES = {"post_id": "community_posts", "comment_id": "post_comments"}


class ReportService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def create_report(self, data: ReportCreate) -> ReportCreated:
        column, target_id = resolve_target(data.post_id, data.comment_id)
        if data.reason not in REPORT_REASONS:
            raise HTTPException(status_code=400, detail="Invalid report reason")
        table = _TARGET_TABLES[column]
        try:
            content = self.supabase.table(table)\
                .select("id")\
                .eq("id", target_id)\
                .eq("is_deleted", False)\
                .limit(1)\
                .execute()
            if not content.data:
                raise HTTPException(
                    status_code=404,
                    detail="Post not found" if column == "post_id" else "Comment not found"
                )

            duplicate = self.supabase.table("post_reports")\
                .select("id")\
                .eq("reported_by", data.reporter_id)\
                .eq("reason", data.reason)\
                .eq(column, target_id)\
                .limit(1)\
                .execute()
            if duplicate.data:
                raise HTTPException(status_code=409, detail="You have already reported this content for this reason")

            result = self.supabase.table("post_reports").insert({
                "reported_by": data.reporter_id,
                "reason": data.reason,
                "description": (data.description or "").strip() or None,
                "status": "pending",
                column: target_id
            }).execute()
            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create report")

            if data.reason in SERIOUS_REASONS:
                self.supabase.table(table).update({"is_flagged": True}).eq("id", target_id).execute()
                logger.warning(f"{table} {target_id} flagged for review: {data.reason}")

            return ReportCreated(message="Report submitted successfully", report_id=result.data[0]["id"])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to create report: {str(e)}")

    def _attach_content(self, reports: List[Dict[str, Any]]) -> None:
        for column, table, columns in (
            ("post_id", "community_posts", "id, title, content, user_id"),
            ("comment_id", "post_comments", "id, content, user_id"),
        ):
            ids = list({r[column] for r in reports if r.get(column)})
            rows = {}
            if ids:
                rows = {row["id"]: row for row in self.supabase.table(table)
                        .select(columns)
                        .in_("id", ids)
                        .execute().data or []}
            for report in reports:
                report[table] = rows.get(report.get(column))

    def list_reports(
        self,
        status: str = "pending",
        reason: Optional[str] = None,
        page: int = 1,
        limit: int = 20
    ) -> ReportsPage:
        """Moderation queue, newest first"""
        page = max(page, 1)
        limit = min(max(limit, 1), MAX_PAGE_SIZE)
        try:
            query = self.supabase.table("post_reports").select("*", count="exact")
            if status != "all":
                query = query.eq("status", status)
            if reason:
                query = query.eq("reason", reason)
            start = (page - 1) * limit
            result = query.order("created_at", desc=True)\
                .range(start, start + limit - 1)\
                .execute()
            reports = result.data or []
            self._attach_content(reports)
            return ReportsPage(reports=reports, total_count=result.count or 0, page=page, limit=limit)
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to fetch reports: {str(e)}")
