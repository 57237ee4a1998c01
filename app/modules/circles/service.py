import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import HTTPException
from supabase import Client

from app.core.dependencies import check_circle_admin
from app.database.supabase_client import first_row
from app.modules.circles.schemas import CircleCreate, CirclesResponse, JoinRequestCreate, JoinRequestDecision
from app.modules.notifications.service import NotificationService

logger = logging.getLogger(__name__)

CIRCLE_NAME_PATTERN = re.compile(r"^[a-z0-9_-]+$")
MAX_PAGE_SIZE = 50


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def approval_message(circle_name: str, admin_response: Optional[str] = None) -> str:
    message = f"Your request to join the {circle_name} circle on RiseTwice was approved!"
    if admin_response:
        message += f"\n\nMessage from the circle admin: {admin_response}"
    return message + "\n\n- RiseTwice"


class CircleService:
    def __init__(self, supabase: Client, notifications: Optional[NotificationService] = None):
        self.supabase = supabase
        self.notifications = notifications

    def _get_circle(self, circle_id: str, columns: str = "*") -> Optional[Dict[str, Any]]:
        return first_row(self.supabase.table("circles")
                         .select(columns)
                         .eq("id", circle_id)
                         .limit(1)
                         .execute())

    def _adjust_member_count(self, circle_id: str, delta: int) -> None:
        circle = self._get_circle(circle_id, "member_count")
        if not circle:
            return
        try:
            self.supabase.table("circles").update({
                "member_count": max(0, (circle.get("member_count") or 0) + delta),
                "updated_at": _now()
            }).eq("id", circle_id).execute()
        except Exception as e:
            logger.error(f"Error updating member count for circle {circle_id}: {e}")

    def list_circles(
        self,
        requesting_user_id: Optional[str] = None,
        search: Optional[str] = None,
        filter_private: Optional[bool] = None,
        sort_by: str = "members",
        page: int = 1,
        limit: int = 20
    ) -> CirclesResponse:
        """Circles visible to the requesting user, paged through get_discoverable_circles"""
        page = max(page, 1)
        limit = min(max(limit, 1), MAX_PAGE_SIZE)
        try:
            result = self.supabase.rpc("get_discoverable_circles", {
                "requesting_user_id": requesting_user_id or "anonymous_user",
                "search_term": search or None,
                "filter_private": filter_private,
                "sort_by": sort_by,
                "limit_count": limit,
                "offset_count": (page - 1) * limit,
            }).execute()
            circles = result.data or []
            total_count = circles[0].get("total_count", len(circles)) if circles else 0
            return CirclesResponse(
                circles=circles,
                total_count=total_count,
                page=page,
                limit=limit,
                has_next_page=total_count > page * limit
            )
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to fetch circles: {str(e)}")

    def create_circle(self, data: CircleCreate) -> Dict[str, Any]:
        if not CIRCLE_NAME_PATTERN.match(data.name):
            raise HTTPException(
                status_code=400,
                detail="Circle name must contain only lowercase letters, numbers, underscores, and hyphens"
            )
        try:
            existing = self.supabase.table("circles")\
                .select("id")\
                .eq("name", data.name)\
                .limit(1)\
                .execute()
            if existing.data:
                raise HTTPException(status_code=409, detail="A circle with this name already exists")

            result = self.supabase.table("circles").insert({
                "name": data.name,
                "display_name": data.display_name,
                "description": data.description,
                "rules": data.rules,
                "icon_url": data.icon_url,
                "banner_url": data.banner_url,
                "is_private": data.is_private,
                "requires_approval": data.requires_approval,
                "is_approved": False,
                "created_by": data.user_id,
                "member_count": 1,
                "post_count": 0
            }).execute()
            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create circle")
            circle = result.data[0]

            try:
                self.supabase.table("circle_memberships").insert({
                    "circle_id": circle["id"],
                    "user_id": data.user_id,
                    "role": "admin"
                }).execute()
            except Exception as e:
                logger.error(f"Failed to create admin membership for circle {circle['id']}: {e}")
                self.supabase.table("circles").delete().eq("id", circle["id"]).execute()
                raise HTTPException(status_code=500, detail="Failed to create circle membership")

            logger.info(f"Circle {data.name} created by {data.user_id}")
            return circle
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to create circle: {str(e)}")

    def join(self, circle_id: str, user_id: str) -> Dict[str, str]:
        try:
            circle = self._get_circle(circle_id, "id, created_by, member_count")
            if not circle:
                raise HTTPException(status_code=404, detail="Circle not found")

            existing = self.supabase.table("circle_memberships")\
                .select("id")\
                .eq("circle_id", circle_id)\
                .eq("user_id", user_id)\
                .limit(1)\
                .execute()
            if existing.data:
                raise HTTPException(status_code=409, detail="You are already a member of this circle")

            self.supabase.table("circle_memberships").insert({
                "circle_id": circle_id,
                "user_id": user_id,
                "role": "admin" if circle.get("created_by") == user_id else "member"
            }).execute()
            self._adjust_member_count(circle_id, 1)
            return {"message": "Successfully joined circle"}
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to join circle: {str(e)}")

    def leave(self, circle_id: str, user_id: str) -> Dict[str, str]:
        try:
            membership = first_row(self.supabase.table("circle_memberships")
                                   .select("role")
                                   .eq("circle_id", circle_id)
                                   .eq("user_id", user_id)
                                   .limit(1)
                                   .execute())
            if not membership:
                raise HTTPException(status_code=404, detail="You are not a member of this circle")

            if membership.get("role") == "admin":
                other_admins = self.supabase.table("circle_memberships")\
                    .select("id")\
                    .eq("circle_id", circle_id)\
                    .eq("role", "admin")\
                    .neq("user_id", user_id)\
                    .execute()
                if not other_admins.data:
                    raise HTTPException(
                        status_code=400,
                        detail="You cannot leave this circle as you are the only admin. "
                               "Promote another member to admin first or delete the circle."
                    )

            self.supabase.table("circle_memberships")\
                .delete()\
                .eq("circle_id", circle_id)\
                .eq("user_id", user_id)\
                .execute()
            self._adjust_member_count(circle_id, -1)
            return {"message": "Successfully left circle"}
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to leave circle: {str(e)}")

    def get_join_request(self, circle_id: str, user_id: str) -> Dict[str, Any]:
        try:
            request = first_row(self.supabase.table("circle_join_requests")
                                .select("*")
                                .eq("circle_id", circle_id)
                                .eq("requester_id", user_id)
                                .limit(1)
                                .execute())
            return {"request": request}
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to fetch join request: {str(e)}")

    def _consume_access_link(self, access_token: str) -> None:
        link = first_row(self.supabase.table("circle_access_links")
                         .select("*")
                         .eq("access_token", access_token)
                         .eq("is_active", True)
                         .limit(1)
                         .execute())
        if not link:
            raise HTTPException(status_code=400, detail="Invalid access link")
        expires_at = link.get("expires_at")
        if expires_at and datetime.fromisoformat(expires_at.replace("Z", "+00:00")) < datetime.now(timezone.utc):
            raise HTTPException(status_code=400, detail="Access link has expired")
        usage_count = link.get("usage_count") or 0
        if link.get("max_uses") and usage_count >= link["max_uses"]:
            raise HTTPException(status_code=400, detail="Access link has reached maximum uses")
        self.supabase.table("circle_access_links")\
            .update({"usage_count": usage_count + 1})\
            .eq("id", link["id"])\
            .execute()

    def request_to_join(self, circle_id: str, data: JoinRequestCreate) -> Dict[str, Any]:
        """Create or refresh a pending join request, optionally through an access link"""
        try:
            if data.access_token:
                self._consume_access_link(data.access_token)

            existing = first_row(self.supabase.table("circle_join_requests")
                                 .select("status")
                                 .eq("circle_id", circle_id)
                                 .eq("requester_id", data.user_id)
                                 .limit(1)
                                 .execute())
            if existing:
                if existing.get("status") == "pending":
                    raise HTTPException(status_code=400, detail="You already have a pending request for this circle")
                if existing.get("status") == "approved":
                    raise HTTPException(status_code=400, detail="You are already a member of this circle")

            now = _now()
            result = self.supabase.table("circle_join_requests").upsert({
                "circle_id": circle_id,
                "requester_id": data.user_id,
                "message": data.message,
                "notification_email": data.notification_email,
                "notification_phone": data.notification_phone,
                "status": "pending",
                "created_at": now,
                "updated_at": now
            }, on_conflict="circle_id,requester_id").execute()
            return {"joinRequest": result.data[0] if result.data else None}
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to create join request: {str(e)}")

    def list_join_requests(self, circle_id: str, user_id: str, status: str = "pending") -> Dict[str, List[Dict[str, Any]]]:
        check_circle_admin(circle_id, user_id, self.supabase)
        try:
            result = self.supabase.table("circle_join_requests")\
                .select("*")\
                .eq("circle_id", circle_id)\
                .eq("status", status)\
                .order("created_at", desc=True)\
                .execute()
            return {"requests": result.data or []}
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to fetch join requests: {str(e)}")

    def review_join_request(self, circle_id: str, data: JoinRequestDecision) -> Dict[str, Any]:
        check_circle_admin(circle_id, data.user_id, self.supabase)
        try:
            join_request = first_row(self.supabase.table("circle_join_requests")
                                     .select("*")
                                     .eq("id", data.request_id)
                                     .eq("circle_id", circle_id)
                                     .limit(1)
                                     .execute())
            if not join_request:
                raise HTTPException(status_code=404, detail="Join request not found")

            now = _now()
            updated = self.supabase.table("circle_join_requests").update({
                "status": data.decision,
                "reviewed_by": data.user_id,
                "reviewed_at": now,
                "admin_response": data.admin_response,
                "updated_at": now
            }).eq("id", data.request_id).execute()
            join_request = updated.data[0] if updated.data else {**join_request, "status": data.decision}

            if data.decision == "approved":
                self._approve(circle_id, join_request, data.admin_response)

            if data.notification_method and data.notification_method != "none":
                try:
                    self.supabase.table("admin_notification_log").insert({
                        "request_id": data.request_id,
                        "notification_method": data.notification_method,
                        "notification_sent": False,
                        "admin_notes": data.admin_notes
                    }).execute()
                except Exception as e:
                    logger.warning(f"Failed to log notification for join request {data.request_id}: {e}")

            return {"success": True, "joinRequest": join_request}
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to review join request: {str(e)}")

    def _approve(self, circle_id: str, join_request: Dict[str, Any], admin_response: Optional[str]) -> None:
        try:
            self.supabase.table("circle_memberships").insert({
                "circle_id": circle_id,
                "user_id": join_request["requester_id"],
                "role": "member",
                "joined_at": _now()
            }).execute()
        except Exception as e:
            logger.error(f"Error adding {join_request['requester_id']} to circle {circle_id}: {e}")
        self._adjust_member_count(circle_id, 1)

        phone = join_request.get("notification_phone")
        if phone and self.notifications:
            circle = self._get_circle(circle_id, "name, display_name") or {}
            circle_name = circle.get("display_name") or circle.get("name") or "your"
            self.notifications.notify_quietly(
                self.notifications.send_sms, phone, approval_message(circle_name, admin_response)
            )
