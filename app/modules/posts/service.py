import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from fastapi import HTTPException
from supabase import Client

from app.core.dependencies import is_circle_member
from app.database.supabase_client import first_row
from app.modules.posts.schemas import PostCreate, PostUpdate, PostsResponse
from app.modules.users.service import get_display_name

logger = logging.getLogger(__name__)

POST_TYPES = ("text", "audio", "question")
MAX_PAGE_SIZE = 50

# sort_by -> column ordered descending; hot falls back to recency
SORT_COLUMNS = {
    "new": "created_at",
    "hot": "created_at",
    "top": "upvotes",
    "controversial": "comment_count",
}


# circle feed: sort_by -> column ordered descending
CIRCLE_SORT_COLUMNS = {
    "hot": "upvotes",
    "new": "created_at",
    "top": "upvotes",
    "controversial": "downvotes",
}

# circle feed filter -> post types
CIRCLE_FILTERS = {
    "questions": ["question"],
    "discussions": ["text", "question"],
    "audio": ["audio"],
}

TIME_RANGES = {
    "hour": timedelta(hours=1),
    "day": timedelta(days=1),
    "week": timedelta(days=7),
    "month": timedelta(days=30),
    "year": timedelta(days=365),
}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class PostService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _user_circle_ids(self, user_id: str) -> List[str]:
        rows = self.supabase.table("circle_memberships")\
            .select("circle_id")\
            .eq("user_id", user_id)\
            .execute().data or []
        return [r["circle_id"] for r in rows]

    def _attach_circles(self, posts: List[Dict[str, Any]], columns: str = "id, name, display_name") -> None:
        circle_ids = list({p["circle_id"] for p in posts if p.get("circle_id")})
        circles = {}
        if circle_ids:
            rows = self.supabase.table("circles")\
                .select(columns)\
                .in_("id", circle_ids)\
                .execute().data or []
            circles = {c["id"]: c for c in rows}
        for post in posts:
            post["circles"] = circles.get(post.get("circle_id"))

    def _get_active_post(self, post_id: str, columns: str = "*") -> Dict[str, Any]:
        post = first_row(self.supabase.table("community_posts")
                         .select(columns)
                         .eq("id", post_id)
                         .eq("is_deleted", False)
                         .limit(1)
                         .execute())
        if not post:
            raise HTTPException(status_code=404, detail="Post not found")
        return post

    def list_posts(
        self,
        page: int = 1,
        limit: int = 10,
        sort_by: str = "hot",
        post_filter: str = "all",
        tags: Optional[List[str]] = None,
        user_id: Optional[str] = None,
        circle_id: Optional[str] = None,
        requesting_user_id: Optional[str] = None
    ) -> PostsResponse:
        """
        Feed of non-deleted posts.

        A circle feed shows that circle only. A signed-in home feed shows general
        posts plus posts from the user's circles. Anonymous readers see general
        posts only.
        """
        page = max(page, 1)
        limit = min(max(limit, 1), MAX_PAGE_SIZE)
        try:
            query = self.supabase.table("community_posts")\
                .select("*", count="exact")\
                .eq("is_deleted", False)

            if circle_id:
                query = query.eq("circle_id", circle_id)
            elif requesting_user_id:
                circle_ids = self._user_circle_ids(requesting_user_id)
                if circle_ids:
                    query = query.or_(f"circle_id.is.null,circle_id.in.({','.join(circle_ids)})")
                else:
                    query = query.is_("circle_id", "null")
            else:
                query = query.is_("circle_id", "null")

            if post_filter and post_filter != "all":
                query = query.eq("post_type", post_filter)
            if tags:
                query = query.overlaps("tags", tags)
            if user_id:
                query = query.eq("user_id", user_id)

            start = (page - 1) * limit
            result = query.order(SORT_COLUMNS.get(sort_by, "created_at"), desc=True)\
                .range(start, start + limit - 1)\
                .execute()

            posts = result.data or []
            self._attach_circles(posts)
            total_count = result.count or 0
            return PostsResponse(
                posts=posts,
                total_count=total_count,
                page=page,
                limit=limit,
                has_next_page=start + limit < total_count
            )
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to fetch posts: {str(e)}")

    def list_circle_posts(
        self,
        circle_id: str,
        page: int = 1,
        limit: int = 20,
        sort_by: str = "hot",
        post_filter: str = "all",
        time_range: str = "all",
        tags: Optional[List[str]] = None,
        requesting_user_id: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> PostsResponse:
        """Posts of one circle; private circles are shown to members only"""
        page = max(page, 1)
        limit = min(max(limit, 1), MAX_PAGE_SIZE)
        try:
            circle = first_row(self.supabase.table("circles")
                               .select("id, is_private")
                               .eq("id", circle_id)
                               .limit(1)
                               .execute())
            if not circle:
                raise HTTPException(status_code=404, detail="Circle not found")
            if circle.get("is_private") and not (
                requesting_user_id and is_circle_member(circle_id, requesting_user_id, self.supabase)
            ):
                raise HTTPException(
                    status_code=403,
                    detail="This is a private circle. You must be a member to view posts."
                )

            query = self.supabase.table("community_posts")\
                .select("*", count="exact")\
                .eq("circle_id", circle_id)\
                .eq("is_deleted", False)
            if post_filter in CIRCLE_FILTERS:
                query = query.in_("post_type", CIRCLE_FILTERS[post_filter])
            if tags:
                query = query.overlaps("tags", tags)
            if time_range in TIME_RANGES:
                since = (now or datetime.now(timezone.utc)) - TIME_RANGES[time_range]
                query = query.gte("created_at", since.isoformat())

            start = (page - 1) * limit
            result = query.order(CIRCLE_SORT_COLUMNS.get(sort_by, "created_at"), desc=True)\
                .range(start, start + limit - 1)\
                .execute()
            total_count = result.count or 0
            return PostsResponse(
                posts=result.data or [],
                total_count=total_count,
                page=page,
                limit=limit,
                has_next_page=total_count > page * limit
            )
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to fetch circle posts: {str(e)}")

    def create_post(self, data: PostCreate) -> Dict[str, Any]:
        title = data.title.strip()
        content = data.content.strip()
        if not title or not content:
            raise HTTPException(status_code=400, detail="Missing required fields")
        if data.post_type not in POST_TYPES:
            raise HTTPException(status_code=400, detail="Invalid post type")
        try:
            if data.circle_id and not is_circle_member(data.circle_id, data.user_id, self.supabase):
                raise HTTPException(status_code=403, detail="You must be a member of this circle to post")

            display_name = get_display_name(self.supabase, data.user_id)
            if not display_name:
                raise HTTPException(status_code=400, detail="User must have a display name set before posting")

            result = self.supabase.table("community_posts").insert({
                "user_id": data.user_id,
                "display_name": display_name,
                "title": title,
                "content": content,
                "post_type": data.post_type,
                "audio_url": data.audio_url,
                "audio_duration": data.audio_duration,
                "tags": data.tags,
                "circle_id": data.circle_id,
                "is_anonymous": data.is_anonymous,
                "upvotes": 0,
                "downvotes": 0,
                "comment_count": 0,
                "view_count": 0,
                "is_deleted": False
            }).execute()
            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create post")
            post = result.data[0]

            self.supabase.rpc("increment_user_posts_count", {"user_id_param": data.user_id}).execute()

            if data.circle_id:
                circle = first_row(self.supabase.table("circles")
                                   .select("post_count")
                                   .eq("id", data.circle_id)
                                   .limit(1)
                                   .execute())
                if circle:
                    self.supabase.table("circles").update({
                        "post_count": (circle.get("post_count") or 0) + 1,
                        "updated_at": _now()
                    }).eq("id", data.circle_id).execute()

            return post
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to create post: {str(e)}")

    def get_post(self, post_id: str) -> Dict[str, Any]:
        """Post with its circle and comments; counts a view"""
        try:
            post = self._get_active_post(post_id)
            self._attach_circles([post], "id, name, display_name, description")

            try:
                comments = self.supabase.table("post_comments")\
                    .select("*")\
                    .eq("post_id", post_id)\
                    .eq("is_deleted", False)\
                    .order("created_at")\
                    .execute().data or []
            except Exception as e:
                logger.warning(f"Failed to fetch comments for post {post_id}: {e}")
                comments = []

            self.supabase.table("community_posts")\
                .update({"view_count": (post.get("view_count") or 0) + 1})\
                .eq("id", post_id)\
                .execute()

            return {**post, "comment_count": len(comments), "comments": comments}
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to fetch post: {str(e)}")

    def update_post(self, post_id: str, data: PostUpdate) -> Dict[str, Any]:
        try:
            post = self._get_active_post(post_id, "user_id")
            if post["user_id"] != data.user_id:
                raise HTTPException(status_code=403, detail="Unauthorized to edit this post")

            update_data: Dict[str, Any] = {}
            if data.title is not None:
                update_data["title"] = data.title.strip()
            if data.content is not None:
                update_data["content"] = data.content.strip()
            if data.tags is not None:
                if not isinstance(data.tags, list):
                    raise HTTPException(status_code=400, detail="Tags must be an array")
                update_data["tags"] = data.tags
            update_data["updated_at"] = _now()

            result = self.supabase.table("community_posts")\
                .update(update_data)\
                .eq("id", post_id)\
                .execute()
            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to update post")
            return result.data[0]
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to update post: {str(e)}")

    def delete_post(self, post_id: str, user_id: str, reason: str = "User deleted") -> Dict[str, str]:
        """Soft delete"""
        try:
            post = self._get_active_post(post_id, "user_id")
            if post["user_id"] != user_id:
                raise HTTPException(status_code=403, detail="Unauthorized to delete this post")

            now = _now()
            self.supabase.table("community_posts").update({
                "is_deleted": True,
                "deleted_reason": reason,
                "deleted_at": now,
                "updated_at": now
            }).eq("id", post_id).execute()

            self.supabase.rpc("decrement_user_posts_count", {"user_id_param": user_id}).execute()
            return {"message": "Post deleted successfully"}
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to delete post: {str(e)}")
