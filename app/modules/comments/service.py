from datetime import datetime, timezone
from typing import Any, Dict, Optional
from supabase import Client
from fastapi import HTTPException
from app.database.supabase_client import first_row
from app.modules.comments.schemas import CommentCreate, CommentUpdate
from app.modules.users.service import get_display_name

MAX_COMMENTS = 100
REPLIES_PREVIEW = 5


class CommentService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _get_active_comment(self, comment_id: str, columns: str = "*") -> Dict[str, Any]:
        comment = first_row(self.supabase.table("post_comments")
                            .select(columns)
                            .eq("id", comment_id)
                            .eq("is_deleted", False)
                            .limit(1)
                            .execute())
        if not comment:
            raise HTTPException(status_code=404, detail="Comment not found")
        return comment

    def list_comments(self, post_id: str, limit: int = 50, parent_id: Optional[str] = None) -> Dict[str, Any]:
        """Top-level comments with a preview of replies, or the direct replies of parent_id"""
        limit = min(max(limit, 1), MAX_COMMENTS)
        try:
            query = self.supabase.table("post_comments")\
                .select("*")\
                .eq("post_id", post_id)\
                .eq("is_deleted", False)
            if parent_id:
                query = query.eq("parent_comment_id", parent_id)
            else:
                query = query.is_("parent_comment_id", "null")
            comments = query.order("created_at").limit(limit).execute().data or []

            if not parent_id:
                for comment in comments:
                    comment["replies"] = self.supabase.table("post_comments")\
                        .select("*")\
                        .eq("post_id", post_id)\
                        .eq("parent_comment_id", comment["id"])\
                        .eq("is_deleted", False)\
                        .order("created_at")\
                        .limit(REPLIES_PREVIEW)\
                        .execute().data or []

            return {"comments": comments, "total_count": len(comments)}
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to fetch comments: {str(e)}")

    def create_comment(self, data: CommentCreate) -> Dict[str, Any]:
        content = data.content.strip()
        if not content:
            raise HTTPException(status_code=400, detail="Missing required fields")
        try:
            post = self.supabase.table("community_posts")\
                .select("id")\
                .eq("id", data.post_id)\
                .eq("is_deleted", False)\
                .limit(1)\
                .execute()
            if not post.data:
                raise HTTPException(status_code=404, detail="Post not found")

            if data.parent_comment_id:
                parent = first_row(self.supabase.table("post_comments")
                                   .select("id, post_id")
                                   .eq("id", data.parent_comment_id)
                                   .eq("is_deleted", False)
                                   .limit(1)
                                   .execute())
                if not parent or parent.get("post_id") != data.post_id:
                    raise HTTPException(status_code=404, detail="Parent comment not found")

            display_name = get_display_name(self.supabase, data.user_id)
            if not display_name:
                raise HTTPException(status_code=400, detail="User must have a display name set before commenting")

            result = self.supabase.table("post_comments").insert({
                "user_id": data.user_id,
                "post_id": data.post_id,
                "parent_comment_id": data.parent_comment_id,
                "display_name": display_name,
                "content": content,
                "is_anonymous": data.is_anonymous,
                "upvotes": 0,
                "downvotes": 0,
                "is_deleted": False
            }).execute()
            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create comment")

            self.supabase.rpc("increment_post_comment_count", {"post_id_param": data.post_id}).execute()
            self.supabase.rpc("increment_user_comments_count", {"user_id_param": data.user_id}).execute()
            return result.data[0]
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to create comment: {str(e)}")

    def get_comment(self, comment_id: str) -> Dict[str, Any]:
        try:
            return self._get_active_comment(comment_id)
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to fetch comment: {str(e)}")

    def update_comment(self, comment_id: str, data: CommentUpdate) -> Dict[str, Any]:
        content = data.content.strip()
        if not content:
            raise HTTPException(status_code=400, detail="Content is required")
        try:
            comment = self._get_active_comment(comment_id, "user_id")
            if comment["user_id"] != data.user_id:
                raise HTTPException(status_code=403, detail="Unauthorized to edit this comment")
            result = self.supabase.table("post_comments").update({
                "content": content,
                "updated_at": datetime.now(timezone.utc).isoformat()
            }).eq("id", comment_id).execute()
            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to update comment")
            return result.data[0]
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to update comment: {str(e)}")

    def delete_comment(self, comment_id: str, user_id: str, reason: str = "User deleted") -> Dict[str, str]:
        try:
            comment = self._get_active_comment(comment_id, "user_id, post_id")
            if comment["user_id"] != user_id:
                raise HTTPException(status_code=403, detail="Unauthorized to delete this comment")
            now = datetime.now(timezone.utc).isoformat()
            self.supabase.table("post_comments").update({
                "is_deleted": True,
                "deleted_reason": reason,
                "deleted_at": now,
                "updated_at": now
            }).eq("id", comment_id).execute()

            self.supabase.rpc("decrement_post_comment_count", {"post_id_param": comment["post_id"]}).execute()
            self.supabase.rpc("decrement_user_comments_count", {"user_id_param": user_id}).execute()
            return {"message": "Comment deleted successfully"}
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to delete comment: {str(e)}")
