import logging
from typing import Any, Dict, List, Optional, Tuple

from fastapi import HTTPException
from supabase import Client

from app.database.supabase_client import first_row

logger = logging.getLogger(__name__)

VOTE_TYPES = ("upvote", "downvote")
REACTION_TYPES = ("care", "hugs", "helpful", "strength", "relatable", "thoughtful", "growth", "grateful")


def resolve_target(post_id: Optional[str], comment_id: Optional[str]) -> Tuple[str, str]:
    """(column, id) of the single post or comment being acted on"""
    if bool(post_id) == bool(comment_id):
        raise HTTPException(status_code=400, detail="Exactly one of post_id or comment_id is required")
    return ("post_id", post_id) if post_id else ("comment_id", comment_id)


class EngagementService:
    """Votes and reactions: one per user per post or comment, toggled by repeating it"""

    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _existing(self, table: str, user_id: str, target: Tuple[str, str]) -> Optional[Dict[str, Any]]:
        column, target_id = target
        return first_row(self.supabase.table(table)
                         .select("*")
                         .eq("user_id", user_id)
                         .eq(column, target_id)
                         .limit(1)
                         .execute())

    def _adjust_vote_count(self, target: Tuple[str, str], vote_type: str, delta: int) -> None:
        column, target_id = target
        table = "community_posts" if column == "post_id" else "post_comments"
        count_column = "upvotes" if vote_type == "upvote" else "downvotes"
        row = first_row(self.supabase.table(table)
                        .select(count_column)
                        .eq("id", target_id)
                        .limit(1)
                        .execute())
        if not row:
            return
        self.supabase.table(table)\
            .update({count_column: max(0, (row.get(count_column) or 0) + delta)})\
            .eq("id", target_id)\
            .execute()

    def vote(self, user_id: str, post_id: Optional[str], comment_id: Optional[str], vote_type: str) -> Tuple[Dict[str, Any], int]:
        """Returns (body, status_code); a new vote is 201"""
        target = resolve_target(post_id, comment_id)
        if vote_type not in VOTE_TYPES:
            raise HTTPException(status_code=400, detail="Invalid vote type")
        try:
            existing = self._existing("post_votes", user_id, target)

            if existing and existing.get("vote_type") == vote_type:
                self.supabase.table("post_votes").delete().eq("id", existing["id"]).execute()
                self._adjust_vote_count(target, vote_type, -1)
                return {"message": "Vote removed", "action": "removed", "vote_type": vote_type}, 200

            if existing:
                previous = existing.get("vote_type")
                self.supabase.table("post_votes")\
                    .update({"vote_type": vote_type})\
                    .eq("id", existing["id"])\
                    .execute()
                self._adjust_vote_count(target, previous, -1)
                self._adjust_vote_count(target, vote_type, 1)
                return {
                    "message": "Vote updated",
                    "action": "updated",
                    "vote_type": vote_type,
                    "previous_vote": previous
                }, 200

            column, target_id = target
            result = self.supabase.table("post_votes").insert({
                "user_id": user_id,
                "vote_type": vote_type,
                column: target_id
            }).execute()
            self._adjust_vote_count(target, vote_type, 1)
            return {
                "message": "Vote created",
                "action": "created",
                "vote_type": vote_type,
                "vote": result.data[0] if result.data else None
            }, 201
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to record vote: {str(e)}")

    def remove_vote(self, user_id: str, post_id: Optional[str], comment_id: Optional[str]) -> Dict[str, Any]:
        target = resolve_target(post_id, comment_id)
        try:
            existing = self._existing("post_votes", user_id, target)
            if not existing:
                raise HTTPException(status_code=404, detail="Vote not found")
            self.supabase.table("post_votes").delete().eq("id", existing["id"]).execute()
            self._adjust_vote_count(target, existing.get("vote_type"), -1)
            return {"message": "Vote removed", "vote_type": existing.get("vote_type")}
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to remove vote: {str(e)}")

    def get_votes(
        self,
        user_id: str,
        post_ids: Optional[List[str]] = None,
        comment_ids: Optional[List[str]] = None
    ) -> Dict[str, Dict[str, str]]:
        """The user's votes keyed by post or comment id"""
        try:
            votes: Dict[str, str] = {}
            for column, ids in (("post_id", post_ids), ("comment_id", comment_ids)):
                if not ids:
                    continue
                rows = self.supabase.table("post_votes")\
                    .select("post_id, comment_id, vote_type")\
                    .eq("user_id", user_id)\
                    .in_(column, ids)\
                    .execute().data or []
                for row in rows:
                    votes[row[column]] = row["vote_type"]
            return {"votes": votes}
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to fetch votes: {str(e)}")

    def react(
        self,
        user_id: str,
        post_id: Optional[str],
        comment_id: Optional[str],
        reaction_type: Optional[str]
    ) -> Tuple[Dict[str, Any], int]:
        target = resolve_target(post_id, comment_id)
        if reaction_type is None:
            return self.remove_reaction(user_id, post_id, comment_id), 200
        if reaction_type not in REACTION_TYPES:
            raise HTTPException(status_code=400, detail="Invalid reaction type")
        try:
            existing = self._existing("post_reactions", user_id, target)

            if existing and existing.get("reaction_type") == reaction_type:
                self.supabase.table("post_reactions").delete().eq("id", existing["id"]).execute()
                return {"message": "Reaction removed", "action": "removed", "reaction_type": reaction_type}, 200

            if existing:
                self.supabase.table("post_reactions")\
                    .update({"reaction_type": reaction_type})\
                    .eq("id", existing["id"])\
                    .execute()
                return {
                    "message": "Reaction updated",
                    "action": "updated",
                    "reaction_type": reaction_type,
                    "previous_reaction": existing.get("reaction_type")
                }, 200

            column, target_id = target
            result = self.supabase.table("post_reactions").insert({
                "user_id": user_id,
                "reaction_type": reaction_type,
                column: target_id
            }).execute()
            return {
                "message": "Reaction created",
                "action": "created",
                "reaction_type": reaction_type,
                "reaction": result.data[0] if result.data else None
            }, 201
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to record reaction: {str(e)}")

    def remove_reaction(self, user_id: str, post_id: Optional[str], comment_id: Optional[str]) -> Dict[str, Any]:
        target = resolve_target(post_id, comment_id)
        try:
            existing = self._existing("post_reactions", user_id, target)
            if not existing:
                raise HTTPException(status_code=404, detail="Reaction not found")
            self.supabase.table("post_reactions").delete().eq("id", existing["id"]).execute()
            return {"message": "Reaction removed", "reaction_type": existing.get("reaction_type")}
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to remove reaction: {str(e)}")

    def get_reactions(self, user_id: str, post_id: Optional[str] = None, comment_id: Optional[str] = None) -> Dict[str, List[Dict[str, Any]]]:
        try:
            query = self.supabase.table("post_reactions").select("*").eq("user_id", user_id)
            if post_id:
                query = query.eq("post_id", post_id)
            elif comment_id:
                query = query.eq("comment_id", comment_id)
            return {"reactions": query.execute().data or []}
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to fetch reactions: {str(e)}")
