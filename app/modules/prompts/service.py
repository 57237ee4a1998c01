import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import HTTPException
from supabase import Client

from app.database.supabase_client import first_row
from app.modules.prompts.schemas import AIPromptUpsert

logger = logging.getLogger(__name__)

PROMPT_TYPES = (
    "triage",
    "crisis_specialist",
    "anxiety_specialist",
    "depression_specialist",
    "trauma_specialist",
    "substance_use_specialist",
    "practical_support_specialist",
    "cbt_specialist",
    "dbt_specialist",
    "universal",
    "universal_functions",
)


def check_prompt_type(prompt_type: str) -> None:
    if prompt_type not in PROMPT_TYPES:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid prompt type. Must be one of: {', '.join(PROMPT_TYPES)}"
        )


class PromptService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def get_prompts(self, prompt_type: Optional[str] = None) -> Dict[str, Any]:
        """One prompt by type, or every active prompt"""
        if prompt_type:
            check_prompt_type(prompt_type)
        try:
            if prompt_type:
                rows = self.supabase.rpc("get_ai_prompt_by_type", {
                    "target_prompt_type": prompt_type,
                    "requesting_user_id": "admin"
                }).execute().data or []
                if not rows:
                    return {"success": True, "prompt": None, "message": f"No prompt found for type: {prompt_type}"}
                return {"success": True, "prompt": rows[0]}

            prompts = self.supabase.table("ai_prompts")\
                .select("*")\
                .in_("prompt_type", list(PROMPT_TYPES))\
                .eq("is_active", True)\
                .order("prompt_type")\
                .execute().data or []
            return {"success": True, "prompts": prompts, "promptTypes": list(PROMPT_TYPES)}
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to fetch prompts: {str(e)}")

    def save_prompt(self, data: AIPromptUpsert) -> Dict[str, Any]:
        """Update the active prompt of a type in place, or create it"""
        check_prompt_type(data.prompt_type)
        try:
            now = datetime.now(timezone.utc).isoformat()
            fields = {
                "prompt_content": data.content,
                "voice_settings": data.voice_settings,
                "metadata": data.metadata,
                "functions": data.functions or [],
                "merge_with_universal_functions": data.merge_with_universal_functions
                if data.merge_with_universal_functions is not None else True,
                "merge_with_universal_protocols": data.merge_with_universal_protocols
                if data.merge_with_universal_protocols is not None else True,
                "updated_at": now
            }
            existing = first_row(self.supabase.table("ai_prompts")
                                 .select("id")
                                 .eq("prompt_type", data.prompt_type)
                                 .eq("is_active", True)
                                 .limit(1)
                                 .execute())
            if existing:
                result = self.supabase.table("ai_prompts")\
                    .update(fields)\
                    .eq("id", existing["id"])\
                    .execute()
                action = "updated"
            else:
                result = self.supabase.table("ai_prompts").insert({
                    **fields,
                    "prompt_type": data.prompt_type,
                    "is_active": True,
                    "created_at": now
                }).execute()
                action = "created"
            if not result.data:
                raise HTTPException(status_code=500, detail=f"Failed to save prompt {data.prompt_type}")
            logger.info(f"AI prompt {data.prompt_type} {action} ({len(data.content)} chars)")
            return {"success": True, "prompt": result.data[0], "action": action}
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to save prompt: {str(e)}")
