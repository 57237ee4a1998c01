import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import HTTPException
from supabase import Client

from app.config.models_config import get_model
from app.integrations.errors import ExternalServiceError
from app.integrations.openai_client import OpenAIService, parse_json_reply
from app.modules.moderation.schemas import ModerationRequest, ModerationResult, ModerationDetails

logger = logging.getLogger(__name__)

KEYWORD_FLAGS = {
    "suicide_ideation": (
        "want to die", "wish i was dead", "kill myself", "end my life",
        "suicide", "suicidal", "not worth living", "better off dead",
    ),
    "self_harm": (
        "cut myself", "hurt myself", "self harm", "cutting",
        "burning myself", "harm myself",
    ),
    "crisis_escalation": (
        "tonight", "today", "right now", "cant take it anymore",
        "final message", "goodbye", "last time",
    ),
    "eating_disorder": (
        "havent eaten", "threw up", "purging", "binge",
        "fat", "ugly", "calories", "restrict",
    ),
}

AI_FLAGS = ("suicide_ideation", "self_harm", "crisis_escalation", "eating_disorder", "severe_depression")
CRISIS_FLAGS = ("suicide_ideation", "self_harm", "crisis_escalation")

ANALYSIS_PROMPT = """Analyze the following text for mental health concerns. Look for signs of:
- Suicide ideation or planning
- Self-harm behaviors
- Crisis situations
- Eating disorder behaviors
- Severe depression or hopelessness

Text: "{content}"

Respond with a JSON object containing an array of flags. Possible flags:
["suicide_ideation", "self_harm", "crisis_escalation", "eating_disorder", "severe_depression"]

If no concerning content is found, return {{"flags": []}}"""


def keyword_flags(content: str) -> List[str]:
    lowered = content.lower()
    return [flag for flag, keywords in KEYWORD_FLAGS.items() if any(k in lowered for k in keywords)]


def determine_priority(flags: List[str], moderation: Optional[Dict[str, Any]]) -> str:
    if "suicide_ideation" in flags or "crisis_escalation" in flags:
        return "immediate"
    violent = bool(moderation and (moderation.get("categories") or {}).get("violence"))
    if "self_harm" in flags or "eating_disorder" in flags or violent:
        return "urgent"
    return "standard"


def crisis_severity(flags: List[str]) -> str:
    if "suicide_ideation" in flags or "crisis_escalation" in flags:
        return "immediate"
    if "self_harm" in flags:
        return "high"
    return "medium"


class ModerationService:
    def __init__(self, supabase: Client, openai_service: OpenAIService):
        self.supabase = supabase
        self.openai = openai_service

    def _ai_flags(self, content: str) -> List[str]:
        """Model screening for content the keyword lists missed; failures yield no flags"""
        try:
            text = self.openai.chat(
                [{"role": "user", "content": ANALYSIS_PROMPT.format(content=content)}],
                model=get_model("analysis"),
                temperature=0.1,
                max_tokens=100
            )
            flags = parse_json_reply(text).get("flags") or []
        except (ExternalServiceError, ValueError, AttributeError) as e:
            logger.warning(f"AI mental health analysis unavailable: {e}")
            return []
        return [f for f in flags if f in AI_FLAGS]

    def _rpc_quietly(self, name: str, params: Dict[str, Any]) -> None:
        try:
            self.supabase.rpc(name, params).execute()
        except Exception as e:
            logger.error(f"{name} failed: {e}")

    def analyze(self, data: ModerationRequest) -> ModerationResult:
        try:
            moderation = None
            try:
                moderation = self.openai.moderate(data.content)
            except ExternalServiceError as e:
                logger.warning(f"OpenAI moderation unavailable, using keyword screening only: {e.message}")

            flags = keyword_flags(data.content) or self._ai_flags(data.content)
            flagged = bool(moderation and moderation["flagged"])
            requires_review = flagged or bool(flags)
            priority = determine_priority(flags, moderation)
            decision = "flagged" if requires_review else "approved"
            toxicity_score = 0.8 if flagged else 0.1

            post_id = data.content_id if data.content_type == "post" else None
            comment_id = data.content_id if data.content_type == "comment" else None
            self._rpc_quietly("store_content_moderation_result", {
                "target_post_id": post_id,
                "target_comment_id": comment_id,
                "toxicity_score": toxicity_score,
                "mental_health_flags": flags,
                "review_required": requires_review,
                "review_priority": priority,
                "ai_decision": decision
            })

            if data.user_id and any(f in CRISIS_FLAGS for f in flags):
                severity = crisis_severity(flags)
                logger.warning(f"Crisis indicators on {data.content_type} {data.content_id}: {flags}")
                self._rpc_quietly("store_crisis_detection", {
                    "target_user_id": data.user_id,
                    "target_post_id": post_id,
                    "target_comment_id": comment_id,
                    "crisis_type_flags": ",".join(flags),
                    "severity_level": severity,
                    "ai_confidence": 0.8,
                    "trigger_keywords": flags
                })
                self._rpc_quietly("update_user_safety_tracking", {
                    "target_user_id": data.user_id,
                    "risk_level": "crisis" if severity == "immediate" else "high",
                    "last_crisis_event": datetime.now(timezone.utc).isoformat(),
                    "flag_increment": 1
                })

            if requires_review and priority == "immediate":
                self._rpc_quietly("add_to_clinical_review_queue", {
                    "target_content_id": data.content_id,
                    "content_type": data.content_type,
                    "target_user_id": data.user_id,
                    "priority_level": priority,
                    "review_reasons": flags
                })

            return ModerationResult(
                decision=decision,
                requires_review=requires_review,
                priority=priority,
                toxicity_score=toxicity_score,
                mental_health_flags=flags,
                moderation_details=ModerationDetails(**moderation) if moderation else None
            )
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Moderation failed: {str(e)}")
