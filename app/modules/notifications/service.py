import logging
from typing import Any, Dict, Optional

from supabase import Client

from app.config.settings import settings
from app.database.supabase_client import first_row
from app.integrations.textbelt import TextbeltClient

logger = logging.getLogger(__name__)

PROVIDER_AI_PREVIEW_USED = "ai_preview_used"
PROVIDER_PATIENT_REPLIED = "patient_replied"


class NotificationError(Exception):
    """Raised when a notification cannot be sent although the recipient opted in"""


def patient_message_text(therapist_name: Optional[str]) -> str:
    return (
        f"New voice message from {therapist_name or 'a therapist'}!\n\n"
        f"They've reviewed your intake session and believe they may be a good fit to help you.\n\n"
        f"Visit {settings.public_site_url}/chatbotV18/p1/messages to listen to their message.\n\n"
        f"- RiseTwice"
    )


def provider_message_text(
    notification_type: str,
    patient_name: Optional[str] = None,
    access_code: Optional[str] = None
) -> str:
    dashboard = f"{settings.public_site_url}/dashboard/provider"
    if notification_type == PROVIDER_AI_PREVIEW_USED:
        message = f"{patient_name or 'A patient'} tried your AI Preview on RiseTwice!\n\n"
        message += "They're interested in learning about your therapy approach.\n\n"
        if access_code:
            message += f"Access Code: {access_code}\n\n"
            message += "Enter this code in your dashboard to view their intake.\n\n"
        message += f"Visit {dashboard}\n\n- RiseTwice"
        return message
    return (
        f"New voice message from {patient_name or 'a patient'}!\n\n"
        f"They've replied to your introduction message.\n\n"
        f"Visit {dashboard} to listen.\n\n- RiseTwice"
    )


class NotificationService:
    """SMS notifications with per-recipient opt-out checks"""

    def __init__(self, supabase: Client, sms: Optional[TextbeltClient] = None):
        self.supabase = supabase
        self.sms = sms or TextbeltClient()

    def send_sms(self, phone: str, message: str) -> Dict[str, Any]:
        result = self.sms.send(phone, message)
        logger.info(f"SMS sent (text_id={result.get('text_id')}, quota_remaining={result.get('quota_remaining')})")
        return {"sent": True, **result}

    def send_patient_sms(self, user_id: str, therapist_name: Optional[str] = None) -> Dict[str, Any]:
        """Notify a patient of a new provider message if the latest intake opted in"""
        if not user_id:
            raise NotificationError("Missing patient user id")
        intake = first_row(self.supabase.table("patient_intake")
                           .select("sms_notifications, notification_phone, phone")
                           .eq("user_id", user_id)
                           .order("created_at", desc=True)
                           .limit(1)
                           .execute())
        if not intake:
            return {"sent": False, "reason": "no_intake"}
        if not intake.get("sms_notifications"):
            return {"sent": False, "reason": "sms_disabled"}
        phone = intake.get("notification_phone") or intake.get("phone")
        if not phone:
            raise NotificationError("Patient phone number not found")
        return self.send_sms(phone, patient_message_text(therapist_name))

    def send_provider_sms(
        self,
        provider_user_id: str,
        notification_type: str,
        access_code: Optional[str] = None,
        patient_name: Optional[str] = None
    ) -> Dict[str, Any]:
        """Notify a provider; SMS is on unless explicitly disabled"""
        if not provider_user_id:
            raise NotificationError("Missing provider user id")
        provider = first_row(self.supabase.table("s2_therapist_profiles")
                             .select("sms_notifications, notification_phone, phone_number")
                             .eq("user_id", provider_user_id)
                             .limit(1)
                             .execute())
        if not provider:
            return {"sent": False, "reason": "no_provider_profile"}
        if provider.get("sms_notifications") is False:
            return {"sent": False, "reason": "sms_disabled"}
        phone = provider.get("notification_phone") or provider.get("phone_number")
        if not phone:
            raise NotificationError("Provider phone number not found")
        return self.send_sms(phone, provider_message_text(notification_type, patient_name, access_code))

    def notify_quietly(self, send, *args, **kwargs) -> Dict[str, Any]:
        """Run a send; failures are logged and reported, never raised"""
        try:
            return send(*args, **kwargs)
        except Exception as e:
            logger.error(f"Notification failed ({getattr(send, '__name__', 'send')}): {e}")
            return {"sent": False, "reason": "error", "error": str(e)}
