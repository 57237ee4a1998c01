import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import HTTPException
from supabase import Client

from app.database.supabase_client import first_row
from app.modules.messaging.schemas import AudioMessage, MessageThread, ThreadsResponse
from app.modules.notifications.service import NotificationService, PROVIDER_PATIENT_REPLIED
from app.modules.recordings.storage import AudioStorage

logger = logging.getLogger(__name__)

TABLE = "provider_patient_audio_messages"
SENDER_PROVIDER = "provider"
SENDER_PATIENT = "patient"

MIME_EXTENSIONS = {
    "audio/webm": "webm",
    "audio/ogg": "ogg",
    "audio/mpeg": "mp3",
    "audio/mp3": "mp3",
    "audio/mp4": "m4a",
    "audio/m4a": "m4a",
    "audio/wav": "wav",
    "audio/x-wav": "wav",
}

# Which column identifies the reader on each side, and who sent what they read
_SIDES = {
    SENDER_PROVIDER: {"owner_column": "provider_user_id", "incoming": SENDER_PATIENT},
    SENDER_PATIENT: {"owner_column": "patient_user_id", "incoming": SENDER_PROVIDER},
}


def message_path(access_code: str, sender: str, file_name: Optional[str], mime_type: Optional[str]) -> str:
    if file_name and "." in file_name:
        extension = file_name.rsplit(".", 1)[-1]
    else:
        extension = MIME_EXTENSIONS.get((mime_type or "").split(";")[0], "webm")
    return f"provider-messages/{access_code}/{sender}-{int(time.time() * 1000)}.{extension}"


class MessagingService:
    def __init__(
        self,
        supabase: Client,
        notifications: NotificationService,
        storage: Optional[AudioStorage] = None
    ):
        self.supabase = supabase
        self.notifications = notifications
        self.storage = storage or AudioStorage(supabase)

    def _to_message(self, row: Dict[str, Any]) -> AudioMessage:
        url = row.get("audio_url")
        if row.get("storage_path"):
            url = self.storage.signed_url(row["storage_path"]) or url
        return AudioMessage(
            id=row["id"],
            senderType=row.get("sender_type"),
            audioUrl=url,
            durationSeconds=row.get("duration_seconds"),
            readAt=row.get("read_at"),
            createdAt=row.get("created_at"),
        )

    def _provider_names(self, provider_ids: List[str]) -> Dict[str, str]:
        if not provider_ids:
            return {}
        rows = self.supabase.table("s2_therapist_profiles")\
            .select("user_id, full_name")\
            .in_("user_id", provider_ids)\
            .execute().data or []
        return {r["user_id"]: r.get("full_name") for r in rows}

    def list_threads(self, side: str, user_id: str) -> ThreadsResponse:
        """Messages grouped per counterpart, oldest first; newest thread first"""
        owner_column = _SIDES[side]["owner_column"]
        try:
            rows = self.supabase.table(TABLE)\
                .select("*")\
                .eq(owner_column, user_id)\
                .order("created_at")\
                .execute().data or []
            counterpart = "patient_user_id" if side == SENDER_PROVIDER else "provider_user_id"
            threads: Dict[tuple, MessageThread] = {}
            latest: Dict[tuple, str] = {}
            for row in rows:
                key = (row.get(counterpart), row.get("access_code"))
                thread = threads.get(key)
                if thread is None:
                    thread = MessageThread(
                        patientUserId=row.get("patient_user_id"),
                        providerUserId=row.get("provider_user_id"),
                        intakeId=row.get("intake_id"),
                        accessCode=row.get("access_code"),
                    )
                    threads[key] = thread
                thread.messages.append(self._to_message(row))
                latest[key] = row.get("created_at") or ""
            if side == SENDER_PATIENT:
                names = self._provider_names(list({t.providerUserId for t in threads.values() if t.providerUserId}))
                for thread in threads.values():
                    thread.providerName = names.get(thread.providerUserId)
            ordered = sorted(threads.keys(), key=lambda k: latest[k], reverse=True)
            return ThreadsResponse(conversations=[threads[k] for k in ordered])
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to fetch messages: {str(e)}")

    def mark_read(self, side: str, message_id: str, user_id: str) -> Dict[str, Any]:
        """Mark a message sent by the other side as read by this user"""
        config = _SIDES[side]
        try:
            message = first_row(self.supabase.table(TABLE)
                                .select("id, read_at")
                                .eq("id", message_id)
                                .eq(config["owner_column"], user_id)
                                .eq("sender_type", config["incoming"])
                                .limit(1)
                                .execute())
            if not message:
                raise HTTPException(status_code=404, detail="Message not found")
            if message.get("read_at"):
                return {"success": True, "readAt": message["read_at"]}
            read_at = datetime.now(timezone.utc).isoformat()
            self.supabase.table(TABLE)\
                .update({"read_at": read_at})\
                .eq("id", message_id)\
                .execute()
            return {"success": True, "readAt": read_at}
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to mark message read: {str(e)}")

    def send_reply(
        self,
        sender: str,
        content: bytes,
        access_code: str,
        provider_user_id: str,
        patient_user_id: str,
        intake_id: Optional[str] = None,
        duration_seconds: Optional[float] = None,
        mime_type: Optional[str] = None,
        file_name: Optional[str] = None
    ) -> Dict[str, Any]:
        if not content:
            raise HTTPException(status_code=400, detail="No audio file provided")
        if not access_code or not provider_user_id or not patient_user_id:
            raise HTTPException(status_code=400, detail="accessCode, providerUserId and patientUserId are required")
        mime_type = mime_type or "audio/webm"
        try:
            path = message_path(access_code, sender, file_name, mime_type)
            try:
                self.storage.upload(path, content, mime_type)
            except Exception as e:
                raise HTTPException(status_code=500, detail=f"Failed to upload audio: {str(e)}")

            result = self.supabase.table(TABLE).insert({
                "access_code": access_code,
                "provider_user_id": provider_user_id,
                "patient_user_id": patient_user_id,
                "intake_id": intake_id,
                "sender_type": sender,
                "storage_path": path,
                "audio_url": self.storage.public_url(path),
                "duration_seconds": duration_seconds,
                "mime_type": mime_type,
                "file_size": len(content),
            }).execute()
            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to save message")
            row = result.data[0]

            if sender == SENDER_PROVIDER:
                therapist_name = self._provider_names([provider_user_id]).get(provider_user_id)
                notification = self.notifications.notify_quietly(
                    self.notifications.send_patient_sms, patient_user_id, therapist_name
                )
            else:
                notification = self.notifications.notify_quietly(
                    self.notifications.send_provider_sms, provider_user_id, PROVIDER_PATIENT_REPLIED, access_code
                )
            logger.info(f"{sender} audio message {row.get('id')} saved for access code {access_code}")
            return {
                "success": True,
                "message": self._to_message(row).model_dump(),
                "notification": notification,
            }
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to send audio message: {str(e)}")
