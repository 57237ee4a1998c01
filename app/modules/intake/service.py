import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import HTTPException
from supabase import Client

from app.config.models_config import get_model
from app.database.supabase_client import first_row
from app.integrations.errors import ExternalServiceError
from app.integrations.openai_client import OpenAIService
from app.modules.intake.schemas import NotificationPreferences, NotificationPreferencesUpdate, TranscribeRequest
from app.modules.recordings.service import RecordingService
from app.modules.recordings.storage import AudioStorage

logger = logging.getLogger(__name__)

ACTIVE_JOB_STATUSES = ("pending", "processing")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class IntakeService:
    def __init__(self, supabase: Client, storage: Optional[AudioStorage] = None):
        self.supabase = supabase
        self.storage = storage or AudioStorage(supabase)

    def _latest_intake(self, user_id: str, columns: str = "*") -> Optional[Dict[str, Any]]:
        return first_row(self.supabase.table("patient_intake")
                         .select(columns)
                         .eq("user_id", user_id)
                         .order("created_at", desc=True)
                         .limit(1)
                         .execute())

    def get_notification_preferences(self, user_id: str) -> NotificationPreferences:
        try:
            intake = self._latest_intake(
                user_id, "id, notification_phone, email_notifications, sms_notifications"
            ) or {}
            phone = intake.get("notification_phone")
            if not phone:
                details = first_row(self.supabase.table("patient_details")
                                    .select("phone")
                                    .eq("user_id", user_id)
                                    .limit(1)
                                    .execute())
                phone = (details or {}).get("phone")
            return NotificationPreferences(
                phone=phone or "",
                email_notifications=bool(intake.get("email_notifications")),
                sms_notifications=bool(intake.get("sms_notifications"))
            )
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to fetch notification preferences: {str(e)}")

    def update_notification_preferences(self, data: NotificationPreferencesUpdate) -> Dict[str, Any]:
        if data.sms_notifications and not data.phone:
            raise HTTPException(status_code=400, detail="Phone number is required for SMS notifications")
        try:
            intake = self._latest_intake(data.user_id, "id")
            if not intake:
                raise HTTPException(status_code=404, detail="No intake record found. Please complete an intake first.")
            self.supabase.table("patient_intake")\
                .update({
                    "notification_phone": data.phone or None,
                    "email_notifications": data.email_notifications,
                    "sms_notifications": data.sms_notifications,
                    "updated_at": _now(),
                })\
                .eq("id", intake["id"])\
                .execute()
            return {"success": True, "message": "Notification preferences updated"}
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to update notification preferences: {str(e)}")

    def _conversation_for_intake(self, intake_id: str) -> Optional[str]:
        chunk = first_row(self.supabase.table("v18_audio_chunks")
                          .select("conversation_id")
                          .eq("intake_id", intake_id)
                          .limit(1)
                          .execute())
        return (chunk or {}).get("conversation_id")

    def get_intake_audio(self, intake_id: str, speaker: str = "patient") -> Dict[str, Any]:
        """Signed URL of the combined intake recording; combines on demand"""
        try:
            conversation_id = self._conversation_for_intake(intake_id)
            if not conversation_id:
                raise HTTPException(status_code=404, detail="No audio recording found for this intake")

            combined_path = self.storage.latest_combined(conversation_id, speaker)
            if combined_path:
                return {
                    "success": True,
                    "status": "ready",
                    "conversation_id": conversation_id,
                    "storage_path": combined_path,
                    "audio_url": self.storage.signed_url(combined_path),
                }

            job = first_row(self.supabase.table("audio_combination_jobs")
                            .select("id, status, error_message")
                            .eq("conversation_id", conversation_id)
                            .eq("speaker", speaker)
                            .order("created_at", desc=True)
                            .limit(1)
                            .execute())
            if job and job.get("status") in ACTIVE_JOB_STATUSES:
                return {"success": True, "status": job["status"], "conversation_id": conversation_id}

            combined = RecordingService(self.supabase, self.storage).combine_chunks(conversation_id, speaker)
            return {
                "success": True,
                "status": "ready",
                "conversation_id": conversation_id,
                "storage_path": combined["storage_path"],
                "audio_url": self.storage.signed_url(combined["storage_path"]),
            }
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to load intake audio: {str(e)}")

    def _mark_transcript(self, transcript_id: str, **fields):
        fields.setdefault("transcription_completed_at", _now())
        self.supabase.table("patient_intake_transcripts")\
            .update(fields)\
            .eq("id", transcript_id)\
            .execute()

    def transcribe_intake(self, data: TranscribeRequest, openai_service: OpenAIService) -> Dict[str, Any]:
        """Transcribe combined intake audio once per intake"""
        transcript_id = None
        try:
            existing = first_row(self.supabase.table("patient_intake_transcripts")
                                 .select("*")
                                 .eq("intake_id", data.intake_id)
                                 .order("created_at", desc=True)
                                 .limit(1)
                                 .execute())
            if existing and existing.get("status") == "processing":
                return {"success": True, "status": "processing", "message": "Transcription already in progress"}
            if existing and existing.get("status") == "completed":
                return {
                    "success": True,
                    "status": "completed",
                    "transcript": existing.get("transcript_text"),
                    "duration": existing.get("audio_duration_seconds"),
                }

            conversation_id = data.conversation_id or self._conversation_for_intake(data.intake_id)
            if not conversation_id:
                raise HTTPException(status_code=404, detail="No audio recording found for this intake")
            audio_path = data.combined_audio_path or self.storage.latest_combined(conversation_id, data.speaker)
            if not audio_path:
                raise HTTPException(status_code=404, detail="Combined audio not found; combine the recording first")

            job = self.supabase.table("patient_intake_transcripts").insert({
                "intake_id": data.intake_id,
                "conversation_id": conversation_id,
                "audio_storage_path": audio_path,
                "model_used": get_model("transcription"),
                "status": "processing",
                "transcription_started_at": _now(),
            }).execute()
            if not job.data:
                raise HTTPException(status_code=500, detail="Failed to create transcription job")
            transcript_id = job.data[0]["id"]

            try:
                audio = self.storage.download(audio_path)
            except Exception as e:
                self._mark_transcript(transcript_id, status="failed", error_message=f"Failed to download audio: {e}")
                raise HTTPException(status_code=500, detail="Failed to download audio file")

            try:
                result = openai_service.transcribe(audio, "audio.webm")
            except ExternalServiceError as e:
                self._mark_transcript(transcript_id, status="failed", error_message=f"OpenAI API error: {e.message}")
                raise HTTPException(status_code=500, detail=f"OpenAI API error: {e.message}")

            self._mark_transcript(
                transcript_id,
                status="completed",
                transcript_text=result["text"],
                audio_duration_seconds=result.get("duration"),
            )
            logger.info(f"Transcribed intake {data.intake_id} ({len(result['text'])} chars)")
            return {
                "success": True,
                "status": "completed",
                "transcript": result["text"],
                "duration": result.get("duration"),
            }
        except HTTPException:
            raise
        except Exception as e:
            if transcript_id:
                try:
                    self._mark_transcript(transcript_id, status="failed", error_message=str(e))
                except Exception as mark_error:
                    logger.error(f"Failed to mark transcript {transcript_id} failed: {mark_error}")
            raise HTTPException(status_code=500, detail=f"Transcription failed: {str(e)}")
