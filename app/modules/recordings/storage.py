from app.config.settings import settings
from supabase import Client
from typing import List, Optional
import logging

logger = logging.getLogger(__name__)

RECORDINGS_PREFIX = "v18-voice-recordings"
SIGNED_URL_TTL_SEC = 3600


def chunk_path(conversation_id: str, speaker: str, chunk_index: int) -> str:
    return f"{RECORDINGS_PREFIX}/{conversation_id}/{speaker}/chunk-{chunk_index:03d}.webm"


def combined_prefix(speaker: Optional[str]) -> str:
    return "combined-ai-" if speaker == "ai" else "combined-"


def is_combined_for(name: str, speaker: Optional[str]) -> bool:
    """Patient files are combined-<ts>; ai files are combined-ai-<ts>"""
    if speaker == "ai":
        return name.startswith("combined-ai-")
    if speaker == "patient":
        return name.startswith("combined-") and not name.startswith("combined-ai-")
    return name.startswith("combined-")


class AudioStorage:
    """Supabase Storage wrapper for the audio bucket"""

    def __init__(self, supabase: Client, bucket: Optional[str] = None):
        self.bucket_name = bucket or settings.audio_bucket
        self.bucket = supabase.storage.from_(self.bucket_name)

    def upload(self, path: str, content: bytes, content_type: str = "audio/webm", upsert: bool = False) -> str:
        try:
            self.bucket.upload(path, content, {
                "content-type": content_type,
                "upsert": "true" if upsert else "false"
            })
            return path
        except Exception as e:
            logger.error(f"Failed to upload {path} to {self.bucket_name}: {str(e)}")
            raise

    def download(self, path: str) -> bytes:
        return self.bucket.download(path)

    def public_url(self, path: str) -> str:
        url = self.bucket.get_public_url(path)
        return url.rstrip("?") if isinstance(url, str) else url

    def signed_url(self, path: str, expires_in: int = SIGNED_URL_TTL_SEC) -> Optional[str]:
        try:
            result = self.bucket.create_signed_url(path, expires_in)
        except Exception as e:
            logger.warning(f"Could not sign {path}: {str(e)}")
            return None
        if not result:
            return None
        return result.get("signedURL") or result.get("signedUrl")

    def list(self, folder: str) -> List[dict]:
        return self.bucket.list(folder, {
            "limit": 100,
            "sortBy": {"column": "created_at", "order": "desc"}
        }) or []

    def latest_combined(self, conversation_id: str, speaker: Optional[str] = None) -> Optional[str]:
        """Storage path of the newest combined file for a conversation, or None"""
        folder = f"{RECORDINGS_PREFIX}/{conversation_id}"
        try:
            files = self.list(folder)
        except Exception as e:
            logger.warning(f"Could not list {folder}: {str(e)}")
            return None
        matches = sorted(
            (f for f in files if is_combined_for(f.get("name", ""), speaker)),
            key=lambda f: f.get("created_at") or f.get("name"),
            reverse=True
        )
        if not matches:
            return None
        return f"{folder}/{matches[0]['name']}"
