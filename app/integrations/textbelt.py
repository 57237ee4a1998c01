import logging
from typing import Any, Dict, Optional

import httpx

from app.config.settings import settings
from app.integrations.errors import ExternalServiceError

logger = logging.getLogger(__name__)


class TextbeltClient:
    def __init__(self, api_key: Optional[str] = None, url: Optional[str] = None, timeout: Optional[float] = None):
        self.api_key = api_key if api_key is not None else settings.textbelt_api_key
        self.url = url or settings.textbelt_url
        self._timeout = timeout or settings.http_timeout_sec

    def send(self, phone: str, message: str) -> Dict[str, Any]:
        if not self.api_key:
            raise ExternalServiceError("Textbelt", "Textbelt API key not configured")
        try:
            with httpx.Client(timeout=self._timeout) as client:
                resp = client.post(self.url, data={
                    "phone": phone,
                    "message": message,
                    "key": self.api_key,
                })
            data = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Textbelt request failed: {e}")
            raise ExternalServiceError("Textbelt", str(e))
        if not data.get("success"):
            raise ExternalServiceError("Textbelt", data.get("error") or "SMS send failed", resp.status_code)
        return {
            "text_id": data.get("textId"),
            "quota_remaining": data.get("quotaRemaining"),
        }