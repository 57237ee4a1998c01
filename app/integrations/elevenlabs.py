import logging
from typing import Any, Dict, Optional

import httpx

from app.config.settings import settings
from app.integrations.errors import ExternalServiceError

logger = logging.getLogger(__name__)


class ElevenLabsClient:
    """Thin client for the ElevenLabs Conversational AI agent endpoints"""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None
    ):
        self.api_key = api_key if api_key is not None else settings.elevenlabs_api_key
        self.base_url = (base_url or settings.elevenlabs_api_base).rstrip("/")
        self._timeout = timeout or settings.http_timeout_sec

    def _headers(self) -> Dict[str, str]:
        if not self.api_key:
            raise ExternalServiceError("ElevenLabs", "ElevenLabs API key not configured")
        return {"xi-api-key": self.api_key, "Content-Type": "application/json"}

    def _request(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        headers = self._headers()
        url = f"{self.base_url}{path}"
        try:
            with httpx.Client(timeout=self._timeout) as client:
                resp = client.request(method, url, headers=headers, json=payload)
        except httpx.HTTPError as e:
            logger.error(f"ElevenLabs request failed: {method} {path}: {e}")
            raise ExternalServiceError("ElevenLabs", str(e))
        if resp.status_code >= 400:
            logger.error(f"ElevenLabs API error {resp.status_code}: {resp.text}")
            raise ExternalServiceError("ElevenLabs", resp.text, resp.status_code)
        return resp.json()

    def get_agent(self, agent_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/convai/agents/{agent_id}")

    def update_agent(self, agent_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("PATCH", f"/convai/agents/{agent_id}", payload)


def get_elevenlabs_client() -> ElevenLabsClient:
    return ElevenLabsClient()
