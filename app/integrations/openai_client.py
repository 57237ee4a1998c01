import json
import logging
from typing import Any, Dict, List, Optional

import httpx
from openai import OpenAI

from app.config.settings import settings
from app.config.models_config import get_model
from app.integrations.errors import ExternalServiceError

logger = logging.getLogger(__name__)


def parse_json_reply(text: str) -> Any:
    """Parse a model reply that may wrap its JSON in a ```json fence"""
    cleaned = text.strip()
    if cleaned.startswith("```"):
        cleaned = cleaned.split("\n", 1)[1] if "\n" in cleaned else ""
        cleaned = cleaned.rsplit("```", 1)[0]
    return json.loads(cleaned)


class OpenAIService:
    """Realtime session minting over REST; transcription, embeddings, moderation and chat over the SDK"""

    def __init__(self, api_key: Optional[str] = None, timeout: Optional[float] = None):
        self.api_key = api_key if api_key is not None else settings.openai_api_key
        self._timeout = timeout or settings.http_timeout_sec
        self._client: Optional[OpenAI] = None

    @property
    def client(self) -> OpenAI:
        if not self.api_key:
            raise ExternalServiceError("OpenAI", "OpenAI API key not configured")
        if self._client is None:
            self._client = OpenAI(api_key=self.api_key)
        return self._client

    def create_realtime_session(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        if not self.api_key:
            raise ExternalServiceError("OpenAI", "OpenAI API key not configured")
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        try:
            with httpx.Client(timeout=self._timeout) as client:
                resp = client.post(settings.openai_realtime_url, headers=headers, json=payload)
        except httpx.HTTPError as e:
            logger.error(f"OpenAI realtime session request failed: {e}")
            raise ExternalServiceError("OpenAI", str(e))
        if resp.status_code >= 400:
            logger.error(f"OpenAI realtime session error {resp.status_code}: {resp.text}")
            raise ExternalServiceError("OpenAI", resp.text, resp.status_code)
        return resp.json()

    def transcribe(self, audio: bytes, filename: str = "audio.webm") -> Dict[str, Any]:
        """Transcribe an audio file. Returns text and duration (seconds, when the model reports it)."""
        model = get_model("transcription")
        # gpt-4o transcription models only emit json/text; whisper models support verbose_json
        response_format = "verbose_json" if model.startswith("whisper") else "json"
        try:
            response = self.client.audio.transcriptions.create(
                model=model,
                file=(filename, audio),
                response_format=response_format
            )
        except ExternalServiceError:
            raise
        except Exception as e:
            logger.error(f"Transcription failed: {e}")
            raise ExternalServiceError("OpenAI", str(e))
        return {
            "text": getattr(response, "text", "") or "",
            "duration": getattr(response, "duration", None),
            "language": getattr(response, "language", None),
        }

    def embed(self, text: str) -> List[float]:
        try:
            response = self.client.embeddings.create(
                model=get_model("embedding"),
                input=text
            )
        except ExternalServiceError:
            raise
        except Exception as e:
            logger.error(f"Embedding failed: {e}")
            raise ExternalServiceError("OpenAI", str(e))
        return response.data[0].embedding

    def moderate(self, text: str) -> Dict[str, Any]:
        try:
            response = self.client.moderations.create(input=text)
        except ExternalServiceError:
            raise
        except Exception as e:
            logger.error(f"Moderation failed: {e}")
            raise ExternalServiceError("OpenAI", str(e))
        result = response.results[0]
        categories = result.categories
        if hasattr(categories, "model_dump"):
            categories = categories.model_dump()
        return {"flagged": bool(result.flagged), "categories": dict(categories or {})}

    def chat(
        self,
        messages: List[Dict[str, str]],
        model: Optional[str] = None,
        temperature: float = 0.3,
        max_tokens: Optional[int] = None
    ) -> str:
        """Single chat completion; returns the message text"""
        params: Dict[str, Any] = {
            "model": model or get_model("memory"),
            "messages": messages,
            "temperature": temperature,
        }
        if max_tokens:
            params["max_tokens"] = max_tokens
        try:
            response = self.client.chat.completions.create(**params)
        except ExternalServiceError:
            raise
        except Exception as e:
            logger.error(f"Chat completion failed: {e}")
            raise ExternalServiceError("OpenAI", str(e))
        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise ExternalServiceError("OpenAI", "Empty response from OpenAI")
        return content


def get_openai_service() -> OpenAIService:
    return OpenAIService()
