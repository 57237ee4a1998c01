from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, List


class Settings(BaseSettings):
    # Supabase
    supabase_url: str = ""
    supabase_key: str = ""
    supabase_service_role_key: Optional[str] = None  # Server routes bypass RLS with this key
    audio_bucket: str = "audio-recordings"

    # Firebase Auth (ID tokens are verified against this project)
    firebase_project_id: Optional[str] = None
    auth_cache_ttl_sec: int = 60

    # OpenAI
    openai_api_key: Optional[str] = None
    openai_realtime_url: str = "https://api.openai.com/v1/realtime/sessions"

    # ElevenLabs
    elevenlabs_api_key: Optional[str] = None
    elevenlabs_api_base: str = "https://api.elevenlabs.io/v1"
    elevenlabs_agent_id: Optional[str] = None

    # Pinecone
    pinecone_api_key: Optional[str] = None
    pinecone_index: str = "risetwice"
    pinecone_namespace: Optional[str] = None

    # Textbelt SMS
    textbelt_api_key: Optional[str] = None
    textbelt_url: str = "https://textbelt.com/text"

    # Links included in SMS notifications
    public_site_url: str = "https://www.r2ai.me"

    # Outbound HTTP
    http_timeout_sec: float = 30.0

    # App
    app_name: str = "risetwice-api"
    debug: bool = False
    environment: str = "development"  # development | staging | production
    log_level: str = "INFO"
    cors_origins: str = "http://localhost:3000,http://127.0.0.1:3000"
    rate_limit: str = "100/minute"  # slowapi format, e.g. "100/minute"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def get_cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        env_prefix="",
        extra="ignore"
    )


settings = Settings()
