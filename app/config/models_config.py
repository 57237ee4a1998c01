"""
AI model configuration
Single place for the model identifiers and voice defaults used across modules.
"""

MODELS = {
    "realtime": {
        "model": "gpt-realtime",
        "description": "OpenAI Realtime voice sessions"
    },
    "transcription": {
        "model": "gpt-4o-transcribe",
        "description": "Intake audio transcription"
    },
    "embedding": {
        "model": "text-embedding-3-small",
        "description": "Query embeddings for knowledge search"
    },
    "analysis": {
        "model": "gpt-4o",
        "description": "Mental health screening of community content"
    },
    "memory": {
        "model": "gpt-4o",
        "description": "Memory extraction, profile merge and instruction summary"
    },
}

REALTIME_DEFAULTS = {
    "voice": "alloy",
    "modalities": ["audio", "text"],
    "tool_choice": "auto",
}

# ElevenLabs TTS defaults returned when an agent has no explicit settings
ELEVENLABS_VOICE_DEFAULTS = {
    "speed": 1.0,
    "stability": 0.5,
    "similarity_boost": 0.75,
    "style": 0,
    "use_speaker_boost": False,
}
ELEVENLABS_MODEL_FAMILY_DEFAULT = "same_as_agent"
ELEVENLABS_LANGUAGE_DEFAULT = "en"


def get_model(kind: str) -> str:
    """Return the model id configured for a kind (realtime, transcription, embedding, analysis, memory)"""
    return MODELS[kind]["model"]
