# No Supabase tables
# This module proxies external voice services:
# - OpenAI Realtime: POST {openai_realtime_url} mints ephemeral browser sessions
# - ElevenLabs Conversational AI: GET/PATCH /convai/agents/{agent_id}

"""
ElevenLabs agent document fields read here:

conversation_config.agent.prompt: prompt, first_message, tool_ids, knowledge_base
conversation_config.tts: voice_id, model_id, stability, similarity_boost, style, use_speaker_boost, speed
conversation_config.llm: model, temperature
"""
