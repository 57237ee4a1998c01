# Supabase table: v18_audio_chunks; storage bucket: audio-recordings
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

v18_audio_chunks:
- id: uuid (primary key)
- conversation_id: uuid (not null)
- chunk_index: integer (not null, >= 0)
- speaker: text - patient | ai
- storage_path: text - v18-voice-recordings/{conversation_id}/{speaker}/chunk-NNN.webm
- file_size: integer
- mime_type: text
- status: text - uploaded | failed | combined
- retry_count: integer (default: 0)
- user_id: text (nullable)
- intake_id: uuid (nullable)
- created_at: timestamp (default: now())
- unique constraint on (conversation_id, speaker, chunk_index)

Combined files live beside the speaker folders:
- v18-voice-recordings/{conversation_id}/combined-{ms}.webm      (patient)
- v18-voice-recordings/{conversation_id}/combined-ai-{ms}.webm   (ai)
"""
