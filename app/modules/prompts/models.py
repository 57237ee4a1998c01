# Supabase table: ai_prompts (shared with conversations, which reads the active prompt per type)
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

ai_prompts:
- id: uuid (primary key)
- prompt_type: text - triage, a *_specialist type, universal or universal_functions
- prompt_content: text
- voice_settings: jsonb (nullable)
- metadata: jsonb (nullable)
- functions: jsonb array (default: [])
- merge_with_universal_functions: boolean (default: true)
- merge_with_universal_protocols: boolean (default: true)
- is_active: boolean - one active row per prompt_type
- created_at, updated_at: timestamp

RPC functions:
- get_ai_prompt_by_type(target_prompt_type, requesting_user_id) -> matching prompt rows
"""
