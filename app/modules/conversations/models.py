# Supabase tables: conversations, messages, ai_prompts, intake_sessions, patient_details
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

conversations:
- id: uuid (primary key)
- human_id: text (Firebase UID, not null)
- is_active: boolean (default: true)
- current_specialist: text (nullable) - e.g. triage, anxiety, substance_use
- specialist_history: jsonb array (default: []) - [{specialist, started_at, ended_at, context_summary, provider}]
- metadata: jsonb (default: {})
- created_at: timestamp (default: now())
- last_activity_at: timestamp (nullable)

messages:
- id: uuid (primary key)
- conversation_id: uuid (foreign key to conversations.id)
- role: text - user | assistant | system
- content: text
- metadata: jsonb (nullable) - isFinal, bookId, original_id, specialist
- routing_metadata: jsonb (nullable) - handoff data, e.g. {type: session_end, context_summary}
- created_at: timestamp (default: now())

ai_prompts:
- id: uuid (primary key)
- prompt_type: text - specialist type
- prompt_content: text
- voice_settings: jsonb (nullable)
- metadata: jsonb (nullable)
- is_active: boolean

intake_sessions:
- id: uuid (primary key)
- patient_details_id: uuid (nullable, foreign key to patient_details.id) - NULL for first-time users
- user_id: text
- access_code: text (unique) - from generate_unique_access_code()
- conversation_id: uuid
- status: text - pending | completed
- phone, email: text (nullable)

RPC functions:
- get_latest_context_summary_for_conversation(target_conversation_id) -> rows with routing_metadata
- get_conversation_messages_for_memory(target_conversation_id) -> message rows
- generate_unique_access_code() -> text
"""
