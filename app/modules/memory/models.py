# Supabase tables: v16_memory_jobs, v16_conversation_analyses, user_profiles, prompts, prompt_versions
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

v16_memory_jobs:
- id: uuid (primary key)
- user_id: text
- status: text - pending | processing | completed | failed
- job_type: text - memory_processing
- batch_offset, batch_size: integer
- total_conversations, processed_conversations, progress_percentage: integer
- conversations_skipped, conversations_failed, total_tokens_processed: integer
- processing_details: jsonb
- error_message: text (nullable) - failure, or warnings on a completed job
- created_at, updated_at, started_at, completed_at: timestamp

v16_conversation_analyses:
- id: uuid (primary key)
- user_id: text
- conversation_id: uuid - one row per examined conversation
- analysis_result: jsonb - extracted insights, or {skipped, reason}
- processing_status: text - completed | skipped | failed
- skip_reason: text (nullable)
- message_count, total_tokens, quality_score, processing_duration_ms: integer
- error_details, extraction_metadata: jsonb
- extracted_at: timestamp

user_profiles (memory columns):
- profile_data: jsonb - merged memory
- ai_instructions_summary: text - injected into specialist prompts
- conversation_count, message_count, version: integer

prompts / prompt_versions:
- prompts.id, prompts.category, prompts.is_active, prompts.created_at
- prompt_versions.prompt_id, prompt_versions.content, prompt_versions.created_at

RPC functions:
- get_user_conversations_for_memory(target_user_id, days_limit) -> conversation rows
- get_user_conversations_with_messages_for_memory(target_user_id, conversation_ids)
  -> one row per message: id, created_at, message_id, message_content, message_role, message_created_at
"""
