# Supabase tables: user_profiles
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

user_profiles:
- user_id: text (primary key, Firebase UID)
- profile_data: jsonb (nullable) - free-form profile; display_name lives here
- ai_instructions_summary: text (nullable) - memory appended to specialist prompts
- version: integer (default: 1)
- total_posts: integer (maintained by increment/decrement_user_posts_count RPCs)
- total_comments: integer (maintained by increment_user_comments_count RPC)
- updated_at: timestamp (nullable)
"""
