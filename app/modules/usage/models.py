# Supabase tables: usage_sessions, user_usage_summary, usage_events

"""
Expected Supabase table structure:

usage_sessions:
- id: uuid (primary key)
- user_id: text (nullable) / anonymous_id: text (nullable)
- session_start, session_end: timestamp
- user_agent, ip_address, referrer: text
- page_views: integer
- metadata: jsonb

user_usage_summary:
- user_id: text (unique, nullable) / anonymous_id: text (unique, nullable)
- first_visit, last_visit: timestamp
- total_sessions, total_page_views, total_time_spent_minutes: integer
- updated_at: timestamp

usage_events:
- id: uuid (primary key)
- session_id: uuid (nullable)
- user_id, anonymous_id: text (nullable)
- event_type: text - page_view, click, ...
- page_path: text (nullable)
- event_data: jsonb
- timestamp: timestamp
"""
