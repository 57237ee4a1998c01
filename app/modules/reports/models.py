# Supabase table: post_reports

"""
Expected Supabase table structure:

post_reports:
- id: uuid (primary key)
- reported_by: text (Firebase UID)
- post_id: uuid (nullable) / comment_id: uuid (nullable) - exactly one is set
- reason: text - spam | harassment | hate_speech | misinformation |
  inappropriate_content | self_harm | violence | other
- description: text (nullable)
- status: text - pending | reviewed | resolved | dismissed
- created_at: timestamp
"""
