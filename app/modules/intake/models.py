# Supabase tables: patient_intake, patient_details, patient_intake_transcripts, audio_combination_jobs
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

patient_intake:
- id: uuid (primary key)
- user_id: text (Firebase UID)
- access_code: text (nullable)
- phone, notification_phone: text (nullable)
- email_notifications, sms_notifications: boolean (default: false)
- created_at, updated_at: timestamp

patient_details:
- id: uuid (primary key)
- user_id: text
- phone, email: text (nullable)

patient_intake_transcripts:
- id: uuid (primary key)
- intake_id: uuid (not null)
- conversation_id: uuid
- audio_storage_path: text
- model_used: text
- status: text - processing | completed | failed
- transcript_text: text (nullable)
- audio_duration_seconds: numeric (nullable)
- error_message: text (nullable)
- transcription_started_at, transcription_completed_at: timestamp
- created_at: timestamp (default: now())

audio_combination_jobs:
- id: uuid (primary key)
- conversation_id: uuid
- speaker: text - patient | ai
- status: text - pending | processing | completed | failed
- error_message: text (nullable)
- created_at: timestamp (default: now())
"""
