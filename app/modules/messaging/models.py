# Supabase table: provider_patient_audio_messages
# Audio lives in the audio bucket under provider-messages/{access_code}/

"""
Expected Supabase table structure:

provider_patient_audio_messages:
- id: uuid (primary key)
- access_code: text (not null) - links the thread to a patient intake
- provider_user_id: text (not null)
- patient_user_id: text (not null)
- intake_id: uuid (nullable)
- sender_type: text - provider | patient
- storage_path: text
- audio_url: text (public URL at upload time; reads return a signed URL)
- duration_seconds: numeric (nullable)
- mime_type: text
- file_size: integer
- read_at: timestamp (nullable) - set by the recipient
- created_at: timestamp (default: now())
"""
