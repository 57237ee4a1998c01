# Supabase tables: s2_therapist_profiles, s2_complete_profiles, s2_license_verifications
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

s2_therapist_profiles:
- id: uuid (primary key)
- user_id: text (Firebase UID; its presence makes the user a provider)
- full_name, title, other_title: text
- degrees, languages_spoken, cultural_backgrounds: text[]
- primary_location: text
- offers_online: boolean
- gender_identity, years_of_experience: text
- phone_number, notification_phone, email_address: text (nullable)
- email_notifications, sms_notifications: boolean (nullable; null means "on if contact exists")
- cloned_voice_id: text (nullable)
- date_of_birth: date (nullable)
- profile_completion_status: text - profile_complete once onboarding step one is saved
- is_active: boolean
- created_at, updated_at: timestamp

s2_complete_profiles:
- id: uuid (primary key)
- therapist_profile_id: uuid (foreign key to s2_therapist_profiles.id)
- user_id: text
- profile_photo_url, personal_statement: text
- mental_health_specialties, treatment_approaches, age_ranges_treated: text[]
- practice_type, session_length, availability_hours, emergency_protocol: text
- accepts_insurance, out_of_network_supported: boolean
- insurance_plans, client_types_served, board_certifications, professional_memberships: text[]
- religious_spiritual_integration: text
- other_mental_health_specialty, other_treatment_approach, other_religious_spiritual_integration,
  other_board_certification, other_professional_membership: text (nullable)
- lgbtq_affirming: boolean
- session_fees: jsonb
- is_active: boolean
- completion_date: timestamp

s2_license_verifications:
- user_id: text
- is_active: boolean
"""
