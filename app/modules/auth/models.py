# Firebase Auth + Supabase role tables
# Identity comes from Firebase ID tokens; the Firebase UID is the foreign key
# into every Supabase table. Roles are derived from table membership.

"""
Expected Supabase table structure:

admin_users:
- user_id: text (primary key, Firebase UID)
- granted_by: text (nullable, Firebase UID)
- created_at: timestamp (default: now())

s2_therapist_profiles (owned by the therapists module):
- a row with user_id = <uid> makes that user a provider

Role precedence: admin > provider > patient (patient is the default).
"""
