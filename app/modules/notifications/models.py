# Notification preferences are read from the recipient's own tables
# Actual sends go through Textbelt (app/integrations/textbelt.py)

"""
Patient preferences (latest row per user wins):

patient_intake:
- user_id: text
- sms_notifications: boolean (default: false) - must be true to send
- email_notifications: boolean (default: false)
- notification_phone: text (nullable) - preferred
- phone: text (nullable) - fallback
- created_at: timestamp

Provider preferences:

s2_therapist_profiles:
- user_id: text
- sms_notifications: boolean (nullable) - only an explicit false disables SMS
- email_notifications: boolean (nullable)
- notification_phone: text (nullable) - preferred
- phone_number: text (nullable) - fallback
- email_address: text (nullable)
"""
