# Supabase tables: circles, circle_memberships, circle_join_requests,
# circle_access_links, admin_notification_log

"""
Expected Supabase table structure:

circles:
- id: uuid (primary key)
- name: text (unique) - lowercase slug
- display_name: text
- description: text (nullable)
- rules: jsonb (list of strings)
- icon_url, banner_url: text (nullable)
- is_private: boolean
- requires_approval: boolean
- is_approved: boolean - new circles wait for platform approval
- created_by: text (Firebase UID)
- member_count, post_count: integer
- created_at, updated_at: timestamp

circle_memberships:
- id: uuid (primary key)
- circle_id: uuid (foreign key to circles.id)
- user_id: text
- role: text - admin | moderator | member
- joined_at: timestamp

circle_join_requests:
- id: uuid (primary key)
- circle_id: uuid
- requester_id: text
- message, notification_email, notification_phone: text (nullable)
- status: text - pending | approved | rejected
- reviewed_by: text, reviewed_at: timestamp, admin_response: text
- created_at, updated_at: timestamp
- unique (circle_id, requester_id)

circle_access_links:
- id: uuid, circle_id: uuid
- access_token: text (unique)
- is_active: boolean
- expires_at: timestamp (nullable)
- max_uses: integer (nullable), usage_count: integer

Postgres function get_discoverable_circles returns circle rows plus
is_member, user_role and total_count columns.
"""
