# Supabase table: community_posts

"""
Expected Supabase table structure:

community_posts:
- id: uuid (primary key)
- user_id: text (Firebase UID)
- display_name: text - copied from user_profiles at creation
- title, content: text
- post_type: text - text | audio | question
- audio_url: text (nullable), audio_duration: numeric (nullable)
- tags: text[]
- circle_id: uuid (nullable, foreign key to circles.id) - null means a general post
- is_anonymous: boolean
- upvotes, downvotes, comment_count, view_count: integer
- is_flagged: boolean - set by serious reports
- is_deleted: boolean, deleted_at: timestamp, deleted_reason: text
- created_at, updated_at: timestamp

Postgres functions: increment_user_posts_count(user_id_param),
decrement_user_posts_count(user_id_param)
"""
