# Supabase table: post_comments

"""
Expected Supabase table structure:

post_comments:
- id: uuid (primary key)
- post_id: uuid (foreign key to community_posts.id)
- parent_comment_id: uuid (nullable) - reply threading
- user_id: text, display_name: text
- content: text
- is_anonymous: boolean
- upvotes, downvotes: integer
- is_flagged: boolean
- is_deleted: boolean, deleted_at: timestamp, deleted_reason: text
- created_at, updated_at: timestamp

Postgres functions: increment_post_comment_count(post_id_param),
decrement_post_comment_count(post_id_param),
increment_user_comments_count(user_id_param),
decrement_user_comments_count(user_id_param)
"""
