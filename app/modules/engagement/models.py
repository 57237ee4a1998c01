# Supabase tables: post_votes, post_reactions

"""
Expected Supabase table structure:

post_votes:
- id: uuid (primary key)
- user_id: text
- post_id: uuid (nullable) / comment_id: uuid (nullable) - exactly one is set
- vote_type: text - upvote | downvote
- created_at: timestamp

post_reactions:
- id: uuid (primary key)
- user_id: text
- post_id: uuid (nullable) / comment_id: uuid (nullable) - exactly one is set
- reaction_type: text - care | hugs | helpful | strength | relatable |
  thoughtful | growth | grateful
- created_at: timestamp

Vote totals are denormalized into community_posts.upvotes/downvotes and
post_comments.upvotes/downvotes.
"""
