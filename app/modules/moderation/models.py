# Supabase RPCs used by content moderation; the tables behind them are owned by the database
# Actual calls are made via Supabase SDK in service.py

"""
RPC functions:
- store_content_moderation_result(target_post_id, target_comment_id, toxicity_score,
  mental_health_flags, review_required, review_priority, ai_decision)
- store_crisis_detection(target_user_id, target_post_id, target_comment_id, crisis_type_flags,
  severity_level, ai_confidence, trigger_keywords)
- update_user_safety_tracking(target_user_id, risk_level, last_crisis_event, flag_increment)
- add_to_clinical_review_queue(target_content_id, content_type, target_user_id, priority_level,
  review_reasons)

Flags: suicide_ideation, self_harm, crisis_escalation, eating_disorder, severe_depression
Priority: immediate | urgent | standard
"""
