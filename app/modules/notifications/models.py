# Supabase tables: device_tokens, notification_preferences, notification_logs, notification_queue
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py
#
# The mobile app owns device_tokens and notification_preferences; this service
# only reads them. notification_logs is append-only from this service.

"""
Expected Supabase table structure:

device_tokens
- id: uuid (primary key)
- user_id: uuid (foreign key to users.id, not null)
- token: text (not null) - APNs device token (hex string), many per user
- created_at: timestamp (default: now())

notification_preferences (optional, at most one row per user)
- user_id: uuid (primary key, foreign key to users.id)
- vibes_enabled: boolean (default: true)
- friend_requests_enabled: boolean (default: true)
- replies_enabled: boolean (default: true)
- quiet_hours_enabled: boolean (nullable) - false disables the quiet-hours window
- quiet_hours_start: text (nullable) - "HH:MM" wall-clock, user's local time
- quiet_hours_end: text (nullable) - "HH:MM" wall-clock, user's local time
- timezone: text (nullable) - IANA zone name, e.g. "America/New_York"

notification_logs (append-only, one row per dispatch that reaches APNs)
- id: uuid (primary key)
- user_id: uuid (not null)
- notification_type: text (not null)
- title: text
- body: text
- status: text (not null) - values: sent, partial_failure
- created_at: timestamp (default: now())

notification_queue (deferred deliveries, drained by the scheduled processor)
- id: uuid (primary key)
- user_id: uuid (not null)
- type: text (not null)
- title: text (nullable)
- body: text (nullable)
- data: jsonb (nullable) - may carry senderName
- deliver_after: timestamp (not null)
- processed: boolean (default: false)
- processed_at: timestamp (nullable)
"""
