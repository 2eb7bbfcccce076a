from supabase import Client
from app.modules.notifications.exceptions import TokenLookupError
from app.modules.notifications.schemas import NotificationPreferences
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import logging

logger = logging.getLogger(__name__)


class NotificationStore:
    """Supabase access for device tokens, preferences, delivery logs and the notification queue."""

    def __init__(self, supabase: Client):
        self.supabase = supabase

    def get_device_tokens(self, user_id: str) -> List[str]:
        """All registered APNs tokens for a user. Raises TokenLookupError if the query fails."""
        try:
            result = self.supabase.table("device_tokens")\
                .select("token")\
                .eq("user_id", user_id)\
                .execute()
        except Exception as e:
            logger.error(f"Error fetching tokens for user {user_id}: {str(e)}")
            raise TokenLookupError(str(e)) from e

        return [row["token"] for row in (result.data or []) if row.get("token")]

    def get_preferences(self, user_id: str) -> Optional[NotificationPreferences]:
        """Preferences row for a user, or None when the user never saved any."""
        try:
            result = self.supabase.table("notification_preferences")\
                .select("*")\
                .eq("user_id", user_id)\
                .limit(1)\
                .execute()
        except Exception as e:
            logger.warning(f"Could not load notification preferences for user {user_id}: {str(e)}")
            return None

        if not result.data:
            return None
        return NotificationPreferences(**result.data[0])

    def insert_log(self, user_id: str, notification_type: str, title: str, body: str, status: str) -> None:
        self.supabase.table("notification_logs").insert({
            "user_id": user_id,
            "notification_type": notification_type,
            "title": title,
            "body": body,
            "status": status,
            "created_at": datetime.now(timezone.utc).isoformat()
        }).execute()

    def count_logs_since(self, user_id: str, since: datetime) -> int:
        result = self.supabase.table("notification_logs")\
            .select("id", count="exact")\
            .eq("user_id", user_id)\
            .gte("created_at", since.isoformat())\
            .execute()
        return result.count or 0

    def has_recent_log(self, user_id: str, notification_type: str, since: datetime) -> bool:
        result = self.supabase.table("notification_logs")\
            .select("created_at")\
            .eq("user_id", user_id)\
            .eq("notification_type", notification_type)\
            .gte("created_at", since.isoformat())\
            .limit(1)\
            .execute()
        return bool(result.data)

    def fetch_due_queue(self, now: datetime, limit: int = 100, notification_type: Optional[str] = None) -> List[Dict[str, Any]]:
        """Unprocessed queue rows whose deliver_after has passed, oldest first."""
        query = self.supabase.table("notification_queue")\
            .select("*")\
            .eq("processed", False)\
            .lte("deliver_after", now.isoformat())

        if notification_type:
            query = query.eq("type", notification_type)

        result = query.order("deliver_after", desc=False)\
            .limit(limit)\
            .execute()
        return result.data or []

    def mark_queue_processed(self, queue_id: str) -> None:
        self.supabase.table("notification_queue")\
            .update({"processed": True, "processed_at": datetime.now(timezone.utc).isoformat()})\
            .eq("id", queue_id)\
            .execute()

    def rpc(self, function_name: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return self.supabase.rpc(function_name, params or {}).execute().data
