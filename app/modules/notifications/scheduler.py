"""
Scheduled notifications: drains notification_queue, sends daily reminders and
kicks off weekly connection matches. Every delivery goes through the same
dispatcher as a direct request, so preferences and quiet hours still apply.
"""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from starlette.concurrency import run_in_threadpool

from app.modules.notifications.dispatcher import NotificationDispatcher
from app.modules.notifications.schemas import NotificationRequest
from app.modules.notifications.service import NotificationStore

logger = logging.getLogger(__name__)

ACTION_DAILY_REMINDERS = "daily_reminders"
ACTION_WEEKLY_CONNECTIONS = "weekly_connections"
ACTION_PROCESS_QUEUE = "process_queue"


class ScheduledNotificationProcessor:
    def __init__(self, store: NotificationStore, dispatcher: NotificationDispatcher, batch_size: int = 100):
        self.store = store
        self.dispatcher = dispatcher
        self.batch_size = batch_size

    async def run(self, action: Optional[str] = None) -> Dict[str, Any]:
        if action == ACTION_DAILY_REMINDERS:
            return await self.send_daily_reminders()
        if action == ACTION_WEEKLY_CONNECTIONS:
            return await self.generate_weekly_connections()
        if action == ACTION_PROCESS_QUEUE:
            return await self.process_queue()

        # No (or unknown) action: run the everyday jobs
        reminders = await self.send_daily_reminders()
        queue = await self.process_queue()
        return {"reminders": reminders, "queue": queue}

    async def send_daily_reminders(self) -> Dict[str, Any]:
        """Send daily_reminder to every user the database says is due one now."""
        logger.info("Processing daily reminders...")
        try:
            users = await run_in_threadpool(self.store.rpc, "get_users_for_daily_reminder")
        except Exception as e:
            logger.error(f"Error getting users for daily reminder: {str(e)}")
            return {"success": False, "error": str(e)}

        sent_count = 0
        for user in users or []:
            try:
                result = await self.dispatcher.dispatch(
                    NotificationRequest(type="daily_reminder", userId=str(user["id"]), data={})
                )
                if result.status_code == 200:
                    sent_count += 1
                    logger.info(f"Sent daily reminder to {user.get('display_name') or user['id']}")
            except Exception as e:
                logger.error(f"Error sending reminder to {user.get('id')}: {str(e)}")

        return {"success": True, "reminders_sent": sent_count}

    async def generate_weekly_connections(self) -> Dict[str, Any]:
        """Let the database pair users, then deliver the connection_match rows it queued."""
        logger.info("Generating weekly connections...")
        try:
            data = await run_in_threadpool(self.store.rpc, "generate_weekly_connections")
        except Exception as e:
            logger.error(f"Error generating connections: {str(e)}")
            return {"success": False, "error": str(e)}

        queue = await self.process_queue("connection_match")
        return {"success": True, "connections": data, "queue": queue}

    async def process_queue(self, filter_type: Optional[str] = None) -> Dict[str, Any]:
        """Dispatch due queue rows; each fetched row is marked processed whatever the outcome."""
        suffix = f" for type: {filter_type}" if filter_type else ""
        logger.info(f"Processing notification queue{suffix}...")
        now = datetime.now(timezone.utc)
        try:
            queued = await run_in_threadpool(self.store.fetch_due_queue, now, self.batch_size, filter_type)
        except Exception as e:
            logger.error(f"Error fetching queue: {str(e)}")
            return {"success": False, "error": str(e)}

        processed_count = 0
        for row in queued:
            data = row.get("data") or {}
            try:
                result = await self.dispatcher.dispatch(NotificationRequest(
                    type=row["type"],
                    userId=str(row["user_id"]),
                    title=row.get("title"),
                    body=row.get("body"),
                    senderName=data.get("senderName"),
                    data=data,
                ))
                if result.status_code == 200:
                    processed_count += 1
            except Exception as e:
                logger.error(f"Error processing notification {row.get('id')}: {str(e)}")

            try:
                await run_in_threadpool(self.store.mark_queue_processed, row["id"])
            except Exception as e:
                logger.error(f"Failed to mark notification {row.get('id')} processed: {str(e)}")

        return {"success": True, "processed": processed_count}


async def scheduler_loop(processor: ScheduledNotificationProcessor, interval_seconds: int = 300):
    """Background task that periodically drains the notification queue"""
    while True:
        try:
            await processor.process_queue()
        except Exception as e:
            logger.error(f"Error in notification scheduler loop: {str(e)}")

        await asyncio.sleep(interval_seconds)
