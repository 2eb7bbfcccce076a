from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, PlainTextResponse
from app.config import settings
from app.database.supabase_client import get_supabase
from app.modules.notifications.apns import ApnsClient, ApnsConfig
from app.modules.notifications.dispatcher import NotificationDispatcher
from app.modules.notifications.policy import RateLimiter
from app.modules.notifications.scheduler import ScheduledNotificationProcessor
from app.modules.notifications.schemas import NotificationRequest, ScheduledRequest
from app.modules.notifications.service import NotificationStore
from supabase import Client
from typing import Optional

router = APIRouter(tags=["notifications"])

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}


def get_notification_store(supabase: Client = Depends(get_supabase)) -> NotificationStore:
    return NotificationStore(supabase)


def get_apns_client() -> ApnsClient:
    return ApnsClient(ApnsConfig.from_settings(settings))


def get_dispatcher(
    store: NotificationStore = Depends(get_notification_store),
    apns_client: ApnsClient = Depends(get_apns_client)
) -> NotificationDispatcher:
    rate_limiter = RateLimiter(
        store,
        daily_limit=settings.daily_notification_limit,
        cooldown_minutes=settings.same_type_cooldown_minutes
    )
    return NotificationDispatcher(
        store,
        apns_client,
        default_timezone=settings.default_timezone,
        rate_limiter=rate_limiter
    )


def get_processor(
    store: NotificationStore = Depends(get_notification_store),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher)
) -> ScheduledNotificationProcessor:
    return ScheduledNotificationProcessor(store, dispatcher, batch_size=settings.queue_batch_size)


@router.options("/send-push-notification")
@router.options("/process-scheduled-notifications")
async def preflight():
    """CORS preflight for clients that call the functions directly"""
    return PlainTextResponse("ok", headers=CORS_HEADERS)


@router.post("/send-push-notification")
async def send_push_notification(
    request: NotificationRequest,
    dispatcher: NotificationDispatcher = Depends(get_dispatcher)
):
    """Send a push notification to every registered device of a user"""
    result = await dispatcher.dispatch(request)
    return JSONResponse(status_code=result.status_code, content=result.body)


@router.post("/process-scheduled-notifications")
async def process_scheduled_notifications(
    request: Optional[ScheduledRequest] = None,
    processor: ScheduledNotificationProcessor = Depends(get_processor)
):
    """Run queued/scheduled notification jobs (called by pg_cron or manually)"""
    return await processor.run(request.action if request else None)
