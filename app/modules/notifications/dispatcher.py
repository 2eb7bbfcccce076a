"""
Notification dispatch: one request in, one linear pass out.

    tokens -> preferences -> policy gates -> provider JWT -> APNs fan-out -> log -> response

Policy skips and "no devices" are answered as normal results, never errors.
Only a token lookup failure or an unexpected exception (e.g. bad signing key)
produces a 500. Dead tokens are reported in `results` but not pruned here.
"""
import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from starlette.concurrency import run_in_threadpool

from app.modules.notifications.apns import ApnsClient, build_payload, mint_provider_token
from app.modules.notifications.content import render_copy
from app.modules.notifications.exceptions import TokenLookupError
from app.modules.notifications.policy import RateLimiter, check_quiet_hours, is_type_enabled
from app.modules.notifications.schemas import DispatchResult, NotificationRequest
from app.modules.notifications.service import NotificationStore

logger = logging.getLogger(__name__)

STATUS_SENT = "sent"
STATUS_PARTIAL_FAILURE = "partial_failure"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class NotificationDispatcher:
    def __init__(
        self,
        store: NotificationStore,
        apns_client: ApnsClient,
        default_timezone: Optional[str] = None,
        rate_limiter: Optional[RateLimiter] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self.apns_client = apns_client
        self.default_timezone = default_timezone
        self.rate_limiter = rate_limiter
        self.clock = clock

    async def dispatch(self, request: NotificationRequest) -> DispatchResult:
        user_id = request.userId
        notification_type = request.type
        logger.info(f"Processing {notification_type} notification for user {user_id}")

        try:
            tokens = await run_in_threadpool(self.store.get_device_tokens, user_id)
        except TokenLookupError:
            return DispatchResult.error(500, "Failed to fetch tokens")

        if not tokens:
            logger.info(f"No device tokens found for user {user_id}")
            return DispatchResult.error(404, "No device tokens found")

        prefs = await run_in_threadpool(self.store.get_preferences, user_id)
        if prefs is not None:
            skipped = await self._check_policy(request, prefs)
            if skipped is not None:
                return skipped

        title, body = request.title, request.body
        if title is None or body is None:
            default_title, default_body = render_copy(notification_type, request.senderName)
            title = default_title if title is None else title
            body = default_body if body is None else body

        # Raises on malformed key material; the app-level handler turns that into a 500.
        provider_token = mint_provider_token(self.apns_client.config)

        payload = build_payload(title, body, notification_type, request.data)
        results = await self.apns_client.send_all(tokens, payload, provider_token)

        status = STATUS_SENT if all(r.ok for r in results) else STATUS_PARTIAL_FAILURE
        delivered = sum(1 for r in results if r.ok)
        logger.info(f"APNs delivered {delivered}/{len(results)} for user {user_id} ({status})")

        try:
            await run_in_threadpool(self.store.insert_log, user_id, notification_type, title, body, status)
        except Exception as e:
            logger.error(f"Failed to write notification log for user {user_id}: {str(e)}")

        return DispatchResult.sent(results)

    async def _check_policy(self, request: NotificationRequest, prefs) -> Optional[DispatchResult]:
        """Return a skip result if the user's preferences suppress this notification."""
        if not is_type_enabled(request.type, prefs):
            logger.info(f"{request.type} notifications disabled for user {request.userId}")
            return DispatchResult.skipped("disabled")

        now = self.clock()

        if self.rate_limiter is not None and self.rate_limiter.enabled:
            allowed, reason = await run_in_threadpool(self.rate_limiter.check, request.userId, request.type, now)
            if not allowed:
                logger.info(f"Rate limited user {request.userId}: {reason}")
                return DispatchResult.skipped("rate_limited", reason=reason)

        if check_quiet_hours(prefs, now, self.default_timezone):
            logger.info(f"User {request.userId} is in quiet hours; skipping")
            return DispatchResult.skipped("quiet_hours")

        return None
