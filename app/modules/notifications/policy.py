"""
Delivery policy: per-type opt-outs, quiet hours and optional rate limits.

Only vibe, friend_request and reply are gated by preference flags. Any other
notification type is always allowed through the opt-in check; quiet hours
still apply to it.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app.modules.notifications.schemas import NotificationPreferences

logger = logging.getLogger(__name__)

TYPE_PREFERENCE_FLAGS = {
    "vibe": "vibes_enabled",
    "friend_request": "friend_requests_enabled",
    "reply": "replies_enabled",
}


def is_type_enabled(notification_type: str, prefs: NotificationPreferences) -> bool:
    flag = TYPE_PREFERENCE_FLAGS.get(notification_type)
    if flag is None:
        return True
    return getattr(prefs, flag) is not False


def _normalize_hhmm(value: Optional[str]) -> Optional[str]:
    """Return a zero-padded "HH:MM" string; accepts "H:MM" and "HH:MM:SS" (postgres time)."""
    if not value:
        return None
    parts = value.strip().split(":")
    try:
        return f"{int(parts[0]):02d}:{int(parts[1]):02d}"
    except (ValueError, IndexError):
        logger.warning(f"Ignoring malformed quiet-hours time {value!r}")
        return None


def is_in_quiet_hours(current: str, start: Optional[str], end: Optional[str]) -> bool:
    start = _normalize_hhmm(start)
    end = _normalize_hhmm(end)
    if not start or not end:
        return False
    current = _normalize_hhmm(current)

    if start <= end:
        return start <= current < end
    # Window spans midnight (e.g. 22:00 to 08:00)
    return current >= start or current < end


def local_time_hhmm(now: datetime, tz_name: Optional[str]) -> str:
    """Wall-clock "HH:MM" of `now` in the given IANA zone (UTC if unknown)."""
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    tz = timezone.utc
    if tz_name:
        try:
            tz = ZoneInfo(tz_name)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning(f"Unknown timezone {tz_name!r}; evaluating quiet hours in UTC")
    return now.astimezone(tz).strftime("%H:%M")


def check_quiet_hours(prefs: NotificationPreferences, now: datetime, default_timezone: Optional[str] = None) -> bool:
    """True if `now` falls inside the user's quiet-hours window."""
    if prefs.quiet_hours_enabled is False:
        return False
    if not prefs.quiet_hours_start or not prefs.quiet_hours_end:
        return False
    current = local_time_hhmm(now, prefs.timezone or default_timezone)
    return is_in_quiet_hours(current, prefs.quiet_hours_start, prefs.quiet_hours_end)


class RateLimiter:
    """Daily cap and same-type cooldown backed by notification_logs. Zero disables a limit."""

    def __init__(self, store, daily_limit: int = 0, cooldown_minutes: int = 0):
        self.store = store
        self.daily_limit = daily_limit
        self.cooldown_minutes = cooldown_minutes

    @property
    def enabled(self) -> bool:
        return self.daily_limit > 0 or self.cooldown_minutes > 0

    def check(self, user_id: str, notification_type: str, now: datetime) -> Tuple[bool, Optional[str]]:
        if self.daily_limit > 0:
            start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)
            sent_today = self.store.count_logs_since(user_id, start_of_day)
            if sent_today >= self.daily_limit:
                return False, "daily_limit_exceeded"

        if self.cooldown_minutes > 0:
            since = now - timedelta(minutes=self.cooldown_minutes)
            if self.store.has_recent_log(user_id, notification_type, since):
                return False, "same_type_cooldown"

        return True, None
