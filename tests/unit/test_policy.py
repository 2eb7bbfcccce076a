from __future__ import annotations

from datetime import datetime, timezone

import pytest
from app.modules.notifications.policy import RateLimiter, check_quiet_hours, is_in_quiet_hours, is_type_enabled, local_time_hhmm
from app.modules.notifications.schemas import NotificationPreferences
from conftest import FakeStore


@pytest.mark.parametrize(
  ("current", "expected"),
  [("13:00", True), ("14:00", True), ("14:59", True), ("15:00", False), ("16:00", False), ("12:59", False)],
)
def test_same_day_window_is_half_open(current, expected):
  assert is_in_quiet_hours(current, "13:00", "15:00") is expected


@pytest.mark.parametrize(
  ("current", "expected"),
  [("23:30", True), ("22:00", True), ("00:15", True), ("07:59", True), ("08:00", False), ("12:00", False), ("21:59", False)],
)
def test_overnight_window_wraps_midnight(current, expected):
  assert is_in_quiet_hours(current, "22:00", "08:00") is expected


def test_missing_bound_never_suppresses():
  assert is_in_quiet_hours("23:00", None, "08:00") is False
  assert is_in_quiet_hours("23:00", "22:00", "") is False


def test_postgres_time_values_are_normalized():
  assert is_in_quiet_hours("23:30", "22:00:00", "08:00:00") is True
  assert is_in_quiet_hours("7:05", "22:00", "08:00") is True


def test_malformed_bound_is_ignored():
  assert is_in_quiet_hours("23:30", "late", "08:00") is False


def test_only_known_types_are_gated_by_flags():
  prefs = NotificationPreferences(user_id="u1", vibes_enabled=False, friend_requests_enabled=False, replies_enabled=False)

  assert is_type_enabled("vibe", prefs) is False
  assert is_type_enabled("friend_request", prefs) is False
  assert is_type_enabled("reply", prefs) is False
  assert is_type_enabled("daily_reminder", prefs) is True
  assert is_type_enabled("check_in_alert", prefs) is True


def test_null_flags_mean_enabled():
  prefs = NotificationPreferences(user_id="u1", vibes_enabled=None, quiet_hours_enabled=None)

  assert prefs.vibes_enabled is True
  assert is_type_enabled("vibe", prefs) is True
  assert prefs.quiet_hours_enabled is True


def test_local_time_uses_zone_and_falls_back_to_utc():
  now = datetime(2025, 1, 15, 3, 30, tzinfo=timezone.utc)

  assert local_time_hhmm(now, "America/New_York") == "22:30"
  assert local_time_hhmm(now, "Not/AZone") == "03:30"
  assert local_time_hhmm(now, None) == "03:30"


def test_check_quiet_hours_evaluates_in_user_timezone():
  prefs = NotificationPreferences(user_id="u1", quiet_hours_start="22:00", quiet_hours_end="08:00", timezone="America/New_York")
  # 03:30 UTC is 22:30 in New York (EST)
  now = datetime(2025, 1, 15, 3, 30, tzinfo=timezone.utc)

  assert check_quiet_hours(prefs, now) is True
  assert check_quiet_hours(prefs.model_copy(update={"timezone": "UTC"}), now) is True
  assert check_quiet_hours(prefs.model_copy(update={"timezone": "Asia/Tokyo"}), now) is False


def test_check_quiet_hours_uses_default_timezone_when_row_has_none():
  prefs = NotificationPreferences(user_id="u1", quiet_hours_start="13:00", quiet_hours_end="15:00")
  now = datetime(2025, 6, 2, 14, 0, tzinfo=timezone.utc)

  assert check_quiet_hours(prefs, now, "UTC") is True
  assert check_quiet_hours(prefs, now, "America/Los_Angeles") is False


def test_quiet_hours_toggle_disables_window():
  prefs = NotificationPreferences(user_id="u1", quiet_hours_enabled=False, quiet_hours_start="00:00", quiet_hours_end="23:59")

  assert check_quiet_hours(prefs, datetime(2025, 6, 2, 12, 0, tzinfo=timezone.utc), "UTC") is False


def test_rate_limiter_disabled_by_default():
  limiter = RateLimiter(FakeStore())

  assert limiter.enabled is False
  assert limiter.check("u1", "vibe", datetime.now(timezone.utc)) == (True, None)


def test_rate_limiter_daily_cap_and_cooldown():
  store = FakeStore()
  limiter = RateLimiter(store, daily_limit=20, cooldown_minutes=5)
  now = datetime(2025, 6, 2, 12, 0, tzinfo=timezone.utc)

  store.recent_log_count = 20
  assert limiter.check("u1", "vibe", now) == (False, "daily_limit_exceeded")

  store.recent_log_count = 3
  store.has_recent = True
  assert limiter.check("u1", "vibe", now) == (False, "same_type_cooldown")

  store.has_recent = False
  assert limiter.check("u1", "vibe", now) == (True, None)
