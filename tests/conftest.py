"""Shared fixtures: throwaway APNs signing key, in-memory store, mock APNs transport."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable

import httpx
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from app.modules.notifications.apns import ApnsClient, ApnsConfig
from app.modules.notifications.dispatcher import NotificationDispatcher
from app.modules.notifications.exceptions import TokenLookupError
from app.modules.notifications.schemas import NotificationPreferences


@pytest.fixture
def anyio_backend():
  return "asyncio"


@pytest.fixture(scope="session")
def signing_key():
  return ec.generate_private_key(ec.SECP256R1())


@pytest.fixture(scope="session")
def private_key_pem(signing_key) -> str:
  return signing_key.private_bytes(serialization.Encoding.PEM, serialization.PrivateFormat.PKCS8, serialization.NoEncryption()).decode("utf-8")


@pytest.fixture(scope="session")
def public_key_pem(signing_key) -> str:
  return signing_key.public_key().public_bytes(serialization.Encoding.PEM, serialization.PublicFormat.SubjectPublicKeyInfo).decode("utf-8")


@pytest.fixture
def apns_config(private_key_pem) -> ApnsConfig:
  return ApnsConfig(key_id="KEY123ABCD", team_id="TEAM987XYZ", private_key=private_key_pem, bundle_id="com.example.ten", host="api.sandbox.push.apple.com")


class FakeStore:
  """In-memory stand-in for NotificationStore."""

  def __init__(self, tokens=None, prefs: NotificationPreferences | None = None, token_error: bool = False) -> None:
    self.tokens = list(tokens or [])
    self.prefs = prefs
    self.token_error = token_error
    self.logs: list[dict[str, Any]] = []
    self.queue: list[dict[str, Any]] = []
    self.processed: list[str] = []
    self.rpc_results: dict[str, Any] = {}
    self.rpc_errors: dict[str, Exception] = {}
    self.recent_log_count = 0
    self.has_recent = False

  def get_device_tokens(self, user_id: str) -> list[str]:
    if self.token_error:
      raise TokenLookupError("connection refused")
    return list(self.tokens)

  def get_preferences(self, user_id: str) -> NotificationPreferences | None:
    return self.prefs

  def insert_log(self, user_id, notification_type, title, body, status) -> None:
    self.logs.append({"user_id": user_id, "notification_type": notification_type, "title": title, "body": body, "status": status})

  def count_logs_since(self, user_id, since) -> int:
    return self.recent_log_count

  def has_recent_log(self, user_id, notification_type, since) -> bool:
    return self.has_recent

  def fetch_due_queue(self, now, limit=100, notification_type=None):
    rows = [r for r in self.queue if notification_type is None or r["type"] == notification_type]
    return rows[:limit]

  def mark_queue_processed(self, queue_id: str) -> None:
    self.processed.append(queue_id)

  def rpc(self, function_name, params=None):
    if function_name in self.rpc_errors:
      raise self.rpc_errors[function_name]
    return self.rpc_results.get(function_name)


class RecordingTransport(httpx.MockTransport):
  """Mock APNs endpoint that records every request and answers via `responder`."""

  def __init__(self, responder: Callable[[httpx.Request], httpx.Response] | None = None) -> None:
    self.requests: list[httpx.Request] = []
    self._responder = responder or (lambda request: httpx.Response(200))
    super().__init__(self._handle)

  def _handle(self, request: httpx.Request) -> httpx.Response:
    self.requests.append(request)
    return self._responder(request)

  @property
  def device_tokens(self) -> list[str]:
    return [r.url.path.rsplit("/", 1)[-1] for r in self.requests]


def fixed_clock(hour: int, minute: int = 0) -> Callable[[], datetime]:
  return lambda: datetime(2025, 6, 2, hour, minute, tzinfo=timezone.utc)


@pytest.fixture
def transport() -> RecordingTransport:
  return RecordingTransport()


@pytest.fixture
def make_dispatcher(apns_config, transport):
  def _make(store: FakeStore, clock=None, rate_limiter=None) -> NotificationDispatcher:
    return NotificationDispatcher(store, ApnsClient(apns_config, transport=transport), default_timezone="UTC", rate_limiter=rate_limiter, clock=clock or fixed_clock(12))

  return _make
