from pydantic import BaseModel, Field, field_validator
from typing import Any, Dict, List, Optional


class NotificationRequest(BaseModel):
    type: str
    userId: str = Field(..., min_length=1)
    title: Optional[str] = None
    body: Optional[str] = None
    senderName: Optional[str] = None
    data: Optional[Dict[str, Any]] = None


class NotificationPreferences(BaseModel):
    """One notification_preferences row. A user without a row has no restrictions."""
    user_id: Optional[str] = None
    vibes_enabled: bool = True
    friend_requests_enabled: bool = True
    replies_enabled: bool = True
    quiet_hours_enabled: bool = True
    quiet_hours_start: Optional[str] = None
    quiet_hours_end: Optional[str] = None
    timezone: Optional[str] = None

    model_config = {"extra": "ignore"}

    @field_validator(
        "vibes_enabled", "friend_requests_enabled", "replies_enabled", "quiet_hours_enabled",
        mode="before"
    )
    @classmethod
    def null_flag_means_enabled(cls, v):
        return True if v is None else v


class DeliveryResult(BaseModel):
    """Outcome of one APNs request. Exactly one of response/error is set."""
    status: int
    ok: bool
    response: Optional[str] = None
    error: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class DispatchResult(BaseModel):
    status_code: int = 200
    body: Dict[str, Any]

    @classmethod
    def error(cls, status_code: int, message: str) -> "DispatchResult":
        return cls(status_code=status_code, body={"error": message})

    @classmethod
    def skipped(cls, skip_reason: str, **extra: Any) -> "DispatchResult":
        return cls(body={"skipped": skip_reason, **extra})

    @classmethod
    def sent(cls, results: List[DeliveryResult]) -> "DispatchResult":
        return cls(body={"success": True, "results": [r.to_payload() for r in results]})


class ScheduledRequest(BaseModel):
    action: Optional[str] = None
