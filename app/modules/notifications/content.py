"""Fallback notification copy, used when a request or queued row carries no title/body."""
from typing import Dict, Optional, Tuple

DEFAULT_SENDER = "someone"
DEFAULT_COPY = ("ten", "you have a new notification")

# type -> (title template, body template); "{name}" is the sender's display name
NOTIFICATION_COPY: Dict[str, Tuple[str, str]] = {
    "vibe": ("{name} started a vibe ✨", "see what's happening"),
    "vibe_response": ("someone's in! 🎉", "{name} responded to your vibe"),
    "friend_request": ("new connection request 👋", "{name} wants to be friends"),
    "reply": ("{name} replied 💬", "tap to see what they said"),
    "connection_match": ("your match is here! 🌟", "meet this week's connection"),
    "daily_reminder": ("how's your day going?", "take a moment to check in"),
    "check_in_alert": ("{name} might need some support 💙", "a gentle nudge to reach out"),
    "check_in_response": ("{name} is thinking of you 💙", "you've got someone in your corner"),
}


def render_copy(notification_type: str, sender_name: Optional[str] = None) -> Tuple[str, str]:
    title, body = NOTIFICATION_COPY.get(notification_type, DEFAULT_COPY)
    name = sender_name or DEFAULT_SENDER
    return title.format(name=name), body.format(name=name)
