"""Domain models for the WebNest backends."""

from .actor import Actor, ActorKind
from .deadline import ProjectDeadline, Reminder
from .notification import Notification
from .otp import OtpOutcome, OtpState
from .session import RefreshToken, Session

__all__ = [
    "Actor",
    "ActorKind",
    "Notification",
    "OtpOutcome",
    "OtpState",
    "ProjectDeadline",
    "RefreshToken",
    "Reminder",
    "Session",
]
