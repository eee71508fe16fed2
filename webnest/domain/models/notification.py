"""In-app notifications delivered to actors."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from .actor import ActorKind

NOTIFICATION_TYPES = (
    "project_update",
    "milestone_complete",
    "deadline_reminder",
    "payment_due",
    "revision_ready",
    "message_received",
    "project_assigned",
    "project_completed",
    "system_update",
)
NOTIFICATION_PRIORITIES = ("low", "medium", "high", "urgent")


@dataclass(slots=True)
class Notification:
    recipient_id: str
    recipient_kind: ActorKind
    title: str
    message: str
    type: str
    priority: str = "medium"
    is_read: bool = False
    read_at: Optional[datetime] = None
    action_url: Optional[str] = None
    action_text: Optional[str] = None
    project_id: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    created_at: Optional[datetime] = None
    id: Optional[str] = None
