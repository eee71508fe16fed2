from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from ....domain.models import Notification


class NotificationResponse(BaseModel):
    id: str
    title: str
    message: str
    type: str
    priority: str
    is_read: bool
    read_at: Optional[datetime] = None
    action_url: Optional[str] = None
    action_text: Optional[str] = None
    project_id: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None

    @classmethod
    def from_notification(cls, notification: Notification) -> "NotificationResponse":
        return cls(
            id=str(notification.id),
            title=notification.title,
            message=notification.message,
            type=notification.type,
            priority=notification.priority,
            is_read=notification.is_read,
            read_at=notification.read_at,
            action_url=notification.action_url,
            action_text=notification.action_text,
            project_id=notification.project_id,
            metadata=notification.metadata,
            created_at=notification.created_at,
        )
