from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from ...core.clock import Clock, utcnow
from ...core.errors import NotFound, ValidationFailed
from ...domain.models import ActorKind, Notification
from ...domain.models.notification import NOTIFICATION_PRIORITIES, NOTIFICATION_TYPES
from ...domain.ports.persistence import NotificationRepository

logger = logging.getLogger(__name__)


class NotificationService:
    """Creates and reads in-app notifications for a single recipient."""

    def __init__(self, notifications: NotificationRepository, clock: Clock = utcnow) -> None:
        self._notifications = notifications
        self._clock = clock

    async def notify(
        self,
        recipient_kind: ActorKind,
        recipient_id: str,
        *,
        title: str,
        message: str,
        type: str,
        priority: str = "medium",
        action_url: Optional[str] = None,
        action_text: Optional[str] = None,
        project_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Notification:
        if type not in NOTIFICATION_TYPES:
            raise ValidationFailed(f"Unknown notification type: {type}")
        if priority not in NOTIFICATION_PRIORITIES:
            raise ValidationFailed(f"Unknown notification priority: {priority}")
        notification = await self._notifications.create_notification(
            Notification(
                recipient_id=recipient_id,
                recipient_kind=recipient_kind,
                title=title[:200],
                message=message[:1000],
                type=type,
                priority=priority,
                action_url=action_url,
                action_text=action_text,
                project_id=project_id,
                metadata=metadata or {},
                created_at=self._clock(),
            )
        )
        logger.debug("Created %s notification %s for %s %s", type, notification.id, recipient_kind.value, recipient_id)
        return notification

    async def list_for(
        self,
        kind: ActorKind,
        recipient_id: str,
        unread_only: bool = False,
        limit: int = 50,
    ) -> List[Notification]:
        return await self._notifications.list_notifications(
            kind, recipient_id, unread_only=unread_only, limit=limit
        )

    async def unread_count(self, kind: ActorKind, recipient_id: str) -> int:
        return await self._notifications.count_unread_notifications(kind, recipient_id)

    async def mark_read(self, kind: ActorKind, recipient_id: str, notification_id: str) -> None:
        updated = await self._notifications.mark_notification_read(
            notification_id, kind, recipient_id, self._clock()
        )
        if not updated:
            raise NotFound("Notification not found")

    async def mark_all_read(self, kind: ActorKind, recipient_id: str) -> int:
        return await self._notifications.mark_all_notifications_read(kind, recipient_id, self._clock())
