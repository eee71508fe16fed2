from typing import Any, Dict

from fastapi import APIRouter, Depends, Query

from ....application.services.auth_service import Principal
from ....application.services.notification_service import NotificationService
from ....core.dependencies import get_notification_service
from ...api.dependencies import require_principal
from ...api.schemas.notifications import NotificationResponse

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


@router.get("")
async def list_notifications(
    unread_only: bool = False,
    limit: int = Query(default=50, ge=1, le=100),
    principal: Principal = Depends(require_principal),
    notification_service: NotificationService = Depends(get_notification_service),
) -> Dict[str, Any]:
    actor = principal.actor
    notifications = await notification_service.list_for(
        actor.kind, str(actor.id), unread_only=unread_only, limit=limit
    )
    return {"success": True, "data": [NotificationResponse.from_notification(item) for item in notifications]}


@router.get("/unread-count")
async def unread_count(
    principal: Principal = Depends(require_principal),
    notification_service: NotificationService = Depends(get_notification_service),
) -> Dict[str, Any]:
    actor = principal.actor
    count = await notification_service.unread_count(actor.kind, str(actor.id))
    return {"success": True, "data": {"count": count}}


@router.patch("/read-all")
async def mark_all_read(
    principal: Principal = Depends(require_principal),
    notification_service: NotificationService = Depends(get_notification_service),
) -> Dict[str, Any]:
    actor = principal.actor
    updated = await notification_service.mark_all_read(actor.kind, str(actor.id))
    return {"success": True, "data": {"updated": updated}}


@router.patch("/{notification_id}/read")
async def mark_read(
    notification_id: str,
    principal: Principal = Depends(require_principal),
    notification_service: NotificationService = Depends(get_notification_service),
) -> Dict[str, Any]:
    actor = principal.actor
    await notification_service.mark_read(actor.kind, str(actor.id), notification_id)
    return {"success": True, "message": "Notification marked as read."}
