from __future__ import annotations

import logging
from typing import List

from ...core.errors import NotFound, ValidationFailed
from ...domain.models import Actor, ActorKind
from ...domain.ports.persistence import ActorRepository
from .session_service import SessionService

logger = logging.getLogger(__name__)

# Permission module guarding each actor collection.
MODULE_BY_KIND = {
    ActorKind.USER: "users",
    ActorKind.DEVELOPER: "developers",
    ActorKind.ADMIN: "settings",
}


class AdminService:
    """Platform-wide actor management available on the admin service."""

    def __init__(self, actors: ActorRepository, sessions: SessionService) -> None:
        self._actors = actors
        self._sessions = sessions

    async def list_actors(self, kind: ActorKind, skip: int = 0, limit: int = 50) -> List[Actor]:
        return await self._actors.list_actors(kind, skip=max(skip, 0), limit=min(max(limit, 1), 200))

    async def set_active(self, admin: Actor, kind: ActorKind, actor_id: str, is_active: bool) -> Actor:
        if kind is ActorKind.ADMIN and str(admin.id) == actor_id and not is_active:
            raise ValidationFailed("Administrators cannot deactivate themselves.")
        actor = await self._actors.get_actor_by_id(kind, actor_id)
        if actor is None:
            raise NotFound("Account not found")
        if actor.is_owner and not is_active:
            raise ValidationFailed("The owner account cannot be deactivated.")

        await self._actors.set_actor_active(kind, actor_id, is_active)
        actor.is_active = is_active
        if not is_active:
            removed = await self._sessions.revoke_all(kind, actor_id)
            logger.info(
                "Admin %s deactivated %s %s and ended %s sessions", admin.id, kind.value, actor_id, removed
            )
        else:
            logger.info("Admin %s reactivated %s %s", admin.id, kind.value, actor_id)
        return actor
