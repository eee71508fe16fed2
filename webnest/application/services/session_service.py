from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from datetime import timedelta
from typing import List, Optional

from ...core.clock import Clock, utcnow
from ...core.errors import NotFound, Unauthorized, ValidationFailed
from ...domain.models import Actor, ActorKind, Session
from ...domain.ports.persistence import SessionRepository
from .token_service import TokenService

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ClientInfo:
    """Request metadata recorded on sessions and admin login history."""

    ip_address: Optional[str] = None
    user_agent: Optional[str] = None

    @property
    def device_type(self) -> str:
        agent = (self.user_agent or "").lower()
        if "ipad" in agent or "tablet" in agent:
            return "tablet"
        if "mobile" in agent or "android" in agent or "iphone" in agent:
            return "mobile"
        return "desktop"


class SessionService:
    """Creates, resolves and revokes server-side sessions."""

    def __init__(
        self,
        sessions: SessionRepository,
        tokens: TokenService,
        *,
        ttl_days: int = 30,
        clock: Clock = utcnow,
    ) -> None:
        self._sessions = sessions
        self._tokens = tokens
        self._ttl = timedelta(days=ttl_days)
        self._clock = clock

    @property
    def ttl_seconds(self) -> int:
        return int(self._ttl.total_seconds())

    async def start(self, actor: Actor, client: ClientInfo) -> Session:
        now = self._clock()
        session = Session(
            id=secrets.token_urlsafe(32),
            actor_id=str(actor.id),
            actor_kind=actor.kind,
            created_at=now,
            last_activity=now,
            expires_at=now + self._ttl,
            user_agent=client.user_agent,
            ip_address=client.ip_address,
            device_type=client.device_type,
        )
        return await self._sessions.create_session(session)

    async def get_live(self, session_id: str) -> Session:
        """Return the session or raise ``Unauthorized``; expired records are deleted."""
        session = await self._sessions.get_session(session_id)
        if session is None:
            raise Unauthorized("Invalid or expired session. Please log in again.")
        if session.is_expired(self._clock()):
            await self.end(session.id)
            raise Unauthorized("Session expired. Please log in again.")
        return session

    async def touch(self, session: Session) -> None:
        now = self._clock()
        await self._sessions.touch_session(session.id, now, now + self._ttl)

    async def list_for(self, kind: ActorKind, actor_id: str) -> List[Session]:
        now = self._clock()
        sessions = await self._sessions.list_actor_sessions(kind, actor_id)
        live = [session for session in sessions if not session.is_expired(now)]
        return sorted(live, key=lambda item: item.last_activity, reverse=True)

    async def end(self, session_id: str) -> None:
        await self._sessions.delete_session(session_id)
        await self._tokens.revoke_for_sessions([session_id])

    async def revoke(self, kind: ActorKind, actor_id: str, session_id: str, current_session_id: str) -> None:
        session = await self._sessions.get_session(session_id)
        if session is None or session.actor_kind is not kind or session.actor_id != actor_id:
            raise NotFound("Session not found")
        if session.id == current_session_id:
            raise ValidationFailed("Cannot revoke current session")
        await self.end(session.id)

    async def revoke_others(self, kind: ActorKind, actor_id: str, current_session_id: str) -> int:
        removed = await self._sessions.delete_actor_sessions(
            kind, actor_id, except_session_id=current_session_id
        )
        await self._tokens.revoke_for_sessions(removed)
        return len(removed)

    async def revoke_all(self, kind: ActorKind, actor_id: str) -> int:
        removed = await self._sessions.delete_actor_sessions(kind, actor_id)
        await self._tokens.revoke_for_actor(kind, actor_id)
        return len(removed)

    async def purge_expired(self) -> int:
        removed = await self._sessions.purge_expired_sessions(self._clock())
        if removed:
            logger.info("Purged %s expired sessions.", removed)
        await self._tokens.purge()
        return removed
