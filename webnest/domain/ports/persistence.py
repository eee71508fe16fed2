from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol

from ..models import (
    Actor,
    ActorKind,
    Notification,
    OtpState,
    ProjectDeadline,
    RefreshToken,
    Session,
)


class ActorRepository(Protocol):
    """Storage for user, developer and admin accounts, one collection per kind."""

    async def create_actor(self, actor: Actor) -> Actor:
        ...

    async def get_actor_by_id(self, kind: ActorKind, actor_id: str) -> Optional[Actor]:
        ...

    async def get_actor_by_email(self, kind: ActorKind, email: str) -> Optional[Actor]:
        ...

    async def list_actors(self, kind: ActorKind, skip: int = 0, limit: int = 50) -> List[Actor]:
        ...

    async def update_otp_state(self, kind: ActorKind, actor_id: str, otp: OtpState) -> None:
        ...

    async def mark_actor_verified(self, kind: ActorKind, actor_id: str) -> None:
        ...

    async def update_actor_password(self, kind: ActorKind, actor_id: str, password_hash: str) -> None:
        ...

    async def set_actor_active(self, kind: ActorKind, actor_id: str, is_active: bool) -> bool:
        ...

    async def record_actor_login(
        self,
        kind: ActorKind,
        actor_id: str,
        at: datetime,
        entry: Optional[Dict[str, Any]] = None,
    ) -> None:
        ...

    async def touch_actor(self, kind: ActorKind, actor_id: str, at: datetime) -> None:
        ...


class SessionRepository(Protocol):
    """Server-side session records keyed by their random identifier."""

    async def create_session(self, session: Session) -> Session:
        ...

    async def get_session(self, session_id: str) -> Optional[Session]:
        ...

    async def list_actor_sessions(self, kind: ActorKind, actor_id: str) -> List[Session]:
        ...

    async def touch_session(self, session_id: str, last_activity: datetime, expires_at: datetime) -> None:
        ...

    async def delete_session(self, session_id: str) -> bool:
        ...

    async def delete_actor_sessions(
        self,
        kind: ActorKind,
        actor_id: str,
        *,
        except_session_id: Optional[str] = None,
    ) -> List[str]:
        ...

    async def purge_expired_sessions(self, now: datetime) -> int:
        ...


class RefreshTokenRepository(Protocol):
    """Hashed refresh tokens bound to a session."""

    async def create_refresh_token(self, token: RefreshToken) -> RefreshToken:
        ...

    async def get_refresh_token(self, token_hash: str) -> Optional[RefreshToken]:
        ...

    async def touch_refresh_token(self, token_hash: str, at: datetime) -> None:
        ...

    async def revoke_session_tokens(self, session_ids: List[str]) -> int:
        ...

    async def revoke_actor_tokens(self, kind: ActorKind, actor_id: str) -> int:
        ...

    async def purge_refresh_tokens(self, now: datetime) -> int:
        ...


class DeadlineRepository(Protocol):
    """Project deadlines with their embedded reminder schedule."""

    async def create_deadline(self, deadline: ProjectDeadline) -> ProjectDeadline:
        ...

    async def get_deadline(self, deadline_id: str) -> Optional[ProjectDeadline]:
        ...

    async def list_project_deadlines(self, project_id: str) -> List[ProjectDeadline]:
        ...

    async def list_deadlines_with_due_reminders(self, now: datetime) -> List[ProjectDeadline]:
        ...

    async def mark_reminder_sent(self, deadline_id: str, reminder_type: str, sent_at: datetime) -> None:
        ...

    async def complete_deadline(self, deadline_id: str, completed_at: datetime) -> None:
        ...


class NotificationRepository(Protocol):
    """In-app notifications addressed to a single actor."""

    async def create_notification(self, notification: Notification) -> Notification:
        ...

    async def list_notifications(
        self,
        kind: ActorKind,
        recipient_id: str,
        *,
        unread_only: bool = False,
        limit: int = 50,
    ) -> List[Notification]:
        ...

    async def count_unread_notifications(self, kind: ActorKind, recipient_id: str) -> int:
        ...

    async def mark_notification_read(
        self,
        notification_id: str,
        kind: ActorKind,
        recipient_id: str,
        at: datetime,
    ) -> bool:
        ...

    async def mark_all_notifications_read(self, kind: ActorKind, recipient_id: str, at: datetime) -> int:
        ...


class PersistenceGateway(
    ActorRepository,
    SessionRepository,
    RefreshTokenRepository,
    DeadlineRepository,
    NotificationRepository,
    Protocol,
):
    """Composite gateway combining every persistence concern used by the app."""

    async def ensure_indexes(self) -> None:
        ...

    def close(self) -> None:
        ...
