from __future__ import annotations

import copy
from datetime import datetime
from typing import Any, Dict, List, Optional

from bson import ObjectId

from ...core.errors import ValidationFailed
from ...domain.models import (
    Actor,
    ActorKind,
    Notification,
    OtpState,
    ProjectDeadline,
    RefreshToken,
    Session,
)
from ...domain.models.actor import LOGIN_HISTORY_LIMIT
from ...domain.ports.persistence import PersistenceGateway


class InMemoryPersistence(PersistenceGateway):
    """Process-local implementation of the persistence gateway.

    Selected with ``MONGODB_URI=memory://`` and used by the test-suite. Every
    read returns a copy so callers cannot mutate stored state by accident.
    """

    def __init__(self) -> None:
        self._actors: Dict[ActorKind, Dict[str, Actor]] = {kind: {} for kind in ActorKind}
        self._sessions: Dict[str, Session] = {}
        self._refresh_tokens: Dict[str, RefreshToken] = {}
        self._deadlines: Dict[str, ProjectDeadline] = {}
        self._notifications: Dict[str, Notification] = {}

    async def ensure_indexes(self) -> None:
        return None

    def close(self) -> None:
        return None

    # ------------------------------------------------------------------ actors
    async def create_actor(self, actor: Actor) -> Actor:
        store = self._actors[actor.kind]
        if any(existing.email == actor.email for existing in store.values()):
            raise ValidationFailed("An account with this email already exists.")
        stored = copy.deepcopy(actor)
        stored.id = str(ObjectId())
        store[stored.id] = stored
        return copy.deepcopy(stored)

    async def get_actor_by_id(self, kind: ActorKind, actor_id: str) -> Optional[Actor]:
        return copy.deepcopy(self._actors[kind].get(actor_id))

    async def get_actor_by_email(self, kind: ActorKind, email: str) -> Optional[Actor]:
        for actor in self._actors[kind].values():
            if actor.email == email:
                return copy.deepcopy(actor)
        return None

    async def list_actors(self, kind: ActorKind, skip: int = 0, limit: int = 50) -> List[Actor]:
        actors = sorted(self._actors[kind].values(), key=lambda item: item.created_at, reverse=True)
        return [copy.deepcopy(actor) for actor in actors[skip : skip + limit]]

    async def update_otp_state(self, kind: ActorKind, actor_id: str, otp: OtpState) -> None:
        actor = self._actors[kind].get(actor_id)
        if actor:
            actor.otp = copy.deepcopy(otp)

    async def mark_actor_verified(self, kind: ActorKind, actor_id: str) -> None:
        actor = self._actors[kind].get(actor_id)
        if actor:
            actor.is_verified = True

    async def update_actor_password(self, kind: ActorKind, actor_id: str, password_hash: str) -> None:
        actor = self._actors[kind].get(actor_id)
        if actor:
            actor.password_hash = password_hash

    async def set_actor_active(self, kind: ActorKind, actor_id: str, is_active: bool) -> bool:
        actor = self._actors[kind].get(actor_id)
        if actor is None:
            return False
        actor.is_active = is_active
        return True

    async def record_actor_login(
        self,
        kind: ActorKind,
        actor_id: str,
        at: datetime,
        entry: Optional[Dict[str, Any]] = None,
    ) -> None:
        actor = self._actors[kind].get(actor_id)
        if actor is None:
            return
        actor.last_login_at = at
        if entry is not None:
            actor.login_history = (actor.login_history + [dict(entry)])[-LOGIN_HISTORY_LIMIT:]

    async def touch_actor(self, kind: ActorKind, actor_id: str, at: datetime) -> None:
        actor = self._actors[kind].get(actor_id)
        if actor:
            actor.last_active_at = at

    # ---------------------------------------------------------------- sessions
    async def create_session(self, session: Session) -> Session:
        self._sessions[session.id] = copy.deepcopy(session)
        return session

    async def get_session(self, session_id: str) -> Optional[Session]:
        return copy.deepcopy(self._sessions.get(session_id))

    async def list_actor_sessions(self, kind: ActorKind, actor_id: str) -> List[Session]:
        return [
            copy.deepcopy(session)
            for session in self._sessions.values()
            if session.actor_kind is kind and session.actor_id == actor_id
        ]

    async def touch_session(self, session_id: str, last_activity: datetime, expires_at: datetime) -> None:
        session = self._sessions.get(session_id)
        if session:
            session.last_activity = last_activity
            session.expires_at = expires_at

    async def delete_session(self, session_id: str) -> bool:
        return self._sessions.pop(session_id, None) is not None

    async def delete_actor_sessions(
        self,
        kind: ActorKind,
        actor_id: str,
        *,
        except_session_id: Optional[str] = None,
    ) -> List[str]:
        doomed = [
            session.id
            for session in self._sessions.values()
            if session.actor_kind is kind and session.actor_id == actor_id and session.id != except_session_id
        ]
        for session_id in doomed:
            del self._sessions[session_id]
        return doomed

    async def purge_expired_sessions(self, now: datetime) -> int:
        doomed = [session.id for session in self._sessions.values() if session.is_expired(now)]
        for session_id in doomed:
            del self._sessions[session_id]
        return len(doomed)

    # ---------------------------------------------------------- refresh tokens
    async def create_refresh_token(self, token: RefreshToken) -> RefreshToken:
        stored = copy.deepcopy(token)
        stored.id = str(ObjectId())
        self._refresh_tokens[stored.token_hash] = stored
        return copy.deepcopy(stored)

    async def get_refresh_token(self, token_hash: str) -> Optional[RefreshToken]:
        return copy.deepcopy(self._refresh_tokens.get(token_hash))

    async def touch_refresh_token(self, token_hash: str, at: datetime) -> None:
        token = self._refresh_tokens.get(token_hash)
        if token:
            token.last_used_at = at

    async def revoke_session_tokens(self, session_ids: List[str]) -> int:
        return self._revoke(lambda token: token.session_id in session_ids)

    async def revoke_actor_tokens(self, kind: ActorKind, actor_id: str) -> int:
        return self._revoke(lambda token: token.actor_kind is kind and token.actor_id == actor_id)

    async def purge_refresh_tokens(self, now: datetime) -> int:
        doomed = [key for key, token in self._refresh_tokens.items() if not token.is_usable(now)]
        for key in doomed:
            del self._refresh_tokens[key]
        return len(doomed)

    def _revoke(self, predicate) -> int:
        revoked = 0
        for token in self._refresh_tokens.values():
            if token.is_active and predicate(token):
                token.is_active = False
                revoked += 1
        return revoked

    # --------------------------------------------------------------- deadlines
    async def create_deadline(self, deadline: ProjectDeadline) -> ProjectDeadline:
        stored = copy.deepcopy(deadline)
        stored.id = str(ObjectId())
        self._deadlines[stored.id] = stored
        return copy.deepcopy(stored)

    async def get_deadline(self, deadline_id: str) -> Optional[ProjectDeadline]:
        return copy.deepcopy(self._deadlines.get(deadline_id))

    async def list_project_deadlines(self, project_id: str) -> List[ProjectDeadline]:
        deadlines = [deadline for deadline in self._deadlines.values() if deadline.project_id == project_id]
        return [copy.deepcopy(deadline) for deadline in sorted(deadlines, key=lambda item: item.deadline_date)]

    async def list_deadlines_with_due_reminders(self, now: datetime) -> List[ProjectDeadline]:
        return [
            copy.deepcopy(deadline)
            for deadline in self._deadlines.values()
            if not deadline.is_completed and deadline.deadline_date >= now and deadline.due_reminders(now)
        ]

    async def mark_reminder_sent(self, deadline_id: str, reminder_type: str, sent_at: datetime) -> None:
        deadline = self._deadlines.get(deadline_id)
        if deadline is None:
            return
        for reminder in deadline.reminders:
            if reminder.reminder_type == reminder_type:
                reminder.sent = True
                reminder.sent_at = sent_at

    async def complete_deadline(self, deadline_id: str, completed_at: datetime) -> None:
        deadline = self._deadlines.get(deadline_id)
        if deadline:
            deadline.is_completed = True
            deadline.completed_at = completed_at

    # ----------------------------------------------------------- notifications
    async def create_notification(self, notification: Notification) -> Notification:
        stored = copy.deepcopy(notification)
        stored.id = str(ObjectId())
        self._notifications[stored.id] = stored
        return copy.deepcopy(stored)

    async def list_notifications(
        self,
        kind: ActorKind,
        recipient_id: str,
        *,
        unread_only: bool = False,
        limit: int = 50,
    ) -> List[Notification]:
        matches = [
            notification
            for notification in self._notifications.values()
            if self._addressed_to(notification, kind, recipient_id) and not (unread_only and notification.is_read)
        ]
        matches.sort(key=lambda item: item.created_at, reverse=True)
        return [copy.deepcopy(notification) for notification in matches[:limit]]

    async def count_unread_notifications(self, kind: ActorKind, recipient_id: str) -> int:
        return sum(
            1
            for notification in self._notifications.values()
            if self._addressed_to(notification, kind, recipient_id) and not notification.is_read
        )

    async def mark_notification_read(
        self,
        notification_id: str,
        kind: ActorKind,
        recipient_id: str,
        at: datetime,
    ) -> bool:
        notification = self._notifications.get(notification_id)
        if notification is None or not self._addressed_to(notification, kind, recipient_id):
            return False
        if not notification.is_read:
            notification.is_read = True
            notification.read_at = at
        return True

    async def mark_all_notifications_read(self, kind: ActorKind, recipient_id: str, at: datetime) -> int:
        updated = 0
        for notification in self._notifications.values():
            if self._addressed_to(notification, kind, recipient_id) and not notification.is_read:
                notification.is_read = True
                notification.read_at = at
                updated += 1
        return updated

    @staticmethod
    def _addressed_to(notification: Notification, kind: ActorKind, recipient_id: str) -> bool:
        return notification.recipient_kind is kind and notification.recipient_id == recipient_id
