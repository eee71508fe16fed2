from __future__ import annotations

from dataclasses import asdict
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import DuplicateKeyError

from ...core.errors import ValidationFailed
from ...domain.models import (
    Actor,
    ActorKind,
    Notification,
    OtpState,
    ProjectDeadline,
    RefreshToken,
    Reminder,
    Session,
)
from ...domain.models.actor import LOGIN_HISTORY_LIMIT
from ...domain.ports.persistence import PersistenceGateway

SESSIONS = "sessions"
REFRESH_TOKENS = "refresh_tokens"
DEADLINES = "project_deadlines"
NOTIFICATIONS = "notifications"


def _object_id(value: Optional[str]) -> Optional[ObjectId]:
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None


class MongoPersistence(PersistenceGateway):
    """MongoDB-backed implementation of the persistence gateway."""

    def __init__(self, uri: str, database: str, client: Optional[AsyncIOMotorClient] = None) -> None:
        self._client = client or AsyncIOMotorClient(uri, tz_aware=True)
        self._db = self._client[database]

    async def ensure_indexes(self) -> None:
        for kind in ActorKind:
            await self._db[kind.collection].create_index("email", unique=True)
        await self._db[SESSIONS].create_index([("actor_kind", ASCENDING), ("actor_id", ASCENDING)])
        await self._db[SESSIONS].create_index("expires_at", expireAfterSeconds=0)
        await self._db[REFRESH_TOKENS].create_index("token_hash", unique=True)
        await self._db[REFRESH_TOKENS].create_index("session_id")
        await self._db[REFRESH_TOKENS].create_index("expires_at", expireAfterSeconds=0)
        await self._db[DEADLINES].create_index([("project_id", ASCENDING), ("deadline_date", ASCENDING)])
        await self._db[DEADLINES].create_index([("is_completed", ASCENDING), ("reminders.remind_at", ASCENDING)])
        await self._db[NOTIFICATIONS].create_index(
            [("recipient_kind", ASCENDING), ("recipient_id", ASCENDING), ("created_at", DESCENDING)]
        )

    def close(self) -> None:
        self._client.close()

    # ------------------------------------------------------------------ actors
    async def create_actor(self, actor: Actor) -> Actor:
        document = self._actor_to_document(actor)
        try:
            result = await self._db[actor.kind.collection].insert_one(document)
        except DuplicateKeyError as exc:
            raise ValidationFailed("An account with this email already exists.") from exc
        document["_id"] = result.inserted_id
        return self._document_to_actor(actor.kind, document)

    async def get_actor_by_id(self, kind: ActorKind, actor_id: str) -> Optional[Actor]:
        oid = _object_id(actor_id)
        if oid is None:
            return None
        document = await self._db[kind.collection].find_one({"_id": oid})
        return self._document_to_actor(kind, document) if document else None

    async def get_actor_by_email(self, kind: ActorKind, email: str) -> Optional[Actor]:
        document = await self._db[kind.collection].find_one({"email": email})
        return self._document_to_actor(kind, document) if document else None

    async def list_actors(self, kind: ActorKind, skip: int = 0, limit: int = 50) -> List[Actor]:
        cursor = self._db[kind.collection].find().sort("created_at", DESCENDING).skip(skip).limit(limit)
        return [self._document_to_actor(kind, document) async for document in cursor]

    async def update_otp_state(self, kind: ActorKind, actor_id: str, otp: OtpState) -> None:
        await self._update_actor(kind, actor_id, {"otp": asdict(otp)})

    async def mark_actor_verified(self, kind: ActorKind, actor_id: str) -> None:
        await self._update_actor(kind, actor_id, {"is_verified": True})

    async def update_actor_password(self, kind: ActorKind, actor_id: str, password_hash: str) -> None:
        await self._update_actor(kind, actor_id, {"password_hash": password_hash})

    async def set_actor_active(self, kind: ActorKind, actor_id: str, is_active: bool) -> bool:
        result = await self._update_actor(kind, actor_id, {"is_active": is_active})
        return bool(result and result.matched_count)

    async def record_actor_login(
        self,
        kind: ActorKind,
        actor_id: str,
        at: datetime,
        entry: Optional[Dict[str, Any]] = None,
    ) -> None:
        oid = _object_id(actor_id)
        if oid is None:
            return
        update: Dict[str, Any] = {"$set": {"last_login_at": at, "updated_at": self._now()}}
        if entry is not None:
            update["$push"] = {"login_history": {"$each": [entry], "$slice": -LOGIN_HISTORY_LIMIT}}
        await self._db[kind.collection].update_one({"_id": oid}, update)

    async def touch_actor(self, kind: ActorKind, actor_id: str, at: datetime) -> None:
        oid = _object_id(actor_id)
        if oid is not None:
            await self._db[kind.collection].update_one({"_id": oid}, {"$set": {"last_active_at": at}})

    async def _update_actor(self, kind: ActorKind, actor_id: str, fields: Dict[str, Any]):
        oid = _object_id(actor_id)
        if oid is None:
            return None
        fields = dict(fields, updated_at=self._now())
        return await self._db[kind.collection].update_one({"_id": oid}, {"$set": fields})

    # ---------------------------------------------------------------- sessions
    async def create_session(self, session: Session) -> Session:
        document = asdict(session)
        document["_id"] = document.pop("id")
        document["actor_kind"] = session.actor_kind.value
        await self._db[SESSIONS].insert_one(document)
        return session

    async def get_session(self, session_id: str) -> Optional[Session]:
        document = await self._db[SESSIONS].find_one({"_id": session_id})
        return self._document_to_session(document) if document else None

    async def list_actor_sessions(self, kind: ActorKind, actor_id: str) -> List[Session]:
        cursor = self._db[SESSIONS].find({"actor_kind": kind.value, "actor_id": actor_id})
        return [self._document_to_session(document) async for document in cursor]

    async def touch_session(self, session_id: str, last_activity: datetime, expires_at: datetime) -> None:
        await self._db[SESSIONS].update_one(
            {"_id": session_id},
            {"$set": {"last_activity": last_activity, "expires_at": expires_at}},
        )

    async def delete_session(self, session_id: str) -> bool:
        result = await self._db[SESSIONS].delete_one({"_id": session_id})
        return result.deleted_count > 0

    async def delete_actor_sessions(
        self,
        kind: ActorKind,
        actor_id: str,
        *,
        except_session_id: Optional[str] = None,
    ) -> List[str]:
        query: Dict[str, Any] = {"actor_kind": kind.value, "actor_id": actor_id}
        if except_session_id is not None:
            query["_id"] = {"$ne": except_session_id}
        doomed = [document["_id"] async for document in self._db[SESSIONS].find(query, {"_id": 1})]
        if doomed:
            await self._db[SESSIONS].delete_many({"_id": {"$in": doomed}})
        return doomed

    async def purge_expired_sessions(self, now: datetime) -> int:
        result = await self._db[SESSIONS].delete_many({"expires_at": {"$lte": now}})
        return result.deleted_count

    # ---------------------------------------------------------- refresh tokens
    async def create_refresh_token(self, token: RefreshToken) -> RefreshToken:
        document = asdict(token)
        document.pop("id")
        document["actor_kind"] = token.actor_kind.value
        result = await self._db[REFRESH_TOKENS].insert_one(document)
        token.id = str(result.inserted_id)
        return token

    async def get_refresh_token(self, token_hash: str) -> Optional[RefreshToken]:
        document = await self._db[REFRESH_TOKENS].find_one({"token_hash": token_hash})
        if not document:
            return None
        return RefreshToken(
            token_hash=document["token_hash"],
            actor_id=document["actor_id"],
            actor_kind=ActorKind(document["actor_kind"]),
            session_id=document["session_id"],
            expires_at=self._as_utc(document["expires_at"]),
            created_at=self._as_utc(document["created_at"]),
            is_active=document.get("is_active", True),
            last_used_at=self._as_utc(document.get("last_used_at")),
            id=str(document["_id"]),
        )

    async def touch_refresh_token(self, token_hash: str, at: datetime) -> None:
        await self._db[REFRESH_TOKENS].update_one({"token_hash": token_hash}, {"$set": {"last_used_at": at}})

    async def revoke_session_tokens(self, session_ids: List[str]) -> int:
        if not session_ids:
            return 0
        result = await self._db[REFRESH_TOKENS].update_many(
            {"session_id": {"$in": list(session_ids)}, "is_active": True},
            {"$set": {"is_active": False}},
        )
        return result.modified_count

    async def revoke_actor_tokens(self, kind: ActorKind, actor_id: str) -> int:
        result = await self._db[REFRESH_TOKENS].update_many(
            {"actor_kind": kind.value, "actor_id": actor_id, "is_active": True},
            {"$set": {"is_active": False}},
        )
        return result.modified_count

    async def purge_refresh_tokens(self, now: datetime) -> int:
        result = await self._db[REFRESH_TOKENS].delete_many(
            {"$or": [{"is_active": False}, {"expires_at": {"$lte": now}}]}
        )
        return result.deleted_count

    # --------------------------------------------------------------- deadlines
    async def create_deadline(self, deadline: ProjectDeadline) -> ProjectDeadline:
        document = asdict(deadline)
        document.pop("id")
        document["assignee_kind"] = deadline.assignee_kind.value
        document["creator_kind"] = deadline.creator_kind.value
        result = await self._db[DEADLINES].insert_one(document)
        document["_id"] = result.inserted_id
        return self._document_to_deadline(document)

    async def get_deadline(self, deadline_id: str) -> Optional[ProjectDeadline]:
        oid = _object_id(deadline_id)
        if oid is None:
            return None
        document = await self._db[DEADLINES].find_one({"_id": oid})
        return self._document_to_deadline(document) if document else None

    async def list_project_deadlines(self, project_id: str) -> List[ProjectDeadline]:
        cursor = self._db[DEADLINES].find({"project_id": project_id}).sort("deadline_date", ASCENDING)
        return [self._document_to_deadline(document) async for document in cursor]

    async def list_deadlines_with_due_reminders(self, now: datetime) -> List[ProjectDeadline]:
        cursor = self._db[DEADLINES].find(
            {
                "is_completed": False,
                "deadline_date": {"$gte": now},
                "reminders": {"$elemMatch": {"sent": False, "remind_at": {"$lte": now}}},
            }
        )
        return [self._document_to_deadline(document) async for document in cursor]

    async def mark_reminder_sent(self, deadline_id: str, reminder_type: str, sent_at: datetime) -> None:
        oid = _object_id(deadline_id)
        if oid is None:
            return
        await self._db[DEADLINES].update_one(
            {"_id": oid, "reminders.reminder_type": reminder_type},
            {"$set": {"reminders.$.sent": True, "reminders.$.sent_at": sent_at}},
        )

    async def complete_deadline(self, deadline_id: str, completed_at: datetime) -> None:
        oid = _object_id(deadline_id)
        if oid is None:
            return
        await self._db[DEADLINES].update_one(
            {"_id": oid},
            {"$set": {"is_completed": True, "completed_at": completed_at}},
        )

    # ----------------------------------------------------------- notifications
    async def create_notification(self, notification: Notification) -> Notification:
        document = asdict(notification)
        document.pop("id")
        document["recipient_kind"] = notification.recipient_kind.value
        result = await self._db[NOTIFICATIONS].insert_one(document)
        notification.id = str(result.inserted_id)
        return notification

    async def list_notifications(
        self,
        kind: ActorKind,
        recipient_id: str,
        *,
        unread_only: bool = False,
        limit: int = 50,
    ) -> List[Notification]:
        query: Dict[str, Any] = {"recipient_kind": kind.value, "recipient_id": recipient_id}
        if unread_only:
            query["is_read"] = False
        cursor = self._db[NOTIFICATIONS].find(query).sort("created_at", DESCENDING).limit(limit)
        return [self._document_to_notification(document) async for document in cursor]

    async def count_unread_notifications(self, kind: ActorKind, recipient_id: str) -> int:
        return await self._db[NOTIFICATIONS].count_documents(
            {"recipient_kind": kind.value, "recipient_id": recipient_id, "is_read": False}
        )

    async def mark_notification_read(
        self,
        notification_id: str,
        kind: ActorKind,
        recipient_id: str,
        at: datetime,
    ) -> bool:
        oid = _object_id(notification_id)
        if oid is None:
            return False
        query = {"_id": oid, "recipient_kind": kind.value, "recipient_id": recipient_id}
        document = await self._db[NOTIFICATIONS].find_one(query, {"is_read": 1})
        if document is None:
            return False
        if not document.get("is_read"):
            await self._db[NOTIFICATIONS].update_one(query, {"$set": {"is_read": True, "read_at": at}})
        return True

    async def mark_all_notifications_read(self, kind: ActorKind, recipient_id: str, at: datetime) -> int:
        result = await self._db[NOTIFICATIONS].update_many(
            {"recipient_kind": kind.value, "recipient_id": recipient_id, "is_read": False},
            {"$set": {"is_read": True, "read_at": at}},
        )
        return result.modified_count

    # ------------------------------------------------------------------ helpers
    @staticmethod
    def _now() -> datetime:
        return datetime.now(timezone.utc)

    @staticmethod
    def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    @staticmethod
    def _actor_to_document(actor: Actor) -> Dict[str, Any]:
        return {
            "email": actor.email,
            "password_hash": actor.password_hash,
            "name": actor.name,
            "role": actor.role,
            "is_verified": actor.is_verified,
            "is_active": actor.is_active,
            "otp": asdict(actor.otp),
            "permissions": actor.permissions,
            "profile": actor.profile,
            "login_history": actor.login_history,
            "last_login_at": actor.last_login_at,
            "last_active_at": actor.last_active_at,
            "created_at": actor.created_at,
            "updated_at": actor.updated_at,
        }

    def _document_to_actor(self, kind: ActorKind, document: Dict[str, Any]) -> Actor:
        otp = document.get("otp") or {}
        return Actor(
            id=str(document["_id"]),
            kind=kind,
            email=document["email"],
            password_hash=document["password_hash"],
            name=document.get("name", ""),
            role=document.get("role"),
            is_verified=document.get("is_verified", False),
            is_active=document.get("is_active", True),
            otp=OtpState(
                code_hash=otp.get("code_hash"),
                expires_at=self._as_utc(otp.get("expires_at")),
                attempts=otp.get("attempts", 0),
                last_attempt_at=self._as_utc(otp.get("last_attempt_at")),
                blocked_until=self._as_utc(otp.get("blocked_until")),
                challenge_until=self._as_utc(otp.get("challenge_until")),
            ),
            permissions=document.get("permissions"),
            profile=document.get("profile"),
            login_history=document.get("login_history"),
            last_login_at=self._as_utc(document.get("last_login_at")),
            last_active_at=self._as_utc(document.get("last_active_at")),
            created_at=self._as_utc(document.get("created_at")),
            updated_at=self._as_utc(document.get("updated_at")),
        )

    def _document_to_session(self, document: Dict[str, Any]) -> Session:
        return Session(
            id=document["_id"],
            actor_id=document["actor_id"],
            actor_kind=ActorKind(document["actor_kind"]),
            created_at=self._as_utc(document["created_at"]),
            last_activity=self._as_utc(document["last_activity"]),
            expires_at=self._as_utc(document["expires_at"]),
            user_agent=document.get("user_agent"),
            ip_address=document.get("ip_address"),
            device_type=document.get("device_type", "desktop"),
        )

    def _document_to_deadline(self, document: Dict[str, Any]) -> ProjectDeadline:
        return ProjectDeadline(
            id=str(document["_id"]),
            project_id=document["project_id"],
            title=document["title"],
            deadline_date=self._as_utc(document["deadline_date"]),
            assignee_id=document["assignee_id"],
            assignee_kind=ActorKind(document["assignee_kind"]),
            creator_id=document["creator_id"],
            creator_kind=ActorKind(document["creator_kind"]),
            project_title=document.get("project_title", ""),
            description=document.get("description"),
            priority=document.get("priority", "medium"),
            reminders=[
                Reminder(
                    reminder_type=item["reminder_type"],
                    remind_at=self._as_utc(item["remind_at"]),
                    sent=item.get("sent", False),
                    sent_at=self._as_utc(item.get("sent_at")),
                )
                for item in document.get("reminders", [])
            ],
            is_completed=document.get("is_completed", False),
            completed_at=self._as_utc(document.get("completed_at")),
            created_at=self._as_utc(document.get("created_at")),
        )

    def _document_to_notification(self, document: Dict[str, Any]) -> Notification:
        return Notification(
            id=str(document["_id"]),
            recipient_id=document["recipient_id"],
            recipient_kind=ActorKind(document["recipient_kind"]),
            title=document["title"],
            message=document["message"],
            type=document["type"],
            priority=document.get("priority", "medium"),
            is_read=document.get("is_read", False),
            read_at=self._as_utc(document.get("read_at")),
            action_url=document.get("action_url"),
            action_text=document.get("action_text"),
            project_id=document.get("project_id"),
            metadata=document.get("metadata") or {},
            created_at=self._as_utc(document.get("created_at")),
        )
