"""Actor domain model shared by clients, developers and administrators."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from .otp import OtpState


class ActorKind(str, Enum):
    """Which backend (and collection) an actor belongs to."""

    USER = "user"
    DEVELOPER = "developer"
    ADMIN = "admin"

    @property
    def collection(self) -> str:
        return {
            ActorKind.USER: "users",
            ActorKind.DEVELOPER: "developers",
            ActorKind.ADMIN: "admins",
        }[self]

    @property
    def default_role(self) -> str:
        return {
            ActorKind.USER: "client",
            ActorKind.DEVELOPER: "developer",
            ActorKind.ADMIN: "admin",
        }[self]


ROLES_BY_KIND: Dict[ActorKind, tuple] = {
    ActorKind.USER: ("client", "premiumClient"),
    ActorKind.DEVELOPER: ("developer",),
    ActorKind.ADMIN: ("admin", "owner"),
}

PERMISSION_MODULES = (
    "users",
    "developers",
    "projects",
    "themes",
    "analytics",
    "notifications",
    "settings",
)
PERMISSION_ACTIONS = ("create", "read", "update", "delete")

LOGIN_HISTORY_LIMIT = 20


class Actor:
    """
    Authenticated principal stored in one of the actor collections.

    Attributes:
        id: Document identifier
        kind: Which service the actor belongs to
        email: Lower-cased, unique within the kind
        password_hash: bcrypt hash of the credential
        name: Display name
        role: Role within the kind (client, premiumClient, developer, admin, owner)
        is_verified: Whether the email has been confirmed with an OTP
        is_active: False once soft-deactivated
        otp: Embedded one-time code attempt state
        permissions: Admin permission list of {"module", "actions"}
        profile: Free-form registration fields (company, skills, ...)
        login_history: Recent admin logins, newest last
        last_active_at: Last authenticated request
    """

    def __init__(
        self,
        id: Optional[str],
        kind: ActorKind,
        email: str,
        password_hash: str,
        name: str = "",
        role: Optional[str] = None,
        is_verified: bool = False,
        is_active: bool = True,
        otp: Optional[OtpState] = None,
        permissions: Optional[List[Dict[str, Any]]] = None,
        profile: Optional[Dict[str, Any]] = None,
        login_history: Optional[List[Dict[str, Any]]] = None,
        last_login_at: Optional[datetime] = None,
        last_active_at: Optional[datetime] = None,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None,
    ):
        self.id = id
        self.kind = kind
        self.email = email
        self.password_hash = password_hash
        self.name = name
        self.role = role or kind.default_role
        self.is_verified = is_verified
        self.is_active = is_active
        self.otp = otp or OtpState()
        self.permissions = permissions or []
        self.profile = profile or {}
        self.login_history = login_history or []
        self.last_login_at = last_login_at
        self.last_active_at = last_active_at
        self.created_at = created_at or datetime.now(timezone.utc)
        self.updated_at = updated_at or self.created_at

    @property
    def is_owner(self) -> bool:
        return self.kind is ActorKind.ADMIN and self.role == "owner"

    def has_permission(self, module: str, action: str) -> bool:
        if self.kind is not ActorKind.ADMIN:
            return False
        if self.is_owner:
            return True
        for permission in self.permissions:
            if permission.get("module") == module:
                return action in permission.get("actions", [])
        return False

    def __repr__(self) -> str:
        return f"<Actor kind={self.kind.value} id={self.id} email={self.email} role={self.role}>"
