"""Server-tracked login sessions and the refresh tokens bound to them."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from .actor import ActorKind


@dataclass(slots=True)
class Session:
    id: str
    actor_id: str
    actor_kind: ActorKind
    created_at: datetime
    last_activity: datetime
    expires_at: datetime
    user_agent: Optional[str] = None
    ip_address: Optional[str] = None
    device_type: str = "desktop"

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now


@dataclass(slots=True)
class RefreshToken:
    """Long-lived credential exchanged for new access tokens.

    Only the SHA-256 hash of the token is persisted.
    """

    token_hash: str
    actor_id: str
    actor_kind: ActorKind
    session_id: str
    expires_at: datetime
    created_at: datetime
    is_active: bool = True
    last_used_at: Optional[datetime] = None
    id: Optional[str] = field(default=None)

    def is_usable(self, now: datetime) -> bool:
        return self.is_active and self.expires_at > now
