"""One-time code state embedded on every actor."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class OtpOutcome(str, Enum):
    VERIFIED = "verified"
    INVALID = "invalid"
    EXPIRED = "expired"
    BLOCKED = "blocked"
    NOT_ISSUED = "not_issued"


@dataclass(slots=True)
class OtpState:
    """Attempt bookkeeping for the actor's current one-time code.

    ``code_hash`` and ``expires_at`` are cleared once the code is used.
    ``attempts`` counts wrong submissions and resets when ``blocked_until``
    has elapsed. ``challenge_until`` is set by a password login that still
    needs a code; a verified actor can only use codes while it is pending.
    """

    code_hash: Optional[str] = None
    expires_at: Optional[datetime] = None
    attempts: int = 0
    last_attempt_at: Optional[datetime] = None
    blocked_until: Optional[datetime] = None
    challenge_until: Optional[datetime] = None

    @property
    def is_issued(self) -> bool:
        return bool(self.code_hash) and self.expires_at is not None

    def is_blocked(self, now: datetime) -> bool:
        return self.blocked_until is not None and self.blocked_until > now

    def has_challenge(self, now: datetime) -> bool:
        return self.challenge_until is not None and self.challenge_until > now

    def clear(self) -> None:
        self.code_hash = None
        self.expires_at = None
        self.attempts = 0
        self.blocked_until = None
        self.challenge_until = None
