from __future__ import annotations

import hashlib
import hmac
import logging
import math
import secrets
from datetime import timedelta

from ...core.clock import Clock, utcnow
from ...core.errors import Forbidden
from ...domain.models import Actor, OtpOutcome, OtpState
from ...domain.ports.persistence import ActorRepository

logger = logging.getLogger(__name__)

CODE_LENGTH = 6
LOGIN_CHALLENGE_MINUTES = 15


def generate_code() -> str:
    """Uniformly random 6-digit numeric code without a leading zero."""
    low = 10 ** (CODE_LENGTH - 1)
    return str(low + secrets.randbelow(9 * low))


def hash_code(code: str) -> str:
    return hashlib.sha256(code.encode("utf-8")).hexdigest()


class OtpService:
    """Issues and checks the one-time codes embedded on actor records.

    The attempt counter and lockout live on the actor and are written back
    after every issue or verification, so they survive restarts and are shared
    by every worker of the service.
    """

    def __init__(
        self,
        actors: ActorRepository,
        *,
        ttl_minutes: int = 5,
        max_attempts: int = 5,
        block_minutes: int = 15,
        clock: Clock = utcnow,
    ) -> None:
        self._actors = actors
        self._ttl = timedelta(minutes=ttl_minutes)
        self._max_attempts = max_attempts
        self._block = timedelta(minutes=block_minutes)
        self._clock = clock

    async def issue(self, actor: Actor, *, login_challenge: bool = False) -> str:
        """Start a new code for ``actor`` and return it in clear text.

        ``login_challenge`` opens the window in which a verified actor may
        complete a password login with the code.

        Raises:
            Forbidden: while a previous lockout is still in force
        """
        now = self._clock()
        state = actor.otp
        if state.is_blocked(now):
            raise Forbidden(self.blocked_message(state))
        code = generate_code()
        state.code_hash = hash_code(code)
        state.expires_at = now + self._ttl
        state.attempts = 0
        state.blocked_until = None
        if login_challenge:
            state.challenge_until = now + timedelta(minutes=LOGIN_CHALLENGE_MINUTES)
        await self._actors.update_otp_state(actor.kind, actor.id, state)
        logger.info("Issued OTP for %s %s (expires %s)", actor.kind.value, actor.id, state.expires_at.isoformat())
        return code

    async def verify(self, actor: Actor, code: str) -> OtpOutcome:
        now = self._clock()
        state = actor.otp

        if state.blocked_until is not None and state.blocked_until <= now:
            state.attempts = 0
            state.blocked_until = None

        if state.is_blocked(now):
            return OtpOutcome.BLOCKED

        if not state.is_issued:
            await self._actors.update_otp_state(actor.kind, actor.id, state)
            return OtpOutcome.NOT_ISSUED

        if now >= state.expires_at:
            await self._actors.update_otp_state(actor.kind, actor.id, state)
            return OtpOutcome.EXPIRED

        if not hmac.compare_digest(state.code_hash, hash_code(code.strip())):
            state.attempts += 1
            state.last_attempt_at = now
            outcome = OtpOutcome.INVALID
            if state.attempts >= self._max_attempts:
                state.blocked_until = now + self._block
                outcome = OtpOutcome.BLOCKED
                logger.warning(
                    "OTP locked for %s %s until %s after %s failed attempts",
                    actor.kind.value,
                    actor.id,
                    state.blocked_until.isoformat(),
                    state.attempts,
                )
            await self._actors.update_otp_state(actor.kind, actor.id, state)
            return outcome

        state.clear()
        state.last_attempt_at = now
        await self._actors.update_otp_state(actor.kind, actor.id, state)
        return OtpOutcome.VERIFIED

    def blocked_message(self, state: OtpState) -> str:
        remaining = self.remaining_block_minutes(state)
        return f"Too many attempts. Please try again in {remaining} minutes."

    def remaining_block_minutes(self, state: OtpState) -> int:
        if state.blocked_until is None:
            return 0
        seconds = (state.blocked_until - self._clock()).total_seconds()
        return max(1, math.ceil(seconds / 60))
