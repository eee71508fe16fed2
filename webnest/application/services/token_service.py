from __future__ import annotations

import hashlib
import logging
import secrets
from dataclasses import dataclass
from datetime import timedelta
from typing import List

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from jose import ExpiredSignatureError, JWTError, jwt

from ...core.clock import Clock, utcnow
from ...core.errors import Unauthorized
from ...domain.models import Actor, ActorKind, RefreshToken, Session
from ...domain.ports.persistence import RefreshTokenRepository

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class AccessClaims:
    actor_id: str
    actor_kind: ActorKind
    session_id: str
    role: str


class TokenService:
    """Signs access tokens, session cookies and manages refresh tokens."""

    def __init__(
        self,
        refresh_tokens: RefreshTokenRepository,
        *,
        jwt_secret: str,
        session_secret: str,
        access_exp_minutes: int = 15,
        refresh_exp_days: int = 30,
        session_max_age_seconds: int = 30 * 24 * 3600,
        algorithm: str = "HS256",
        clock: Clock = utcnow,
    ) -> None:
        if not jwt_secret:
            raise RuntimeError("JWT_SECRET is not configured.")
        if not session_secret:
            raise RuntimeError("SESSION_SECRET is not configured.")
        self._refresh_tokens = refresh_tokens
        self._jwt_secret = jwt_secret
        self._algorithm = algorithm
        self._access_exp = timedelta(minutes=access_exp_minutes)
        self._refresh_exp = timedelta(days=refresh_exp_days)
        self._session_max_age = session_max_age_seconds
        self._cookie_serializer = URLSafeTimedSerializer(secret_key=session_secret, salt="webnest-session")
        self._clock = clock

    # ------------------------------------------------------------------
    def create_access_token(self, actor: Actor, session: Session) -> str:
        now = self._clock()
        payload = {
            "sub": str(actor.id),
            "kind": actor.kind.value,
            "sid": session.id,
            "role": actor.role,
            "iat": now,
            "exp": now + self._access_exp,
        }
        return jwt.encode(payload, self._jwt_secret, algorithm=self._algorithm)

    def decode_access_token(self, token: str) -> AccessClaims:
        try:
            payload = jwt.decode(token, self._jwt_secret, algorithms=[self._algorithm])
        except ExpiredSignatureError as exc:
            raise Unauthorized("Session expired. Please log in again.") from exc
        except JWTError as exc:
            raise Unauthorized("Not authorized, token failed") from exc
        try:
            return AccessClaims(
                actor_id=str(payload["sub"]),
                actor_kind=ActorKind(payload["kind"]),
                session_id=str(payload["sid"]),
                role=str(payload.get("role", "")),
            )
        except (KeyError, ValueError) as exc:
            raise Unauthorized("Not authorized, token failed") from exc

    @property
    def access_expires_in(self) -> int:
        return int(self._access_exp.total_seconds())

    # ------------------------------------------------------------------
    def sign_session_id(self, session_id: str) -> str:
        return self._cookie_serializer.dumps(session_id)

    def unsign_session_id(self, value: str) -> str:
        try:
            session_id = self._cookie_serializer.loads(value, max_age=self._session_max_age)
        except SignatureExpired as exc:
            raise Unauthorized("Session expired. Please log in again.") from exc
        except BadSignature as exc:
            raise Unauthorized("Invalid session cookie") from exc
        if not isinstance(session_id, str) or not session_id:
            raise Unauthorized("Invalid session cookie")
        return session_id

    # ------------------------------------------------------------------
    async def issue_refresh_token(self, actor: Actor, session: Session) -> str:
        plaintext = secrets.token_hex(64)
        now = self._clock()
        await self._refresh_tokens.create_refresh_token(
            RefreshToken(
                token_hash=self._hash(plaintext),
                actor_id=str(actor.id),
                actor_kind=actor.kind,
                session_id=session.id,
                expires_at=now + self._refresh_exp,
                created_at=now,
            )
        )
        return plaintext

    async def validate_refresh_token(self, plaintext: str) -> RefreshToken:
        token_hash = self._hash(plaintext)
        record = await self._refresh_tokens.get_refresh_token(token_hash)
        now = self._clock()
        if record is None or not record.is_usable(now):
            raise Unauthorized("Invalid or expired refresh token")
        await self._refresh_tokens.touch_refresh_token(token_hash, now)
        record.last_used_at = now
        return record

    async def revoke_for_sessions(self, session_ids: List[str]) -> int:
        if not session_ids:
            return 0
        return await self._refresh_tokens.revoke_session_tokens(session_ids)

    async def revoke_for_actor(self, kind: ActorKind, actor_id: str) -> int:
        return await self._refresh_tokens.revoke_actor_tokens(kind, actor_id)

    async def purge(self) -> int:
        removed = await self._refresh_tokens.purge_refresh_tokens(self._clock())
        if removed:
            logger.info("Purged %s inactive or expired refresh tokens.", removed)
        return removed

    @staticmethod
    def _hash(plaintext: str) -> str:
        return hashlib.sha256(plaintext.encode("utf-8")).hexdigest()
